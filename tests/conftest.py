from datetime import date
from decimal import Decimal

import pytest

from infra.db import crear_motor, crear_tablas, fabrica_sesiones
from infra.repositorio_sql import RepositorioSQL
from logic.modelos import Cliente, Factura, Gasto, MovimientoBancario, Proveedor
from logic.repositorio import RepositorioMemoria


def mov(id_, importe, fecha=date(2024, 3, 10), descripcion="TRANSFERENCIA", **kw):
    return MovimientoBancario(id=id_, fecha=fecha, importe=Decimal(str(importe)), descripcion=descripcion, **kw)


def gasto(id_, importe, fecha, **kw):
    return Gasto(id=id_, importe=Decimal(str(importe)), fecha=fecha, **kw)


def factura(id_, total, fecha, **kw):
    return Factura(id=id_, total=Decimal(str(total)), fecha=fecha, **kw)


def _repo_sql():
    motor = crear_motor("sqlite://")
    crear_tablas(motor)
    return RepositorioSQL(fabrica_sesiones(motor))


@pytest.fixture
def repo_memoria():
    return RepositorioMemoria()


@pytest.fixture
def repo_sql():
    return _repo_sql()


@pytest.fixture(params=["memoria", "sql"])
def repo(request):
    """El mismo test contra los dos almacenes."""
    r = RepositorioMemoria() if request.param == "memoria" else _repo_sql()
    r.cargar(
        Proveedor("p1", "Harinas del Norte"),
        Cliente("c1", "Panadería La Espiga"),
    )
    return r
