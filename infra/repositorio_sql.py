from __future__ import annotations
import threading
from contextlib import contextmanager
from datetime import date
from typing import Iterable, Iterator

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from infra.db import (
    ClienteORM,
    CobroORM,
    FacturaORM,
    GastoORM,
    MovimientoORM,
    ProveedorORM,
    VinculoORM,
)
from infra.logger import get_logger
from logic.errores import ErrorPersistencia, NoEncontrado
from logic.modelos import (
    ESTADOS_FACTURA_CERRADOS,
    Cliente,
    Cobro,
    Factura,
    Gasto,
    MovimientoBancario,
    Proveedor,
    TipoMatch,
    VinculoConciliacion,
)
from logic.repositorio import Repositorio, nuevo_id


log = get_logger().getChild("repositorio_sql")


def _a_movimiento(r: MovimientoORM) -> MovimientoBancario:
    return MovimientoBancario(
        id=r.id,
        fecha=r.fecha,
        importe=r.importe,
        descripcion=r.descripcion or "",
        referencia=r.referencia,
        estado=r.estado,
        tipo_match=r.match_type,
        match_id=r.match_id,
    )


def _a_gasto(r: GastoORM) -> Gasto:
    return Gasto(
        id=r.id, importe=r.importe, fecha=r.fecha, estado=r.estado,
        proveedor_id=r.proveedor_id, numero=r.numero,
    )


def _a_factura(r: FacturaORM) -> Factura:
    return Factura(
        id=r.id, total=r.total, fecha=r.fecha, estado=r.estado,
        cliente_id=r.cliente_id, numero=r.numero,
    )


def _a_cobro(r: CobroORM) -> Cobro:
    return Cobro(
        id=r.id, factura_id=r.factura_id, importe=r.importe,
        fecha=r.fecha, metodo=r.metodo, notas=r.notas or "",
    )


class RepositorioSQL(Repositorio):
    """Repositorio sobre SQLAlchemy.

    Cada hilo trabaja con su propia sesión. Dentro de ``transaccion()`` todas
    las operaciones comparten esa sesión y se confirman juntas al salir; fuera
    de ella cada operación abre y confirma la suya.
    """

    def __init__(self, fabrica: sessionmaker[Session]):
        self._fabrica = fabrica
        self._local = threading.local()

    @property
    def _sesion_actual(self) -> Session | None:
        return getattr(self._local, "sesion", None)

    @contextmanager
    def transaccion(self) -> Iterator[Session]:
        actual = self._sesion_actual
        if actual is not None:
            yield actual
            return

        sesion = self._fabrica()
        self._local.sesion = sesion
        try:
            yield sesion
            sesion.commit()
        except SQLAlchemyError as e:
            sesion.rollback()
            log.warning("Transacción revertida por error de base de datos: %s", e)
            raise ErrorPersistencia(f"No se pudo guardar en la base de datos: {e}") from e
        except BaseException as e:
            sesion.rollback()
            log.warning("Transacción revertida: %s", e)
            raise
        finally:
            sesion.close()
            self._local.sesion = None

    @contextmanager
    def _sesion(self) -> Iterator[Session]:
        with self.transaccion() as s:
            yield s

    # Carga directa de datos de prueba o de otros módulos
    def cargar(self, *entidades) -> None:
        with self._sesion() as s:
            for e in entidades:
                if isinstance(e, MovimientoBancario):
                    s.add(MovimientoORM(
                        id=e.id, fecha=e.fecha, importe=e.importe, descripcion=e.descripcion,
                        referencia=e.referencia, estado=e.estado,
                        match_type=e.tipo_match, match_id=e.match_id,
                    ))
                elif isinstance(e, Gasto):
                    s.add(GastoORM(
                        id=e.id, importe=e.importe, fecha=e.fecha, estado=e.estado,
                        proveedor_id=e.proveedor_id, numero=e.numero,
                    ))
                elif isinstance(e, Factura):
                    s.add(FacturaORM(
                        id=e.id, total=e.total, fecha=e.fecha, estado=e.estado,
                        cliente_id=e.cliente_id, numero=e.numero,
                    ))
                elif isinstance(e, Proveedor):
                    s.add(ProveedorORM(id=e.id, nombre=e.nombre))
                elif isinstance(e, Cliente):
                    s.add(ClienteORM(id=e.id, nombre=e.nombre))
                elif isinstance(e, Cobro):
                    s.add(CobroORM(
                        id=e.id, factura_id=e.factura_id, importe=e.importe,
                        fecha=e.fecha, metodo=e.metodo, notas=e.notas,
                    ))
                else:
                    raise TypeError(f"Entidad no soportada: {type(e).__name__}")

    # --- Movimientos ---
    def obtener_movimiento(self, movimiento_id: str) -> MovimientoBancario | None:
        with self._sesion() as s:
            r = s.get(MovimientoORM, movimiento_id)
            return _a_movimiento(r) if r else None

    def movimientos_pendientes(self) -> list[MovimientoBancario]:
        with self._sesion() as s:
            q = (
                select(MovimientoORM)
                .where(MovimientoORM.estado == "pendiente")
                .order_by(MovimientoORM.fecha.desc(), MovimientoORM.id)
            )
            return [_a_movimiento(r) for r in s.scalars(q)]

    def agregar_movimientos(self, movimientos: Iterable[MovimientoBancario]) -> list[MovimientoBancario]:
        out = []
        with self._sesion() as s:
            for m in movimientos:
                r = MovimientoORM(
                    id=m.id or nuevo_id(), fecha=m.fecha, importe=m.importe,
                    descripcion=m.descripcion, referencia=m.referencia, estado=m.estado,
                    match_type=m.tipo_match, match_id=m.match_id,
                )
                s.add(r)
                out.append(_a_movimiento(r))
        return out

    def marcar_conciliado(self, movimiento_id: str, tipo: TipoMatch, match_id: str) -> bool:
        with self._sesion() as s:
            res = s.execute(
                update(MovimientoORM)
                .where(MovimientoORM.id == movimiento_id, MovimientoORM.estado == "pendiente")
                .values(estado="conciliado", match_type=tipo, match_id=match_id)
                .execution_options(synchronize_session=False)
            )
            s.expire_all()
            return res.rowcount == 1

    # --- Gastos / facturas ---
    def obtener_gasto(self, gasto_id: str) -> Gasto | None:
        with self._sesion() as s:
            r = s.get(GastoORM, gasto_id)
            return _a_gasto(r) if r else None

    def gastos_pendientes(self, desde: date | None = None, hasta: date | None = None) -> list[Gasto]:
        q = select(GastoORM).where(GastoORM.estado == "pendiente")
        if desde is not None:
            q = q.where(GastoORM.fecha >= desde)
        if hasta is not None:
            q = q.where(GastoORM.fecha <= hasta)
        with self._sesion() as s:
            return [_a_gasto(r) for r in s.scalars(q.order_by(GastoORM.fecha, GastoORM.id))]

    def marcar_gasto_pagado(self, gasto_id: str) -> None:
        with self._sesion() as s:
            r = s.get(GastoORM, gasto_id)
            if r is None:
                raise NoEncontrado("gasto", gasto_id)
            r.estado = "pagado"
            s.flush()

    def obtener_factura(self, factura_id: str) -> Factura | None:
        with self._sesion() as s:
            r = s.get(FacturaORM, factura_id)
            return _a_factura(r) if r else None

    def _q_abiertas(self):
        return select(FacturaORM).where(FacturaORM.estado.not_in(sorted(ESTADOS_FACTURA_CERRADOS)))

    def facturas_abiertas(self, desde: date | None = None, hasta: date | None = None) -> list[Factura]:
        q = self._q_abiertas()
        if desde is not None:
            q = q.where(FacturaORM.fecha >= desde)
        if hasta is not None:
            q = q.where(FacturaORM.fecha <= hasta)
        with self._sesion() as s:
            return [_a_factura(r) for r in s.scalars(q.order_by(FacturaORM.fecha, FacturaORM.id))]

    def facturas_abiertas_recientes(self, limite: int) -> list[Factura]:
        q = self._q_abiertas().order_by(FacturaORM.fecha.desc(), FacturaORM.id).limit(limite)
        with self._sesion() as s:
            return [_a_factura(r) for r in s.scalars(q)]

    def marcar_factura_cobrada(self, factura_id: str) -> None:
        with self._sesion() as s:
            r = s.get(FacturaORM, factura_id)
            if r is None:
                raise NoEncontrado("factura", factura_id)
            r.estado = "cobrada"
            s.flush()

    # --- Cobros y vínculos ---
    def agregar_cobro(self, cobro: Cobro) -> Cobro:
        with self._sesion() as s:
            r = CobroORM(
                id=cobro.id or nuevo_id(), factura_id=cobro.factura_id, importe=cobro.importe,
                fecha=cobro.fecha, metodo=cobro.metodo, notas=cobro.notas,
            )
            s.add(r)
            s.flush()
            return _a_cobro(r)

    def cobros_de_factura(self, factura_id: str) -> list[Cobro]:
        q = select(CobroORM).where(CobroORM.factura_id == factura_id).order_by(CobroORM.fecha, CobroORM.id)
        with self._sesion() as s:
            return [_a_cobro(r) for r in s.scalars(q)]

    def agregar_vinculo(self, vinculo: VinculoConciliacion) -> None:
        with self._sesion() as s:
            s.add(VinculoORM(
                movimiento_id=vinculo.movimiento_id,
                tipo=vinculo.tipo,
                contrapartida_id=vinculo.contrapartida_id,
            ))
            s.flush()

    def vinculos_de_movimiento(self, movimiento_id: str) -> list[VinculoConciliacion]:
        q = select(VinculoORM).where(VinculoORM.movimiento_id == movimiento_id)
        with self._sesion() as s:
            return [
                VinculoConciliacion(r.movimiento_id, r.tipo, r.contrapartida_id)
                for r in s.scalars(q)
            ]

    # --- Maestros ---
    def nombre_proveedor(self, proveedor_id: str | None) -> str | None:
        if not proveedor_id:
            return None
        with self._sesion() as s:
            r = s.get(ProveedorORM, proveedor_id)
            return r.nombre if r else None

    def nombre_cliente(self, cliente_id: str | None) -> str | None:
        if not cliente_id:
            return None
        with self._sesion() as s:
            r = s.get(ClienteORM, cliente_id)
            return r.nombre if r else None
