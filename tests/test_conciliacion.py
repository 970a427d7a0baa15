from datetime import date, timedelta
from decimal import Decimal

from conftest import factura, gasto, mov
from infra.config import load_config
from logic.conciliacion import BuscadorCandidatos, Parametros, puntuar

D = date(2024, 3, 10)


def test_salida_solo_sugiere_gastos(repo):
    repo.cargar(
        gasto("g1", "100.00", D, proveedor_id="p1"),
        factura("f1", "100.00", D, cliente_id="c1"),
        mov("m1", "-100.00", D),
    )
    sug = BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1"))
    assert [s.tipo for s in sug] == ["gasto"]
    assert sug[0].entidad == "Harinas del Norte"


def test_entrada_solo_sugiere_facturas(repo):
    repo.cargar(
        gasto("g1", "100.00", D),
        factura("f1", "100.00", D, cliente_id="c1"),
        mov("m1", "100.00", D),
    )
    sug = BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1"))
    assert {s.tipo for s in sug} == {"factura"}
    assert sug[0].entidad == "Panadería La Espiga"


def test_tolerancia_importe_limite(repo):
    """-100.00 contra 100.04 entra con 80; contra 100.06 queda fuera."""
    repo.cargar(
        gasto("dentro", "100.04", D),
        gasto("fuera", "100.06", D),
        mov("m1", "-100.00", D),
    )
    sug = BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1"))
    assert [(s.id, s.puntaje) for s in sug] == [("dentro", 80)]


def test_tolerancia_exactamente_cinco_centimos(repo):
    repo.cargar(gasto("g1", "100.05", D), mov("m1", "-100.00", D))
    sug = BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1"))
    assert [(s.id, s.puntaje) for s in sug] == [("g1", 80)]


def test_ventana_de_fechas_limites(repo):
    repo.cargar(
        gasto("d-45", "50.00", D - timedelta(days=45)),
        gasto("d-46", "50.00", D - timedelta(days=46)),
        gasto("d+15", "50.00", D + timedelta(days=15)),
        gasto("d+16", "50.00", D + timedelta(days=16)),
        mov("m1", "-50.00", D),
    )
    sug = BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1"))
    assert {s.id for s in sug} == {"d-45", "d+15"}


def test_coincidencia_exacta_puntua_100(repo):
    repo.cargar(gasto("g1", "75.30", D), mov("m1", "-75.30", D))
    sug = BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1"))
    assert sug[0].puntaje == 100


def test_gastos_pagados_no_se_sugieren(repo):
    repo.cargar(gasto("g1", "20.00", D, estado="pagado"), mov("m1", "-20.00", D))
    assert BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1")) == []


def test_facturas_cobradas_y_anuladas_no_se_sugieren(repo):
    repo.cargar(
        factura("cob", "20.00", D, estado="cobrada"),
        factura("anu", "20.00", D, estado="anulada"),
        factura("bor", "20.00", D, estado="borrador"),
        mov("m1", "20.00", D),
    )
    sug = BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1"))
    assert [(s.id, s.puntaje) for s in sug] == [("bor", 100)]


def test_respaldo_facturas_recientes_sin_duplicar(repo):
    """Las facturas que ya coinciden no se repiten en la lista de respaldo."""
    repo.cargar(
        factura("match", "250.00", date(2024, 3, 5)),
        factura("otra", "999.00", date(2023, 1, 1)),
        mov("m1", "250.00", D),
    )
    sug = BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1"))
    assert [(s.id, s.puntaje) for s in sug] == [("match", 100), ("otra", 10)]


def test_respaldo_limitado_a_diez(repo):
    repo.cargar(*[factura(f"f{i:02d}", "1.00", date(2024, 1, 1) + timedelta(days=i)) for i in range(15)])
    repo.cargar(mov("m1", "5000.00", D))
    sug = BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1"))
    assert len(sug) == 10
    assert all(s.puntaje == 10 for s in sug)
    assert sug[0].id == "f14"


def test_salidas_sin_respaldo(repo):
    repo.cargar(gasto("g1", "999.00", D), mov("m1", "-5.00", D))
    assert BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1")) == []


def test_importe_cero_sin_sugerencias(repo):
    repo.cargar(factura("f1", "0.00", D), mov("m1", "0", D))
    assert BuscadorCandidatos(repo).buscar(repo.obtener_movimiento("m1")) == []


def test_sin_proveedor_ni_numero():
    from logic.repositorio import RepositorioMemoria

    r = RepositorioMemoria()
    r.cargar(gasto("g1", "10.00", D), mov("m1", "-10.00", D))
    (s,) = BuscadorCandidatos(r).buscar(r.obtener_movimiento("m1"))
    assert s.entidad == "Sin proveedor"
    assert s.referencia == ""


def test_puntuar():
    p = Parametros()
    assert puntuar(Decimal("0"), p) == 100
    assert puntuar(Decimal("0.009"), p) == 100
    assert puntuar(Decimal("0.01"), p) == 80
    assert puntuar(Decimal("0.051"), p) is None


def test_parametros_desde_config():
    cfg = load_config()
    p = Parametros.desde_config(cfg.conciliacion)
    assert p == Parametros()
