import io
from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from conftest import factura, gasto, mov
from logic.errores import ErrorPersistencia, ErrorValidacion, NoEncontrado, YaConciliado
from logic.tesoreria import Tesoreria


def test_escenario_completo_factura(repo):
    """Entrada de 250 el 10/03 contra factura emitida de 250 del 05/03."""
    repo.cargar(
        mov("m1", "250.00", date(2024, 3, 10)),
        factura("f1", "250.00", date(2024, 3, 5), estado="emitida", cliente_id="c1", numero="F-2024-031"),
    )
    t = Tesoreria(repo)

    res = t.obtener_sugerencias("m1")
    assert res.movimiento.id == "m1"
    mejor = res.sugerencias[0]
    assert (mejor.id, mejor.puntaje, mejor.referencia) == ("f1", 100, "F-2024-031")

    t.conciliar("m1", "factura", [mejor.id])

    assert repo.obtener_factura("f1").estado == "cobrada"
    cobros = repo.cobros_de_factura("f1")
    assert [c.importe for c in cobros] == [Decimal("250.00")]
    assert repo.obtener_movimiento("m1").estado == "conciliado"
    assert t.listar_movimientos_pendientes() == []

    with pytest.raises(YaConciliado):
        t.conciliar("m1", "factura", ["f1"])
    assert len(repo.cobros_de_factura("f1")) == 1


def test_sugerencias_de_movimiento_inexistente(repo):
    with pytest.raises(NoEncontrado):
        Tesoreria(repo).obtener_sugerencias("no-existe")


def test_listar_pendientes_por_direccion(repo):
    repo.cargar(
        mov("in", "10.00", date(2024, 3, 1)),
        mov("out", "-10.00", date(2024, 3, 2)),
        mov("done", "-5.00", date(2024, 3, 3), estado="conciliado"),
    )
    t = Tesoreria(repo)
    assert [m.id for m in t.listar_movimientos_pendientes()] == ["out", "in"]
    assert [m.id for m in t.listar_movimientos_pendientes("ingresos")] == ["in"]
    assert [m.id for m in t.listar_movimientos_pendientes("gastos")] == ["out"]
    with pytest.raises(ErrorValidacion):
        t.listar_movimientos_pendientes("todo")


def test_registrar_movimientos_desde_dataframe(repo):
    df = pd.DataFrame({
        "fecha": ["2024-03-01", "2024-03-02", None, "2024-03-04"],
        "importe": ["-1.000,50", "0", "10", "250"],
        "descripcion": ["RECIBO LUZ", "NADA", "SIN FECHA", 48923.0],
        "referencia": ["R1", None, None, None],
    })
    guardados = Tesoreria(repo).registrar_movimientos(df)

    assert len(guardados) == 2
    assert all(m.id and m.estado == "pendiente" for m in guardados)
    importes = sorted(m.importe for m in repo.movimientos_pendientes())
    assert importes == [Decimal("-1000.50"), Decimal("250.00")]


def test_registrar_movimientos_ignora_estado_de_entrada(repo):
    t = Tesoreria(repo)
    (m,) = t.registrar_movimientos([mov("", "30.00", estado="conciliado", match_id="x"), mov("", "0")])
    assert (m.estado, m.match_id) == ("pendiente", None)


def test_resumen_tesoreria(repo):
    d = date(2024, 3, 1)
    repo.cargar(
        mov("m1", "10.00", d),
        mov("m2", "-10.00", d, estado="conciliado"),
        factura("f1", "100.00", d),
        factura("f2", "50.00", d, estado="cobrada"),
        gasto("g1", "30.00", d),
        gasto("g2", "20.00", d, estado="pagado"),
    )
    r = Tesoreria(repo).resumen_tesoreria()
    assert r.movimientos_sin_conciliar == 1
    assert r.ingresos_pendientes == Decimal("100.00")
    assert r.gastos_pendientes == Decimal("30.00")


def test_exportar_sugerencias_excel(repo):
    repo.cargar(
        mov("m1", "250.00", date(2024, 3, 10)),
        factura("viejo", "9.00", date(2023, 1, 1)),
        factura("f1", "250.00", date(2024, 3, 5)),
    )
    contenido = Tesoreria(repo).exportar_sugerencias("m1")
    df = pd.read_excel(io.BytesIO(contenido), sheet_name="Sugerencias", engine="openpyxl")

    assert list(df["Id"]) == ["f1", "viejo"]
    assert list(df["Puntaje"]) == [100, 10]
    assert str(df["Fecha"].dtype).startswith("datetime64")


def test_exportar_pendientes_excel(repo):
    repo.cargar(mov("m1", "-12.34", date(2024, 3, 10), descripcion="COMISION"))
    df = pd.read_excel(io.BytesIO(Tesoreria(repo).exportar_pendientes()), engine="openpyxl")
    assert df["Descripción"].tolist() == ["COMISION"]
    assert df["Importe"].tolist() == [-12.34]


def test_re_registrar_movimiento_conciliado_falla(repo):
    """Volver a registrar un id ya conciliado no lo devuelve a pendiente."""
    repo.cargar(factura("f1", "100.00", date(2024, 3, 5)), factura("f2", "100.00", date(2024, 3, 6)))
    t = Tesoreria(repo)
    t.registrar_movimientos([mov("m1", "100.00")])
    t.conciliar("m1", "factura", ["f1"])

    with pytest.raises(ErrorPersistencia):
        t.registrar_movimientos([mov("m1", "100.00")])

    assert repo.obtener_movimiento("m1").estado == "conciliado"
    with pytest.raises(YaConciliado):
        t.conciliar("m1", "factura", ["f2"])
    assert repo.cobros_de_factura("f2") == []


def test_sin_sugerencias_para_movimiento_conciliado(repo):
    repo.cargar(factura("f1", "100.00", date(2024, 3, 5)), mov("m1", "100.00", estado="conciliado"))
    res = Tesoreria(repo).obtener_sugerencias("m1")
    assert res.movimiento.estado == "conciliado"
    assert res.sugerencias == []
