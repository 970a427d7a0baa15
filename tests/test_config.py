import pytest

from infra.config import load_config
from logic.modelos import FacturaRef, GastoRef, contrapartida


def test_config_por_defecto():
    cfg = load_config()
    assert cfg.conciliacion.dias_atras == 45
    assert cfg.conciliacion.dias_adelante == 15
    assert cfg.conciliacion.metodo_cobro == "transferencia"
    assert cfg.base_datos.url.startswith("sqlite")
    assert cfg.logging.nivel == "INFO"


def test_config_desde_archivo(tmp_path):
    ruta = tmp_path / "config.yaml"
    ruta.write_text(
        """
conciliacion:
  dias_atras: 30
  dias_adelante: 10
  tolerancia_importe: 0.10
  umbral_exacto: 0.01
  puntaje_exacto: 100
  puntaje_tolerancia: 80
  puntaje_respaldo: 10
  limite_respaldo: 5
  metodo_cobro: transferencia
base_datos:
  url: "sqlite://"
""",
        encoding="utf-8",
    )
    cfg = load_config(ruta)
    assert cfg.conciliacion.dias_atras == 30
    assert cfg.base_datos.echo is False
    assert cfg.logging.nivel == "INFO"


def test_tesoreria_desde_config():
    from dataclasses import replace

    from infra.config import BaseDatosConfig
    from logic.tesoreria import Tesoreria

    cfg = replace(load_config(), base_datos=BaseDatosConfig(url="sqlite://"))
    t = Tesoreria.desde_config(cfg)
    assert t.listar_movimientos_pendientes() == []
    assert t.buscador.params.limite_respaldo == 10


def test_contrapartida_etiquetada():
    assert contrapartida("gasto", "g1") == GastoRef("g1")
    assert contrapartida("factura", "f1") == FacturaRef("f1")
    with pytest.raises(ValueError):
        contrapartida("cobro", "x")
