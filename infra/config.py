from __future__ import annotations
import yaml
from dataclasses import dataclass
from pathlib import Path


RUTA_CONFIG_DEFAULT = Path(__file__).resolve().parent.parent / "config.yaml"


@dataclass(frozen=True)
class ConciliacionConfig:
    dias_atras: int
    dias_adelante: int
    tolerancia_importe: float
    umbral_exacto: float
    puntaje_exacto: int
    puntaje_tolerancia: int
    puntaje_respaldo: int
    limite_respaldo: int
    metodo_cobro: str


@dataclass(frozen=True)
class BaseDatosConfig:
    url: str
    echo: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    nivel: str = "INFO"


@dataclass(frozen=True)
class Config:
    conciliacion: ConciliacionConfig
    base_datos: BaseDatosConfig
    logging: LoggingConfig


def load_config(path: str | Path = RUTA_CONFIG_DEFAULT) -> Config:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    conc = ConciliacionConfig(**data["conciliacion"])
    bd = BaseDatosConfig(**data["base_datos"])
    log = LoggingConfig(**(data.get("logging") or {}))

    return Config(conciliacion=conc, base_datos=bd, logging=log)
