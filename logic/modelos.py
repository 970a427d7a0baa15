from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal, Union


EstadoMovimiento = Literal["pendiente", "conciliado"]
EstadoGasto = Literal["pendiente", "pagado"]
EstadoFactura = Literal["borrador", "emitida", "cobrada", "anulada"]
TipoMatch = Literal["gasto", "factura"]

TIPOS_MATCH: tuple[str, ...] = ("gasto", "factura")
ESTADOS_FACTURA_CERRADOS: frozenset[str] = frozenset({"cobrada", "anulada"})


@dataclass(frozen=True)
class MovimientoBancario:
    id: str
    fecha: date                       # fecha valor del extracto
    importe: Decimal                  # negativo = salida, positivo = entrada
    descripcion: str
    referencia: str | None = None
    estado: EstadoMovimiento = "pendiente"
    tipo_match: TipoMatch | None = None
    match_id: str | None = None       # primer id elegido; el resto en VinculoConciliacion

    @property
    def es_ingreso(self) -> bool:
        return self.importe > 0

    @property
    def es_salida(self) -> bool:
        return self.importe < 0


@dataclass(frozen=True)
class Gasto:
    id: str
    importe: Decimal
    fecha: date
    estado: EstadoGasto = "pendiente"
    proveedor_id: str | None = None
    numero: str | None = None


@dataclass(frozen=True)
class Factura:
    id: str
    total: Decimal
    fecha: date
    estado: EstadoFactura = "emitida"
    cliente_id: str | None = None
    numero: str | None = None

    @property
    def abierta(self) -> bool:
        return self.estado not in ESTADOS_FACTURA_CERRADOS


@dataclass(frozen=True)
class Cobro:
    id: str
    factura_id: str
    importe: Decimal
    fecha: date
    metodo: str
    notas: str = ""


@dataclass(frozen=True)
class Proveedor:
    id: str
    nombre: str


@dataclass(frozen=True)
class Cliente:
    id: str
    nombre: str


@dataclass(frozen=True)
class VinculoConciliacion:
    movimiento_id: str
    tipo: TipoMatch
    contrapartida_id: str


@dataclass(frozen=True)
class Sugerencia:
    id: str
    tipo: TipoMatch
    fecha: date
    importe: Decimal
    entidad: str             # nombre del proveedor o cliente
    referencia: str          # número de factura/gasto, "" si no tiene
    puntaje: int             # 100 exacto, 80 tolerancia, 10 respaldo


# --- Contrapartida: variante etiquetada gasto | factura ---

@dataclass(frozen=True)
class GastoRef:
    id: str
    tipo: TipoMatch = "gasto"


@dataclass(frozen=True)
class FacturaRef:
    id: str
    tipo: TipoMatch = "factura"


Contrapartida = Union[GastoRef, FacturaRef]


def contrapartida(tipo: str, id_: str) -> Contrapartida:
    """Construye la referencia tipada a partir del par (tipo, id) del exterior."""
    if tipo == "gasto":
        return GastoRef(id_)
    if tipo == "factura":
        return FacturaRef(id_)
    raise ValueError(f"Tipo de contrapartida desconocido: {tipo!r}")
