from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from infra.config import ConciliacionConfig
from infra.logger import get_logger
from logic.modelos import Factura, Gasto, MovimientoBancario, Sugerencia
from logic.repositorio import Repositorio


log = get_logger().getChild("candidatos")


@dataclass(frozen=True)
class Parametros:
    dias_atras: int = 45
    dias_adelante: int = 15
    tolerancia_importe: Decimal = Decimal("0.05")
    umbral_exacto: Decimal = Decimal("0.01")
    puntaje_exacto: int = 100
    puntaje_tolerancia: int = 80
    puntaje_respaldo: int = 10
    limite_respaldo: int = 10

    @classmethod
    def desde_config(cls, cfg: ConciliacionConfig) -> "Parametros":
        # Los floats del YAML pasan por str para no arrastrar error binario
        return cls(
            dias_atras=cfg.dias_atras,
            dias_adelante=cfg.dias_adelante,
            tolerancia_importe=Decimal(str(cfg.tolerancia_importe)),
            umbral_exacto=Decimal(str(cfg.umbral_exacto)),
            puntaje_exacto=cfg.puntaje_exacto,
            puntaje_tolerancia=cfg.puntaje_tolerancia,
            puntaje_respaldo=cfg.puntaje_respaldo,
            limite_respaldo=cfg.limite_respaldo,
        )


def puntuar(diferencia: Decimal, params: Parametros) -> int | None:
    """Puntaje para una diferencia absoluta de importe; None si queda fuera de tolerancia."""
    if diferencia > params.tolerancia_importe:
        return None
    if diferencia < params.umbral_exacto:
        return params.puntaje_exacto
    return params.puntaje_tolerancia


class BuscadorCandidatos:
    """Propone gastos o facturas que un movimiento pendiente podría saldar.

    El signo del importe decide dónde se busca: salidas contra gastos
    pendientes, entradas contra facturas abiertas. Solo lee del repositorio.
    """

    def __init__(self, repo: Repositorio, params: Parametros = Parametros()):
        self.repo = repo
        self.params = params

    def ventana(self, mov: MovimientoBancario):
        return (
            mov.fecha - timedelta(days=self.params.dias_atras),
            mov.fecha + timedelta(days=self.params.dias_adelante),
        )

    def buscar(self, mov: MovimientoBancario) -> list[Sugerencia]:
        if mov.es_salida:
            out = self._buscar_gastos(mov)
        elif mov.es_ingreso:
            out = self._buscar_facturas(mov)
        else:
            out = []
        log.debug("Movimiento %s: %d candidatos", mov.id, len(out))
        return out

    def _buscar_gastos(self, mov: MovimientoBancario) -> list[Sugerencia]:
        objetivo = abs(mov.importe)
        desde, hasta = self.ventana(mov)

        out: list[Sugerencia] = []
        for g in self.repo.gastos_pendientes(desde, hasta):
            puntaje = puntuar(abs(g.importe - objetivo), self.params)
            if puntaje is not None:
                out.append(self._sugerencia_gasto(g, puntaje))
        return out

    def _buscar_facturas(self, mov: MovimientoBancario) -> list[Sugerencia]:
        objetivo = abs(mov.importe)
        desde, hasta = self.ventana(mov)

        out: list[Sugerencia] = []
        for f in self.repo.facturas_abiertas(desde, hasta):
            puntaje = puntuar(abs(f.total - objetivo), self.params)
            if puntaje is not None:
                out.append(self._sugerencia_factura(f, puntaje))

        # Respaldo para elegir a mano: las últimas facturas abiertas, sin filtro
        vistos = {s.id for s in out}
        for f in self.repo.facturas_abiertas_recientes(self.params.limite_respaldo):
            if f.id in vistos:
                continue
            out.append(self._sugerencia_factura(f, self.params.puntaje_respaldo))
            vistos.add(f.id)
        return out

    def _sugerencia_gasto(self, g: Gasto, puntaje: int) -> Sugerencia:
        return Sugerencia(
            id=g.id,
            tipo="gasto",
            fecha=g.fecha,
            importe=g.importe,
            entidad=self.repo.nombre_proveedor(g.proveedor_id) or "Sin proveedor",
            referencia=g.numero or "",
            puntaje=puntaje,
        )

    def _sugerencia_factura(self, f: Factura, puntaje: int) -> Sugerencia:
        return Sugerencia(
            id=f.id,
            tipo="factura",
            fecha=f.fecha,
            importe=f.total,
            entidad=self.repo.nombre_cliente(f.cliente_id) or "Sin cliente",
            referencia=f.numero or "",
            puntaje=puntaje,
        )
