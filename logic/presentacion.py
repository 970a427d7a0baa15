"""Contrato con la pantalla que muestra las sugerencias (orden y cuadre de la selección)."""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from logic.modelos import MovimientoBancario, Sugerencia


TOLERANCIA_CUADRE = Decimal("0.05")


@dataclass(frozen=True)
class ResumenSeleccion:
    total_seleccionado: Decimal
    diferencia: Decimal
    cuadra: bool


def ordenar_sugerencias(sugerencias: Iterable[Sugerencia]) -> list[Sugerencia]:
    # Puntaje descendente; a igual puntaje, la más antigua primero
    return sorted(sugerencias, key=lambda s: (-s.puntaje, s.fecha, s.id))


def resumen_seleccion(
    mov: MovimientoBancario,
    sugerencias: Iterable[Sugerencia],
    ids: Iterable[str],
) -> ResumenSeleccion:
    elegidos = set(ids)
    total = sum((s.importe for s in sugerencias if s.id in elegidos), Decimal("0"))
    diferencia = abs(abs(mov.importe) - total)
    return ResumenSeleccion(
        total_seleccionado=total,
        diferencia=diferencia,
        cuadra=diferencia < TOLERANCIA_CUADRE,
    )
