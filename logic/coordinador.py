from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable

from infra.logger import get_logger
from logic.errores import ErrorTesoreria, ErrorValidacion, NoEncontrado, YaConciliado
from logic.modelos import (
    TIPOS_MATCH,
    Cobro,
    Contrapartida,
    FacturaRef,
    GastoRef,
    MovimientoBancario,
    VinculoConciliacion,
    contrapartida,
)
from logic.repositorio import Repositorio


log = get_logger().getChild("coordinador")


@dataclass(frozen=True)
class ResultadoConciliacion:
    movimiento: MovimientoBancario
    cobros: list[Cobro] = field(default_factory=list)
    vinculos: list[VinculoConciliacion] = field(default_factory=list)


def _normalizar_ids(ids: Iterable[str]) -> list[str]:
    """Quita vacíos y repetidos conservando el orden en que se eligieron."""
    out: list[str] = []
    for i in ids:
        i = str(i).strip() if i is not None else ""
        if i and i not in out:
            out.append(i)
    return out


class CoordinadorConciliacion:
    """Aplica una conciliación confirmada por el usuario.

    Marca el movimiento como conciliado, salda cada contrapartida (gasto
    pagado, o cobro + factura cobrada) y deja un vínculo por id elegido.
    Todo ocurre en una sola transacción del repositorio: si algo falla no
    queda nada escrito.
    """

    def __init__(self, repo: Repositorio, metodo_cobro: str = "transferencia"):
        self.repo = repo
        self.metodo_cobro = metodo_cobro

    def conciliar(self, movimiento_id: str, tipo_match: str, ids: Iterable[str]) -> ResultadoConciliacion:
        if tipo_match not in TIPOS_MATCH:
            raise ErrorValidacion(f"Tipo de conciliación desconocido: {tipo_match!r}")
        if isinstance(ids, str):
            ids = [ids]
        ids = _normalizar_ids(ids)
        if not ids:
            raise ErrorValidacion("Seleccione al menos un gasto o factura para conciliar")
        refs = [contrapartida(tipo_match, i) for i in ids]

        try:
            with self.repo.transaccion():
                resultado = self._aplicar(movimiento_id, refs)
        except ErrorTesoreria as e:
            log.warning("Conciliación rechazada para %s: %s", movimiento_id, e)
            raise

        log.info(
            "Movimiento %s conciliado con %d %s(s): %s",
            movimiento_id, len(refs), tipo_match, ", ".join(ids),
        )
        return resultado

    def _aplicar(self, movimiento_id: str, refs: list[Contrapartida]) -> ResultadoConciliacion:
        mov = self.repo.obtener_movimiento(movimiento_id)
        if mov is None:
            raise NoEncontrado("movimiento", movimiento_id)
        if mov.estado == "conciliado":
            raise YaConciliado(movimiento_id)

        tipo = refs[0].tipo
        if tipo == "gasto" and not mov.es_salida:
            raise ErrorValidacion("Solo un movimiento de salida puede conciliarse con gastos")
        if tipo == "factura" and not mov.es_ingreso:
            raise ErrorValidacion("Solo un movimiento de entrada puede conciliarse con facturas")

        for ref in refs:
            self._validar_contrapartida(ref)

        # Escritura condicional: si otro proceso ya lo concilió, no afecta filas
        if not self.repo.marcar_conciliado(mov.id, tipo, refs[0].id):
            raise YaConciliado(movimiento_id)

        cobros: list[Cobro] = []
        vinculos: list[VinculoConciliacion] = []
        for ref in refs:
            if isinstance(ref, GastoRef):
                self.repo.marcar_gasto_pagado(ref.id)
            elif isinstance(ref, FacturaRef):
                cobros.append(self._cobrar_factura(mov, ref))
            else:
                raise TypeError(f"Contrapartida no soportada: {ref!r}")
            vinculo = VinculoConciliacion(movimiento_id=mov.id, tipo=ref.tipo, contrapartida_id=ref.id)
            self.repo.agregar_vinculo(vinculo)
            vinculos.append(vinculo)

        return ResultadoConciliacion(
            movimiento=self.repo.obtener_movimiento(mov.id),
            cobros=cobros,
            vinculos=vinculos,
        )

    def _validar_contrapartida(self, ref: Contrapartida) -> None:
        if isinstance(ref, GastoRef):
            gasto = self.repo.obtener_gasto(ref.id)
            if gasto is None:
                raise NoEncontrado("gasto", ref.id)
            if gasto.estado != "pendiente":
                raise ErrorValidacion(f"El gasto {ref.id} ya está pagado")
        elif isinstance(ref, FacturaRef):
            factura = self.repo.obtener_factura(ref.id)
            if factura is None:
                raise NoEncontrado("factura", ref.id)
            if not factura.abierta:
                raise ErrorValidacion(f"La factura {ref.id} está {factura.estado}")
        else:
            raise TypeError(f"Contrapartida no soportada: {ref!r}")

    def _cobrar_factura(self, mov: MovimientoBancario, ref: FacturaRef) -> Cobro:
        factura = self.repo.obtener_factura(ref.id)
        # Importe completo de la factura: no hay cobros parciales por esta vía
        cobro = self.repo.agregar_cobro(Cobro(
            id="",
            factura_id=factura.id,
            importe=factura.total,
            fecha=mov.fecha,
            metodo=self.metodo_cobro,
            notas=f"Conciliado: {mov.descripcion}",
        ))
        self.repo.marcar_factura_cobrada(factura.id)
        return cobro
