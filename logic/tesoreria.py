"""Operaciones de tesorería que consume la interfaz: pendientes, sugerencias y conciliación."""
from __future__ import annotations
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, Literal

import pandas as pd

from infra.config import Config
from infra.export import (
    FORMATO_FECHA,
    dataframe_a_excel_bytes,
    movimientos_a_dataframe,
    sugerencias_a_dataframe,
)
from infra.logger import get_logger
from logic.conciliacion import BuscadorCandidatos, Parametros
from logic.coordinador import CoordinadorConciliacion, ResultadoConciliacion
from logic.errores import ErrorValidacion, NoEncontrado
from logic.lectura import movimientos_desde_dataframe
from logic.modelos import MovimientoBancario, Sugerencia
from logic.presentacion import ordenar_sugerencias
from logic.repositorio import Repositorio


log = get_logger().getChild("tesoreria")

Direccion = Literal["ingresos", "gastos"]


@dataclass(frozen=True)
class ResultadoSugerencias:
    movimiento: MovimientoBancario
    sugerencias: list[Sugerencia]


@dataclass(frozen=True)
class ResumenTesoreria:
    movimientos_sin_conciliar: int
    ingresos_pendientes: Decimal     # facturas abiertas
    gastos_pendientes: Decimal       # gastos sin pagar


class Tesoreria:
    def __init__(
        self,
        repo: Repositorio,
        params: Parametros = Parametros(),
        metodo_cobro: str = "transferencia",
    ):
        self.repo = repo
        self.buscador = BuscadorCandidatos(repo, params)
        self.coordinador = CoordinadorConciliacion(repo, metodo_cobro)

    @classmethod
    def desde_config(cls, cfg: Config) -> "Tesoreria":
        from infra.db import crear_motor, crear_tablas, fabrica_sesiones
        from infra.repositorio_sql import RepositorioSQL

        get_logger(nivel=cfg.logging.nivel)
        motor = crear_motor(cfg.base_datos.url, echo=cfg.base_datos.echo)
        crear_tablas(motor)
        return cls(
            RepositorioSQL(fabrica_sesiones(motor)),
            Parametros.desde_config(cfg.conciliacion),
            cfg.conciliacion.metodo_cobro,
        )

    def listar_movimientos_pendientes(self, direccion: Direccion | None = None) -> list[MovimientoBancario]:
        movs = self.repo.movimientos_pendientes()
        if direccion is None:
            return movs
        if direccion == "ingresos":
            return [m for m in movs if m.es_ingreso]
        if direccion == "gastos":
            return [m for m in movs if m.es_salida]
        raise ErrorValidacion(f"Dirección desconocida: {direccion!r}")

    def obtener_sugerencias(self, movimiento_id: str) -> ResultadoSugerencias:
        mov = self.repo.obtener_movimiento(movimiento_id)
        if mov is None:
            raise NoEncontrado("movimiento", movimiento_id)
        if mov.estado != "pendiente":
            # Ya conciliado: no hay nada que proponer
            return ResultadoSugerencias(movimiento=mov, sugerencias=[])
        return ResultadoSugerencias(movimiento=mov, sugerencias=self.buscador.buscar(mov))

    def conciliar(self, movimiento_id: str, tipo_match: str, ids: Iterable[str]) -> ResultadoConciliacion:
        return self.coordinador.conciliar(movimiento_id, tipo_match, ids)

    def registrar_movimientos(self, filas: pd.DataFrame | Iterable[MovimientoBancario]) -> list[MovimientoBancario]:
        """Guarda filas de extracto ya leídas como movimientos pendientes."""
        if isinstance(filas, pd.DataFrame):
            movs = movimientos_desde_dataframe(filas)
        else:
            movs = [
                replace(m, estado="pendiente", tipo_match=None, match_id=None)
                for m in filas
                if m.importe != 0
            ]
        guardados = self.repo.agregar_movimientos(movs)
        log.info("Registrados %d movimientos bancarios", len(guardados))
        return guardados

    def resumen_tesoreria(self) -> ResumenTesoreria:
        return ResumenTesoreria(
            movimientos_sin_conciliar=len(self.repo.movimientos_pendientes()),
            ingresos_pendientes=sum((f.total for f in self.repo.facturas_abiertas()), Decimal("0")),
            gastos_pendientes=sum((g.importe for g in self.repo.gastos_pendientes()), Decimal("0")),
        )

    def exportar_sugerencias(self, movimiento_id: str) -> bytes:
        res = self.obtener_sugerencias(movimiento_id)
        df = sugerencias_a_dataframe(ordenar_sugerencias(res.sugerencias))
        return dataframe_a_excel_bytes(df, sheet_name="Sugerencias", formato_columnas_fecha={"Fecha": FORMATO_FECHA})

    def exportar_pendientes(self) -> bytes:
        df = movimientos_a_dataframe(self.repo.movimientos_pendientes())
        return dataframe_a_excel_bytes(df, sheet_name="Pendientes", formato_columnas_fecha={"Fecha": FORMATO_FECHA})
