"""Interfaz del almacén de entidades y su implementación en memoria.

La conciliación nunca habla con una base de datos global: recibe un
``Repositorio`` y todo lo que escribe pasa por ``transaccion()``.
"""
from __future__ import annotations
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from typing import Iterable, Iterator

from logic.errores import ErrorPersistencia, NoEncontrado
from logic.modelos import (
    Cliente,
    Cobro,
    Factura,
    Gasto,
    MovimientoBancario,
    Proveedor,
    TipoMatch,
    VinculoConciliacion,
)


def nuevo_id() -> str:
    return uuid.uuid4().hex


class Repositorio(ABC):
    """Operaciones que la conciliación necesita del almacén."""

    @abstractmethod
    def transaccion(self):
        """Context manager: todo lo escrito dentro se confirma o se descarta junto."""

    # --- Movimientos ---
    @abstractmethod
    def obtener_movimiento(self, movimiento_id: str) -> MovimientoBancario | None: ...

    @abstractmethod
    def movimientos_pendientes(self) -> list[MovimientoBancario]:
        """Movimientos en estado pendiente, el más reciente primero."""

    @abstractmethod
    def agregar_movimientos(self, movimientos: Iterable[MovimientoBancario]) -> list[MovimientoBancario]: ...

    @abstractmethod
    def marcar_conciliado(self, movimiento_id: str, tipo: TipoMatch, match_id: str) -> bool:
        """Escritura condicional pendiente -> conciliado. False si no afectó filas."""

    # --- Gastos / facturas ---
    @abstractmethod
    def obtener_gasto(self, gasto_id: str) -> Gasto | None: ...

    @abstractmethod
    def gastos_pendientes(self, desde: date | None = None, hasta: date | None = None) -> list[Gasto]:
        """Gastos pendientes con fecha en [desde, hasta], ordenados por (fecha, id)."""

    @abstractmethod
    def marcar_gasto_pagado(self, gasto_id: str) -> None: ...

    @abstractmethod
    def obtener_factura(self, factura_id: str) -> Factura | None: ...

    @abstractmethod
    def facturas_abiertas(self, desde: date | None = None, hasta: date | None = None) -> list[Factura]:
        """Facturas ni cobradas ni anuladas con fecha en [desde, hasta], por (fecha, id)."""

    @abstractmethod
    def facturas_abiertas_recientes(self, limite: int) -> list[Factura]:
        """Las ``limite`` facturas abiertas más recientes (fecha desc, id)."""

    @abstractmethod
    def marcar_factura_cobrada(self, factura_id: str) -> None: ...

    # --- Cobros y vínculos ---
    @abstractmethod
    def agregar_cobro(self, cobro: Cobro) -> Cobro: ...

    @abstractmethod
    def cobros_de_factura(self, factura_id: str) -> list[Cobro]: ...

    @abstractmethod
    def agregar_vinculo(self, vinculo: VinculoConciliacion) -> None: ...

    @abstractmethod
    def vinculos_de_movimiento(self, movimiento_id: str) -> list[VinculoConciliacion]: ...

    # --- Maestros ---
    @abstractmethod
    def nombre_proveedor(self, proveedor_id: str | None) -> str | None: ...

    @abstractmethod
    def nombre_cliente(self, cliente_id: str | None) -> str | None: ...


def _en_rango(f: date, desde: date | None, hasta: date | None) -> bool:
    if desde is not None and f < desde:
        return False
    if hasta is not None and f > hasta:
        return False
    return True


class RepositorioMemoria(Repositorio):
    """Almacén en diccionarios. Las transacciones guardan una foto y la restauran si algo falla."""

    def __init__(self):
        self.movimientos: dict[str, MovimientoBancario] = {}
        self.gastos: dict[str, Gasto] = {}
        self.facturas: dict[str, Factura] = {}
        self.cobros: dict[str, Cobro] = {}
        self.vinculos: list[VinculoConciliacion] = []
        self.proveedores: dict[str, Proveedor] = {}
        self.clientes: dict[str, Cliente] = {}
        self._lock = threading.RLock()
        self._profundidad = 0

    # Carga directa para preparar datos (los crean otros módulos de la aplicación)
    def cargar(self, *entidades) -> None:
        for e in entidades:
            if isinstance(e, MovimientoBancario):
                self.movimientos[e.id] = e
            elif isinstance(e, Gasto):
                self.gastos[e.id] = e
            elif isinstance(e, Factura):
                self.facturas[e.id] = e
            elif isinstance(e, Cobro):
                self.cobros[e.id] = e
            elif isinstance(e, Proveedor):
                self.proveedores[e.id] = e
            elif isinstance(e, Cliente):
                self.clientes[e.id] = e
            else:
                raise TypeError(f"Entidad no soportada: {type(e).__name__}")

    def _foto(self) -> tuple:
        return (
            dict(self.movimientos),
            dict(self.gastos),
            dict(self.facturas),
            dict(self.cobros),
            list(self.vinculos),
        )

    def _restaurar(self, foto: tuple) -> None:
        self.movimientos, self.gastos, self.facturas, self.cobros, self.vinculos = foto

    @contextmanager
    def transaccion(self) -> Iterator[None]:
        with self._lock:
            if self._profundidad:
                # Anidada: la externa decide
                self._profundidad += 1
                try:
                    yield
                finally:
                    self._profundidad -= 1
                return

            foto = self._foto()
            self._profundidad = 1
            try:
                yield
            except BaseException:
                self._restaurar(foto)
                raise
            finally:
                self._profundidad = 0

    # --- Movimientos ---
    def obtener_movimiento(self, movimiento_id: str) -> MovimientoBancario | None:
        return self.movimientos.get(movimiento_id)

    def movimientos_pendientes(self) -> list[MovimientoBancario]:
        pend = [m for m in self.movimientos.values() if m.estado == "pendiente"]
        pend.sort(key=lambda m: m.id)
        pend.sort(key=lambda m: m.fecha, reverse=True)
        return pend

    def agregar_movimientos(self, movimientos: Iterable[MovimientoBancario]) -> list[MovimientoBancario]:
        out = []
        with self.transaccion():
            for m in movimientos:
                m = replace(m, id=m.id or nuevo_id())
                if m.id in self.movimientos:
                    raise ErrorPersistencia(f"Ya existe un movimiento con id {m.id}")
                self.movimientos[m.id] = m
                out.append(m)
        return out

    def marcar_conciliado(self, movimiento_id: str, tipo: TipoMatch, match_id: str) -> bool:
        with self._lock:
            m = self.movimientos.get(movimiento_id)
            if m is None or m.estado != "pendiente":
                return False
            self.movimientos[movimiento_id] = replace(
                m, estado="conciliado", tipo_match=tipo, match_id=match_id
            )
            return True

    # --- Gastos / facturas ---
    def obtener_gasto(self, gasto_id: str) -> Gasto | None:
        return self.gastos.get(gasto_id)

    def gastos_pendientes(self, desde: date | None = None, hasta: date | None = None) -> list[Gasto]:
        out = [
            g for g in self.gastos.values()
            if g.estado == "pendiente" and _en_rango(g.fecha, desde, hasta)
        ]
        return sorted(out, key=lambda g: (g.fecha, g.id))

    def marcar_gasto_pagado(self, gasto_id: str) -> None:
        g = self.gastos.get(gasto_id)
        if g is None:
            raise NoEncontrado("gasto", gasto_id)
        self.gastos[gasto_id] = replace(g, estado="pagado")

    def obtener_factura(self, factura_id: str) -> Factura | None:
        return self.facturas.get(factura_id)

    def facturas_abiertas(self, desde: date | None = None, hasta: date | None = None) -> list[Factura]:
        out = [f for f in self.facturas.values() if f.abierta and _en_rango(f.fecha, desde, hasta)]
        return sorted(out, key=lambda f: (f.fecha, f.id))

    def facturas_abiertas_recientes(self, limite: int) -> list[Factura]:
        out = [f for f in self.facturas.values() if f.abierta]
        out.sort(key=lambda f: f.id)
        out.sort(key=lambda f: f.fecha, reverse=True)
        return out[:limite]

    def marcar_factura_cobrada(self, factura_id: str) -> None:
        f = self.facturas.get(factura_id)
        if f is None:
            raise NoEncontrado("factura", factura_id)
        self.facturas[factura_id] = replace(f, estado="cobrada")

    # --- Cobros y vínculos ---
    def agregar_cobro(self, cobro: Cobro) -> Cobro:
        cobro = replace(cobro, id=cobro.id or nuevo_id())
        self.cobros[cobro.id] = cobro
        return cobro

    def cobros_de_factura(self, factura_id: str) -> list[Cobro]:
        return [c for c in self.cobros.values() if c.factura_id == factura_id]

    def agregar_vinculo(self, vinculo: VinculoConciliacion) -> None:
        self.vinculos.append(vinculo)

    def vinculos_de_movimiento(self, movimiento_id: str) -> list[VinculoConciliacion]:
        return [v for v in self.vinculos if v.movimiento_id == movimiento_id]

    # --- Maestros ---
    def nombre_proveedor(self, proveedor_id: str | None) -> str | None:
        p = self.proveedores.get(proveedor_id) if proveedor_id else None
        return p.nombre if p else None

    def nombre_cliente(self, cliente_id: str | None) -> str | None:
        c = self.clientes.get(cliente_id) if cliente_id else None
        return c.nombre if c else None
