"""Errores de la conciliación bancaria.

Todos heredan de ``ErrorTesoreria`` y llevan un ``codigo`` estable para que
la capa que los muestre (UI, API) no dependa del texto del mensaje:

    ErrorTesoreria
    +-- NoEncontrado         NOT_FOUND
    +-- YaConciliado         ALREADY_RECONCILED
    +-- ErrorPersistencia    PERSISTENCE_ERROR
    +-- ErrorValidacion      VALIDATION_ERROR

Ninguno se reintenta automáticamente; se devuelven tal cual al usuario.
"""
from __future__ import annotations


class ErrorTesoreria(Exception):
    codigo: str = "TESORERIA_ERROR"

    def __init__(self, mensaje: str):
        super().__init__(mensaje)
        self.mensaje = mensaje


class NoEncontrado(ErrorTesoreria):
    codigo = "NOT_FOUND"

    def __init__(self, entidad: str, id_: str):
        self.entidad = entidad
        self.id = id_
        super().__init__(f"{entidad.capitalize()} no encontrado: {id_}")


class YaConciliado(ErrorTesoreria):
    codigo = "ALREADY_RECONCILED"

    def __init__(self, movimiento_id: str):
        self.movimiento_id = movimiento_id
        super().__init__(f"El movimiento {movimiento_id} ya está conciliado")


class ErrorPersistencia(ErrorTesoreria):
    codigo = "PERSISTENCE_ERROR"


class ErrorValidacion(ErrorTesoreria, ValueError):
    codigo = "VALIDATION_ERROR"
