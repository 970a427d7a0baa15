"""Tablas SQLAlchemy de tesorería y creación del motor.

Solo se declaran las columnas que usa la conciliación; el resto de la
aplicación (facturación, gastos) puede tener más.
"""
from __future__ import annotations
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Engine, ForeignKey, Index, Numeric, String, Text, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from infra.logger import get_logger


log = get_logger().getChild("db")

Dinero = Numeric(12, 2, asdecimal=True)


class Base(DeclarativeBase):
    pass


class ProveedorORM(Base):
    __tablename__ = "proveedores"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)


class ClienteORM(Base):
    __tablename__ = "clientes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)


class MovimientoORM(Base):
    __tablename__ = "banco_movimientos"
    __table_args__ = (Index("ix_banco_movimientos_estado_fecha", "estado", "fecha"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    fecha: Mapped[date] = mapped_column(Date, nullable=False)
    importe: Mapped[Decimal] = mapped_column(Dinero, nullable=False)
    descripcion: Mapped[str] = mapped_column(Text, nullable=False, default="")
    referencia: Mapped[str | None] = mapped_column(String(255))
    estado: Mapped[str] = mapped_column(String(20), nullable=False, default="pendiente")
    match_type: Mapped[str | None] = mapped_column(String(20))
    match_id: Mapped[str | None] = mapped_column(String(36))


class GastoORM(Base):
    __tablename__ = "gastos"
    __table_args__ = (Index("ix_gastos_estado_fecha", "estado", "fecha"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    importe: Mapped[Decimal] = mapped_column(Dinero, nullable=False)
    fecha: Mapped[date] = mapped_column(Date, nullable=False)
    estado: Mapped[str] = mapped_column(String(20), nullable=False, default="pendiente")
    proveedor_id: Mapped[str | None] = mapped_column(ForeignKey("proveedores.id"))
    numero: Mapped[str | None] = mapped_column(String(100))


class FacturaORM(Base):
    __tablename__ = "facturas"
    __table_args__ = (Index("ix_facturas_estado_fecha", "estado", "fecha"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    total: Mapped[Decimal] = mapped_column(Dinero, nullable=False)
    fecha: Mapped[date] = mapped_column(Date, nullable=False)
    estado: Mapped[str] = mapped_column(String(20), nullable=False, default="emitida")
    cliente_id: Mapped[str | None] = mapped_column(ForeignKey("clientes.id"))
    numero: Mapped[str | None] = mapped_column(String(100))


class CobroORM(Base):
    __tablename__ = "cobros"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    factura_id: Mapped[str] = mapped_column(ForeignKey("facturas.id"), nullable=False, index=True)
    importe: Mapped[Decimal] = mapped_column(Dinero, nullable=False)
    fecha: Mapped[date] = mapped_column(Date, nullable=False)
    metodo: Mapped[str] = mapped_column(String(50), nullable=False)
    notas: Mapped[str] = mapped_column(Text, nullable=False, default="")


class VinculoORM(Base):
    __tablename__ = "conciliacion_vinculos"

    movimiento_id: Mapped[str] = mapped_column(ForeignKey("banco_movimientos.id"), primary_key=True)
    tipo: Mapped[str] = mapped_column(String(20), primary_key=True)
    contrapartida_id: Mapped[str] = mapped_column(String(36), primary_key=True)


def crear_motor(url: str, echo: bool = False) -> Engine:
    """Motor SQLAlchemy. Para ``sqlite://`` en memoria todas las sesiones comparten conexión."""
    if url in ("sqlite://", "sqlite:///:memory:"):
        motor = create_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        motor = create_engine(url, echo=echo, pool_pre_ping=True)
    log.info("Motor de base de datos inicializado (%s)", motor.dialect.name)
    return motor


def crear_tablas(motor: Engine) -> None:
    Base.metadata.create_all(motor)


def fabrica_sesiones(motor: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=motor, expire_on_commit=False)
