from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Enum, Date, Integer, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import date
from uuid import uuid4
from app.common.mixins import TimestampMixin, ActorMixin
from app.modules.ledger.stock import derive_status
import enum


class MovementType(str, enum.Enum):
    ENTRADA = "entrada"  # compra
    SALIDA = "salida"    # retiro
    AJUSTE = "ajuste"    # edición directa del registro


class InventoryRecord(Base, TimestampMixin):
    """Existencias de un producto; un registro por producto."""
    __tablename__ = "inventory_records"

    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
    producto_id = Column(Uuid, ForeignKey("products.id"), nullable=False)

    stock_actual = Column(Numeric(15, 3), nullable=False, default=0)
    stock_minimo = Column(Numeric(15, 3), nullable=False, default=10)
    precio_unitario = Column(Numeric(15, 2), nullable=False, default=0)
    fecha_ingreso = Column(Date, nullable=False, default=date.today)
    fecha_vencimiento = Column(Date, nullable=True)

    # Nota manual de estado; no reemplaza al estado derivado y se descarta
    # con el primer movimiento
    estado_manual = Column(String(30), nullable=True)

    version = Column(Integer, nullable=False)

    producto = relationship("Product")
    movements = relationship(
        "StockMovement",
        back_populates="inventory",
        order_by="StockMovement.created_at",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("producto_id", name="uq_inventory_producto"),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def estado(self) -> str:
        return derive_status(self.stock_actual or 0, self.stock_minimo or 0).value

    @property
    def nombre_producto(self) -> str:
        return self.producto.nombre if self.producto else None

    @property
    def valor_total(self):
        return self.stock_actual * self.precio_unitario


class StockMovement(Base, TimestampMixin, ActorMixin):
    """
    Registro de movimientos de inventario (solo inserción).

    ``cantidad`` lleva signo: la suma de los movimientos de un registro es
    su stock actual.
    """
    __tablename__ = "stock_movements"

    id = Column(Uuid, primary_key=True, default=uuid4)
    inventory_id = Column(Uuid, ForeignKey("inventory_records.id", ondelete="CASCADE"), nullable=False, index=True)

    tipo = Column(Enum(MovementType), nullable=False)
    cantidad = Column(Numeric(15, 3), nullable=False)
    stock_resultante = Column(Numeric(15, 3), nullable=False)
    motivo = Column(String(255), nullable=True)
    referencia = Column(String(100), nullable=True)
    fecha = Column(Date, nullable=False, default=date.today)

    inventory = relationship("InventoryRecord", back_populates="movements")
