from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Date, Uuid
from sqlalchemy.orm import relationship
from datetime import date
from uuid import uuid4
from app.common.mixins import TimestampMixin, ActorMixin


class Purchase(Base, TimestampMixin, ActorMixin):
    """Compra a proveedor; cada compra es una entrada de inventario."""
    __tablename__ = "purchases"

    id = Column(Uuid, primary_key=True, default=uuid4)
    proveedor_id = Column(Uuid, ForeignKey("contacts.id"), nullable=False, index=True)
    producto_id = Column(Uuid, ForeignKey("products.id"), nullable=False, index=True)

    fecha = Column(Date, nullable=False, default=date.today)
    precio = Column(Numeric(15, 2), nullable=False)      # precio unitario
    cantidad = Column(Numeric(15, 3), nullable=False)
    total = Column(Numeric(15, 2), nullable=False)       # precio x cantidad
    referencia = Column(String(100), nullable=True)

    proveedor = relationship("Contact")
    producto = relationship("Product")

    @property
    def nombre_proveedor(self) -> str:
        return self.proveedor.nombre if self.proveedor else None

    @property
    def nombre_producto(self) -> str:
        return self.producto.nombre if self.producto else None
