from app.database.database import Base
from sqlalchemy import Column, String, Numeric, UniqueConstraint
from app.common.mixins import BaseMixin


class Product(Base, BaseMixin):
    __tablename__ = "products"

    nombre = Column(String(100), nullable=False)
    codigo = Column(String(50), nullable=False)
    categoria = Column(String(100), nullable=True)  # Frutas, Verduras, Abarrotes...
    unidad_medida = Column(String(20), nullable=False, default="unidad")  # unidad, kg, caja
    precio_venta = Column(Numeric(15, 2), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("codigo", name="uq_product_codigo"),
    )
