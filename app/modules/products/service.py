from sqlalchemy.orm import Session
from uuid import UUID
from typing import List
import logging

from app.common.exceptions import ConflictError, NotFoundError, ValidationError
from app.common.transactions import transaction
from .models import Product
from .schemas import ProductCreate

logger = logging.getLogger(__name__)


def create_product(db: Session, product_data: ProductCreate) -> Product:
    with transaction(db, "Producto"):
        if db.query(Product).filter(Product.codigo == product_data.codigo).first():
            raise ConflictError(f"Ya existe un producto con el código {product_data.codigo}")
        product = Product(**product_data.model_dump())
        db.add(product)

    db.refresh(product)
    logger.info(f"Producto creado: {product.nombre} ({product.codigo})")
    return product


def get_active_products(db: Session) -> List[Product]:
    """Catálogo de productos activos (referencia de solo lectura para inventario y compras)."""
    return db.query(Product).filter(Product.is_active == True).order_by(Product.nombre.asc()).all()


def get_product(db: Session, product_id: UUID) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError("Producto no encontrado", product_id=product_id)
    return product


def require_active_product(db: Session, product_id: UUID) -> Product:
    product = get_product(db, product_id)
    if not product.is_active:
        raise ValidationError(
            f"El producto '{product.nombre}' está inactivo y no admite movimientos",
            product_id=product_id,
        )
    return product
