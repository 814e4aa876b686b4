from fastapi import APIRouter, status
from uuid import UUID
from typing import List

from app.common.schemas import ERROR_RESPONSES
from app.dependencies.dbDependecies import db_dependency
from app.modules.products import service
from app.modules.products.schemas import ProductCreate, ProductOut

product_router = APIRouter(prefix="/products", tags=["Products"], responses=ERROR_RESPONSES)


@product_router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(product_data: ProductCreate, db: db_dependency):
    return service.create_product(db, product_data)


@product_router.get("/active", response_model=List[ProductOut])
def list_active_products(db: db_dependency):
    """Productos activos; referencia para inventario y compras."""
    return service.get_active_products(db)


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: UUID, db: db_dependency):
    return service.get_product(db, product_id)
