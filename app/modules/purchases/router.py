from fastapi import APIRouter, Query, status
from typing import Optional
from uuid import UUID

from app.core.config import settings
from app.common.schemas import ERROR_RESPONSES
from app.dependencies.dbDependecies import db_dependency
from app.dependencies.userDependencies import acting_user_dependency
from app.modules.purchases.service import PurchaseService
from app.modules.purchases.schemas import PurchaseCreate, PurchaseResult, PurchaseList

purchase_router = APIRouter(prefix="/purchases", tags=["Purchases"], responses=ERROR_RESPONSES)


@purchase_router.post("/", response_model=PurchaseResult, status_code=status.HTTP_201_CREATED)
def create_purchase(data: PurchaseCreate, db: db_dependency, acting_user: acting_user_dependency):
    """
    Registrar una compra a proveedor

    Suma la cantidad al inventario del producto (lo crea si no existe con
    stock mínimo 10) y fija el precio unitario al de la compra.
    """
    return PurchaseService(db).create_purchase(data, acting_user)


@purchase_router.get("/", response_model=PurchaseList)
def list_purchases(
    db: db_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    proveedor_id: Optional[UUID] = Query(None),
    producto_id: Optional[UUID] = Query(None),
):
    return PurchaseService(db).get_purchases(limit=limit, offset=offset, proveedor_id=proveedor_id, producto_id=producto_id)
