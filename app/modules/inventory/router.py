from fastapi import APIRouter, Query, status
from typing import List
from uuid import UUID

from app.core.config import settings
from app.common.schemas import ERROR_RESPONSES
from app.dependencies.dbDependecies import db_dependency
from app.dependencies.userDependencies import acting_user_dependency
from app.modules.inventory.service import InventoryService
from app.modules.inventory.schemas import (
    InventoryCreate, InventoryUpdate, InventoryOut, WithdrawalCreate, WithdrawalResult,
    StockMovementOut, StockReconciliation, InventorySummary,
)

inventory_router = APIRouter(prefix="/inventory", tags=["Inventory"], responses=ERROR_RESPONSES)


@inventory_router.post("/", response_model=InventoryOut, status_code=status.HTTP_201_CREATED)
def create_inventory_record(data: InventoryCreate, db: db_dependency, acting_user: acting_user_dependency):
    """Crear el registro de inventario de un producto (uno por producto)."""
    return InventoryService(db).create_record(data, acting_user)


@inventory_router.get("/", response_model=List[InventoryOut])
def list_inventory(
    db: db_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
):
    return InventoryService(db).get_records(limit=limit, offset=offset)


@inventory_router.get("/summary", response_model=InventorySummary)
def get_inventory_summary(db: db_dependency):
    """Conteo por estado y valorización total."""
    return InventoryService(db).get_summary()


@inventory_router.get("/{inventory_id}", response_model=InventoryOut)
def get_inventory_record(inventory_id: UUID, db: db_dependency):
    return InventoryService(db).get_record(inventory_id)


@inventory_router.put("/{inventory_id}", response_model=InventoryOut)
def update_inventory_record(
    inventory_id: UUID,
    data: InventoryUpdate,
    db: db_dependency,
    acting_user: acting_user_dependency,
):
    """
    Edición directa de stock, mínimo, precio, fechas o nota de estado

    La diferencia de stock queda registrada como movimiento ``ajuste``.
    La nota de estado solo se admite en registros sin movimientos.
    """
    return InventoryService(db).update_record(inventory_id, data, acting_user)


@inventory_router.post(
    "/{inventory_id}/withdrawals",
    response_model=WithdrawalResult,
    status_code=status.HTTP_201_CREATED,
)
def withdraw_stock(
    inventory_id: UUID,
    data: WithdrawalCreate,
    db: db_dependency,
    acting_user: acting_user_dependency,
):
    return InventoryService(db).withdraw(inventory_id, data, acting_user)


@inventory_router.get("/{inventory_id}/movements", response_model=List[StockMovementOut])
def list_inventory_movements(inventory_id: UUID, db: db_dependency):
    return InventoryService(db).list_movements(inventory_id)


@inventory_router.post("/{inventory_id}/reconcile", response_model=StockReconciliation)
def reconcile_inventory(
    inventory_id: UUID,
    db: db_dependency,
    acting_user: acting_user_dependency,
    apply: bool = Query(False, description="Reemplazar el stock guardado por el reconstruido"),
):
    """Reconstruir el stock desde los movimientos; solo reporta salvo con ``apply``."""
    return InventoryService(db).reconcile(inventory_id, apply, acting_user)
