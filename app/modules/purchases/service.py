"""
Servicio de compras

Una compra registra el costo pagado al proveedor y aplica la entrada al
inventario del producto en la misma transacción.
"""

from sqlalchemy.orm import Session, selectinload
from typing import Optional
from uuid import UUID
import logging

from app.common.schemas import ActingUser
from app.common.transactions import transaction
from app.common.exceptions import ValidationError
from app.common.validators import MAX_MONEY, round_money
from app.modules.contacts.models import ContactType
from app.modules.contacts.service import ContactService
from app.modules.products import service as product_service
from app.modules.inventory.service import InventoryService
from app.modules.inventory.schemas import InventoryOut
from app.modules.purchases.models import Purchase
from app.modules.purchases.schemas import PurchaseCreate, PurchaseOut, PurchaseResult, PurchaseList

logger = logging.getLogger(__name__)


class PurchaseService:

    def __init__(self, db: Session):
        self.db = db

    def create_purchase(self, data: PurchaseCreate, acting_user: ActingUser) -> PurchaseResult:
        total = round_money(data.precio * data.cantidad)
        if total >= MAX_MONEY:
            raise ValidationError("El total de la compra excede el máximo permitido", total=total)

        with transaction(self.db, "Inventario", data.producto_id):
            ContactService(self.db).require_counterparty(data.proveedor_id, ContactType.PROVEEDOR)
            product_service.require_active_product(self.db, data.producto_id)

            record = InventoryService(self.db).receive_purchase(
                data.producto_id, data.cantidad, data.precio, acting_user, referencia=data.referencia
            )

            purchase = Purchase(
                proveedor_id=data.proveedor_id,
                producto_id=data.producto_id,
                fecha=data.fecha,
                precio=data.precio,
                cantidad=data.cantidad,
                total=total,
                referencia=data.referencia,
            )
            purchase.stamp(acting_user)
            self.db.add(purchase)

        self.db.refresh(purchase)
        self.db.refresh(record)
        logger.info(
            f"Compra de {purchase.cantidad} x {purchase.precio} registrada por {purchase.usuario_registro}; "
            f"stock del producto {record.producto_id}: {record.stock_actual}"
        )
        return PurchaseResult(
            purchase=PurchaseOut.model_validate(purchase),
            inventory=InventoryOut.model_validate(record),
        )

    def get_purchases(
        self,
        limit: int = 100,
        offset: int = 0,
        proveedor_id: Optional[UUID] = None,
        producto_id: Optional[UUID] = None,
    ) -> PurchaseList:
        query = self.db.query(Purchase).options(
            selectinload(Purchase.proveedor), selectinload(Purchase.producto)
        )
        if proveedor_id:
            query = query.filter(Purchase.proveedor_id == proveedor_id)
        if producto_id:
            query = query.filter(Purchase.producto_id == producto_id)

        total = query.count()
        purchases = query.order_by(Purchase.fecha.desc(), Purchase.created_at.desc()).offset(offset).limit(limit).all()
        return PurchaseList(items=[PurchaseOut.model_validate(p) for p in purchases], total=total, limit=limit, offset=offset)
