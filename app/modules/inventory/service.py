from typing import List, Optional
from uuid import UUID
from decimal import Decimal
from sqlalchemy.orm import Session, selectinload
import logging

from app.core.config import settings
from app.common.exceptions import NotFoundError, ConflictError, ValidationError
from app.common.schemas import ActingUser
from app.common.transactions import transaction
from app.common.validators import ZERO, round_money, round_quantity
from app.modules.ledger import (
    StockLevel, StockStatus, apply_purchase, apply_withdrawal, ReconciliationCoordinator,
)
from app.modules.ledger.stock import validate_record_fields
from app.modules.products import service as product_service
from app.modules.inventory.models import InventoryRecord, StockMovement, MovementType
from app.modules.inventory.schemas import (
    InventoryCreate, InventoryUpdate, InventoryOut, WithdrawalCreate, WithdrawalResult,
    StockMovementOut, StockReconciliation, InventorySummary,
)

logger = logging.getLogger(__name__)


class InventoryService:
    """Servicio de inventario: registros, retiros, entradas por compra y reconciliación"""

    def __init__(self, db: Session):
        self.db = db
        self.coordinator = ReconciliationCoordinator()

    def _get_record(self, inventory_id: UUID, lock: bool = False) -> InventoryRecord:
        query = self.db.query(InventoryRecord).filter(InventoryRecord.id == inventory_id)
        if lock:
            query = query.with_for_update()
        record = query.first()
        if not record:
            raise NotFoundError("Registro de inventario no encontrado", inventory_id=inventory_id)
        return record

    def _log_movement(
        self,
        record: InventoryRecord,
        tipo: MovementType,
        cantidad: Decimal,
        acting_user: ActingUser,
        motivo: Optional[str] = None,
        referencia: Optional[str] = None,
    ) -> StockMovement:
        movement = StockMovement(
            inventory=record,
            tipo=tipo,
            cantidad=round_quantity(cantidad),
            stock_resultante=round_quantity(record.stock_actual),
            motivo=motivo,
            referencia=referencia,
        )
        movement.stamp(acting_user)
        self.db.add(movement)
        return movement

    def _has_movements(self, inventory_id: UUID) -> bool:
        return self.db.query(StockMovement.id).filter(
            StockMovement.inventory_id == inventory_id
        ).first() is not None

    def _movement_deltas(self, inventory_id: UUID) -> List[Decimal]:
        # Savepoint: si la lectura falla, la transacción externa sigue usable
        with self.db.begin_nested():
            rows = self.db.query(StockMovement.cantidad).filter(
                StockMovement.inventory_id == inventory_id
            ).order_by(StockMovement.created_at.asc()).all()
        return [row.cantidad for row in rows]

    def create_record(self, data: InventoryCreate, acting_user: ActingUser) -> InventoryRecord:
        """Alta manual de un registro; las existencias iniciales quedan como entrada."""
        with transaction(self.db, "Inventario"):
            product_service.require_active_product(self.db, data.producto_id)
            existing = self.db.query(InventoryRecord).filter(
                InventoryRecord.producto_id == data.producto_id
            ).first()
            if existing:
                raise ConflictError(
                    "El producto ya tiene un registro de inventario",
                    inventory_id=existing.id,
                )

            validate_record_fields(data.stock_actual, data.stock_minimo or ZERO)
            record = InventoryRecord(
                producto_id=data.producto_id,
                stock_actual=data.stock_actual,
                stock_minimo=(
                    data.stock_minimo if data.stock_minimo is not None
                    else round_quantity(settings.DEFAULT_STOCK_MINIMO)
                ),
                precio_unitario=data.precio_unitario,
                fecha_vencimiento=data.fecha_vencimiento,
            )
            if data.fecha_ingreso:
                record.fecha_ingreso = data.fecha_ingreso
            self.db.add(record)

            if data.stock_actual > ZERO:
                self._log_movement(
                    record, MovementType.ENTRADA, data.stock_actual, acting_user, motivo="Inventario inicial"
                )

        self.db.refresh(record)
        logger.info(f"Registro de inventario creado para producto {record.producto_id}: stock {record.stock_actual}")
        return record

    def get_records(self, limit: int = 100, offset: int = 0) -> List[InventoryRecord]:
        return self.db.query(InventoryRecord).options(
            selectinload(InventoryRecord.producto)
        ).order_by(InventoryRecord.fecha_ingreso.desc()).offset(offset).limit(limit).all()

    def get_record(self, inventory_id: UUID) -> InventoryRecord:
        return self._get_record(inventory_id)

    def update_record(
        self, inventory_id: UUID, data: InventoryUpdate, acting_user: ActingUser
    ) -> InventoryRecord:
        """
        Edición directa del registro.

        Sobrescribe los campos sin reconciliar contra el historial; el
        cambio de stock queda registrado como un ajuste con la diferencia.

        La nota manual de estado solo se acepta mientras el registro no
        tenga movimientos y se descarta si la edición cambia el stock.
        """
        update_data = data.model_dump(exclude_unset=True)
        motivo = update_data.pop("motivo", None)

        with transaction(self.db, "Inventario", inventory_id):
            record = self._get_record(inventory_id, lock=True)

            new_stock = update_data.get("stock_actual")
            new_stock = record.stock_actual if new_stock is None else new_stock
            new_minimo = update_data.get("stock_minimo")
            new_minimo = record.stock_minimo if new_minimo is None else new_minimo
            validate_record_fields(new_stock, new_minimo)
            if update_data.get("precio_unitario") is not None and update_data["precio_unitario"] < ZERO:
                raise ValidationError("El precio unitario no puede ser negativo")

            delta = round_quantity(new_stock - record.stock_actual)

            if "estado" in update_data:
                hint = update_data.pop("estado")
                if hint is not None and self._has_movements(record.id):
                    raise ValidationError(
                        "El estado se deriva de las existencias; solo se admite una nota "
                        "manual en registros sin movimientos",
                        inventory_id=record.id,
                    )
                record.estado_manual = hint
            for field, value in update_data.items():
                if value is not None or field == "fecha_vencimiento":
                    setattr(record, field, value)

            if delta != ZERO:
                record.estado_manual = None
                self._log_movement(
                    record, MovementType.AJUSTE, delta, acting_user, motivo=motivo or "Edición directa"
                )

        self.db.refresh(record)
        logger.info(f"Inventario {record.id} editado por {acting_user.nombre}: ajuste {delta}")
        return record

    def withdraw(
        self, inventory_id: UUID, data: WithdrawalCreate, acting_user: ActingUser
    ) -> WithdrawalResult:
        """Salida de inventario, serializada por registro."""
        with transaction(self.db, "Inventario", inventory_id):
            record = self._get_record(inventory_id, lock=True)
            try:
                nuevo_stock = apply_withdrawal(record.stock_actual, data.cantidad)
            except ValidationError:
                logger.warning(
                    f"Retiro rechazado en inventario {record.id}: "
                    f"solicitado {data.cantidad}, disponible {record.stock_actual}"
                )
                raise

            record.stock_actual = nuevo_stock
            record.estado_manual = None
            movement = self._log_movement(
                record, MovementType.SALIDA, -data.cantidad, acting_user,
                motivo=data.motivo, referencia=data.referencia,
            )

        self.db.refresh(record)
        self.db.refresh(movement)
        logger.info(f"Retiro de {data.cantidad} en inventario {record.id} por {acting_user.nombre}; stock {record.stock_actual}")
        return WithdrawalResult(
            movement=StockMovementOut.model_validate(movement),
            inventory=InventoryOut.model_validate(record),
        )

    def receive_purchase(
        self,
        producto_id: UUID,
        cantidad: Decimal,
        precio_unitario: Decimal,
        acting_user: ActingUser,
        referencia: Optional[str] = None,
    ) -> InventoryRecord:
        """
        Entrada por compra dentro de la transacción del llamador.

        Crea el registro si el producto no tiene uno; si existe suma la
        cantidad y reemplaza el precio unitario.
        """
        record = self.db.query(InventoryRecord).filter(
            InventoryRecord.producto_id == producto_id
        ).with_for_update().first()

        current = None
        if record is not None:
            current = StockLevel(record.stock_actual, record.stock_minimo, record.precio_unitario)

        level = apply_purchase(current, cantidad, precio_unitario, settings.DEFAULT_STOCK_MINIMO)

        if record is None:
            record = InventoryRecord(producto_id=producto_id)
            self.db.add(record)

        record.stock_actual = level.stock_actual
        record.stock_minimo = level.stock_minimo
        record.precio_unitario = level.precio_unitario
        record.estado_manual = None

        self._log_movement(
            record, MovementType.ENTRADA, cantidad, acting_user, motivo="Compra", referencia=referencia
        )
        return record

    def list_movements(self, inventory_id: UUID) -> List[StockMovement]:
        self._get_record(inventory_id)
        return self.db.query(StockMovement).filter(
            StockMovement.inventory_id == inventory_id
        ).order_by(StockMovement.created_at.asc()).all()

    def reconcile(self, inventory_id: UUID, apply: bool, acting_user: ActingUser) -> StockReconciliation:
        """
        Reconstruye el stock desde el registro de movimientos.

        Con ``apply`` el stock guardado se reemplaza por el reconstruido,
        solo si la reconstrucción fue exacta.
        """
        with transaction(self.db, "Inventario", inventory_id):
            record = self._get_record(inventory_id, lock=apply)
            stock_actual = round_quantity(record.stock_actual)

            result = self.coordinator.recompute_stock(
                stock_actual,
                lambda: self._movement_deltas(inventory_id),
                record_ref=str(inventory_id),
            )
            consistente = not result.is_degraded and result.value == stock_actual
            aplicado = False
            if apply and not result.is_degraded and not consistente:
                record.stock_actual = result.value
                record.estado_manual = None
                aplicado = True

        if aplicado:
            logger.warning(
                f"Stock de inventario {inventory_id} corregido por {acting_user.nombre}: "
                f"{stock_actual} -> {result.value}"
            )

        return StockReconciliation(
            inventory_id=inventory_id,
            stock_actual=stock_actual,
            stock_reconstruido=result.value,
            historial_total=result.history_total,
            consistente=consistente,
            aplicado=aplicado,
            warning_code=result.warning.code if result.warning else None,
            warning_message=result.warning.message if result.warning else None,
        )

    def get_summary(self) -> InventorySummary:
        """Conteo por estado y valorización total (stock x precio unitario)."""
        records = self.db.query(InventoryRecord).options(selectinload(InventoryRecord.producto)).all()

        por_estado = {status.value: 0 for status in StockStatus}
        valor_total = ZERO
        stock_bajo = []
        for record in records:
            estado = record.estado
            por_estado[estado] = por_estado.get(estado, 0) + 1
            valor_total += record.stock_actual * record.precio_unitario
            if estado in (StockStatus.STOCK_BAJO.value, StockStatus.AGOTADO.value):
                stock_bajo.append(InventoryOut.model_validate(record))

        return InventorySummary(
            total_registros=len(records),
            por_estado=por_estado,
            valor_total=round_money(valor_total),
            productos_stock_bajo=stock_bajo,
        )
