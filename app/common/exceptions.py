"""
Excepciones tipadas del motor de saldos e inventario.

Jerarquía:

    LedgerError (base)
    |
    +-- ValidationError            monto/cantidad fuera de rango, campo requerido
    +-- NotFoundError              factura, inventario, producto o contacto inexistente
    +-- ConflictError              operación bloqueada por datos dependientes
    +-- ConcurrencyConflictError   la fila cambió entre la lectura y la escritura
    +-- TransportError             la base de datos no responde

Cada excepción lleva un ``code`` legible por máquina y un ``status_code``
HTTP; ``app.main`` los traduce a respuestas ``{"detail", "code"}``.
La degradación de consistencia no es una excepción: viaja como
``ReconciliationWarning`` dentro de ``ReconciliationResult``.
"""

from typing import Any, Dict


class LedgerError(Exception):
    """Base de todos los errores de dominio."""

    code: str = "LEDGER_ERROR"
    status_code: int = 400

    def __init__(self, message: str, **data: Any):
        self.message = message
        self.data: Dict[str, Any] = data
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"detail": self.message, "code": self.code}
        if self.data:
            payload["data"] = {k: str(v) for k, v in self.data.items()}
        return payload


class ValidationError(LedgerError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(LedgerError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(LedgerError):
    code = "CONFLICT"
    status_code = 409


class ConcurrencyConflictError(LedgerError):
    """Optimistic locking conflict detected."""

    code = "CONCURRENT_MODIFICATION"
    status_code = 409

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} {entity_id} fue modificado por otra operación; intente nuevamente",
            entity_id=entity_id,
        )


class TransportError(LedgerError):
    code = "BACKEND_UNAVAILABLE"
    status_code = 503
