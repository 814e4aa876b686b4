"""
Common mixins for ledger models
"""
from sqlalchemy import Column, DateTime, Boolean, String, Uuid
from sqlalchemy.sql import func
from uuid import uuid4


class TimestampMixin:
    """Mixin for models that need timestamp tracking"""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ActorMixin:
    """Usuario que registró la fila (contexto explícito, nunca global)"""

    usuario_id = Column(String(64), nullable=True)
    usuario_registro = Column(String(120), nullable=False, default="Sistema")

    def stamp(self, acting_user):
        self.usuario_id = acting_user.id
        self.usuario_registro = acting_user.nombre


class BaseMixin(TimestampMixin):
    """Combines identity and timestamp functionality for most business models"""

    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
