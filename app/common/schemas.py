"""
Esquemas compartidos entre módulos
"""
from pydantic import BaseModel, Field
from typing import Optional

from app.core.config import settings


class ActingUser(BaseModel):
    """Usuario que ejecuta la operación; se pasa explícitamente a cada servicio."""
    id: Optional[str] = None
    nombre: str = Field(default_factory=lambda: settings.DEFAULT_USER_NAME)


class ErrorOut(BaseModel):
    detail: str
    code: str


# Respuestas de error documentadas en todos los routers
ERROR_RESPONSES = {
    400: {"model": ErrorOut, "description": "Regla de negocio violada"},
    404: {"model": ErrorOut, "description": "Not found"},
    409: {"model": ErrorOut, "description": "Conflicto o modificación concurrente"},
    503: {"model": ErrorOut, "description": "Base de datos no disponible"},
}
