"""
Unidad de trabajo para las mutaciones del libro

Todo lo que ocurre dentro de ``transaction`` se confirma junto o no se
confirma: cualquier error hace rollback y se traduce a la jerarquía de
``app.common.exceptions``.
"""
from contextlib import contextmanager
from typing import Any, Optional
import logging

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.common.exceptions import LedgerError, ConcurrencyConflictError, TransportError

logger = logging.getLogger(__name__)


@contextmanager
def transaction(db: Session, entity_type: str = "Registro", entity_id: Optional[Any] = None):
    try:
        yield
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    except StaleDataError:
        db.rollback()
        logger.warning(f"Conflicto de versión en {entity_type} {entity_id}")
        raise ConcurrencyConflictError(entity_type, entity_id)
    except IntegrityError as e:
        # Dos altas simultáneas chocan contra una restricción única
        db.rollback()
        logger.warning(f"Restricción violada en {entity_type} {entity_id}: {e.orig}")
        raise ConcurrencyConflictError(entity_type, entity_id)
    except OperationalError as e:
        db.rollback()
        logger.error(f"Base de datos no disponible: {e}")
        raise TransportError("No se pudo contactar la base de datos")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error de base de datos en {entity_type} {entity_id}: {e}")
        raise
