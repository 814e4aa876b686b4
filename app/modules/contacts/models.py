"""
Modelos SQLAlchemy para el módulo de Contactos

Clientes y proveedores en una única entidad Contact:
- Clientes: contraparte de las facturas por cobrar
- Proveedores: contraparte de las facturas por pagar y de las compras
"""

from app.database.database import Base
from sqlalchemy import Column, String, Text, Enum
from app.common.mixins import BaseMixin
import enum


class ContactType(str, enum.Enum):
    """Tipos de contacto"""
    CLIENTE = "cliente"      # Cliente (facturas por cobrar)
    PROVEEDOR = "proveedor"  # Proveedor (facturas por pagar, compras)


class Contact(Base, BaseMixin):
    __tablename__ = "contacts"

    nombre = Column(String(200), nullable=False, index=True)
    tipo = Column(Enum(ContactType), nullable=False, index=True)
    documento = Column(String(50), nullable=True, index=True)
    email = Column(String(100), nullable=True)
    telefono = Column(String(50), nullable=True)
    direccion = Column(Text, nullable=True)
