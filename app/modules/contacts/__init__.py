"""
Módulo de Contactos

Clientes y proveedores en una sola tabla, distinguidos por ``tipo``.
Las facturas por cobrar exigen un cliente; las por pagar y las compras,
un proveedor.
"""

from .models import Contact, ContactType

__all__ = ["Contact", "ContactType"]
