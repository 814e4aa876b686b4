"""
Módulo de Facturas - cuentas por cobrar y por pagar

- invoices (tipo por_cobrar): facturas a clientes
- invoices (tipo por_pagar): facturas de proveedores
- payments: abonos inmutables; cada uno descuenta del saldo de su factura

Invariante: 0 <= saldo <= monto y saldo == max(0, monto - suma de abonos).
"""

from .models import Invoice, Payment, InvoiceType, PaymentMethod

__all__ = ["Invoice", "Payment", "InvoiceType", "PaymentMethod"]
