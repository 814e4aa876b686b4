"""
Seed script: datos de demostración para una frutería.

Qué crea:
- Productos típicos (frutas, verduras, abarrotes) con precio de venta.
- Contactos: clientes (sodas, hoteles, restaurantes) y proveedores (fincas, distribuidoras).
- Compras a proveedores: crean y alimentan el inventario (movimientos de entrada).
- Retiros de inventario (ventas y mermas).
- Facturas por cobrar y por pagar, con abonos parciales y totales.

Todo pasa por los servicios, así que saldos y existencias quedan consistentes.

    python scripts/seed_fruteria_data.py --purchases 60 --invoices 80

Note: This is intended for development environments only.
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from datetime import date, timedelta
from decimal import Decimal

from app.database.database import SessionLocal, Base, engine
from app.common.exceptions import LedgerError
from app.common.schemas import ActingUser
from app.modules.contacts.models import Contact, ContactType
from app.modules.products.models import Product
from app.modules.inventory.models import InventoryRecord
from app.modules.inventory.schemas import WithdrawalCreate
from app.modules.inventory.service import InventoryService
from app.modules.invoices.models import InvoiceType, PaymentMethod
from app.modules.invoices.schemas import InvoiceCreate, PaymentCreate
from app.modules.invoices.service import InvoiceService, PaymentService
from app.modules.purchases.schemas import PurchaseCreate
from app.modules.purchases.service import PurchaseService
import app.modules.purchases.models  # noqa: F401  registra la tabla

PRODUCTS = [
    ("Papaya", "Frutas", "kg", "1200"),
    ("Piña", "Frutas", "unidad", "1500"),
    ("Mango", "Frutas", "kg", "1800"),
    ("Banano", "Frutas", "kg", "900"),
    ("Sandía", "Frutas", "unidad", "2500"),
    ("Fresa", "Frutas", "caja", "3000"),
    ("Tomate", "Verduras", "kg", "1400"),
    ("Chayote", "Verduras", "unidad", "400"),
    ("Zanahoria", "Verduras", "kg", "800"),
    ("Culantro", "Verduras", "unidad", "300"),
    ("Papa", "Verduras", "kg", "1100"),
    ("Arroz", "Abarrotes", "kg", "1000"),
    ("Frijoles", "Abarrotes", "kg", "1600"),
]

CLIENTS = ["Soda La Esquina", "Hotel Playa Azul", "Restaurante El Fogón", "Café Central", "Escuela Los Ángeles"]
SUPPLIERS = ["Finca El Roble", "Distribuidora del Valle", "Hortalizas Cartago", "Cooperativa Frutícola"]

USERS = [ActingUser(id="seed-1", nombre="Ana Mora"), ActingUser(id="seed-2", nombre="Luis Rojas")]


def pick(seq):
    return random.choice(seq)


def create_products(db):
    products = []
    for idx, (nombre, categoria, unidad, precio) in enumerate(PRODUCTS, start=1):
        codigo = f"{categoria[:2].upper()}-{idx:03d}"
        product = db.query(Product).filter(Product.codigo == codigo).first()
        if not product:
            product = Product(
                nombre=nombre,
                codigo=codigo,
                categoria=categoria,
                unidad_medida=unidad,
                precio_venta=Decimal(precio),
            )
            db.add(product)
        products.append(product)
    db.commit()
    return products


def create_contacts(db):
    def get_or_create(nombre, tipo):
        contact = db.query(Contact).filter(Contact.nombre == nombre, Contact.tipo == tipo).first()
        if not contact:
            contact = Contact(nombre=nombre, tipo=tipo, telefono=f"8{random.randint(1000000, 9999999)}")
            db.add(contact)
        return contact

    clients = [get_or_create(n, ContactType.CLIENTE) for n in CLIENTS]
    suppliers = [get_or_create(n, ContactType.PROVEEDOR) for n in SUPPLIERS]
    db.commit()
    return clients, suppliers


def create_purchases(db, suppliers, products, count):
    service = PurchaseService(db)
    created = 0
    for i in range(count):
        product = pick(products)
        costo = (product.precio_venta * Decimal("0.6")).quantize(Decimal("1"))
        data = PurchaseCreate(
            proveedor_id=pick(suppliers).id,
            producto_id=product.id,
            fecha=date.today() - timedelta(days=random.randint(0, 45)),
            cantidad=Decimal(random.randint(5, 60)),
            precio=costo,
            referencia=f"FP-{i:04d}",
        )
        try:
            service.create_purchase(data, pick(USERS))
            created += 1
        except LedgerError as e:
            print(f"  Compra {i} rechazada: {e.message}")
    return created


def create_withdrawals(db, count):
    service = InventoryService(db)
    records = db.query(InventoryRecord).all()
    created = 0
    for _ in range(count):
        if not records:
            break
        record = pick(records)
        if record.stock_actual <= 0:
            continue
        cantidad = min(record.stock_actual, Decimal(random.randint(1, 15)))
        try:
            service.withdraw(
                record.id,
                WithdrawalCreate(cantidad=cantidad, motivo=pick(["Venta", "Venta", "Merma"])),
                pick(USERS),
            )
            created += 1
        except LedgerError as e:
            print(f"  Retiro rechazado: {e.message}")
    return created


def create_invoices(db, clients, suppliers, count):
    invoices = InvoiceService(db)
    payments = PaymentService(db)
    created = 0
    for i in range(count):
        tipo = InvoiceType.POR_COBRAR if random.random() < 0.6 else InvoiceType.POR_PAGAR
        contact = pick(clients) if tipo == InvoiceType.POR_COBRAR else pick(suppliers)
        monto = Decimal(random.randint(5, 300) * 500)
        user = pick(USERS)
        try:
            invoice = invoices.create_invoice(
                InvoiceCreate(
                    tipo=tipo,
                    contact_id=contact.id,
                    numero_factura=f"{'FC' if tipo == InvoiceType.POR_COBRAR else 'FP'}-{i:05d}",
                    fecha_emision=date.today() - timedelta(days=random.randint(0, 60)),
                    monto=monto,
                ),
                user,
            )
            roll = random.random()
            if roll < 0.3:
                abono = invoice.saldo
            elif roll < 0.7:
                abono = (invoice.saldo * Decimal(random.randint(10, 90)) / 100).quantize(Decimal("0.01"))
            else:
                abono = None
            if abono:
                payments.create_payment(
                    PaymentCreate(
                        invoice_id=invoice.id,
                        monto=abono,
                        metodo_pago=pick(list(PaymentMethod)),
                        referencia=f"AB-{i:05d}",
                    ),
                    user,
                )
            created += 1
        except LedgerError as e:
            print(f"  Factura {i} rechazada: {e.message}")
    return created


def main():
    parser = argparse.ArgumentParser(description="Seed fruteria demo data")
    parser.add_argument("--purchases", type=int, default=60)
    parser.add_argument("--withdrawals", type=int, default=40)
    parser.add_argument("--invoices", type=int, default=80)
    parser.add_argument("--seed", type=int, default=None, help="Semilla aleatoria para datos reproducibles")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        print("Creating products...")
        products = create_products(db)
        print(f"Products: {len(products)}")

        print("Creating contacts (clientes/proveedores)...")
        clients, suppliers = create_contacts(db)
        print(f"Clients: {len(clients)}, Suppliers: {len(suppliers)}")

        print("Creating purchases (increase stock)...")
        print(f"Purchases created: {create_purchases(db, suppliers, products, args.purchases)}")

        print("Creating withdrawals...")
        print(f"Withdrawals created: {create_withdrawals(db, args.withdrawals)}")

        print("Creating invoices and payments...")
        print(f"Invoices created: {create_invoices(db, clients, suppliers, args.invoices)}")

        print("\nSeed completed.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
