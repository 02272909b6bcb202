"""
Seed script: populate a demo supermarket catalog and print demo tokens.

What it creates:
- Products with sequential codes, barcodes, prices in Bs and initial stock
  (mix of weighed kg items and countable units).
- The system configuration row with the given exchange rate.
- JWTs for a demo cajero, supervisor and admin (identity is normally issued
  by the external provider).

Run inside the API container to use 'postgres' host and project PYTHONPATH:
    docker compose exec api python scripts/seed_demo_data.py --products 200 --rate 36.5

Note: This is intended for development environments only.
"""

# Add project root (/code) to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from decimal import Decimal

from app.database.database import SessionLocal, Base, engine
from app.modules.auth.utils import create_access_token
from app.modules.configuration.service import ConfigurationService
from app.modules.products.models import Product, UnitOfMeasure
from app.modules.products.service import ProductService
import app.modules.inventory.models  # noqa: F401
import app.modules.sales.models  # noqa: F401
import app.modules.turnos.models  # noqa: F401

CATALOG = [
    ("Arroz", UnitOfMeasure.UNIDAD, (35, 60)),
    ("Harina de maíz", UnitOfMeasure.UNIDAD, (30, 50)),
    ("Pasta larga", UnitOfMeasure.PAQUETE, (25, 45)),
    ("Queso blanco", UnitOfMeasure.KG, (180, 260)),
    ("Carne molida", UnitOfMeasure.KG, (250, 380)),
    ("Pollo entero", UnitOfMeasure.KG, (150, 220)),
    ("Aceite vegetal", UnitOfMeasure.LITRO, (60, 95)),
    ("Leche completa", UnitOfMeasure.LITRO, (40, 65)),
    ("Café molido", UnitOfMeasure.PAQUETE, (70, 120)),
    ("Azúcar", UnitOfMeasure.UNIDAD, (30, 48)),
]

DEMO_USERS = [
    ("cajero-demo", "Cajero Demo", "cajero"),
    ("supervisor-demo", "Supervisor Demo", "supervisor"),
    ("admin-demo", "Admin Demo", "admin"),
]


def seed_products(db, count: int, seed: int = 42):
    """Crear `count` productos continuando la secuencia de códigos"""
    rng = random.Random(seed)
    next_code = int(ProductService(db).next_code())
    products = []
    for offset in range(count):
        base_name, unit, (low, high) = CATALOG[offset % len(CATALOG)]
        code = next_code + offset
        name = f"{base_name} {code}"
        stock = Decimal(rng.randint(0, 60))
        if unit.allows_fraction:
            stock += Decimal(rng.randint(0, 999)) / 1000
        product = Product(
            code=str(code),
            code_int=code,
            barcode=f"759{code:010d}",
            name=name,
            name_lower=name.lower(),
            unit_price=Decimal(rng.randint(low * 100, high * 100)) / 100,
            unit=unit,
            stock=stock,
        )
        db.add(product)
        products.append(product)
    db.commit()
    return products


def main():
    parser = argparse.ArgumentParser(description="Seed demo POS data")
    parser.add_argument("--products", type=int, default=200)
    parser.add_argument("--rate", type=Decimal, default=None, help="Tasa Bs/USD a publicar")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        config_service = ConfigurationService(db)
        config_service.get_config()
        if args.rate:
            config_service.publish_exchange_rate(args.rate, source="seed")

        print("Creating products...")
        products = seed_products(db, args.products)
        print(f"Products created: {len(products)}")

        print("\nSeed completed.")
        print("Demo tokens (Authorization: Bearer <token>):")
        for user_id, name, role in DEMO_USERS:
            token = create_access_token({"sub": user_id, "name": name, "role": role})
            print(f"  {role:<10} {token}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
