import os
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from database import SessionLocal, init_db
from models.category import Category
from models.location import Location
from models.product import Product
from models.supplier import Supplier
from models.customer import Customer
from models.users import User, UserRole
from services.transaction_service import AdjustmentDirection, record_adjustment
from utils.hashing import get_password_hash
from utils.logging_setup import configure_logging

# Configuration
DEFAULT_PASSWORD = os.getenv("SEED_PASSWORD", "password123")

USERS = [
    ("admin@example.com", UserRole.ADMIN, "Ada", "Admin"),
    ("manager@example.com", UserRole.MANAGER, "Max", "Manager"),
    ("staff@example.com", UserRole.STAFF, "Sam", "Staff"),
]

LOCATIONS = [
    ("Main Warehouse", "1 Dock Road", "Primary storage"),
    ("Store Room", "12 High Street", "Shop back room"),
]

# sku, name, unit, reorder level, cost, price, initial quantity at Main Warehouse
PRODUCTS = [
    ("SKU-BOLT-M8", "Bolt M8x40", "pcs", 100, 0.12, 0.30, 500),
    ("SKU-NUT-M8", "Nut M8", "pcs", 100, 0.05, 0.15, 800),
    ("SKU-DRILL-18V", "Cordless Drill 18V", "pcs", 5, 54.00, 89.90, 20),
    ("SKU-GLOVE-L", "Work Gloves L", "pair", 20, 1.80, 4.50, 60),
]
# End Configuration


def _get_or_create(db: Session, model, lookup: dict, **values):
    instance = db.query(model).filter_by(**lookup).first()
    if instance:
        return instance, False
    instance = model(**lookup, **values)
    db.add(instance)
    db.flush()
    return instance, True


def seed_users(db: Session) -> User:
    admin = None
    for email, role, first_name, last_name in USERS:
        user = db.query(User).filter(func.lower(User.email) == email).first()
        if not user:
            user = User(email=email, password_hash=get_password_hash(DEFAULT_PASSWORD), role=role.value,
                        first_name=first_name, last_name=last_name)
            db.add(user)
            db.flush()
            print(f"Created user {email} ({role.value})")
        if role == UserRole.ADMIN:
            admin = user
    db.commit()
    return admin


def seed_reference_data(db: Session):
    locations = []
    for name, address, description in LOCATIONS:
        location, _ = _get_or_create(db, Location, {"name": name}, address=address, description=description)
        locations.append(location)

    category, _ = _get_or_create(db, Category, {"name": "Hardware"}, description="Tools and fasteners")
    _get_or_create(db, Supplier, {"name": "Acme Supplies"}, contact_person="Jane Roe",
                   email="orders@acme.com", phone="+1 555 0100")
    _get_or_create(db, Customer, {"name": "Builders Ltd"}, email="buy@builders.com")

    products = []
    for sku, name, unit, reorder_level, cost, price, qty in PRODUCTS:
        product, created = _get_or_create(
            db, Product, {"sku": sku}, name=name, unit=unit, category_id=category.id,
            reorder_level=reorder_level, cost_price=cost, selling_price=price,
        )
        products.append((product, qty, created))

    db.commit()
    return locations, products


def populate_database():
    """Main execution function to populate database."""
    configure_logging(settings.LOG_LEVEL)
    init_db()

    db = SessionLocal()
    try:
        admin = seed_users(db)
        locations, products = seed_reference_data(db)
        main_warehouse = locations[0]

        # Opening balances go through the ledger so stock and history agree from the first row
        for product, qty, created in products:
            if not created or qty <= 0:
                continue
            record_adjustment(db, admin.id, product.id, main_warehouse.id, qty, AdjustmentDirection.IN,
                              notes="Opening balance")
            print(f"Opening stock: {qty} x {product.sku} at {main_warehouse.name}")

        print("Database populated.")
    finally:
        db.close()


if __name__ == "__main__":
    populate_database()
