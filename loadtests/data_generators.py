"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the API's validation rules and
match the exact field names expected by the Pydantic request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker()

CATEGORIES = ["supplements", "equipment", "apparel", "accessories", "other"]

_PRODUCTS = {
    "supplements": ["Whey Protein", "Creatine", "Pre-Workout", "BCAA", "Protein Bar Box"],
    "equipment": ["Kettlebell", "Resistance Band", "Jump Rope", "Foam Roller", "Dumbbell Pair"],
    "apparel": ["Training Tee", "Lifting Shorts", "Hoodie", "Compression Tights"],
    "accessories": ["Shaker Bottle", "Lifting Straps", "Gym Towel", "Chalk Block"],
    "other": ["Gift Card", "Locker Padlock"],
}


def member_id() -> str:
    """Generate member IDs like 'member-lt-a1b2c3d4'."""
    return f"member-lt-{uuid.uuid4().hex[:8]}"


def idempotency_key() -> str:
    return uuid.uuid4().hex


def item_data(quantity: int | None = None, threshold: int | None = None) -> dict:
    """Generate a RegisterItemRequest payload."""
    category = random.choice(CATEGORIES)
    return {
        "name": f"{random.choice(_PRODUCTS[category])} {fake.color_name()}"[:255],
        "quantity": quantity if quantity is not None else random.randint(20, 200),
        "low_stock_threshold": threshold if threshold is not None else random.randint(2, 10),
        "price": round(random.uniform(4.99, 149.99), 2),
        "supplier_id": f"sup-{random.randint(1, 20):03d}",
        "category": category,
    }


def restock_data(quantity: int | None = None) -> dict:
    """Generate an UpdateStockRequest for a supplier delivery."""
    return {
        "operation": "increment",
        "quantity": quantity or random.randint(10, 50),
        "reason": "PURCHASE",
        "performed_by": f"staff-{random.randint(1, 5)}",
        "reference_id": f"PO-{uuid.uuid4().hex[:6]}",
    }


def write_off_data(quantity: int = 1) -> dict:
    """Generate an UpdateStockRequest for damaged or expired stock."""
    return {
        "operation": "decrement",
        "quantity": quantity,
        "reason": random.choice(["DAMAGE", "EXPIRED"]),
        "performed_by": f"staff-{random.randint(1, 5)}",
        "notes": fake.sentence()[:500],
    }


def cart_line(member: str, item_id: str, quantity: int | None = None) -> dict:
    return {"member_id": member, "item_id": item_id, "quantity": quantity or random.randint(1, 3)}
