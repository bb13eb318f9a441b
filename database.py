"""
In-memory Store

Holds every collection of the marketplace in plain dicts keyed by id. One Store
is created per application and handed to each service; nothing here is global.
"""
import hashlib
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from bson import ObjectId

from schemas import CartItem, DiscountCode, Order, OrderItem, Product, StoreConfig, User

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    ("customer1", "Customer One", "customer"),
    ("customer2", "Customer Two", "customer"),
    ("seller1", "Seller One", "seller"),
    ("seller2", "Seller Two", "seller"),
    ("admin1", "Admin One", "admin"),
]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    # Naive datetimes coming from clients are taken to be UTC.
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def hash_password(pw: str) -> str:
    return hashlib.sha256(pw.encode()).hexdigest()


def default_config() -> StoreConfig:
    return StoreConfig(
        discount_n_value=int(os.getenv("DISCOUNT_N_VALUE", 3)),
        discount_percentage=float(os.getenv("DISCOUNT_PERCENTAGE", 10)),
    )


class Store:
    def __init__(self, config: Optional[StoreConfig] = None, seed: bool = True):
        self.users: Dict[str, User] = {}
        self.products: Dict[str, Product] = {}
        self.carts: Dict[str, List[CartItem]] = {}  # user_id -> rows
        self.orders: Dict[str, Order] = {}
        self.order_items: Dict[str, List[OrderItem]] = {}  # order_id -> rows
        self.discount_codes: Dict[str, DiscountCode] = {}
        self.config = config or default_config()
        # Held by every composite mutation (checkout, status change, cart edits).
        self.lock = threading.RLock()
        if seed:
            self.seed_demo_users()

    def seed_demo_users(self) -> None:
        for uid, name, role in DEMO_USERS:
            self.users[uid] = User(
                id=uid,
                name=name,
                email=f"{uid}@store.com",
                role=role,
                password_hash=hash_password(DEMO_PASSWORD),
            )
        logger.debug("Seeded %d demo users", len(DEMO_USERS))

    @staticmethod
    def generate_id(prefix: str) -> str:
        return f"{prefix}-{ObjectId()}"

    # ---------------------- Users ----------------------

    def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    def all_users(self) -> List[User]:
        return list(self.users.values())

    # ---------------------- Products ----------------------

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.products.get(product_id)

    def all_products(self) -> List[Product]:
        return list(self.products.values())

    def products_by_seller(self, seller_id: str) -> List[Product]:
        return [p for p in self.products.values() if p.seller_id == seller_id]

    def save_product(self, product: Product) -> None:
        self.products[product.id] = product

    def delete_product(self, product_id: str) -> None:
        self.products.pop(product_id, None)

    # ---------------------- Carts ----------------------

    def get_cart(self, user_id: str) -> List[CartItem]:
        return list(self.carts.get(user_id, []))

    def save_cart(self, user_id: str, rows: List[CartItem]) -> None:
        self.carts[user_id] = list(rows)

    # ---------------------- Orders ----------------------

    def get_order(self, order_id: str) -> Optional[Order]:
        return self.orders.get(order_id)

    def all_orders(self) -> List[Order]:
        return list(self.orders.values())

    def filter_orders(self, pred: Callable[[Order], bool]) -> List[Order]:
        return [o for o in self.orders.values() if pred(o)]

    def orders_by_user(self, user_id: str) -> List[Order]:
        return self.filter_orders(lambda o: o.user_id == user_id)

    def save_order(self, order: Order) -> None:
        self.orders[order.id] = order

    def get_order_items(self, order_id: str) -> List[OrderItem]:
        return list(self.order_items.get(order_id, []))

    def save_order_items(self, order_id: str, items: List[OrderItem]) -> None:
        self.order_items[order_id] = list(items)

    # ---------------------- Discount codes ----------------------

    def get_discount_code(self, discount_id: str) -> Optional[DiscountCode]:
        return self.discount_codes.get(discount_id)

    def find_discount_code(self, code: str) -> Optional[DiscountCode]:
        # Linear scan; fine for the volumes an in-memory store holds.
        for dc in self.discount_codes.values():
            if dc.code == code:
                return dc
        return None

    def all_discount_codes(self) -> List[DiscountCode]:
        return list(self.discount_codes.values())

    def discount_codes_by_customer(self, customer_id: str) -> List[DiscountCode]:
        return [dc for dc in self.discount_codes.values() if dc.customer_id == customer_id]

    def discount_codes_by_seller(self, seller_id: str) -> List[DiscountCode]:
        return [dc for dc in self.discount_codes.values() if dc.generated_by_seller_id == seller_id]

    def save_discount_code(self, dc: DiscountCode) -> None:
        self.discount_codes[dc.id] = dc

    # ---------------------- Config ----------------------

    def get_config(self) -> StoreConfig:
        return self.config.model_copy()

    def update_config(self, **changes) -> StoreConfig:
        merged = {**self.config.model_dump(), **{k: v for k, v in changes.items() if v is not None}}
        self.config = StoreConfig(**merged)
        return self.get_config()
