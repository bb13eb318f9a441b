import logging
from typing import List, Optional

from database import Store, now_utc
from errors import NotFound
from schemas import Product

logger = logging.getLogger(__name__)


class ProductService:
    def __init__(self, store: Store):
        self.store = store

    def list_all(self) -> List[Product]:
        return self.store.all_products()

    def get(self, product_id: str) -> Optional[Product]:
        return self.store.get_product(product_id)

    def list_by_seller(self, seller_id: str) -> List[Product]:
        return self.store.products_by_seller(seller_id)

    def create(self, seller_id: str, name: str, price: float, stock_quantity: int, description: str = "") -> Product:
        product = Product(
            id=self.store.generate_id("prod"),
            seller_id=seller_id,
            name=name,
            description=description,
            price=price,
            stock_quantity=stock_quantity,
            created_at=now_utc(),
        )
        self.store.save_product(product)
        logger.info("Seller %s listed %s (%s)", seller_id, product.id, name)
        return product

    def _owned(self, product_id: str, seller_id: str) -> Product:
        product = self.store.get_product(product_id)
        # Another seller's product is reported exactly like a missing one.
        if not product or product.seller_id != seller_id:
            raise NotFound("Product not found")
        return product

    def update(self, product_id: str, seller_id: str, **changes) -> Product:
        with self.store.lock:
            product = self._owned(product_id, seller_id)
            fields = {k: v for k, v in changes.items() if v is not None}
            updated = Product(**{**product.model_dump(), **fields})
            self.store.save_product(updated)
        return updated

    def delete(self, product_id: str, seller_id: str) -> None:
        with self.store.lock:
            self._owned(product_id, seller_id)
            self.store.delete_product(product_id)
        logger.info("Seller %s removed %s", seller_id, product_id)
