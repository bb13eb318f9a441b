import logging

from database import Store
from errors import InvalidRequest, NotFound
from schemas import CartItem, CartLine, CartView

logger = logging.getLogger(__name__)


class CartService:
    def __init__(self, store: Store):
        self.store = store

    def get_cart(self, user_id: str) -> CartView:
        """Price the user's cart rows against current product data.

        Rows whose product has since been deleted are left out of the view.
        """
        lines = []
        for row in self.store.get_cart(user_id):
            product = self.store.get_product(row.product_id)
            if not product:
                continue
            lines.append(CartLine(**row.model_dump(), product=product, total_price=product.price * row.quantity))
        return CartView(
            items=lines,
            total_items=sum(line.quantity for line in lines),
            subtotal=sum(line.total_price for line in lines),
        )

    def add_to_cart(self, user_id: str, product_id: str, quantity: int) -> CartView:
        if quantity < 1:
            raise InvalidRequest("Quantity must be at least 1")
        with self.store.lock:
            product = self.store.get_product(product_id)
            if not product:
                raise NotFound("Product not found")
            if product.stock_quantity < quantity:
                raise InvalidRequest(f"Insufficient stock. Available: {product.stock_quantity}")

            rows = self.store.get_cart(user_id)
            existing = next((r for r in rows if r.product_id == product_id), None)
            if existing:
                wanted = existing.quantity + quantity
                if product.stock_quantity < wanted:
                    raise InvalidRequest(
                        f"Insufficient stock. Available: {product.stock_quantity}, In cart: {existing.quantity}"
                    )
                existing.quantity = wanted
            else:
                rows.append(CartItem(
                    id=self.store.generate_id("cart"),
                    user_id=user_id,
                    product_id=product_id,
                    quantity=quantity,
                ))
            self.store.save_cart(user_id, rows)
        logger.debug("Cart %s: +%d of %s", user_id, quantity, product_id)
        return self.get_cart(user_id)

    def remove_from_cart(self, user_id: str, product_id: str) -> CartView:
        with self.store.lock:
            rows = self.store.get_cart(user_id)
            kept = [r for r in rows if r.product_id != product_id]
            if len(kept) == len(rows):
                raise NotFound("Product not found in cart")
            self.store.save_cart(user_id, kept)
        return self.get_cart(user_id)

    def clear_cart(self, user_id: str) -> None:
        self.store.save_cart(user_id, [])
