"""
Checkout and order lifecycle.

Checkout turns a cart into a pending order: stock is re-checked, an optional
discount code is redeemed, stock is decremented, unit prices are snapshotted
into order items and the cart is emptied. Sellers then move the order along
STATUS_TRANSITIONS; landing on "completed" may earn the customer a new code.
"""
import logging
from typing import Dict, List, Optional, Tuple

from cart import CartService
from database import Store, now_utc
from discounts import DiscountService, calculate_amount
from errors import Forbidden, InvalidRequest, NotFound
from schemas import (
    AppliedDiscount,
    CheckoutResult,
    DiscountCode,
    Order,
    OrderDetail,
    OrderItem,
    StatusUpdateResult,
)

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("shipped", "cancelled"),
    "shipped": ("delivered", "cancelled"),
    "delivered": ("completed",),
    "completed": (),
    "cancelled": (),
}


class OrderService:
    def __init__(self, store: Store, cart: CartService, discounts: DiscountService):
        self.store = store
        self.cart = cart
        self.discounts = discounts

    # ---------------------- Queries ----------------------

    def orders_for_user(self, user_id: str) -> List[Order]:
        return self.store.orders_by_user(user_id)

    def all_orders(self) -> List[Order]:
        return self.store.all_orders()

    def get_order(self, order_id: str, user_id: str, is_admin: bool = False) -> OrderDetail:
        order = self.store.get_order(order_id)
        if not order or (order.user_id != user_id and not is_admin):
            raise NotFound("Order not found")
        return OrderDetail(order=order, items=self.store.get_order_items(order_id))

    def _has_seller_product(self, items: List[OrderItem], seller_id: str) -> bool:
        for item in items:
            product = self.store.get_product(item.product_id)
            if product and product.seller_id == seller_id:
                return True
        return False

    def orders_for_seller(self, seller_id: str) -> List[OrderDetail]:
        out = []
        for order in self.store.all_orders():
            items = self.store.get_order_items(order.id)
            if self._has_seller_product(items, seller_id):
                out.append(OrderDetail(order=order, items=items))
        return out

    # ---------------------- Checkout ----------------------

    def checkout(self, user_id: str, discount_code: Optional[str] = None) -> CheckoutResult:
        with self.store.lock:
            cart = self.cart.get_cart(user_id)
            if not cart.items:
                raise InvalidRequest("Cart is empty")

            for line in cart.items:
                product = self.store.get_product(line.product_id)
                if product.stock_quantity < line.quantity:
                    logger.warning("Checkout %s blocked on stock of %s", user_id, product.id)
                    raise InvalidRequest(
                        f"Insufficient stock for {product.name}. "
                        f"Available: {product.stock_quantity}, Requested: {line.quantity}"
                    )

            redeemed: Optional[DiscountCode] = None
            discount_amount = 0.0
            if discount_code:
                redeemed = self.discounts.redeemable(discount_code, user_id)
                discount_amount = calculate_amount(redeemed, cart.subtotal)

            now = now_utc()
            order = Order(
                id=self.store.generate_id("order"),
                user_id=user_id,
                subtotal=cart.subtotal,
                discount_amount=discount_amount,
                total_amount=cart.subtotal - discount_amount,
                status="pending",
                discount_code_id=redeemed.id if redeemed else None,
                created_at=now,
                updated_at=now,
            )
            self.store.save_order(order)

            items = []
            for line in cart.items:
                product = self.store.get_product(line.product_id)
                product.stock_quantity -= line.quantity
                self.store.save_product(product)
                items.append(OrderItem(
                    id=self.store.generate_id("item"),
                    order_id=order.id,
                    product_id=product.id,
                    quantity=line.quantity,
                    unit_price=product.price,
                    total_price=product.price * line.quantity,
                ))
            self.store.save_order_items(order.id, items)

            if redeemed:
                redeemed.is_used = True
                redeemed.used_on_order_id = order.id
                self.store.save_discount_code(redeemed)

            self.cart.clear_cart(user_id)

        logger.info("Order %s placed by %s: total %.2f", order.id, user_id, order.total_amount)
        applied = AppliedDiscount(code=redeemed.code, discount_amount=discount_amount) if redeemed else None
        return CheckoutResult(order=order, items=items, applied_discount=applied)

    # ---------------------- Lifecycle ----------------------

    def update_status(self, order_id: str, seller_id: str, status: str) -> StatusUpdateResult:
        with self.store.lock:
            order = self.store.get_order(order_id)
            if not order:
                raise NotFound("Order not found")
            if not self._has_seller_product(self.store.get_order_items(order_id), seller_id):
                raise Forbidden("You can only update orders containing your products")

            allowed = STATUS_TRANSITIONS[order.status]
            if status not in allowed:
                raise InvalidRequest(
                    f"Invalid status transition from {order.status} to {status}. "
                    f"Valid transitions: {', '.join(allowed) or 'none'}"
                )

            previous = order.status
            order.status = status
            order.updated_at = now_utc()
            self.store.save_order(order)
            logger.info("Order %s: %s -> %s by %s", order_id, previous, status, seller_id)

            generated = None
            if status == "completed":
                generated = self._reward_customer(order.user_id, seller_id)
        return StatusUpdateResult(order=order, discount_generated=generated)

    def _reward_customer(self, customer_id: str, seller_id: str) -> Optional[DiscountCode]:
        """Issue a code when the customer's completed-order count hits a multiple of n."""
        completed = len(self.store.filter_orders(
            lambda o: o.user_id == customer_id and o.status == "completed"
        ))
        config = self.store.get_config()
        if completed == 0 or completed % config.discount_n_value:
            return None
        return self.discounts.generate(seller_id, config.discount_percentage, customer_id=customer_id)
