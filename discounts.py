import logging
from datetime import datetime, timedelta
from typing import List, Optional

from database import Store, as_utc, now_utc
from errors import InvalidRequest
from schemas import DiscountCode, DiscountValidation

logger = logging.getLogger(__name__)

CODE_LIFETIME = timedelta(days=30)


def calculate_amount(code: DiscountCode, subtotal: float) -> float:
    return subtotal * code.discount_percentage / 100


class DiscountService:
    def __init__(self, store: Store):
        self.store = store

    def validate(self, code: str, customer_id: str) -> DiscountValidation:
        """Check a code for use by `customer_id` without touching it.

        Reports the first failing check: existence, already used, expired,
        bound to somebody else.
        """
        dc = self.store.find_discount_code(code)
        if not dc:
            return DiscountValidation(valid=False, reason="Invalid discount code")
        if dc.is_used:
            return DiscountValidation(valid=False, reason="Discount code has already been used")
        if now_utc() > dc.expires_at:
            return DiscountValidation(valid=False, reason="Discount code has expired")
        if dc.customer_id and dc.customer_id != customer_id:
            return DiscountValidation(valid=False, reason="This discount code is not valid for your account")
        return DiscountValidation(valid=True, discount_code=dc)

    def calculate_amount(self, code: str, subtotal: float) -> float:
        dc = self.store.find_discount_code(code)
        if not dc:
            raise InvalidRequest("Invalid discount code")
        return calculate_amount(dc, subtotal)

    def redeemable(self, code: str, user_id: str) -> DiscountCode:
        """Return the code if `user_id` may spend it at checkout.

        Stricter than validate(): the code must be bound to this exact user.
        """
        dc = self.store.find_discount_code(code)
        if not dc:
            raise InvalidRequest("Invalid discount code")
        if dc.customer_id != user_id:
            raise InvalidRequest("This discount code is not assigned to you")
        if dc.is_used:
            raise InvalidRequest("Discount code has already been used")
        if now_utc() > dc.expires_at:
            raise InvalidRequest("Discount code has expired")
        return dc

    def generate(
        self,
        seller_id: str,
        percentage: float,
        customer_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> DiscountCode:
        # Picking a free code string and saving it must not interleave.
        with self.store.lock:
            created = now_utc()
            dc = DiscountCode(
                id=self.store.generate_id("disc"),
                code=self._new_code_string(percentage, created),
                discount_percentage=percentage,
                customer_id=customer_id,
                generated_by_seller_id=seller_id,
                created_at=created,
                expires_at=as_utc(expires_at) if expires_at else created + CODE_LIFETIME,
            )
            self.store.save_discount_code(dc)
        logger.info("Issued %s (%g%%) for customer=%s by seller=%s", dc.code, percentage, customer_id, seller_id)
        return dc

    def _new_code_string(self, percentage: float, created: datetime) -> str:
        stamp = int(created.timestamp() * 1000)
        code = f"SAVE{percentage:g}-{stamp}"
        while self.store.find_discount_code(code):
            stamp += 1
            code = f"SAVE{percentage:g}-{stamp}"
        return code

    def for_customer(self, customer_id: str) -> List[DiscountCode]:
        return self.store.discount_codes_by_customer(customer_id)

    def for_seller(self, seller_id: str) -> List[DiscountCode]:
        return self.store.discount_codes_by_seller(seller_id)

    def all_codes(self) -> List[DiscountCode]:
        return self.store.all_discount_codes()
