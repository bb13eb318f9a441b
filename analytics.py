from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from database import Store, as_utc
from schemas import Order, ProductSales, SellerAnalytics, StoreAnalytics

# Orders in these states count towards revenue.
REVENUE_STATUSES = ("completed", "delivered")


class DateRange(BaseModel):
    """Inclusive bounds on Order.created_at; either end may be left open."""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def contains(self, when: datetime) -> bool:
        if self.start_date and when < as_utc(self.start_date):
            return False
        if self.end_date and when > as_utc(self.end_date):
            return False
        return True


class AnalyticsService:
    def __init__(self, store: Store):
        self.store = store

    def _orders_in(self, date_range: Optional[DateRange]) -> List[Order]:
        if not date_range:
            return self.store.all_orders()
        return self.store.filter_orders(lambda o: date_range.contains(o.created_at))

    def store_analytics(self, date_range: Optional[DateRange] = None) -> StoreAnalytics:
        orders = self._orders_in(date_range)
        earning = [o for o in orders if o.status in REVENUE_STATUSES]
        revenue = sum(o.total_amount for o in earning)
        items_sold = sum(
            item.quantity for o in earning for item in self.store.get_order_items(o.id)
        )
        return StoreAnalytics(
            total_revenue=revenue,
            total_items_sold=items_sold,
            total_orders=len(orders),
            # Codes are counted over all time, not the date range.
            total_discount_codes_generated=len(self.store.all_discount_codes()),
            total_discount_amount=sum(o.discount_amount for o in earning),
            average_order_value=revenue / len(earning) if earning else 0,
        )

    def seller_analytics(self, seller_id: str, date_range: Optional[DateRange] = None) -> SellerAnalytics:
        orders_count = 0
        sales = {}
        for order in self._orders_in(date_range):
            own = []
            for item in self.store.get_order_items(order.id):
                product = self.store.get_product(item.product_id)
                if product and product.seller_id == seller_id:
                    own.append((item, product))
            if not own:
                continue
            orders_count += 1
            if order.status not in REVENUE_STATUSES:
                continue
            for item, product in own:
                entry = sales.setdefault(item.product_id, ProductSales(name=product.name))
                entry.quantity += item.quantity
                entry.revenue += item.total_price

        return SellerAnalytics(
            seller_id=seller_id,
            total_revenue=sum(s.revenue for s in sales.values()),
            items_sold=sum(s.quantity for s in sales.values()),
            orders_count=orders_count,
            products_sold=sales,
        )

    def all_sellers_analytics(self, date_range: Optional[DateRange] = None) -> List[SellerAnalytics]:
        sellers = [u for u in self.store.all_users() if u.role == "seller"]
        return [self.seller_analytics(s.id, date_range) for s in sellers]
