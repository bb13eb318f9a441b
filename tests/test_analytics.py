"""
Unit tests for store-wide and per-seller analytics.
"""

from datetime import datetime, timedelta, timezone

import pytest

from analytics import DateRange


@pytest.fixture
def shop(svc, make_product, complete_order):
    """Three orders for customer1:

    - completed: 2 x p1 (seller1, 10.0) + 1 x p2 (seller2, 30.0), 10% off -> 45.0
    - delivered: 1 x p1 -> 10.0
    - pending:   3 x p2 -> 90.0
    """
    p1 = make_product(seller_id="seller1", name="Pen", price=10.0, stock=50)
    p2 = make_product(seller_id="seller2", name="Ink", price=30.0, stock=50)
    code = svc.discounts.generate("seller1", 10, customer_id="customer1")

    svc.cart.add_to_cart("customer1", p1.id, 2)
    svc.cart.add_to_cart("customer1", p2.id, 1)
    completed = svc.orders.checkout("customer1", code.code).order
    complete_order(completed.id)

    svc.cart.add_to_cart("customer1", p1.id, 1)
    delivered = svc.orders.checkout("customer1").order
    for status in ("confirmed", "shipped", "delivered"):
        svc.orders.update_status(delivered.id, "seller1", status)

    svc.cart.add_to_cart("customer1", p2.id, 3)
    pending = svc.orders.checkout("customer1").order
    return {"p1": p1, "p2": p2, "completed": completed, "delivered": delivered, "pending": pending}


class TestStoreAnalytics:

    def test_empty_store(self, svc):
        a = svc.analytics.store_analytics()
        assert a.total_revenue == 0
        assert a.total_orders == 0
        assert a.average_order_value == 0

    def test_totals(self, svc, shop):
        a = svc.analytics.store_analytics()
        assert a.total_revenue == 55.0
        assert a.total_discount_amount == 5.0
        assert a.total_items_sold == 4
        assert a.total_orders == 3
        assert a.average_order_value == 27.5
        assert a.total_discount_codes_generated == 1

    def test_range_excluding_everything(self, svc, shop):
        future = datetime.now(timezone.utc) + timedelta(days=1)
        a = svc.analytics.store_analytics(DateRange(start_date=future))
        assert a.total_revenue == 0
        assert a.average_order_value == 0
        assert a.total_orders == 0
        # Codes are not date filtered.
        assert a.total_discount_codes_generated == 1

    def test_bounds_are_inclusive(self, svc, shop):
        when = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        shop["completed"].created_at = when
        a = svc.analytics.store_analytics(DateRange(start_date=when, end_date=when))
        assert a.total_orders == 1
        assert a.total_revenue == 45.0

    def test_naive_bounds(self, svc, shop):
        shop["delivered"].created_at = datetime(2024, 1, 15, tzinfo=timezone.utc)
        a = svc.analytics.store_analytics(DateRange(end_date=datetime(2024, 1, 31)))
        assert a.total_orders == 1
        assert a.total_revenue == 10.0


class TestSellerAnalytics:

    def test_only_own_items_count(self, svc, shop):
        s1 = svc.analytics.seller_analytics("seller1")
        assert s1.orders_count == 2
        assert s1.total_revenue == 30.0
        assert s1.items_sold == 3
        assert set(s1.products_sold) == {shop["p1"].id}
        assert s1.products_sold[shop["p1"].id].quantity == 3
        assert s1.products_sold[shop["p1"].id].name == "Pen"

    def test_pending_orders_count_but_earn_nothing(self, svc, shop):
        s2 = svc.analytics.seller_analytics("seller2")
        assert s2.orders_count == 2
        assert s2.total_revenue == 30.0
        assert s2.items_sold == 1

    def test_seller_without_sales(self, svc, shop):
        other = svc.analytics.seller_analytics("nobody")
        assert other.orders_count == 0
        assert other.products_sold == {}

    def test_breakdown_covers_every_seller(self, svc, shop):
        breakdown = svc.analytics.all_sellers_analytics()
        assert [s.seller_id for s in breakdown] == ["seller1", "seller2"]

    def test_date_range(self, svc, shop):
        past = datetime.now(timezone.utc) - timedelta(days=1)
        s1 = svc.analytics.seller_analytics("seller1", DateRange(end_date=past))
        assert s1.orders_count == 0
        assert s1.total_revenue == 0
