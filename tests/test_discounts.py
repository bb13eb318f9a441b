"""
Unit tests for discount code validation, arithmetic and issuance.
"""

import re
import threading
from datetime import datetime, timedelta, timezone

import pytest

from discounts import calculate_amount
from errors import InvalidRequest


class TestGenerate:

    def test_code_format_and_defaults(self, svc):
        dc = svc.discounts.generate("seller1", 15, customer_id="customer1")
        assert re.fullmatch(r"SAVE15-\d+", dc.code)
        assert dc.is_used is False
        assert dc.generated_by_seller_id == "seller1"
        assert dc.expires_at - dc.created_at == timedelta(days=30)
        assert svc.store.get_discount_code(dc.id) == dc

    def test_codes_are_unique(self, svc):
        codes = {svc.discounts.generate("seller1", 10).code for _ in range(20)}
        assert len(codes) == 20

    def test_concurrent_issuance_keeps_codes_unique(self, svc):
        barrier = threading.Barrier(32)
        codes = []

        def issue():
            barrier.wait()
            codes.append(svc.discounts.generate("seller1", 10).code)

        threads = [threading.Thread(target=issue) for _ in range(32)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(set(codes)) == 32

    def test_explicit_naive_expiry_is_utc(self, svc):
        dc = svc.discounts.generate("seller1", 10, expires_at=datetime(2099, 1, 1))
        assert dc.expires_at == datetime(2099, 1, 1, tzinfo=timezone.utc)

    def test_listing(self, svc):
        svc.discounts.generate("seller1", 10, customer_id="customer1")
        svc.discounts.generate("seller2", 20, customer_id="customer1")
        svc.discounts.generate("seller2", 30, customer_id="customer2")
        assert len(svc.discounts.for_customer("customer1")) == 2
        assert len(svc.discounts.for_seller("seller2")) == 2
        assert len(svc.discounts.all_codes()) == 3


class TestValidate:
    """validate() reports the first failing check and never mutates."""

    def test_unknown(self, svc):
        result = svc.discounts.validate("NOPE", "customer1")
        assert not result.valid
        assert result.reason == "Invalid discount code"

    def test_valid_for_owner(self, svc):
        dc = svc.discounts.generate("seller1", 10, customer_id="customer1")
        result = svc.discounts.validate(dc.code, "customer1")
        assert result.valid
        assert result.discount_code.id == dc.id

    def test_wrong_customer(self, svc):
        dc = svc.discounts.generate("seller1", 10, customer_id="customer1")
        result = svc.discounts.validate(dc.code, "customer2")
        assert not result.valid
        assert "not valid for your account" in result.reason

    def test_unbound_code_is_valid_for_anyone(self, svc):
        dc = svc.discounts.generate("seller1", 10)
        assert svc.discounts.validate(dc.code, "customer2").valid

    def test_used(self, svc):
        dc = svc.discounts.generate("seller1", 10, customer_id="customer1")
        dc.is_used = True
        result = svc.discounts.validate(dc.code, "customer1")
        assert result.reason == "Discount code has already been used"

    def test_expired(self, svc):
        past = datetime.now(timezone.utc) - timedelta(minutes=1)
        dc = svc.discounts.generate("seller1", 10, customer_id="customer1", expires_at=past)
        result = svc.discounts.validate(dc.code, "customer1")
        assert result.reason == "Discount code has expired"

    def test_used_is_reported_before_expired(self, svc):
        past = datetime.now(timezone.utc) - timedelta(minutes=1)
        dc = svc.discounts.generate("seller1", 10, customer_id="customer1", expires_at=past)
        dc.is_used = True
        assert svc.discounts.validate(dc.code, "customer2").reason == "Discount code has already been used"


class TestAmount:

    def test_percentage_of_subtotal(self, svc):
        dc = svc.discounts.generate("seller1", 25)
        assert calculate_amount(dc, 200.0) == 50.0
        assert svc.discounts.calculate_amount(dc.code, 80.0) == 20.0

    def test_unknown_code(self, svc):
        with pytest.raises(InvalidRequest):
            svc.discounts.calculate_amount("NOPE", 10.0)
