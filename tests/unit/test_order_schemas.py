"""Unit tests for mk_order Pydantic schemas."""
from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.mk_order.application.schemas import (
    CreateOrderRequest,
    OrderTotalsResponse,
    PreviewOrderRequest,
    SellerStatusUpdateRequest,
    StatusUpdateRequest,
    TrackingRequest,
)
from src.mk_order.domain.models import OrderTotals


class TestCreateOrderRequest:
    def test_defaults(self) -> None:
        req = CreateOrderRequest(cart_ids=[1])
        assert req.payment_method == "GATEWAY"
        assert req.payment_type == "DIRECT"
        assert req.shipping == []

    def test_needs_some_lines(self) -> None:
        with pytest.raises(ValidationError):
            PreviewOrderRequest()

    def test_service_lines_alone_are_enough(self) -> None:
        assert CreateOrderRequest(service_cart_ids=[4]).cart_ids == []

    def test_repeated_ids_collapse_in_order(self) -> None:
        req = CreateOrderRequest(cart_ids=[3, 1, 3, 2, 1], service_cart_ids=[4, 4])
        assert req.cart_ids == [3, 1, 2]
        assert req.service_cart_ids == [4]

    def test_advance_needs_amount(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderRequest(cart_ids=[1], payment_type="ADVANCE")

    def test_emi_needs_schedule(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderRequest(cart_ids=[1], payment_type="EMI", emi_installment_count=3)
        req = CreateOrderRequest(
            cart_ids=[1], payment_type="EMI",
            emi_installment_count=3, emi_installment_amount="40.00",
        )
        assert req.emi_installment_amount == Decimal("40.00")

    def test_unknown_payment_method(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderRequest(cart_ids=[1], payment_method="CASH")  # type: ignore[arg-type]


class TestStatusRequests:
    def test_status_must_be_known(self) -> None:
        with pytest.raises(ValidationError):
            StatusUpdateRequest(status="LOST")  # type: ignore[arg-type]

    def test_seller_status_not_blank(self) -> None:
        with pytest.raises(ValidationError):
            SellerStatusUpdateRequest(status="  ")

    def test_tracking_requires_number(self) -> None:
        with pytest.raises(ValidationError):
            TrackingRequest(tracking_number="", carrier="UPS")


class TestTotalsResponse:
    def test_rounded_and_serialized_as_strings(self) -> None:
        totals = OrderTotals(total_price=Decimal("10.005"), total_customer_pay=Decimal("1234.5"))

        data = OrderTotalsResponse.from_domain(totals).model_dump(mode="json")

        assert data["total_price"] == "10.01"
        assert data["total_customer_pay"] == "1234.50"
        assert data["total_customer_pay_display"] == "1,234.50"
