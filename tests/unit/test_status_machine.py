"""Tests for the line-item status state machine and seller aliases."""

import pytest

from src.mk_common.enums import LineItemStatus
from src.mk_common.errors import InvalidStatusTransitionError, UnknownStatusError
from src.mk_order.domain.status import (
    can_transition,
    ensure_transition,
    normalize_seller_status,
)


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            ("PLACED", "CONFIRMED"),
            ("CONFIRMED", "SHIPPED"),
            ("SHIPPED", "DELIVERED"),
            ("PLACED", "CANCELLED"),
            ("CONFIRMED", "CANCELLED"),
            ("SHIPPED", "CANCELLED"),
        ],
    )
    def test_allowed(self, current: str, target: str) -> None:
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            ("PLACED", "SHIPPED"),
            ("PLACED", "DELIVERED"),
            ("SHIPPED", "CONFIRMED"),
            ("DELIVERED", "CANCELLED"),
            ("CANCELLED", "PLACED"),
            ("PLACED", "PLACED"),
            ("PLACED", "LOST"),
        ],
    )
    def test_refused(self, current: str, target: str) -> None:
        assert not can_transition(current, target)

    def test_ensure_raises(self) -> None:
        with pytest.raises(InvalidStatusTransitionError) as exc:
            ensure_transition("DELIVERED", "CANCELLED")
        assert exc.value.code == 4006


class TestSellerAliases:
    @pytest.mark.parametrize(
        ("alias", "expected"),
        [
            ("pending", LineItemStatus.PLACED),
            ("processing", LineItemStatus.CONFIRMED),
            ("Shipped", LineItemStatus.SHIPPED),
            ("delivered", LineItemStatus.DELIVERED),
            ("cancelled", LineItemStatus.CANCELLED),
            ("refunded", LineItemStatus.CANCELLED),
            ("CONFIRMED", LineItemStatus.CONFIRMED),
        ],
    )
    def test_normalize(self, alias: str, expected: LineItemStatus) -> None:
        assert normalize_seller_status(alias) == expected

    def test_unknown(self) -> None:
        with pytest.raises(UnknownStatusError):
            normalize_seller_status("teleported")
