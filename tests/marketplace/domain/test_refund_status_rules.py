"""Refund status is a pure function of the current status and the totals."""

import pytest
from marketplace.order.order import OrderStatus, derive_refund_status

PAID = OrderStatus.PAID.value
PARTIAL = OrderStatus.PARTIALLY_REFUNDED.value
REFUNDED = OrderStatus.REFUNDED.value
CANCELED = OrderStatus.CANCELED.value


@pytest.mark.parametrize(
    ("current", "refunded", "total", "expected"),
    [
        (PAID, 0, 2000, PAID),
        (PAID, 700, 2000, PARTIAL),
        (PAID, 2000, 2000, REFUNDED),
        (PARTIAL, 2001, 2000, REFUNDED),
        (REFUNDED, 0, 2000, PAID),
        (PARTIAL, 0, 2000, PAID),
        (CANCELED, 2000, 2000, CANCELED),
        (CANCELED, 0, 2000, CANCELED),
    ],
)
def test_derive_refund_status(current, refunded, total, expected):
    assert derive_refund_status(current, refunded, total) == expected


def test_zero_total_order_with_refund_is_refunded():
    assert derive_refund_status(PAID, 100, 0) == REFUNDED
