from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

from opsdash.services.trend_service import (
    compute_trends,
    pct_change,
    trend_windows,
    trends_from_orders,
)

NOW = datetime(2026, 6, 30, 12, 0, tzinfo=timezone.utc)


def _order(days_ago: float, *, total: str = '10.00', completed: bool = True, customer: str = 'Ann'):
    return SimpleNamespace(
        customer_name=customer,
        total_amount=Decimal(total),
        is_completed=completed,
        created_at=NOW - timedelta(days=days_ago),
    )


class PctChangeTests(unittest.TestCase):
    def test_zero_baseline_is_flat_hundred(self) -> None:
        self.assertEqual(pct_change(0, 0), 100.0)
        self.assertEqual(pct_change(42, 0), 100.0)
        self.assertEqual(pct_change(Decimal('1000.00'), Decimal('0.00')), 100.0)

    def test_growth_and_decline(self) -> None:
        self.assertEqual(pct_change(150, 100), 50.0)
        self.assertEqual(pct_change(50, 100), -50.0)
        self.assertEqual(pct_change(0, 100), -100.0)


class TrendWindowTests(unittest.TestCase):
    def test_windows_are_adjacent_and_half_open(self) -> None:
        current, previous = trend_windows(NOW)
        self.assertEqual(current.end, NOW)
        self.assertEqual(current.start, NOW - timedelta(days=30))
        self.assertEqual(previous.end, current.start)
        self.assertEqual(previous.start, NOW - timedelta(days=60))

        self.assertTrue(current.contains(current.start))
        self.assertFalse(current.contains(NOW))
        self.assertFalse(previous.contains(current.start))

    def test_naive_timestamps_are_treated_as_utc(self) -> None:
        current, _ = trend_windows(NOW)
        self.assertTrue(current.contains((NOW - timedelta(days=1)).replace(tzinfo=None)))

    def test_rejects_empty_window(self) -> None:
        with self.assertRaises(ValueError):
            trend_windows(NOW, window_days=0)


class TrendsFromOrdersTests(unittest.TestCase):
    def test_revenue_counts_only_completed_orders(self) -> None:
        orders = [
            _order(5, total='150.00'),
            _order(6, total='999.00', completed=False),
            _order(40, total='100.00'),
        ]
        trends = trends_from_orders(orders, NOW)
        self.assertEqual(trends.revenue, 50.0)
        # Order counts ignore completion: 2 current vs 1 previous.
        self.assertEqual(trends.orders, 100.0)

    def test_customers_are_distinct_per_window(self) -> None:
        orders = [
            _order(1, customer='Ann'),
            _order(2, customer='Ann'),
            _order(3, customer='Bob'),
            _order(31, customer='Ann'),
            _order(32, customer='Bob'),
            _order(33, customer='Cy'),
            _order(34, customer='Dee'),
        ]
        trends = trends_from_orders(orders, NOW)
        self.assertEqual(trends.customers, -50.0)
        self.assertEqual(trends.orders, -25.0)

    def test_orders_outside_both_windows_are_ignored(self) -> None:
        orders = [_order(61, total='500.00'), _order(-1, total='500.00')]
        trends = trends_from_orders(orders, NOW)
        self.assertEqual(trends.revenue, 100.0)
        self.assertEqual(trends.orders, 100.0)
        self.assertEqual(trends.customers, 100.0)

    def test_boundary_order_belongs_to_current_window(self) -> None:
        orders = [_order(30, total='20.00'), _order(45, total='10.00')]
        trends = trends_from_orders(orders, NOW)
        self.assertEqual(trends.revenue, 100.0)
        self.assertEqual(trends.orders, 0.0)


class ComputeTrendsTests(unittest.TestCase):
    @patch('opsdash.services.trend_service._orders_between')
    def test_loads_both_windows_in_one_query(self, orders_between_mock) -> None:
        orders_between_mock.return_value = [_order(10, total='30.00'), _order(40, total='20.00')]

        trends = compute_trends(SimpleNamespace(), NOW)

        orders_between_mock.assert_called_once()
        kwargs = orders_between_mock.call_args.kwargs
        self.assertEqual(kwargs['start'], NOW - timedelta(days=60))
        self.assertEqual(kwargs['end'], NOW)
        self.assertEqual(trends.revenue, 50.0)
        self.assertEqual(trends.orders, 0.0)


if __name__ == '__main__':
    unittest.main()
