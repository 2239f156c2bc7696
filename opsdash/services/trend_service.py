from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from opsdash.models import Order
from opsdash.services.payload_utils import as_utc

DEFAULT_WINDOW_DAYS = 30


@dataclass(frozen=True)
class TrendWindow:
    start: datetime
    end: datetime

    def contains(self, value: datetime) -> bool:
        return self.start <= as_utc(value) < self.end


@dataclass(frozen=True)
class WindowTotals:
    revenue: Decimal
    orders: int
    customers: int


@dataclass(frozen=True)
class Trends:
    revenue: float
    orders: float
    customers: float


def pct_change(current: Decimal | int | float, previous: Decimal | int | float) -> float:
    # A zero baseline reads as flat +100%, including zero-to-zero.
    if previous == 0:
        return 100.0
    return (float(current) - float(previous)) / float(previous) * 100


def trend_windows(now: datetime, *, window_days: int = DEFAULT_WINDOW_DAYS) -> tuple[TrendWindow, TrendWindow]:
    if window_days < 1:
        raise ValueError('Trend window must be at least one day')
    now = as_utc(now)
    boundary = now - timedelta(days=window_days)
    current = TrendWindow(start=boundary, end=now)
    previous = TrendWindow(start=boundary - timedelta(days=window_days), end=boundary)
    return current, previous


def summarize_window(orders: Sequence, window: TrendWindow) -> WindowTotals:
    in_window = [order for order in orders if window.contains(order.created_at)]
    return WindowTotals(
        revenue=sum((order.total_amount for order in in_window if order.is_completed), Decimal('0.00')),
        orders=len(in_window),
        customers=len({order.customer_name for order in in_window}),
    )


def trends_from_orders(orders: Sequence, now: datetime, *, window_days: int = DEFAULT_WINDOW_DAYS) -> Trends:
    current_window, previous_window = trend_windows(now, window_days=window_days)
    current = summarize_window(orders, current_window)
    previous = summarize_window(orders, previous_window)
    return Trends(
        revenue=pct_change(current.revenue, previous.revenue),
        orders=pct_change(current.orders, previous.orders),
        customers=pct_change(current.customers, previous.customers),
    )


def _orders_between(db: Session, *, start: datetime, end: datetime) -> list:
    return db.execute(
        select(Order.customer_name, Order.total_amount, Order.is_completed, Order.created_at).where(
            Order.created_at >= start,
            Order.created_at < end,
        )
    ).all()


def compute_trends(db: Session, now: datetime, *, window_days: int = DEFAULT_WINDOW_DAYS) -> Trends:
    current_window, previous_window = trend_windows(now, window_days=window_days)
    orders = _orders_between(db, start=previous_window.start, end=current_window.end)
    return trends_from_orders(orders, now, window_days=window_days)
