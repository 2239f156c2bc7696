from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from opsdash.services.expense_service import load_expenses
from opsdash.services.order_service import load_orders
from opsdash.services.payload_utils import as_utc
from opsdash.services.settings_service import load_settings_row

MONTH_LABELS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')


@dataclass(frozen=True)
class DashboardMetrics:
    current_funding: Decimal
    total_revenue: Decimal
    total_expenses: Decimal
    total_orders: int
    pending_orders: int


@dataclass(frozen=True)
class MonthlyTotals:
    month: str
    revenue: Decimal
    expenses: Decimal


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: Decimal


@dataclass(frozen=True)
class ActivityEntry:
    type: str
    title: str
    amount: Decimal
    date: datetime


@dataclass(frozen=True)
class DashboardView:
    metrics: DashboardMetrics
    revenue_by_month: list[MonthlyTotals]
    expenses_by_category: list[CategoryTotal]
    recent_activity: list[ActivityEntry]


def empty_dashboard_view() -> DashboardView:
    return DashboardView(
        metrics=DashboardMetrics(
            current_funding=Decimal('0.00'),
            total_revenue=Decimal('0.00'),
            total_expenses=Decimal('0.00'),
            total_orders=0,
            pending_orders=0,
        ),
        revenue_by_month=[],
        expenses_by_category=[],
        recent_activity=[],
    )


def month_label(year: int, month: int) -> str:
    return f'{MONTH_LABELS[month - 1]} {year}'


def _revenue_by_month(orders: Sequence, expenses: Sequence) -> list[MonthlyTotals]:
    buckets: dict[tuple[int, int], dict[str, Decimal]] = {}
    for order in orders:
        created = as_utc(order.created_at)
        bucket = buckets.setdefault((created.year, created.month), {'revenue': Decimal('0.00'), 'expenses': Decimal('0.00')})
        bucket['revenue'] += order.total_amount
    for expense in expenses:
        spent = as_utc(expense.date)
        bucket = buckets.setdefault((spent.year, spent.month), {'revenue': Decimal('0.00'), 'expenses': Decimal('0.00')})
        bucket['expenses'] += expense.amount

    return [
        MonthlyTotals(
            month=month_label(year, month),
            revenue=bucket['revenue'],
            expenses=bucket['expenses'],
        )
        for (year, month), bucket in sorted(buckets.items())
    ]


def _expenses_by_category(expenses: Sequence) -> list[CategoryTotal]:
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, Decimal('0.00')) + expense.amount
    return [CategoryTotal(category=category, amount=amount) for category, amount in totals.items()]


def _recent_activity(orders: Sequence, expenses: Sequence, *, limit: int) -> list[ActivityEntry]:
    entries = [
        ActivityEntry(
            type='order',
            title=f'New order from {order.customer_name}',
            amount=order.total_amount,
            date=as_utc(order.created_at),
        )
        for order in orders
    ]
    entries.extend(
        ActivityEntry(type='expense', title=expense.description, amount=expense.amount, date=as_utc(expense.date))
        for expense in expenses
    )
    entries.sort(key=lambda entry: entry.date, reverse=True)
    return entries[:limit]


def summarize_dashboard(
    orders: Sequence,
    expenses: Sequence,
    *,
    funding_base: Decimal = Decimal('0.00'),
    limit: int = 10,
) -> DashboardView:
    """
    Fold an already-fetched window of orders and expenses into the dashboard read-model.

    Totals cover only the records passed in, not the full history.
    """
    total_revenue = sum((order.total_amount for order in orders), Decimal('0.00'))
    total_expenses = sum((expense.amount for expense in expenses), Decimal('0.00'))

    metrics = DashboardMetrics(
        current_funding=funding_base + total_revenue - total_expenses,
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        total_orders=len(orders),
        pending_orders=sum(1 for order in orders if not order.is_completed),
    )
    return DashboardView(
        metrics=metrics,
        revenue_by_month=_revenue_by_month(orders, expenses),
        expenses_by_category=_expenses_by_category(expenses),
        recent_activity=_recent_activity(orders, expenses, limit=limit),
    )


def build_dashboard_view(db: Session, *, limit: int = 10) -> DashboardView:
    if limit < 1:
        raise ValueError('Dashboard limit must be at least 1')
    orders = load_orders(db, limit=limit)
    expenses = load_expenses(db, limit=limit)
    settings_row = load_settings_row(db)
    funding_base = settings_row.business_funding if settings_row else Decimal('0.00')
    return summarize_dashboard(orders, expenses, funding_base=funding_base, limit=limit)
