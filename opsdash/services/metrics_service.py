from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsdash.models import BusinessMetrics, Expense, Order

logger = logging.getLogger(__name__)

METRICS_ROW_ID = 1


@dataclass(frozen=True)
class MetricsTotals:
    revenue: Decimal
    expenses: Decimal
    profit: Decimal


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def compute_metrics_totals(completed_order_totals: Iterable[Decimal], expense_amounts: Iterable[Decimal]) -> MetricsTotals:
    revenue = sum(completed_order_totals, Decimal('0.00'))
    expenses = sum(expense_amounts, Decimal('0.00'))
    return MetricsTotals(revenue=revenue, expenses=expenses, profit=revenue - expenses)


def _completed_order_totals(db: Session) -> list[Decimal]:
    return list(db.execute(select(Order.total_amount).where(Order.is_completed.is_(True))).scalars().all())


def _expense_amounts(db: Session) -> list[Decimal]:
    return list(db.execute(select(Expense.amount)).scalars().all())


def recompute_business_metrics(db: Session) -> BusinessMetrics:
    """
    Rebuild the cached revenue/expenses/profit row from every order and expense.
    There is no version check; concurrent rebuilds are last-writer-wins.
    """
    totals = compute_metrics_totals(_completed_order_totals(db), _expense_amounts(db))

    row = db.execute(select(BusinessMetrics).where(BusinessMetrics.id == METRICS_ROW_ID)).scalar_one_or_none()
    if not row:
        row = BusinessMetrics(id=METRICS_ROW_ID)
        db.add(row)
    row.revenue = totals.revenue
    row.expenses = totals.expenses
    row.profit = totals.profit
    row.updated_at = _now()
    db.flush()
    return row


def refresh_business_metrics_best_effort(db: Session) -> BusinessMetrics | None:
    try:
        row = recompute_business_metrics(db)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Business metrics refresh failed; cached metrics may be stale')
        return None
    logger.debug('Business metrics refreshed: revenue=%s expenses=%s', row.revenue, row.expenses)
    return row


def empty_metrics_totals() -> MetricsTotals:
    return MetricsTotals(revenue=Decimal('0.00'), expenses=Decimal('0.00'), profit=Decimal('0.00'))


def get_business_metrics(db: Session) -> MetricsTotals:
    row = db.execute(select(BusinessMetrics).where(BusinessMetrics.id == METRICS_ROW_ID)).scalar_one_or_none()
    if not row:
        return empty_metrics_totals()
    return MetricsTotals(revenue=row.revenue, expenses=row.expenses, profit=row.profit)
