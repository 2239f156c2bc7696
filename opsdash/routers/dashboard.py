from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsdash.auth import get_current_user
from opsdash.config import settings
from opsdash.db import get_db
from opsdash.services.dashboard_service import DashboardView, build_dashboard_view, empty_dashboard_view
from opsdash.services.metrics_service import MetricsTotals, empty_metrics_totals, get_business_metrics
from opsdash.services.trend_service import Trends, compute_trends

logger = logging.getLogger(__name__)

router = APIRouter(tags=['analytics'], dependencies=[Depends(get_current_user)])


def dashboard_payload(view: DashboardView) -> dict:
    metrics = view.metrics
    return {
        'metrics': {
            'currentFunding': float(metrics.current_funding),
            'totalRevenue': float(metrics.total_revenue),
            'totalExpenses': float(metrics.total_expenses),
            'totalOrders': metrics.total_orders,
            'pendingOrders': metrics.pending_orders,
        },
        'revenueByMonth': [
            {'month': row.month, 'revenue': float(row.revenue), 'expenses': float(row.expenses)}
            for row in view.revenue_by_month
        ],
        'expensesByCategory': [
            {'category': row.category, 'amount': float(row.amount)} for row in view.expenses_by_category
        ],
        'recentActivity': [
            {'type': entry.type, 'title': entry.title, 'amount': float(entry.amount), 'date': entry.date.isoformat()}
            for entry in view.recent_activity
        ],
    }


def trends_payload(trends: Trends) -> dict:
    return {'revenue': trends.revenue, 'orders': trends.orders, 'customers': trends.customers}


def metrics_payload(totals: MetricsTotals) -> dict:
    return {'revenue': float(totals.revenue), 'expenses': float(totals.expenses), 'profit': float(totals.profit)}


@router.get('/api/dashboard')
def dashboard(db: Session = Depends(get_db)):
    try:
        view = build_dashboard_view(db, limit=settings.dashboard_limit)
    except SQLAlchemyError:
        logger.exception('Error generating dashboard data')
        return JSONResponse(dashboard_payload(empty_dashboard_view()), status_code=500)
    return dashboard_payload(view)


@router.get('/api/dashboard/trends')
def dashboard_trends(db: Session = Depends(get_db)):
    try:
        trends = compute_trends(db, datetime.now(tz=timezone.utc), window_days=settings.trend_window_days)
    except SQLAlchemyError:
        logger.exception('Dashboard trends query failed')
        return JSONResponse(trends_payload(Trends(revenue=0.0, orders=0.0, customers=0.0)), status_code=500)
    return trends_payload(trends)


@router.get('/api/metrics')
def business_metrics(db: Session = Depends(get_db)):
    try:
        totals = get_business_metrics(db)
    except SQLAlchemyError:
        logger.exception('Error fetching business metrics')
        return JSONResponse(metrics_payload(empty_metrics_totals()), status_code=500)
    return metrics_payload(totals)
