# Overview: Read-only aggregates for the dashboard and sales statistics.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..errors import InvalidRequest
from ..extensions import db
from ..models import Customer, Product, Sale
from ..models.sales import SALE_STATUS_CANCELLED
from ..money import format_money
from shopledger.time_utils import local_day_bounds, parse_iso_datetime, to_utc_z
from .settings_service import StoreSettingsRecord


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise InvalidRequest("start and end must be ISO-8601 datetimes", {"start": start, "end": end})

    if start_dt and end_dt and end_dt < start_dt:
        raise InvalidRequest("end must not be before start", {"start": start, "end": end})
    return start_dt, end_dt


def _sales_totals(start_dt: datetime | None, end_dt: datetime | None) -> tuple[int, int]:
    query = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_cents), 0),
    ).filter(Sale.status != SALE_STATUS_CANCELLED)

    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at < end_dt)

    count, total = query.one()
    return int(count or 0), int(total or 0)


def dashboard_stats(settings: StoreSettingsRecord, now: datetime | None = None) -> dict:
    """
    Headline figures for the dashboard.

    "Today" is the local calendar day in the store timezone. An empty
    database yields zeros everywhere.
    """
    day_start, day_end = local_day_bounds(settings.timezone, now)
    today_orders, today_sales = _sales_totals(day_start, day_end)

    inventory_value = db.session.query(
        func.coalesce(func.sum(Product.stock * Product.cost_price_cents), 0)
    ).scalar()

    total_debt = db.session.query(func.coalesce(func.sum(Customer.total_debt_cents), 0)).scalar()

    active = db.session.query(Product).filter(Product.is_active.is_(True))
    total_products = active.count()
    low_stock_count = active.filter(Product.stock <= Product.min_stock).count()

    return {
        "todaySales": format_money(today_sales),
        "todaySalesCents": today_sales,
        "todayOrders": today_orders,
        "inventoryValue": format_money(inventory_value),
        "inventoryValueCents": int(inventory_value or 0),
        "totalDebt": format_money(total_debt),
        "totalDebtCents": int(total_debt or 0),
        "lowStockCount": low_stock_count,
        "totalProducts": total_products,
        "currency": settings.currency,
        "day_start": to_utc_z(day_start),
        "day_end": to_utc_z(day_end),
    }


def sales_stats(start: str | None = None, end: str | None = None) -> dict:
    """Count and total of non-cancelled sales created in [start, end)."""
    start_dt, end_dt = _parse_range(start, end)
    count, total = _sales_totals(start_dt, end_dt)
    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "total_sales": count,
        "total_amount": format_money(total),
        "total_amount_cents": total,
    }
