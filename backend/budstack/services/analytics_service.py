"""
Analytics Service - dashboard numbers for tenant admins and super admins

All figures come from stored orders and users. Day series cover every day of
the range, days without activity are zero.

Author: TM3
Date: 2025-11-14
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Iterable

from budstack.repositories.analytics_repository import AnalyticsRepository

logger = logging.getLogger(__name__)

TIME_RANGES = {'7d': 7, '30d': 30, '90d': 90}
DEFAULT_DAYS = 30


def parse_time_range(time_range: Optional[str]) -> int:
    """'7d' -> 7, '90d' -> 90, anything else -> 30"""
    return TIME_RANGES.get(time_range or '', DEFAULT_DAYS)


def range_start(days: int, now: Optional[datetime] = None) -> datetime:
    """Midnight UTC of the first day in a range ending today"""
    now = now or datetime.now(timezone.utc)
    first_day = now.date() - timedelta(days=days - 1)
    return datetime(first_day.year, first_day.month, first_day.day, tzinfo=timezone.utc)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def fill_days(
    rows: Iterable[Dict[str, Any]],
    start: date,
    days: int,
    fields: Iterable[str]
) -> List[Dict[str, Any]]:
    """
    One entry per day from start, zero where rows have no data

    Example:
        fill_days([{'day': date(2025, 11, 2), 'orders': 3}], date(2025, 11, 1), 3, ['orders'])
        -> [{'date': '2025-11-01', 'orders': 0}, {'date': '2025-11-02', 'orders': 3},
            {'date': '2025-11-03', 'orders': 0}]
    """
    fields = list(fields)
    by_day = {_as_date(row['day']): row for row in rows}

    series = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        row = by_day.get(day, {})
        entry = {'date': day.isoformat()}
        for field in fields:
            value = row.get(field) or 0
            entry[field] = float(value) if field == 'revenue' else int(value)
        series.append(entry)
    return series


def average_order_value(revenue: float, orders: int) -> float:
    return round(revenue / orders, 2) if orders else 0.0


class AnalyticsService:

    def __init__(self, repository: Optional[AnalyticsRepository] = None):
        self.repository = repository or AnalyticsRepository()

    def _series(self, since: datetime, days: int, tenant_id: Optional[str]) -> Dict[str, List[Dict[str, Any]]]:
        start = since.date()
        return {
            'revenue_by_day': fill_days(
                self.repository.get_daily_orders(since, tenant_id), start, days, ['revenue', 'orders']
            ),
            'customer_growth': fill_days(
                self.repository.get_daily_customers(since, tenant_id), start, days, ['customers']
            ),
        }

    def get_tenant_analytics(self, tenant_id: str, time_range: Optional[str] = None) -> Dict[str, Any]:
        days = parse_time_range(time_range)
        since = range_start(days)

        totals = self.repository.get_totals(since, tenant_id)
        series = self._series(since, days, tenant_id)

        return {
            'time_range': f"{days}d",
            'overview': {
                **totals,
                'average_order_value': average_order_value(totals['total_revenue'], totals['total_orders']),
            },
            'revenue_by_day': series['revenue_by_day'],
            'customer_growth': series['customer_growth'],
            'top_products': self.repository.get_top_products(since, tenant_id, limit=5),
            'orders_by_status': [
                {'status': row['status'], 'count': int(row['count'])}
                for row in self.repository.get_orders_by_status(tenant_id)
            ],
        }

    def get_platform_analytics(self, time_range: Optional[str] = None) -> Dict[str, Any]:
        days = parse_time_range(time_range)
        since = range_start(days)

        totals = self.repository.get_totals(since)
        counts = self.repository.get_platform_counts()
        series = self._series(since, days, None)
        revenue_by_tenant = self.repository.get_revenue_by_tenant(since, limit=6)

        return {
            'time_range': f"{days}d",
            'overview': {
                **counts,
                **totals,
                'average_order_value': average_order_value(totals['total_revenue'], totals['total_orders']),
            },
            'revenue_by_day': series['revenue_by_day'],
            'customer_growth': series['customer_growth'],
            'top_tenants': revenue_by_tenant[:5],
            'revenue_by_tenant': revenue_by_tenant,
            'orders_by_status': [
                {'status': row['status'], 'count': int(row['count'])}
                for row in self.repository.get_orders_by_status()
            ],
        }
