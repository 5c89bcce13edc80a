from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

"""Canonical record models produced by one import run.

Records are constructed once by the record builder and never mutated. A
re-import for the same period produces a new batch that replaces the old one.
"""

__all__ = [
    "ImportSchema",
    "PerformanceActual",
    "ProductPerformance",
    "CanonicalRecord",
]


class ImportSchema(Enum):
    """The two ingestion flows."""
    PERFORMANCE = "performance"  # monthly sales-by-store
    PRODUCT = "product"  # brand/category sales-by-store


@dataclass(frozen=True)
class PerformanceActual:
    store_id: str
    period: str  # YYYY-MM
    revenue_actual: float
    items_actual: float
    sales_count: float  # always >= 1
    items_per_sale: float
    unit_price: float
    average_ticket: float
    imported_by: str
    imported_at: datetime
    revenue_target: float = 0.0
    percent_of_target: float = 0.0
    delinquency_rate: float = 0.0

    @property
    def key(self) -> tuple[str, str]:
        return (self.store_id, self.period)

    def to_row(self) -> dict[str, Any]:
        """Column name -> value for the monthly_performance table."""
        return {
            "store_id": self.store_id,
            "month": self.period,
            "revenue_actual": self.revenue_actual,
            "items_actual": self.items_actual,
            "sales_count": self.sales_count,
            "items_per_ticket": self.items_per_sale,
            "unit_price_average": self.unit_price,
            "average_ticket": self.average_ticket,
            "revenue_target": self.revenue_target,
            "percent_meta": self.percent_of_target,
            "delinquency_rate": self.delinquency_rate,
            "imported_by": self.imported_by,
            "imported_at": self.imported_at,
        }


@dataclass(frozen=True)
class ProductPerformance:
    id: str
    store_id: str
    period: str  # YYYY-MM
    brand: str
    category: str
    units_sold: float
    revenue: float

    def to_row(self) -> dict[str, Any]:
        """Column name -> value for the product_performance table."""
        return {
            "id": self.id,
            "store_id": self.store_id,
            "month": self.period,
            "brand": self.brand,
            "category": self.category,
            "pairs_sold": self.units_sold,
            "revenue": self.revenue,
        }


CanonicalRecord = PerformanceActual | ProductPerformance
