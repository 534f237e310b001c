"""
Aggregation layer.
Turns raw Veeqo products into enriched items and fleet-wide statistics.
Pure: no I/O, no shared state.
"""
import math
from typing import List, Dict, Optional, Sequence

from app.errors import AggregationError, DataContractError
from app.models.inventory import (
    RawProduct,
    RawSellable,
    EnrichedItem,
    StatusBucket,
    CategorySummary,
    Snapshot,
)

DAYS_PER_YEAR = 365
MIN_DAILY_SALES = 0.1
TOP_SELLERS_LIMIT = 20
TOP_CATEGORIES_LIMIT = 10
DEFAULT_CATEGORY = "Other"

# (status, label, color) in display order
STATUS_TABLE = [
    ("critical", "Critical (Out of Stock)", "#ef4444"),
    ("low", "Low Stock", "#f97316"),
    ("adequate", "Adequate", "#eab308"),
    ("good", "Good", "#10b981"),
    ("overstock", "Overstock", "#3b82f6"),
]


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with .5 going toward +infinity, as the dashboard expects."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def calculate_stock_status(available: int, sold: int, reorder_level: int) -> str:
    """Classify a sellable by available stock against its sales velocity."""
    if available == 0:
        return "critical"
    if available <= reorder_level:
        return "low"

    avg_daily_sales = sold / DAYS_PER_YEAR
    days_of_stock = available / max(avg_daily_sales, MIN_DAILY_SALES)

    if days_of_stock < 7:
        return "low"
    if days_of_stock < 30:
        return "adequate"
    if days_of_stock < 90:
        return "good"
    return "overstock"


def category_for(title: Optional[str]) -> str:
    tokens = (title or "").split()
    return tokens[0] if tokens else DEFAULT_CATEGORY


class InventoryAggregator:
    """
    Builds the served Snapshot from raw product records.
    One EnrichedItem per sellable of every product.
    """

    @staticmethod
    def process(records: Sequence[RawProduct]) -> Snapshot:
        """
        Aggregate raw products into a Snapshot.

        Raises:
            AggregationError: If a record is structurally unusable
        """
        try:
            items = [
                InventoryAggregator.enrich(product, sellable)
                for product in records
                for sellable in product.sellables
            ]
        except (AttributeError, TypeError, ValueError, DataContractError) as e:
            raise AggregationError(f"Failed to aggregate inventory: {str(e)}") from e

        low_stock = [item for item in items if item.is_low_stock]
        out_of_stock = [item for item in items if item.is_out_of_stock]

        # sorted() is stable, ties keep input order
        top_selling = sorted(items, key=lambda item: item.total_sold, reverse=True)
        top_selling = top_selling[:TOP_SELLERS_LIMIT]

        total_stock_value = sum(item.stock_value for item in items)
        average_turnover = (
            sum(item.turnover_rate for item in items) / len(items) if items else 0
        )

        return Snapshot(
            products=items,
            low_stock_products=low_stock,
            out_of_stock_products=out_of_stock,
            top_selling_products=top_selling,
            total_products=len(items),
            total_stock_value=round_half_up(total_stock_value, 2),
            low_stock_count=len(low_stock),
            out_of_stock_count=len(out_of_stock),
            average_turnover_rate=round_half_up(average_turnover, 2),
            stock_status_distribution=InventoryAggregator.status_distribution(items),
            top_categories=InventoryAggregator.top_categories(items),
        )

    @staticmethod
    def enrich(product: RawProduct, sellable: RawSellable) -> EnrichedItem:
        """Derive the per-sellable metrics."""
        inventory = sellable.inventory
        stock_level = inventory.physical
        available = inventory.available
        total_sold = sellable.total_quantity_sold
        reorder_level = sellable.min_reorder_level

        turnover_rate = (total_sold / stock_level) * 100 if stock_level > 0 else 0
        avg_daily_sales = total_sold / DAYS_PER_YEAR

        # Nothing sold means stock never runs out
        days_remaining = None
        if avg_daily_sales > 0:
            days_remaining = int(round_half_up(available / avg_daily_sales))

        stock_value = available * sellable.cost_price

        return EnrichedItem(
            id=product.id,
            title=sellable.full_title or product.title,
            sku=sellable.sku_code,
            price=sellable.price,
            cost_price=sellable.cost_price,
            profit=sellable.profit,
            margin=sellable.margin,
            stock_level=stock_level,
            allocated_stock=inventory.allocated,
            available_stock=available,
            total_sold=total_sold,
            reorder_level=reorder_level,
            turnover_rate=round_half_up(turnover_rate, 2),
            days_of_stock_remaining=days_remaining,
            stock_value=round_half_up(stock_value, 2),
            is_low_stock=0 < available <= reorder_level,
            is_out_of_stock=available == 0,
            status=calculate_stock_status(available, total_sold, reorder_level),
            image_url=sellable.image_url or product.thumbnail_url,
        )

    @staticmethod
    def status_distribution(items: List[EnrichedItem]) -> List[StatusBucket]:
        counts: Dict[str, int] = {status: 0 for status, _, _ in STATUS_TABLE}
        for item in items:
            counts[item.status] += 1

        return [
            StatusBucket(name=label, value=counts[status], color=color)
            for status, label, color in STATUS_TABLE
            if counts[status] > 0
        ]

    @staticmethod
    def top_categories(items: List[EnrichedItem]) -> List[CategorySummary]:
        """Group by first word of the title, biggest stock value first."""
        totals: Dict[str, Dict[str, float]] = {}
        for item in items:
            entry = totals.setdefault(category_for(item.title), {"stock_level": 0, "value": 0.0})
            entry["stock_level"] += item.available_stock
            entry["value"] += item.stock_value

        ranked = sorted(totals.items(), key=lambda pair: pair[1]["value"], reverse=True)
        return [
            CategorySummary(
                name=name,
                stock_level=int(data["stock_level"]),
                value=round_half_up(data["value"], 2),
            )
            for name, data in ranked[:TOP_CATEGORIES_LIMIT]
        ]
