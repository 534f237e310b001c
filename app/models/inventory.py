"""
Canonical internal data contract for inventory records.
Raw upstream shapes on one side, the served snapshot on the other.
"""
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from app.errors import DataContractError

DEFAULT_REORDER_LEVEL = 5


def _as_float(raw: Dict[str, Any], key: str, default: float = 0.0) -> float:
    """Read a numeric field, substituting the default when it is absent."""
    value = raw.get(key)
    if value is None or value == "":
        return float(default)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise DataContractError(f"Field '{key}' is not numeric: {value!r}") from e


def _as_int(raw: Dict[str, Any], key: str, default: int = 0) -> int:
    return int(_as_float(raw, key, default))


def _as_text(raw: Dict[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class RawInventory:
    """Stock counts summed across all warehouses."""
    physical: int = 0
    allocated: int = 0
    available: int = 0

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "RawInventory":
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise DataContractError(f"Inventory must be an object, got {type(raw).__name__}")
        return cls(
            physical=_as_int(raw, "physical_stock_level_at_all_warehouses"),
            allocated=_as_int(raw, "allocated_stock_level_at_all_warehouses"),
            available=_as_int(raw, "available_stock_level_at_all_warehouses"),
        )


@dataclass(frozen=True)
class RawSellable:
    """A sellable variant (SKU) of a product, as sent by Veeqo."""
    sku_code: Optional[str] = None
    full_title: Optional[str] = None
    price: float = 0.0
    cost_price: float = 0.0
    profit: float = 0.0
    margin: float = 0.0
    total_quantity_sold: int = 0
    min_reorder_level: int = DEFAULT_REORDER_LEVEL
    image_url: Optional[str] = None
    inventory: RawInventory = field(default_factory=RawInventory)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RawSellable":
        if not isinstance(raw, dict):
            raise DataContractError(f"Sellable must be an object, got {type(raw).__name__}")

        # A reorder level of 0 counts as unset
        reorder_level = _as_int(raw, "min_reorder_level", DEFAULT_REORDER_LEVEL)
        if reorder_level == 0:
            reorder_level = DEFAULT_REORDER_LEVEL

        return cls(
            sku_code=_as_text(raw, "sku_code"),
            full_title=_as_text(raw, "full_title"),
            price=_as_float(raw, "price"),
            cost_price=_as_float(raw, "cost_price"),
            profit=_as_float(raw, "profit"),
            margin=_as_float(raw, "margin"),
            total_quantity_sold=_as_int(raw, "total_quantity_sold"),
            min_reorder_level=reorder_level,
            image_url=_as_text(raw, "image_url"),
            inventory=RawInventory.from_dict(raw.get("inventory")),
        )


@dataclass(frozen=True)
class RawProduct:
    """Upstream product record with its sellables."""
    id: Any
    title: Optional[str] = None
    thumbnail_url: Optional[str] = None
    sellables: List[RawSellable] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RawProduct":
        if not isinstance(raw, dict):
            raise DataContractError(f"Product must be an object, got {type(raw).__name__}")

        sellables = raw.get("sellables") or []
        if not isinstance(sellables, list):
            raise DataContractError(f"Product {raw.get('id')} has non-list sellables")

        return cls(
            id=raw.get("id"),
            title=_as_text(raw, "title"),
            thumbnail_url=_as_text(raw, "thumbnail_url"),
            sellables=[RawSellable.from_dict(s) for s in sellables],
        )


@dataclass(frozen=True)
class EnrichedItem:
    """
    One served row per (product, sellable) pair.
    days_of_stock_remaining is None when nothing sells (unbounded).
    """
    id: Any
    title: Optional[str]
    sku: Optional[str]
    price: float
    cost_price: float
    profit: float
    margin: float
    stock_level: int
    allocated_stock: int
    available_stock: int
    total_sold: int
    reorder_level: int
    turnover_rate: float
    days_of_stock_remaining: Optional[int]
    stock_value: float
    is_low_stock: bool
    is_out_of_stock: bool
    status: str
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase shape the dashboard consumes."""
        return {
            "id": self.id,
            "title": self.title,
            "sku": self.sku,
            "price": self.price,
            "costPrice": self.cost_price,
            "stockLevel": self.stock_level,
            "allocatedStock": self.allocated_stock,
            "availableStock": self.available_stock,
            "totalSold": self.total_sold,
            "profit": self.profit,
            "margin": self.margin,
            "imageUrl": self.image_url,
            "isLowStock": self.is_low_stock,
            "isOutOfStock": self.is_out_of_stock,
            "reorderLevel": self.reorder_level,
            "turnoverRate": self.turnover_rate,
            "stockValue": self.stock_value,
            "daysOfStockRemaining": self.days_of_stock_remaining,
            "status": self.status,
        }


@dataclass(frozen=True)
class StatusBucket:
    name: str
    value: int
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value, "color": self.color}


@dataclass(frozen=True)
class CategorySummary:
    name: str
    stock_level: int
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "stockLevel": self.stock_level, "value": self.value}


@dataclass(frozen=True)
class Snapshot:
    """The full cached payload."""
    products: List[EnrichedItem]
    low_stock_products: List[EnrichedItem]
    out_of_stock_products: List[EnrichedItem]
    top_selling_products: List[EnrichedItem]
    total_products: int
    total_stock_value: float
    low_stock_count: int
    out_of_stock_count: int
    average_turnover_rate: float
    stock_status_distribution: List[StatusBucket]
    top_categories: List[CategorySummary]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "products": [p.to_dict() for p in self.products],
            "lowStockProducts": [p.to_dict() for p in self.low_stock_products],
            "outOfStockProducts": [p.to_dict() for p in self.out_of_stock_products],
            "topSellingProducts": [p.to_dict() for p in self.top_selling_products],
            "totalProducts": self.total_products,
            "totalStockValue": self.total_stock_value,
            "lowStockCount": self.low_stock_count,
            "outOfStockCount": self.out_of_stock_count,
            "averageTurnoverRate": self.average_turnover_rate,
            "stockStatusDistribution": [s.to_dict() for s in self.stock_status_distribution],
            "topCategories": [c.to_dict() for c in self.top_categories],
        }
