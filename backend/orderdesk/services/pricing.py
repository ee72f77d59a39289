import logging
import math
import re
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from orderdesk import config
from orderdesk.models.order import AdditionalCostItem

logger = logging.getLogger(__name__)

YARD_IN_METERS = 0.9144

_LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

Number = Union[str, int, float, None]
CostLike = Union[AdditionalCostItem, Mapping[str, Any]]


def parse_number(value: Number) -> float:
    """Parse the leading number of ``value`` the way the form does.

    ``"12.5m"`` -> 12.5, ``""``/``None``/garbage -> 0.0. Never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return 0.0 if math.isnan(value) or math.isinf(value) else float(value)
    match = _LEADING_FLOAT_RE.match(str(value))
    if not match:
        return 0.0
    return float(match.group(0))


def is_numeric(value: Number) -> bool:
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float)):
        return not (math.isnan(value) or math.isinf(value))
    return bool(_LEADING_FLOAT_RE.match(str(value)))


def yard_to_meter(yards: float) -> float:
    return yards * YARD_IN_METERS


def meter_to_yard(meters: float) -> float:
    return meters / YARD_IN_METERS


def normalize_quantity(quantity: Number, unit: str = "meter") -> float:
    """Quantity in meters. ``piece`` and ``meter`` pass through unchanged."""
    qty = parse_number(quantity)
    if unit == "yard":
        return yard_to_meter(qty)
    return qty


def round_currency(amount: float) -> int:
    # half-up, matching Math.round on the form
    return int(math.floor(amount + 0.5))


def calculate_item_total(price: Number, quantity: Number) -> str:
    return str(round_currency(parse_number(price) * parse_number(quantity)))


def _cost_fields(cost: CostLike) -> AdditionalCostItem:
    if isinstance(cost, AdditionalCostItem):
        return cost
    return AdditionalCostItem.model_validate(
        {k: "" if v is None else str(v) for k, v in cost.items()}
    )


def is_valid_additional_cost_item(cost: CostLike) -> bool:
    item = _cost_fields(cost)
    return bool(
        item.item
        and item.price_per_unit
        and parse_number(item.price_per_unit) > 0
        and item.unit_quantity
        and parse_number(item.unit_quantity) > 0
    )


def additional_cost_contribution(cost: CostLike) -> float:
    item = _cost_fields(cost)
    total = parse_number(item.total)
    if total > 0:
        return total
    price = parse_number(item.price_per_unit)
    qty = parse_number(item.unit_quantity)
    if price > 0 and qty > 0:
        return price * qty
    return 0.0


def aggregate_additional_costs(costs: Optional[Iterable[CostLike]]) -> float:
    if not costs:
        return 0.0
    return sum(additional_cost_contribution(c) for c in costs)


def apply_discount(subtotal: float, discount_type: str, discount_value: Number) -> float:
    """Apply at most one discount. The result is never negative."""
    value = max(0.0, parse_number(discount_value))
    if discount_type == "fixed":
        return max(0.0, subtotal - value)
    if discount_type == "percentage":
        return max(0.0, subtotal - subtotal * value / 100)
    return subtotal


def resolve_tax_percentage(tax_percentage: Number) -> float:
    """Entered percentage, or the configured default when left blank."""
    if tax_percentage is None or str(tax_percentage).strip() == "":
        return parse_number(config.DEFAULT_TAX_PERCENTAGE)
    if not is_numeric(tax_percentage):
        logger.debug("Unparseable tax percentage %r; using default", tax_percentage)
        return parse_number(config.DEFAULT_TAX_PERCENTAGE)
    return max(0.0, parse_number(tax_percentage))


def apply_tax(subtotal: float, enabled: bool, tax_percentage: Number = None) -> float:
    if not enabled:
        return subtotal
    return subtotal * (1 + resolve_tax_percentage(tax_percentage) / 100)


class PriceEngine:
    """Order pricing pipeline.

    quantity -> meters -> base -> + additional costs -> discount -> tax -> rounding
    """

    def quote(
        self,
        quantity: Number,
        unit_price: Number,
        additional_costs: Optional[Iterable[CostLike]] = None,
        discount_type: str = "none",
        discount_value: Number = "0",
        tax_enabled: bool = False,
        unit: str = "meter",
        tax_percentage: Number = None,
    ) -> Dict[str, Any]:
        qty_meters = normalize_quantity(quantity, unit)
        price = parse_number(unit_price)
        base = qty_meters * price
        extras = aggregate_additional_costs(additional_costs)
        subtotal = base + extras
        discounted = apply_discount(subtotal, discount_type, discount_value)
        taxed = apply_tax(discounted, tax_enabled, tax_percentage)
        total = round_currency(taxed)

        return {
            "quantity_meters": qty_meters,
            "unit_price": price,
            "base": base,
            "additional_costs": extras,
            "subtotal": subtotal,
            "discount_amount": subtotal - discounted,
            "after_discount": discounted,
            "tax_percentage": resolve_tax_percentage(tax_percentage) if tax_enabled else 0.0,
            "tax_amount": taxed - discounted,
            "total": total,
        }


def price_breakdown(*args, **kwargs) -> Dict[str, Any]:
    """Every intermediate amount of the pricing pipeline; arguments as for :meth:`PriceEngine.quote`."""
    return PriceEngine().quote(*args, **kwargs)


def calculate_total_price(
    quantity: Number,
    unit_price: Number,
    additional_costs: Optional[Iterable[CostLike]] = None,
    discount_type: str = "none",
    discount_value: Number = "0",
    apply_tax: bool = False,
    unit: str = "meter",
    tax_percentage: Number = None,
) -> str:
    """Final order amount as an integer string, e.g. ``"1000"``."""
    breakdown = price_breakdown(
        quantity,
        unit_price,
        additional_costs,
        discount_type,
        discount_value,
        apply_tax,
        unit,
        tax_percentage,
    )
    return str(breakdown["total"])
