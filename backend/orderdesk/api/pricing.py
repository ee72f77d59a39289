from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from orderdesk.models.order import AdditionalCostItem, DiscountType, Unit
from orderdesk.services.pricing import calculate_item_total, meter_to_yard, price_breakdown, yard_to_meter

router = APIRouter()


class QuoteRequest(BaseModel):
    quantity: str = ""
    unit_price: str = ""
    unit: Unit = "meter"
    additional_costs: List[AdditionalCostItem] = []
    discount_type: DiscountType = "none"
    discount_value: str = "0"
    tax: bool = False
    tax_percentage: Optional[str] = None


@router.post("/quote")
async def quote(req: QuoteRequest) -> Dict[str, Any]:
    breakdown = price_breakdown(
        req.quantity,
        req.unit_price,
        req.additional_costs,
        req.discount_type,
        req.discount_value,
        req.tax,
        req.unit,
        req.tax_percentage,
    )
    return {
        "total_price": str(breakdown["total"]),
        "item_totals": [calculate_item_total(c.price_per_unit, c.unit_quantity) for c in req.additional_costs],
        "breakdown": breakdown,
    }


@router.get("/convert")
async def convert(value: float, unit: Unit = "meter") -> Dict[str, float]:
    if unit == "yard":
        return {"meters": yard_to_meter(value), "yards": value}
    if unit == "meter":
        return {"meters": value, "yards": meter_to_yard(value)}
    return {"pieces": value}
