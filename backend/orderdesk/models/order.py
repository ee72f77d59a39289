import re
from datetime import date
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from orderdesk import config

MAX_ADDITIONAL_COSTS = 6

Unit = Literal["meter", "yard", "piece"]
DiscountType = Literal["none", "fixed", "percentage"]
Category = Literal["REGULAR ORDER", "ONE DAY SERVICE", "PROJECT"]
ProductionStatus = Literal["NEW", "REPEAT"]
MatchingColor = Literal["YES", "NO"]

COLOR_MATCHING_TAG = "Color Matching"

_TRAILING_ANNOTATION_RE = re.compile(r"(?:^|\n)\[([^\]]+)\]\s*$")


class ProductType(str, Enum):
    # declaration order is the display order
    PRINT = "PRINT"
    PRESS = "PRESS"
    CUTTING = "CUTTING"
    DTF = "DTF"
    SEWING = "SEWING"


class DtfPass(str, Enum):
    FOUR = "4 PASS"
    SIX = "6 PASS"


class ProductSelection(BaseModel):
    """Selected product types plus the DTF pass count."""

    model_config = ConfigDict(frozen=True)

    types: Tuple[ProductType, ...] = ()
    dtf_pass: Optional[DtfPass] = None

    @field_validator("types", mode="before")
    @classmethod
    def _canonical_order(cls, value):
        selected = {ProductType(v) for v in (value or ())}
        return tuple(t for t in ProductType if t in selected)

    def as_flags(self) -> dict:
        return {t.value: t in self.types for t in ProductType}


class AdditionalCostItem(BaseModel):
    """One ad-hoc extra charge line. All numbers are kept as entered."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    item: str = ""
    price_per_unit: str = Field(default="", alias="pricePerUnit")
    unit_quantity: str = Field(default="", alias="unitQuantity")
    total: str = ""

    def is_blank(self) -> bool:
        return not (self.item or self.price_per_unit or self.unit_quantity or self.total)


class OrderNotes(BaseModel):
    """Notes split into user text and system-derived parts.

    The product-type annotation and system tags never touch ``free_text``;
    they are joined only by :meth:`render`.
    """

    model_config = ConfigDict(frozen=True)

    free_text: str = ""
    annotation: str = ""
    extras: Tuple[str, ...] = ()

    def render(self) -> str:
        body = self.free_text.strip()
        if self.extras:
            body = ", ".join(([body] if body else []) + list(self.extras))
        if self.annotation:
            body = f"{body}\n[{self.annotation}]" if body else f"[{self.annotation}]"
        return body

    @classmethod
    def from_legacy(cls, text: Optional[str]) -> "OrderNotes":
        """Split a stored notes string back into its parts.

        Only a bracketed group that fills the whole last line is treated as
        system text; brackets anywhere else belong to the user.
        """
        text = (text or "").strip()
        annotation = ""
        match = _TRAILING_ANNOTATION_RE.search(text)
        if match:
            annotation = match.group(1).strip()
            text = text[: match.start()].rstrip()

        extras: List[str] = []
        if text == COLOR_MATCHING_TAG:
            extras.append(COLOR_MATCHING_TAG)
            text = ""
        elif text.endswith(", " + COLOR_MATCHING_TAG):
            extras.append(COLOR_MATCHING_TAG)
            text = text[: -len(", " + COLOR_MATCHING_TAG)]
        return cls(free_text=text, annotation=annotation, extras=tuple(extras))


class Customer(BaseModel):
    id: str
    nama: str
    telp: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)


class FabricInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    name: str
    description: Optional[str] = None
    composition: Optional[str] = None
    weight: Optional[str] = None
    width: Optional[str] = None
    length: Optional[str] = None
    remaining_length: Optional[float] = Field(default=None, alias="remainingLength")

    @field_validator("id", "description", "composition", "weight", "width", "length", mode="before")
    @classmethod
    def _stringify(cls, value):
        return None if value is None else str(value)


class RepeatOrder(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spk: str
    order_date: Optional[str] = Field(default=None, alias="orderDate")
    details: str = ""


class PaperGsmOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gsm: int
    remaining_length: float = Field(alias="remainingLength")


class Notice(BaseModel):
    """A user-facing message, rendered as a toast by the form UI."""

    level: Literal["success", "info", "warning", "error"]
    message: str


def _empty_costs() -> Tuple[AdditionalCostItem, ...]:
    return tuple(AdditionalCostItem() for _ in range(MAX_ADDITIONAL_COSTS))


class OrderDraft(BaseModel):
    """In-memory order-entry form state."""

    model_config = ConfigDict(populate_by_name=True)

    customer_id: str = ""
    marketing: str = ""
    spk: str = ""
    spk_provisional: bool = False
    production_status: ProductionStatus = "NEW"
    category: Category = "REGULAR ORDER"
    target_date: Optional[date] = None
    products: ProductSelection = ProductSelection()
    fabric_origin: str = ""
    fabric_origin_id: str = ""
    fabric_name: str = ""
    selected_fabric: Optional[FabricInfo] = None
    product_application: str = ""
    paper_gsm: str = ""
    paper_width: str = ""
    file_width: str = ""
    design_file: str = ""
    matching_color: MatchingColor = "NO"
    quantity: str = ""
    unit: Unit = "meter"
    unit_price: str = ""
    additional_costs: Tuple[AdditionalCostItem, ...] = Field(default_factory=_empty_costs)
    discount_type: DiscountType = "none"
    discount_value: str = ""
    tax: bool = False
    tax_percentage: str = Field(default_factory=lambda: config.DEFAULT_TAX_PERCENTAGE)
    total_price: str = ""
    notes: OrderNotes = OrderNotes()
    priority: bool = False
    repeat_order_spk: str = ""
    exceeds_stock: bool = False

    @field_validator("additional_costs", mode="before")
    @classmethod
    def _fixed_slots(cls, value):
        items = list(value or ())[:MAX_ADDITIONAL_COSTS]
        items += [AdditionalCostItem()] * (MAX_ADDITIONAL_COSTS - len(items))
        return tuple(items)
