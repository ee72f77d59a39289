import logging
import threading
import time
from datetime import date
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, Field

from orderdesk import config
from orderdesk.models.order import (
    COLOR_MATCHING_TAG,
    MAX_ADDITIONAL_COSTS,
    AdditionalCostItem,
    Category,
    DtfPass,
    FabricInfo,
    MatchingColor,
    OrderDraft,
    ProductType,
)
from orderdesk.services import product_types
from orderdesk.services.pricing import (
    calculate_item_total,
    calculate_total_price,
    is_valid_additional_cost_item,
    parse_number,
)
from orderdesk.services.reference import is_quantity_exceeding_available
from orderdesk.services.schedule import target_date_for_category
from orderdesk.services.spk import SpkResult

logger = logging.getLogger(__name__)

EditableField = Literal[
    "customer_id",
    "marketing",
    "production_status",
    "target_date",
    "fabric_origin",
    "fabric_origin_id",
    "product_application",
    "paper_gsm",
    "paper_width",
    "file_width",
    "design_file",
    "quantity",
    "unit",
    "unit_price",
    "discount_type",
    "discount_value",
    "tax",
    "tax_percentage",
    "priority",
    "repeat_order_spk",
]


class SetField(BaseModel):
    type: Literal["set_field"] = "set_field"
    field: EditableField
    value: Any = None


class ToggleProductType(BaseModel):
    type: Literal["toggle_product_type"] = "toggle_product_type"
    product_type: ProductType
    checked: bool


class SetDtfPass(BaseModel):
    type: Literal["set_dtf_pass"] = "set_dtf_pass"
    dtf_pass: DtfPass


class SetAdditionalCost(BaseModel):
    type: Literal["set_additional_cost"] = "set_additional_cost"
    index: int = Field(ge=0, lt=MAX_ADDITIONAL_COSTS)
    item: AdditionalCostItem


class ClearAdditionalCost(BaseModel):
    type: Literal["clear_additional_cost"] = "clear_additional_cost"
    index: int = Field(ge=0, lt=MAX_ADDITIONAL_COSTS)


class SetCategory(BaseModel):
    type: Literal["set_category"] = "set_category"
    category: Category


class SetMatchingColor(BaseModel):
    type: Literal["set_matching_color"] = "set_matching_color"
    value: MatchingColor


class SelectFabric(BaseModel):
    type: Literal["select_fabric"] = "select_fabric"
    fabric: Optional[FabricInfo] = None


class RepeatOrderCommand(BaseModel):
    type: Literal["repeat_order"] = "repeat_order"
    spk: str = Field(min_length=1)


class SetNotes(BaseModel):
    type: Literal["set_notes"] = "set_notes"
    text: str = ""


DraftCommand = Annotated[
    Union[
        SetField,
        ToggleProductType,
        SetDtfPass,
        SetAdditionalCost,
        ClearAdditionalCost,
        SetCategory,
        SetMatchingColor,
        SelectFabric,
        RepeatOrderCommand,
        SetNotes,
    ],
    Field(discriminator="type"),
]


def new_draft(today: date, spk: Optional[SpkResult] = None) -> OrderDraft:
    draft = OrderDraft(target_date=target_date_for_category("REGULAR ORDER", today))
    if spk is not None:
        draft = draft.model_copy(update={"spk": spk.spk, "spk_provisional": spk.provisional})
    return derive(draft)


def with_cost_total(item: AdditionalCostItem) -> AdditionalCostItem:
    """Fill in the line total when both price and quantity are given."""
    if item.price_per_unit and item.unit_quantity:
        return item.model_copy(update={"total": calculate_item_total(item.price_per_unit, item.unit_quantity)})
    return item


def counted_costs(draft: OrderDraft) -> List[AdditionalCostItem]:
    """Cost items that take part in the total."""
    return [c for c in draft.additional_costs if is_valid_additional_cost_item(c)]


def available_length(fabric: Optional[FabricInfo]) -> Optional[float]:
    if fabric is None:
        return None
    if fabric.remaining_length is not None:
        return fabric.remaining_length
    return parse_number(fabric.length) if fabric.length else None


def derive(draft: OrderDraft) -> OrderDraft:
    """Recompute every system-derived field from the user-entered ones."""
    if draft.unit_price and draft.quantity:
        total = calculate_total_price(
            draft.quantity,
            draft.unit_price,
            counted_costs(draft),
            draft.discount_type,
            draft.discount_value,
            draft.tax,
            draft.unit,
            draft.tax_percentage,
        )
    else:
        total = ""

    return draft.model_copy(
        update={
            "total_price": total,
            "notes": product_types.annotate_notes(draft.notes, draft.products),
            "exceeds_stock": is_quantity_exceeding_available(
                draft.quantity, draft.unit, available_length(draft.selected_fabric)
            ),
        }
    )


def _set_field(draft: OrderDraft, cmd: SetField, today: date) -> OrderDraft:
    value = cmd.value
    # the form may post numbers for text inputs such as quantity
    if (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and OrderDraft.model_fields[cmd.field].annotation is str
    ):
        value = str(value)
    data = draft.model_dump()
    data[cmd.field] = value
    return OrderDraft.model_validate(data)


def _toggle_product_type(draft: OrderDraft, cmd: ToggleProductType, today: date) -> OrderDraft:
    products = product_types.toggle_product_type(draft.products, cmd.product_type, cmd.checked)
    return draft.model_copy(update={"products": products})


def _set_dtf_pass(draft: OrderDraft, cmd: SetDtfPass, today: date) -> OrderDraft:
    return draft.model_copy(update={"products": product_types.set_dtf_pass(draft.products, cmd.dtf_pass)})


def _set_additional_cost(draft: OrderDraft, cmd: SetAdditionalCost, today: date) -> OrderDraft:
    costs = list(draft.additional_costs)
    costs[cmd.index] = with_cost_total(cmd.item)
    return draft.model_copy(update={"additional_costs": tuple(costs)})


def _clear_additional_cost(draft: OrderDraft, cmd: ClearAdditionalCost, today: date) -> OrderDraft:
    costs = list(draft.additional_costs)
    costs[cmd.index] = AdditionalCostItem()
    return draft.model_copy(update={"additional_costs": tuple(costs)})


def _set_category(draft: OrderDraft, cmd: SetCategory, today: date) -> OrderDraft:
    return draft.model_copy(
        update={"category": cmd.category, "target_date": target_date_for_category(cmd.category, today)}
    )


def _set_matching_color(draft: OrderDraft, cmd: SetMatchingColor, today: date) -> OrderDraft:
    extras = [e for e in draft.notes.extras if e != COLOR_MATCHING_TAG]
    if cmd.value == "YES":
        extras.append(COLOR_MATCHING_TAG)
    notes = draft.notes.model_copy(update={"extras": tuple(extras)})
    return draft.model_copy(update={"matching_color": cmd.value, "notes": notes})


def _select_fabric(draft: OrderDraft, cmd: SelectFabric, today: date) -> OrderDraft:
    fabric = cmd.fabric
    update: Dict[str, Any] = {"selected_fabric": fabric, "fabric_name": fabric.name if fabric else ""}
    # the fabric's estimated length becomes the suggested quantity
    if fabric is not None and fabric.length:
        update["quantity"] = fabric.length
    return draft.model_copy(update=update)


def _repeat_order(draft: OrderDraft, cmd: RepeatOrderCommand, today: date) -> OrderDraft:
    notes = draft.notes.model_copy(update={"free_text": f"REPEAT SPK No. {cmd.spk}"})
    return draft.model_copy(
        update={"repeat_order_spk": cmd.spk, "production_status": "REPEAT", "notes": notes}
    )


def _set_notes(draft: OrderDraft, cmd: SetNotes, today: date) -> OrderDraft:
    return draft.model_copy(update={"notes": draft.notes.model_copy(update={"free_text": cmd.text})})


_HANDLERS: Dict[str, Callable[[OrderDraft, Any, date], OrderDraft]] = {
    "set_field": _set_field,
    "toggle_product_type": _toggle_product_type,
    "set_dtf_pass": _set_dtf_pass,
    "set_additional_cost": _set_additional_cost,
    "clear_additional_cost": _clear_additional_cost,
    "set_category": _set_category,
    "set_matching_color": _set_matching_color,
    "select_fabric": _select_fabric,
    "repeat_order": _repeat_order,
    "set_notes": _set_notes,
}


def apply_command(draft: OrderDraft, command: DraftCommand, today: Optional[date] = None) -> OrderDraft:
    """Apply one form change and return the new draft. ``draft`` is not modified.

    Raises ``pydantic.ValidationError`` when a ``set_field`` value does not fit
    the field.
    """
    handler = _HANDLERS[command.type]
    updated = handler(draft, command, today or date.today())
    logger.debug("Applied %s to draft spk=%s", command.type, draft.spk)
    return derive(updated)


class DraftStore:
    """Open drafts, one per form. Drafts live in memory only.

    A draft nobody has read or changed for ``max_age`` seconds is dropped
    the next time the store is used.
    """

    def __init__(self, max_age: float = None, clock: Callable[[], float] = time.monotonic):
        self.max_age = config.DRAFT_MAX_AGE if max_age is None else max_age
        self.clock = clock
        self._lock = threading.Lock()
        self._drafts: Dict[str, Tuple[OrderDraft, float]] = {}

    def _evict_stale(self, now: float) -> None:
        stale = [k for k, (_, touched) in self._drafts.items() if now - touched > self.max_age]
        for draft_id in stale:
            del self._drafts[draft_id]
        if stale:
            logger.info("Evicted %s stale drafts", len(stale))

    def add(self, draft: OrderDraft) -> str:
        draft_id = str(uuid4())
        with self._lock:
            now = self.clock()
            self._evict_stale(now)
            self._drafts[draft_id] = (draft, now)
        logger.info("Opened draft draft_id=%s spk=%s", draft_id, draft.spk)
        return draft_id

    def get(self, draft_id: str) -> Optional[OrderDraft]:
        with self._lock:
            now = self.clock()
            self._evict_stale(now)
            entry = self._drafts.get(draft_id)
            if entry is None:
                return None
            self._drafts[draft_id] = (entry[0], now)
            return entry[0]

    def update(self, draft_id: str, fn: Callable[[OrderDraft], OrderDraft]) -> Optional[OrderDraft]:
        """Replace a draft with ``fn(draft)`` under the store lock.

        Returns ``None`` when the draft does not exist. Exceptions from ``fn``
        propagate and leave the stored draft unchanged.
        """
        with self._lock:
            now = self.clock()
            self._evict_stale(now)
            entry = self._drafts.get(draft_id)
            if entry is None:
                return None
            updated = fn(entry[0])
            self._drafts[draft_id] = (updated, now)
            return updated

    def discard(self, draft_id: str) -> bool:
        with self._lock:
            removed = self._drafts.pop(draft_id, None)
        if removed is not None:
            logger.info("Discarded draft draft_id=%s", draft_id)
        return removed is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._drafts)
