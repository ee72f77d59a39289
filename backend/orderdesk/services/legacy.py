"""Rebuild an order draft from a stored ERP order record.

Stored orders use the ERP's flat column names (``produk``, ``diskon``,
``tambah_cutting1`` ...). Reading one back gives a draft that can be edited
and resubmitted.
"""
import logging
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from orderdesk import config
from orderdesk.models.order import (
    MAX_ADDITIONAL_COSTS,
    AdditionalCostItem,
    DtfPass,
    FabricInfo,
    OrderDraft,
    OrderNotes,
    ProductSelection,
    ProductType,
)
from orderdesk.services.drafts import derive
from orderdesk.services.product_types import parse_product_list
from orderdesk.services.submission import CUSTOMER_FABRIC_ORIGIN, HOUSE_FABRIC_ORIGIN, legacy_cost_fields

logger = logging.getLogger(__name__)

_TAX_NOTE_RE = re.compile(r"Tax:\s*(\d+(?:\.\d+)?)%")
_CATEGORIES = ("REGULAR ORDER", "ONE DAY SERVICE", "PROJECT")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning("Unreadable date %r in order record", value)
        return None


def parse_discount(diskon: Any) -> Dict[str, str]:
    """``"10%"`` is a percentage, any other non-zero value a fixed amount."""
    text = _text(diskon).strip()
    if not text:
        return {"discount_type": "none", "discount_value": ""}
    if "%" in text:
        return {"discount_type": "percentage", "discount_value": text.replace("%", "").strip()}
    if text != "0":
        return {"discount_type": "fixed", "discount_value": text}
    return {"discount_type": "none", "discount_value": ""}


def parse_tax(record: Mapping[str, Any]) -> Dict[str, Any]:
    enabled = record.get("tax") in ("YES", True)
    percentage = _text(record.get("tax_percentage")) or config.DEFAULT_TAX_PERCENTAGE

    # older orders keep the tax rate as a note in tambah_bahan
    note = _text(record.get("tambah_bahan"))
    if "Tax:" in note:
        enabled = True
        match = _TAX_NOTE_RE.search(note)
        if match:
            percentage = match.group(1)
    return {"tax": enabled, "tax_percentage": percentage}


def parse_additional_costs(record: Mapping[str, Any]) -> List[AdditionalCostItem]:
    costs = []
    for index in range(MAX_ADDITIONAL_COSTS):
        name, price, qty, total = legacy_cost_fields(index)
        costs.append(
            AdditionalCostItem(
                item=_text(record.get(name)),
                price_per_unit=_text(record.get(price)),
                unit_quantity=_text(record.get(qty)),
                total=_text(record.get(total)),
            )
        )
    return costs


def parse_products(record: Mapping[str, Any]) -> ProductSelection:
    selection = parse_product_list(record.get("produk"))
    dtf_pass = record.get("dtf_pass")
    if dtf_pass and dtf_pass not in {p.value for p in DtfPass}:
        logger.warning("Ignoring unknown DTF pass %r", dtf_pass)
        dtf_pass = None
    if not dtf_pass and "DTF" in _text(record.get("tipe_produk")).upper():
        dtf_pass = DtfPass.FOUR
    if ProductType.DTF in selection.types and not dtf_pass:
        dtf_pass = DtfPass.FOUR
    if dtf_pass:
        selection = selection.model_copy(update={"dtf_pass": DtfPass(dtf_pass)})
    return selection


def _fabric_origin(record: Mapping[str, Any]) -> str:
    house = config.HOUSE_FABRIC_CUSTOMER_ID
    if _text(record.get("asal_bahan_id")) == house or _text(record.get("asal_bahan")) == house:
        return HOUSE_FABRIC_ORIGIN
    return CUSTOMER_FABRIC_ORIGIN


def _placeholder_fabric(record: Mapping[str, Any]) -> Optional[FabricInfo]:
    if not record.get("nama_kain"):
        return None
    return FabricInfo(
        id=_text(record.get("fabric_id")),
        name=_text(record["nama_kain"]),
        composition=record.get("composition"),
        length=record.get("length"),
        width=record.get("lebar_kain"),
        remaining_length=record.get("remaining_length"),
    )


def draft_from_order_record(record: Mapping[str, Any], today: Optional[date] = None) -> OrderDraft:
    today = today or date.today()
    marketing_info = record.get("marketingInfo") or {}
    category = record.get("kategori") if record.get("kategori") in _CATEGORIES else "REGULAR ORDER"

    draft = OrderDraft(
        customer_id=_text(record.get("customer_id")),
        spk=_text(record.get("spk")),
        marketing=_text(record.get("marketing") or marketing_info.get("name")),
        production_status="REPEAT" if record.get("statusprod") == "REPEAT" else "NEW",
        category=category,
        target_date=_parse_date(record.get("est_order")) or _parse_date(record.get("target_selesai")) or today,
        repeat_order_spk=_text(record.get("repeat_order_spk") or record.get("repeatOrderSpk")),
        products=parse_products(record),
        fabric_origin=_fabric_origin(record),
        fabric_name=_text(record.get("nama_kain")),
        selected_fabric=_placeholder_fabric(record),
        product_application=_text(record.get("nama_produk") or record.get("produk")),
        paper_gsm=_text(record.get("gramasi")),
        paper_width=_text(record.get("lebar_kertas")),
        file_width=_text(record.get("lebar_file")),
        design_file=_text(record.get("path")),
        matching_color="YES" if record.get("warna_acuan") == "ADA" else "NO",
        quantity=_text(record.get("qty")),
        unit="yard" if record.get("satuan_bahan") == "yard" else "meter",
        unit_price=_text(record.get("harga_satuan")),
        additional_costs=parse_additional_costs(record),
        total_price=_text(record.get("nominal") or record.get("total_price")),
        notes=OrderNotes.from_legacy(record.get("catatan")),
        priority=record.get("prioritas") == "YES" or record.get("priority") is True,
        **parse_discount(record.get("diskon")),
        **parse_tax(record),
    )
    logger.info("Imported order record spk=%s", draft.spk)
    return derive(draft)
