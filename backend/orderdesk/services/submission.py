import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from orderdesk import config
from orderdesk.models.order import AdditionalCostItem, Customer, Notice, OrderDraft
from orderdesk.services.erp_client import ErpApiError, ErpClient
from orderdesk.services.pricing import is_valid_additional_cost_item
from orderdesk.services.product_types import format_product_types

logger = logging.getLogger(__name__)

HOUSE_FABRIC_ORIGIN = "SMARTONE"
CUSTOMER_FABRIC_ORIGIN = "CUSTOMER"


class SubmitResult(BaseModel):
    ok: bool
    spk: str = ""
    project_number: Optional[str] = None
    order: Optional[Dict[str, Any]] = None
    notices: List[Notice] = Field(default_factory=list)


def legacy_cost_fields(index: int) -> Tuple[str, str, str, str]:
    """ERP column names for cost slot ``index``; slot 0 has no suffix."""
    suffix = "" if index == 0 else str(index)
    return (
        f"tambah_cutting{suffix}",
        f"satuan_cutting{suffix}",
        f"qty_cutting{suffix}",
        f"total_cutting{suffix}",
    )


def is_submittable_cost(item: AdditionalCostItem) -> bool:
    return is_valid_additional_cost_item(item) and bool(item.total)


def serialize_additional_costs(items: Iterable[AdditionalCostItem]) -> Dict[str, str]:
    """Flatten cost slots into the ERP's per-slot columns, keeping slot numbers."""
    fields: Dict[str, str] = {}
    for index, item in enumerate(items):
        if not is_submittable_cost(item):
            continue
        name, price, qty, total = legacy_cost_fields(index)
        fields[name] = item.item
        fields[price] = item.price_per_unit
        fields[qty] = item.unit_quantity
        fields[total] = item.total
    return fields


def validate_draft(draft: OrderDraft) -> Dict[str, str]:
    """Per-field errors that block submission. Empty when the draft is ready."""
    errors: Dict[str, str] = {}
    if not draft.customer_id:
        errors["customer_id"] = "Please select a customer"
    if not draft.fabric_origin:
        errors["fabric_origin"] = "Please select fabric origin"
    if not draft.unit_price:
        errors["unit_price"] = "Price is required"
    return errors


def resolve_fabric_origin_id(draft: OrderDraft, customers: Optional[Iterable[Customer]] = None) -> Optional[str]:
    if draft.fabric_origin == CUSTOMER_FABRIC_ORIGIN:
        return draft.customer_id or None
    if draft.fabric_origin_id:
        return draft.fabric_origin_id
    if draft.fabric_origin == HOUSE_FABRIC_ORIGIN:
        for customer in customers or ():
            if customer.nama.upper() == HOUSE_FABRIC_ORIGIN:
                return customer.id
        return None
    return draft.fabric_origin or None


def build_order_payload(draft: OrderDraft, fabric_origin_id: Optional[str] = None) -> Dict[str, Any]:
    """Order body for ``POST /api/orders``."""
    products = draft.products
    payload: Dict[str, Any] = {
        "customerId": draft.customer_id,
        "spk": draft.spk,
        "spkProvisional": draft.spk_provisional,
        "marketing": draft.marketing,
        "statusProduksi": draft.production_status,
        "kategori": draft.category,
        "targetSelesai": draft.target_date.isoformat() if draft.target_date else None,
        "jenisProduk": products.as_flags(),
        "productTypes": format_product_types(products),
        "dtfPass": products.dtf_pass.value if products.dtf_pass else None,
        "asalBahan": draft.fabric_origin,
        "asalBahanId": fabric_origin_id or draft.fabric_origin_id or None,
        "namaBahan": draft.fabric_name,
        "selectedFabric": draft.selected_fabric.model_dump(by_alias=True) if draft.selected_fabric else None,
        "aplikasiProduk": draft.product_application,
        "gsmKertas": draft.paper_gsm,
        "lebarKertas": draft.paper_width,
        "fileWidth": draft.file_width,
        "matchingColor": draft.matching_color,
        "fileDesain": draft.design_file,
        "jumlah": draft.quantity,
        "unit": draft.unit,
        "harga": draft.unit_price,
        "discountType": draft.discount_type,
        "discountValue": draft.discount_value,
        "tax": draft.tax,
        "taxPercentage": (draft.tax_percentage or config.DEFAULT_TAX_PERCENTAGE) if draft.tax else "0",
        "totalPrice": draft.total_price,
        "notes": draft.notes.render(),
        "priority": draft.priority,
        "repeatOrderSpk": draft.repeat_order_spk,
        "additionalCosts": [
            c.model_dump(by_alias=True) for c in draft.additional_costs if is_submittable_cost(c)
        ],
    }
    payload.update(serialize_additional_costs(draft.additional_costs))
    return payload


def submit_draft(
    client: ErpClient, draft: OrderDraft, customers: Optional[Iterable[Customer]] = None
) -> SubmitResult:
    """Send the draft as a single order creation request.

    Nothing is persisted on failure; the caller keeps the draft.
    """
    payload = build_order_payload(draft, resolve_fabric_origin_id(draft, customers))
    try:
        created = client.create_order(payload)
    except ErpApiError as e:
        logger.exception("Error submitting order spk=%s: %s", draft.spk, e)
        return SubmitResult(
            ok=False,
            spk=draft.spk,
            notices=[Notice(level="error", message=f"Failed to submit order\n{e}")],
        )

    spk = str(created.get("spk") or draft.spk)
    if draft.spk_provisional and spk != draft.spk:
        logger.info("ERP replaced provisional SPK %s with %s", draft.spk, spk)
    project_number = created.get("projectNumber")
    if project_number is not None:
        project_number = str(project_number)
    logger.info("Order created spk=%s project=%s", spk, project_number)
    return SubmitResult(
        ok=True,
        spk=spk,
        project_number=project_number,
        order=created,
        notices=[
            Notice(level="success", message=f"Order created successfully! SPK: {spk} Project: {project_number}")
        ],
    )
