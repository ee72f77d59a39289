from datetime import date

from orderdesk.models.order import AdditionalCostItem, Customer, OrderDraft, OrderNotes
from orderdesk.services.drafts import derive
from orderdesk.services.submission import (
    build_order_payload,
    resolve_fabric_origin_id,
    serialize_additional_costs,
    submit_draft,
    validate_draft,
)


def ready_draft(**overrides):
    fields = dict(
        customer_id="7",
        spk="1026001",
        fabric_origin="CUSTOMER",
        quantity="10",
        unit_price="100",
        target_date=date(2026, 10, 22),
        products={"types": ["PRINT"]},
        notes=OrderNotes(free_text="Rush"),
    )
    fields.update(overrides)
    return derive(OrderDraft(**fields))


def test_costs_keep_their_slot_numbers():
    costs = [
        AdditionalCostItem(item="Cutting", price_per_unit="10", unit_quantity="2", total="20"),
        AdditionalCostItem(item="Half filled", price_per_unit="10"),
        AdditionalCostItem(item="Packing", price_per_unit="5", unit_quantity="4", total="20"),
        AdditionalCostItem(item="No total", price_per_unit="5", unit_quantity="4"),
    ]
    assert serialize_additional_costs(costs) == {
        "tambah_cutting": "Cutting",
        "satuan_cutting": "10",
        "qty_cutting": "2",
        "total_cutting": "20",
        "tambah_cutting2": "Packing",
        "satuan_cutting2": "5",
        "qty_cutting2": "4",
        "total_cutting2": "20",
    }


def test_validate_draft_lists_missing_fields():
    assert set(validate_draft(OrderDraft())) == {"customer_id", "fabric_origin", "unit_price"}
    assert validate_draft(ready_draft()) == {}


def test_fabric_origin_id():
    assert resolve_fabric_origin_id(ready_draft()) == "7"
    house = ready_draft(fabric_origin="SMARTONE")
    customers = [Customer(id=7, nama="Acme"), Customer(id=22, nama="SmartOne")]
    assert resolve_fabric_origin_id(house, customers) == "22"
    assert resolve_fabric_origin_id(house) is None
    assert resolve_fabric_origin_id(ready_draft(fabric_origin="SMARTONE", fabric_origin_id="30")) == "30"


def test_payload_fields():
    payload = build_order_payload(ready_draft(), "7")
    assert payload["customerId"] == "7"
    assert payload["asalBahanId"] == "7"
    assert payload["targetSelesai"] == "2026-10-22"
    assert payload["jenisProduk"]["PRINT"] is True
    assert payload["productTypes"] == "PRINT ONLY"
    assert payload["notes"] == "Rush\n[PRINT ONLY]"
    assert payload["totalPrice"] == "1000"
    assert payload["taxPercentage"] == "0"
    assert payload["additionalCosts"] == []
    assert payload["spkProvisional"] is False


def test_payload_carries_tax_percentage_when_taxed():
    payload = build_order_payload(ready_draft(tax=True, tax_percentage="12"))
    assert payload["taxPercentage"] == "12"
    assert payload["totalPrice"] == "1120"


def test_submit_success_adopts_erp_spk(erp):
    erp.created = {"spk": "1026050", "projectNumber": 77}
    result = submit_draft(erp, ready_draft(spk="1026999", spk_provisional=True))
    assert result.ok
    assert result.spk == "1026050"
    assert result.project_number == "77"
    assert result.notices[0].level == "success"
    assert erp.orders[0]["spk"] == "1026999"


def test_submit_failure_keeps_nothing(erp):
    erp.fail.add("create_order")
    result = submit_draft(erp, ready_draft())
    assert not result.ok
    assert result.spk == "1026001"
    assert result.notices[0].message == "Failed to submit order\ncreate_order unavailable"
