from datetime import date

from orderdesk.models.order import DtfPass, OrderNotes, ProductType
from orderdesk.services.legacy import draft_from_order_record, parse_discount, parse_products, parse_tax

RECORD = {
    "spk": "1026031",
    "customer_id": 7,
    "marketingInfo": {"name": "Dewi"},
    "statusprod": "NEW",
    "kategori": "PROJECT",
    "est_order": "2026-10-21T00:00:00.000Z",
    "produk": "PRINT, PRESS",
    "asal_bahan_id": 22,
    "nama_kain": "Cotton Combed",
    "warna_acuan": "ADA",
    "qty": "10",
    "satuan_bahan": "meter",
    "harga_satuan": "100",
    "diskon": "10%",
    "tax": "YES",
    "tambah_bahan": "Tax: 12%",
    "tambah_cutting": "Cutting",
    "satuan_cutting": "1000",
    "qty_cutting": "2",
    "total_cutting": "2000",
    "catatan": "Rush job, Color Matching\n[PRINT ONLY]",
    "prioritas": "YES",
}


def test_record_becomes_editable_draft():
    draft = draft_from_order_record(RECORD, today=date(2026, 10, 19))
    assert draft.spk == "1026031"
    assert draft.customer_id == "7"
    assert draft.marketing == "Dewi"
    assert draft.category == "PROJECT"
    assert draft.target_date == date(2026, 10, 21)
    assert draft.products.types == (ProductType.PRINT, ProductType.PRESS)
    assert draft.fabric_origin == "SMARTONE"
    assert draft.matching_color == "YES"
    assert draft.discount_type == "percentage"
    assert draft.discount_value == "10"
    assert draft.tax
    assert draft.tax_percentage == "12"
    assert draft.additional_costs[0].item == "Cutting"
    assert draft.priority


def test_derived_fields_are_recomputed():
    draft = draft_from_order_record(RECORD, today=date(2026, 10, 19))
    # (1000 + 2000) - 10% = 2700, + 12% tax
    assert draft.total_price == "3024"
    assert draft.notes.free_text == "Rush job"
    assert draft.notes.render() == "Rush job, Color Matching\n[PRINT, PRESS]"


def test_missing_values_fall_back():
    draft = draft_from_order_record({"spk": "1026032"}, today=date(2026, 10, 19))
    assert draft.category == "REGULAR ORDER"
    assert draft.target_date == date(2026, 10, 19)
    assert draft.fabric_origin == "CUSTOMER"
    assert draft.discount_type == "none"
    assert not draft.tax
    assert draft.tax_percentage == "11"
    assert draft.total_price == ""


def test_parse_discount():
    assert parse_discount("15%") == {"discount_type": "percentage", "discount_value": "15"}
    assert parse_discount("5000") == {"discount_type": "fixed", "discount_value": "5000"}
    assert parse_discount("0") == {"discount_type": "none", "discount_value": ""}
    assert parse_discount(None) == {"discount_type": "none", "discount_value": ""}


def test_parse_tax_from_columns():
    assert parse_tax({"tax": "YES", "tax_percentage": "10"}) == {"tax": True, "tax_percentage": "10"}
    assert parse_tax({"tax": "NO"}) == {"tax": False, "tax_percentage": "11"}


def test_parse_products_dtf_pass():
    assert parse_products({"produk": "DTF", "dtf_pass": "6 PASS"}).dtf_pass is DtfPass.SIX
    assert parse_products({"produk": "DTF", "dtf_pass": "9 PASS"}).dtf_pass is DtfPass.FOUR
    assert parse_products({"produk": "PRINT", "tipe_produk": "DTF (4 PASS)"}).dtf_pass is DtfPass.FOUR
    assert parse_products({"produk": "PRINT"}).dtf_pass is None


def test_inline_trailing_brackets_belong_to_user():
    draft = draft_from_order_record({"spk": "1026040", "catatan": "Use ink colour [navy]"}, today=date(2026, 10, 19))
    assert draft.notes.free_text == "Use ink colour [navy]"
    assert draft.notes.render() == "Use ink colour [navy]"

    notes = OrderNotes.from_legacy("Use ink colour [navy]")
    assert notes.annotation == ""
    assert OrderNotes.from_legacy("[PRINT ONLY]").annotation == "PRINT ONLY"


def test_inline_brackets_kept_alongside_annotation():
    record = {"spk": "1026041", "produk": "PRESS", "catatan": "Use ink colour [navy]\n[PRINT ONLY]"}
    draft = draft_from_order_record(record, today=date(2026, 10, 19))
    assert draft.notes.render() == "Use ink colour [navy]\n[PRESS ONLY]"
