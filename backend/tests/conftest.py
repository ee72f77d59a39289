import pytest
from fastapi.testclient import TestClient

from orderdesk import config
from orderdesk.api import deps
from orderdesk.main import app
from orderdesk.services.drafts import DraftStore
from orderdesk.services.erp_client import ErpApiError
from orderdesk.services.reference import ReferenceData


class StubErpClient:
    """In-process stand-in for the ERP API. Names in ``fail`` raise ErpApiError."""

    def __init__(self):
        self.fail = set()
        self.spk_response = {"spk": "1026001"}
        self.spks = ["1026001"]
        self.customers = [{"id": 7, "nama": "Acme Textile"}, {"id": 22, "nama": "SMARTONE"}]
        self.fabrics = [{"id": 3, "name": "Cotton Combed", "length": "20", "remainingLength": 15}]
        self.paper_gsm = [{"gsm": "80", "remainingLength": 50}, {"gsm": "100", "remainingLength": 5}]
        self.paper_widths = [{"width": "110"}, {"width": "90"}]
        self.repeat_orders = [{"spk": "0925010", "orderDate": "2025-09-01", "details": "PRINT ONLY"}]
        self.created = {"projectNumber": 77, "id": 1}
        self.calls = []
        self.orders = []

    def _call(self, name):
        self.calls.append(name)
        if name in self.fail:
            raise ErpApiError(f"{name} unavailable", status_code=500)

    def generate_spk(self):
        self._call("generate_spk")
        return dict(self.spk_response)

    def list_spks(self):
        self._call("list_spks")
        return list(self.spks)

    def list_customers(self):
        self._call("list_customers")
        return list(self.customers)

    def list_fabrics(self, customer_id):
        self._call("list_fabrics")
        return list(self.fabrics)

    def list_paper_gsm(self):
        self._call("list_paper_gsm")
        return list(self.paper_gsm)

    def list_paper_widths(self, gsm):
        self._call("list_paper_widths")
        return list(self.paper_widths)

    def list_repeat_orders(self, customer_id):
        self._call("list_repeat_orders")
        return list(self.repeat_orders)

    def create_order(self, payload):
        self._call("create_order")
        self.orders.append(payload)
        return {"spk": payload["spk"], **self.created}


@pytest.fixture(autouse=True)
def fixed_config(monkeypatch):
    monkeypatch.setattr(config, "DEFAULT_TAX_PERCENTAGE", "11")
    monkeypatch.setattr(config, "SPK_MAX_RETRIES", 2)
    monkeypatch.setattr(config, "SPK_RETRY_DELAY", 0)
    monkeypatch.setattr(config, "HOUSE_FABRIC_CUSTOMER_ID", "22")


@pytest.fixture
def erp():
    return StubErpClient()


@pytest.fixture
def store():
    return DraftStore()


@pytest.fixture
def client(erp, store):
    app.dependency_overrides[deps.get_erp_client] = lambda: erp
    app.dependency_overrides[deps.get_reference_data] = lambda: ReferenceData(erp)
    app.dependency_overrides[deps.get_draft_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
