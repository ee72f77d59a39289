import pytest
import requests

from orderdesk.services.erp_client import ErpApiError, ErpClient


class FakeResponse:
    def __init__(self, status_code=200, body=None, invalid_json=False):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise ValueError("not json")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response


def make_client(session):
    return ErpClient(base_url="http://erp.test/", timeout=1, session=session)


def test_get_list_passes_params():
    session = FakeSession(FakeResponse(body=[{"id": 1}]))
    assert make_client(session).list_fabrics("7") == [{"id": 1}]
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("GET", "http://erp.test/api/inventory/fabrics")
    assert kwargs["params"] == {"customerId": "7"}
    assert kwargs["timeout"] == 1


def test_error_body_details_become_message():
    session = FakeSession(FakeResponse(status_code=500, body={"error": "boom", "details": "SPK taken"}))
    with pytest.raises(ErpApiError) as exc:
        make_client(session).create_order({"spk": "1026001"})
    assert str(exc.value) == "SPK taken"
    assert exc.value.status_code == 500


def test_error_without_body():
    session = FakeSession(FakeResponse(status_code=503, invalid_json=True))
    with pytest.raises(ErpApiError, match="status 503"):
        make_client(session).list_customers()


def test_connection_error_is_wrapped():
    session = FakeSession(error=requests.ConnectionError("refused"))
    with pytest.raises(ErpApiError, match="refused"):
        make_client(session).generate_spk()


def test_non_list_answer_is_rejected():
    session = FakeSession(FakeResponse(body={"rows": []}))
    with pytest.raises(ErpApiError):
        make_client(session).list_paper_gsm()


def test_spk_list_is_stringified():
    session = FakeSession(FakeResponse(body=["0125001", 125002, None]))
    assert make_client(session).list_spks() == ["0125001", "125002"]
