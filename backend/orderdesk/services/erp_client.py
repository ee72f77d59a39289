import logging
from typing import Any, Dict, List, Optional

import requests

from orderdesk import config

logger = logging.getLogger(__name__)


class ErpApiError(Exception):
    """The ERP API could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ErpClient:
    """Thin JSON client for the ERP REST API (``/api/orders``, ``/api/inventory``)."""

    def __init__(self, base_url: str = None, timeout: float = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or config.ERP_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.ERP_API_TIMEOUT
        self.session = session or requests.Session()
        logger.debug("ErpClient initialized with base_url=%s timeout=%s", self.base_url, self.timeout)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("ERP %s %s failed: %s", method, url, e)
            raise ErpApiError(f"ERP request failed: {e}") from e

        if not resp.ok:
            raise ErpApiError(self._error_message(resp), status_code=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise ErpApiError(f"ERP returned invalid JSON for {path}", status_code=resp.status_code) from e

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("details") or body.get("error")
            if detail:
                return str(detail)
        return f"ERP request failed with status {resp.status_code}"

    def _get_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        data = self._request("GET", path, params=params)
        if not isinstance(data, list):
            raise ErpApiError(f"Expected a list from {path}, got {type(data).__name__}")
        return data

    def generate_spk(self) -> Dict[str, Any]:
        data = self._request("GET", "/api/orders/spk/generate")
        if not isinstance(data, dict):
            raise ErpApiError("Invalid SPK response")
        return data

    def list_spks(self) -> List[str]:
        return [str(s) for s in self._get_list("/api/orders/spks") if s]

    def list_customers(self) -> List[Dict[str, Any]]:
        return self._get_list("/api/customers")

    def list_fabrics(self, customer_id: str) -> List[Dict[str, Any]]:
        return self._get_list("/api/inventory/fabrics", params={"customerId": customer_id})

    def list_paper_gsm(self) -> List[Any]:
        return self._get_list("/api/inventory/paper-stock/gsm")

    def list_paper_widths(self, gsm: str) -> List[Any]:
        return self._get_list("/api/inventory/paper-stock/width", params={"gsm": gsm})

    def list_repeat_orders(self, customer_id: str) -> List[Dict[str, Any]]:
        return self._get_list("/api/orders/repeat-orders", params={"customerId": customer_id})

    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug("Submitting order payload spk=%s", payload.get("spk"))
        data = self._request("POST", "/api/orders", json=payload, headers={"Content-Type": "application/json"})
        return data if isinstance(data, dict) else {}
