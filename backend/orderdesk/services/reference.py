import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from orderdesk.models.order import Customer, FabricInfo, Notice, PaperGsmOption, RepeatOrder
from orderdesk.services.erp_client import ErpApiError, ErpClient
from orderdesk.services.pricing import is_numeric, normalize_quantity, parse_number

logger = logging.getLogger(__name__)

# GSM rows with this much paper or less left are not offered
MIN_REMAINING_PAPER = 10


def normalize_gsm_options(rows: Iterable[Dict[str, Any]]) -> List[PaperGsmOption]:
    """Collapse paper-stock rows into one option per GSM, sorted by GSM."""
    totals: Dict[int, float] = {}
    for row in rows or ():
        if not isinstance(row, dict):
            continue
        if not is_numeric(row.get("gsm")):
            continue
        gsm = int(parse_number(row["gsm"]))
        remaining = parse_number(row.get("remainingLength") or row.get("remaining_length"))
        if remaining <= MIN_REMAINING_PAPER:
            continue
        totals[gsm] = totals.get(gsm, 0.0) + remaining
    return [PaperGsmOption(gsm=g, remaining_length=totals[g]) for g in sorted(totals)]


def normalize_width_options(rows: Iterable[Any]) -> List[str]:
    """Unique paper widths as strings, sorted numerically.

    The inventory API answers either ``[{"width": ..., ...}]`` or bare values.
    """
    widths = []
    for row in rows or ():
        value = row.get("width") if isinstance(row, dict) else row
        if value is None or value == "":
            continue
        text = str(value)
        if text not in widths:
            widths.append(text)
    return sorted(widths, key=parse_number)


def is_quantity_exceeding_available(
    quantity: Any, unit: str, available_length: Union[str, float, None]
) -> bool:
    """Non-blocking stock warning: ordered meters exceed what is left."""
    if not quantity or not available_length:
        return False
    if not is_numeric(quantity) or not is_numeric(available_length):
        return False
    return normalize_quantity(quantity, unit) > parse_number(available_length)


class ReferenceData:
    """Read-only dropdown data from the ERP.

    Every lookup degrades to an empty list plus an error notice instead of
    raising, so the form stays usable when inventory is unreachable.
    """

    def __init__(self, client: ErpClient):
        self.client = client

    def _fetch(self, what: str, call, *args) -> Tuple[List[Any], List[Notice]]:
        try:
            return call(*args), []
        except ErpApiError as e:
            logger.exception("Error fetching %s: %s", what, e)
            return [], [Notice(level="error", message=f"Failed to load {what}")]

    def _parse(self, what: str, model, rows: List[Any]) -> List[Any]:
        parsed = []
        for row in rows:
            try:
                parsed.append(model.model_validate(row))
            except ValidationError as e:
                logger.warning("Skipping malformed %s row %r: %s", what, row, e)
        return parsed

    def customers(self) -> Tuple[List[Customer], List[Notice]]:
        rows, notices = self._fetch("customers", self.client.list_customers)
        return self._parse("customer", Customer, rows), notices

    def fabrics(self, customer_id: Optional[str]) -> Tuple[List[FabricInfo], List[Notice]]:
        if not customer_id:
            return [], []
        rows, notices = self._fetch("fabric options", self.client.list_fabrics, customer_id)
        return self._parse("fabric", FabricInfo, rows), notices

    def paper_gsm(self) -> Tuple[List[PaperGsmOption], List[Notice]]:
        rows, notices = self._fetch("paper GSM options", self.client.list_paper_gsm)
        return normalize_gsm_options(rows), notices

    def paper_widths(self, gsm: Optional[str]) -> Tuple[List[str], List[Notice]]:
        if not gsm:
            return [], []
        rows, notices = self._fetch("paper width options", self.client.list_paper_widths, gsm)
        return normalize_width_options(rows), notices

    def repeat_orders(self, customer_id: Optional[str]) -> Tuple[List[RepeatOrder], List[Notice]]:
        if not customer_id:
            return [], []
        rows, notices = self._fetch("repeat orders", self.client.list_repeat_orders, customer_id)
        return self._parse("repeat order", RepeatOrder, rows), notices
