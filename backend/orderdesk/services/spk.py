import logging
import random
import time
from datetime import datetime
from typing import Callable, Iterable, List, Literal, Optional

from pydantic import BaseModel, Field

from orderdesk import config
from orderdesk.models.order import Notice
from orderdesk.services.erp_client import ErpApiError, ErpClient

logger = logging.getLogger(__name__)

SpkSource = Literal["server", "server_fallback", "server_recovered", "client_sequence", "client_random"]


class SpkResult(BaseModel):
    """An SPK number and where it came from.

    ``provisional`` numbers are placeholders: nothing guarantees they are
    unique, and the ERP's number returned on order creation replaces them.
    """

    spk: str
    source: SpkSource
    provisional: bool = False
    notices: List[Notice] = Field(default_factory=list)


def spk_prefix(now: datetime) -> str:
    """``MMYY`` for the given moment."""
    return f"{now.month:02d}{now.year % 100:02d}"


def highest_sequence(existing: Iterable[str], prefix: str) -> Optional[int]:
    highest = None
    for spk in existing or ():
        spk = str(spk)
        if not spk.startswith(prefix):
            continue
        suffix = spk[len(prefix):]
        if suffix.isascii() and suffix.isdigit():
            highest = int(suffix) if highest is None else max(highest, int(suffix))
    return highest


def next_fallback_spk(existing: Iterable[str], prefix: str, rng: Optional[random.Random] = None) -> str:
    """Next sequence after the highest known SPK for ``prefix``.

    Sequences up to 999 are zero-padded to three digits. With no SPK for the
    prefix a random three-digit sequence in [100, 999] is used.
    """
    highest = highest_sequence(existing, prefix)
    if highest is not None:
        sequence = highest + 1
        return f"{prefix}{sequence:03d}" if sequence <= 999 else f"{prefix}{sequence}"
    return f"{prefix}{(rng or random).randint(100, 999)}"


class SpkGenerator:
    """Ask the ERP for the next SPK, falling back to a local guess."""

    def __init__(
        self,
        client: ErpClient,
        max_retries: int = None,
        retry_delay: float = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
    ):
        self.client = client
        self.max_retries = config.SPK_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = config.SPK_RETRY_DELAY if retry_delay is None else retry_delay
        self.sleep = sleep
        self.clock = clock
        self.rng = rng or random.Random()
        self.known_spks: List[str] = []
        self.spks_fetched = False

    def refresh_known_spks(self) -> List[Notice]:
        self.spks_fetched = True
        try:
            self.known_spks = self.client.list_spks()
            return []
        except ErpApiError as e:
            logger.warning("Failed to fetch SPK numbers: %s", e)
            return [Notice(level="error", message="Failed to fetch SPK numbers")]

    def generate(self) -> SpkResult:
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                data = self.client.generate_spk()
                if not data.get("spk"):
                    raise ErpApiError(f"Invalid SPK response: {data}")
                return self._from_server(data)
            except ErpApiError as e:
                logger.warning("SPK attempt %s/%s failed: %s", attempt, attempts, e)
                if attempt < attempts:
                    self.sleep(self.retry_delay)

        logger.error("All %s SPK attempts failed; using client-side fallback", attempts)
        return self._client_fallback()

    def _from_server(self, data: dict) -> SpkResult:
        spk = str(data["spk"])
        if data.get("fallback"):
            logger.warning("ERP issued fallback SPK %s", spk)
            return SpkResult(
                spk=spk,
                source="server_fallback",
                provisional=True,
                notices=[Notice(level="warning", message=f"Using fallback SPK number {spk}")],
            )
        if data.get("recovered"):
            logger.info("ERP recovered SPK %s", spk)
            return SpkResult(
                spk=spk,
                source="server_recovered",
                notices=[Notice(level="info", message=f"SPK number {spk} recovered")],
            )
        logger.info("Generated SPK %s", spk)
        return SpkResult(spk=spk, source="server")

    def _client_fallback(self) -> SpkResult:
        # one fetch per generator; a failed fetch was already reported
        notices = [] if self.spks_fetched else self.refresh_known_spks()
        prefix = spk_prefix(self.clock())
        spk = next_fallback_spk(self.known_spks, prefix, self.rng)
        matched = highest_sequence(self.known_spks, prefix) is not None
        notices.append(Notice(level="error", message="Failed to generate SPK number. Using temporary value."))
        logger.warning("Client-side fallback SPK %s (from %s known)", spk, len(self.known_spks))
        return SpkResult(
            spk=spk,
            source="client_sequence" if matched else "client_random",
            provisional=True,
            notices=notices,
        )
