from orderdesk.services.drafts import DraftStore
from orderdesk.services.erp_client import ErpClient
from orderdesk.services.reference import ReferenceData

_draft_store = DraftStore()


def get_erp_client() -> ErpClient:
    return ErpClient()


def get_draft_store() -> DraftStore:
    return _draft_store


def get_reference_data() -> ReferenceData:
    return ReferenceData(get_erp_client())
