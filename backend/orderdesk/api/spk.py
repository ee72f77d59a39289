from fastapi import APIRouter, Depends

from orderdesk.api.deps import get_erp_client
from orderdesk.services.erp_client import ErpClient
from orderdesk.services.spk import SpkGenerator, SpkResult

router = APIRouter()


@router.get("/next", response_model=SpkResult)
def next_spk(client: ErpClient = Depends(get_erp_client)) -> SpkResult:
    """Next SPK number. Check ``provisional`` before showing it as final."""
    return SpkGenerator(client).generate()
