from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from orderdesk.api.deps import get_reference_data
from orderdesk.services.reference import ReferenceData

router = APIRouter()


def _listing(result) -> Dict[str, Any]:
    items, notices = result
    return {"items": items, "notices": notices}


@router.get("/customers")
def customers(ref: ReferenceData = Depends(get_reference_data)):
    return _listing(ref.customers())


@router.get("/fabrics")
def fabrics(customer_id: Optional[str] = Query(None, alias="customerId"), ref: ReferenceData = Depends(get_reference_data)):
    return _listing(ref.fabrics(customer_id))


@router.get("/paper-gsm")
def paper_gsm(ref: ReferenceData = Depends(get_reference_data)):
    return _listing(ref.paper_gsm())


@router.get("/paper-widths")
def paper_widths(gsm: Optional[str] = None, ref: ReferenceData = Depends(get_reference_data)):
    return _listing(ref.paper_widths(gsm))


@router.get("/repeat-orders")
def repeat_orders(customer_id: Optional[str] = Query(None, alias="customerId"), ref: ReferenceData = Depends(get_reference_data)):
    return _listing(ref.repeat_orders(customer_id))
