import logging
from datetime import date
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from orderdesk.api.deps import get_draft_store, get_erp_client, get_reference_data
from orderdesk.models.order import Notice, OrderDraft
from orderdesk.services.drafts import DraftCommand, DraftStore, apply_command, new_draft
from orderdesk.services.erp_client import ErpClient
from orderdesk.services.legacy import draft_from_order_record
from orderdesk.services.product_types import format_product_types
from orderdesk.services.reference import ReferenceData
from orderdesk.services.spk import SpkGenerator
from orderdesk.services.submission import (
    HOUSE_FABRIC_ORIGIN,
    build_order_payload,
    resolve_fabric_origin_id,
    submit_draft,
    validate_draft,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class DraftView(BaseModel):
    draft_id: str
    draft: OrderDraft
    product_types: str
    notes: str
    notices: List[Notice] = Field(default_factory=list)


class ImportRequest(BaseModel):
    record: Dict[str, Any]


def _view(draft_id: str, draft: OrderDraft, notices=()) -> DraftView:
    return DraftView(
        draft_id=draft_id,
        draft=draft,
        product_types=format_product_types(draft.products),
        notes=draft.notes.render(),
        notices=list(notices),
    )


def _load(store: DraftStore, draft_id: str) -> OrderDraft:
    draft = store.get(draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="draft not found")
    return draft


@router.post("", response_model=DraftView, status_code=201)
def open_draft(client: ErpClient = Depends(get_erp_client), store: DraftStore = Depends(get_draft_store)):
    """Start a blank order form with a fresh SPK number."""
    generator = SpkGenerator(client)
    notices = generator.refresh_known_spks()
    spk = generator.generate()
    draft = new_draft(date.today(), spk)
    draft_id = store.add(draft)
    return _view(draft_id, draft, notices + spk.notices)


@router.post("/import", response_model=DraftView, status_code=201)
def import_draft(req: ImportRequest, store: DraftStore = Depends(get_draft_store)):
    """Open a stored ERP order record for editing."""
    try:
        draft = draft_from_order_record(req.record)
    except ValidationError as e:
        logger.warning("Rejected order record import: %s", e)
        raise HTTPException(status_code=422, detail=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()])
    draft_id = store.add(draft)
    return _view(draft_id, draft)


@router.get("/{draft_id}", response_model=DraftView)
def get_draft(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    return _view(draft_id, _load(store, draft_id))


@router.post("/{draft_id}/commands", response_model=DraftView)
def run_command(draft_id: str, command: DraftCommand, store: DraftStore = Depends(get_draft_store)):
    try:
        draft = store.update(draft_id, lambda current: apply_command(current, command))
    except ValidationError as e:
        logger.info("Rejected %s on draft_id=%s", command.type, draft_id)
        raise HTTPException(status_code=422, detail=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()])
    if draft is None:
        raise HTTPException(status_code=404, detail="draft not found")
    return _view(draft_id, draft)


@router.get("/{draft_id}/payload")
def preview_payload(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    """The order body that submit would send, without sending it."""
    draft = _load(store, draft_id)
    return build_order_payload(draft, resolve_fabric_origin_id(draft))


@router.post("/{draft_id}/submit")
def submit(
    draft_id: str,
    client: ErpClient = Depends(get_erp_client),
    ref: ReferenceData = Depends(get_reference_data),
    store: DraftStore = Depends(get_draft_store),
):
    draft = _load(store, draft_id)
    errors = validate_draft(draft)
    if errors:
        return JSONResponse({"errors": errors}, status_code=422)

    customers, notices = [], []
    if draft.fabric_origin == HOUSE_FABRIC_ORIGIN and not draft.fabric_origin_id:
        customers, notices = ref.customers()

    result = submit_draft(client, draft, customers)
    result.notices = notices + result.notices
    if not result.ok:
        return JSONResponse(result.model_dump(mode="json"), status_code=502)

    store.discard(draft_id)
    return JSONResponse(result.model_dump(mode="json"), status_code=201)


@router.delete("/{draft_id}", status_code=204)
def discard_draft(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    if not store.discard(draft_id):
        raise HTTPException(status_code=404, detail="draft not found")
