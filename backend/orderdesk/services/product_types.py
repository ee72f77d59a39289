import logging
import re
from typing import Iterable, Mapping, Optional, Union

from orderdesk.models.order import DtfPass, OrderNotes, ProductSelection, ProductType

logger = logging.getLogger(__name__)

_BRACKETED_RE = re.compile(r"\[[^\]]+\]")

TypesLike = Union[ProductSelection, Mapping[str, bool], Iterable[Union[str, ProductType]], None]


def _selected(types: TypesLike) -> list:
    """Selected product types in canonical order, unknown names dropped."""
    if types is None:
        return []
    if isinstance(types, ProductSelection):
        return list(types.types)
    if isinstance(types, Mapping):
        names = {str(k).upper() for k, v in types.items() if v}
    else:
        names = {ProductType(t).value if isinstance(t, ProductType) else str(t).upper() for t in types}
    return [t for t in ProductType if t.value in names]


def _pass_label(dtf_pass) -> Optional[str]:
    if dtf_pass is None or dtf_pass == "":
        return None
    return dtf_pass.value if isinstance(dtf_pass, DtfPass) else str(dtf_pass)


def format_product_types(types: TypesLike, dtf_pass=None) -> str:
    """Human-readable product-type label.

    ``{PRINT}`` -> ``"PRINT ONLY"``, ``{DTF}`` + 4 PASS -> ``"DTF (4 PASS)"``,
    ``{PRINT, PRESS}`` -> ``"PRINT, PRESS"``, nothing -> ``""``.
    """
    if isinstance(types, ProductSelection) and dtf_pass is None:
        dtf_pass = types.dtf_pass
    selected = _selected(types)
    if not selected:
        return ""

    label = _pass_label(dtf_pass)
    names = [
        f"DTF ({label})" if t is ProductType.DTF and label else t.value
        for t in selected
    ]
    if len(selected) == 1 and selected[0] is not ProductType.DTF:
        return f"{names[0]} ONLY"
    return ", ".join(names)


def update_notes_with_product_types(current_notes: Optional[str], types: TypesLike, dtf_pass=None) -> str:
    """Replace the bracketed product-type annotation in a legacy notes string.

    Every ``[...]`` group is stripped before the new one is appended, so
    applying this twice gives the same result as applying it once.
    """
    current_notes = current_notes or ""
    formatted = format_product_types(types, dtf_pass)
    if not formatted:
        return current_notes
    cleaned = _BRACKETED_RE.sub("", current_notes).strip()
    return f"{cleaned}\n[{formatted}]" if cleaned else f"[{formatted}]"


def toggle_product_type(selection: ProductSelection, product_type, checked: bool) -> ProductSelection:
    """Check or uncheck one product type.

    DTF excludes every other type: checking DTF clears the rest and
    defaults the pass count, checking anything else clears DTF and its pass.
    """
    product_type = ProductType(product_type)
    current = set(selection.types)

    if not checked:
        current.discard(product_type)
        return selection.model_copy(update={"types": _ordered(current)})

    if product_type is ProductType.DTF:
        return ProductSelection(types=(ProductType.DTF,), dtf_pass=selection.dtf_pass or DtfPass.FOUR)

    current.discard(ProductType.DTF)
    current.add(product_type)
    return ProductSelection(types=_ordered(current), dtf_pass=None)


def set_dtf_pass(selection: ProductSelection, dtf_pass) -> ProductSelection:
    return selection.model_copy(update={"dtf_pass": DtfPass(dtf_pass)})


def parse_product_list(value: Optional[str]) -> ProductSelection:
    """Read a stored ``"PRINT, PRESS"`` style list back into a selection."""
    names = {p.strip().upper() for p in (value or "").split(",") if p.strip()}
    known = [t for t in ProductType if t.value in names]
    unknown = names - {t.value for t in known}
    if unknown:
        logger.debug("Ignoring unknown product types: %s", sorted(unknown))
    return ProductSelection(types=tuple(known))


def annotate_notes(notes: OrderNotes, selection: ProductSelection) -> OrderNotes:
    """Refresh the system annotation; user text is left as is."""
    return notes.model_copy(update={"annotation": format_product_types(selection)})


def _ordered(types) -> tuple:
    return tuple(t for t in ProductType if t in types)
