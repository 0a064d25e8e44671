"""Normalization of upstream place records into display-ready PlaceInfo."""
from typing import Optional

from .constants import (
    AREA_UNIT,
    DESC_LENGTH,
    DESC_SHORT_LENGTH,
    ELLIPSIS,
    HOURS_LABELS,
    NO_RATING,
    PERMIT_LABELS,
    UA_PHONE_PREFIX,
)
from .models import PlaceInfo, PlaceInfoRaw


def short_description(text: str, size: int) -> str:
    """Cut `text` to `size` characters, marking the cut with an ellipsis."""
    if len(text) <= size:
        return text
    return text[:size] + ELLIPSIS


def _payment_str(permit: Optional[str], price_notes: Optional[str]) -> str:
    label = PERMIT_LABELS.get(permit or "")
    if label is None:
        return ""
    if price_notes:
        return f"{label}: {price_notes}"
    return label


def _contact_str(phone: Optional[str], name: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    if not name:
        return phone
    plus = "+" if phone.startswith(UA_PHONE_PREFIX) else ""
    return f"{plus}{phone} {name}"


def normalize_place_info(raw: PlaceInfoRaw) -> PlaceInfo:
    """Map a raw `/places/<id>` record onto PlaceInfo.

    Pure function: missing optional fields fall back to "" / "--" / 0, or to
    None for lines that are left out of the rendered text entirely.
    """
    return PlaceInfo(
        id=raw.id,
        name=raw.name,
        url=raw.url,
        thumbnail=raw.thumbnail or "",
        payment_str=_payment_str(raw.permit, raw.price_notes),
        rating_str=raw.rating_avg if raw.rating_avg is not None else NO_RATING,
        votes=raw.rating_votes or 0,
        area_str=f"{raw.area}{AREA_UNIT}" if raw.area is not None else None,
        hours_str=HOURS_LABELS.get(raw.time_to_fish or ""),
        contact_str=_contact_str(raw.contact_phone, raw.contact_name),
        desc=short_description(raw.description, DESC_LENGTH),
        desc_short=short_description(raw.description, DESC_SHORT_LENGTH),
    )
