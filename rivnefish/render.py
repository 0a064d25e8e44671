"""HTML message bodies for places and fishing reports (Telegram HTML mode)."""
from html import escape
from typing import Mapping, Optional

from .constants import DESC_LENGTH, REPORTS_LABEL
from .models import FishKind, PlaceInfo, Report
from .places import short_description


def place_text(place: PlaceInfo) -> str:
    """Message body sent when a user picks a place from inline results.

    The invisible link right after the name makes Telegram show the thumbnail
    as the link preview.
    """
    area = f"&#x25FB;{escape(place.area_str)} " if place.area_str else ""
    hours = f"&#x23F0;{escape(place.hours_str)}" if place.hours_str else ""
    contact = f"&#x1F4DE;{escape(place.contact_str)}" if place.contact_str else ""
    return (
        f'<b>{escape(place.name)}</b><a href="{escape(place.thumbnail)}">&#160;</a>\n'
        f"<i>{escape(place.payment_str)}</i>\n"
        f'&#x2B50;{escape(place.rating_str)} '
        f'<a href="{escape(place.url)}/reports">({REPORTS_LABEL}: {place.votes})</a>\n'
        f"{area}{hours}\n"
        f"{contact}\n"
        f"\n"
        f"{escape(place.desc)}"
    )


def report_text(
    report: Report,
    place: Optional[PlaceInfo],
    fish: Mapping[int, FishKind],
) -> str:
    """Channel post announcing a fishing report."""
    lines = [f"<b>{escape(report.title)}</b>"]
    if place is not None:
        lines.append(f'&#x1F4CD;<a href="{escape(place.url)}">{escape(place.name)}</a>')
    caught = [fish[fid].name for fid in report.fish_ids if fid in fish]
    if caught:
        lines.append(f"&#x1F41F;{escape(', '.join(caught))}")
    if report.description:
        lines.append("")
        lines.append(escape(short_description(report.description, DESC_LENGTH)))
    return "\n".join(lines)
