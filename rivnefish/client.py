"""Async client for the rivnefish.com REST API.

Every fetch degrades instead of raising: network, HTTP status and parse
errors are logged and turned into an empty list or None, so callers never
need their own error handling for upstream trouble.
"""
import logging
from typing import Any, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from .constants import (
    DEFAULT_API_URL,
    FISH_PATH,
    HTTP_TIMEOUT_SECONDS,
    MAX_REPORT_PAGES,
    PLACES_PATH,
    REPORTS_PATH,
)
from .models import (
    FishKind,
    FishRaw,
    Place,
    PlaceInfo,
    PlaceInfoRaw,
    PlaceRaw,
    Report,
    ReportRaw,
)
from .places import normalize_place_info

logger = logging.getLogger(__name__)

_PLACES = TypeAdapter(list[PlaceRaw])
_FISH = TypeAdapter(list[FishRaw])
_REPORTS = TypeAdapter(list[ReportRaw])


class RfApi:
    """Catalog source backed by rivnefish.com."""

    def __init__(self, base_url: str = DEFAULT_API_URL, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"Error fetching rivnefish {path}: {e}")
        except ValueError as e:
            logger.error(f"Error decoding rivnefish {path}: {e}")
        return None

    async def fetch_all_places(self) -> list[Place]:
        data = await self._get_json(PLACES_PATH)
        if data is None:
            return []
        try:
            return [Place(id=p.id, name=p.name) for p in _PLACES.validate_python(data)]
        except ValidationError as e:
            logger.error(f"Error parsing rivnefish places: {e}")
            return []

    async def fetch_place_info(self, place_id: int) -> Optional[PlaceInfo]:
        data = await self._get_json(f"{PLACES_PATH}/{place_id}")
        if data is None:
            return None
        try:
            return normalize_place_info(PlaceInfoRaw.model_validate(data))
        except ValidationError as e:
            logger.error(f"Error parsing rivnefish place {place_id}: {e}")
            return None

    async def fetch_all_fish(self) -> list[FishKind]:
        data = await self._get_json(FISH_PATH)
        if data is None:
            return []
        try:
            return [FishKind(id=f.id, name=f.name) for f in _FISH.validate_python(data)]
        except ValidationError as e:
            logger.error(f"Error parsing rivnefish fish list: {e}")
            return []

    async def fetch_report(self, report_id: int) -> Optional[Report]:
        """Find a report by walking the numbered report pages.

        Stops at the first page containing the report, at an empty or broken
        page, or after MAX_REPORT_PAGES pages.
        """
        for page in range(1, MAX_REPORT_PAGES + 1):
            data = await self._get_json(REPORTS_PATH, params={"page": page})
            if data is None:
                return None
            try:
                reports = _REPORTS.validate_python(data)
            except ValidationError as e:
                logger.error(f"Error parsing rivnefish reports page {page}: {e}")
                return None
            if not reports:
                break
            for raw in reports:
                if raw.id == report_id:
                    return Report.from_raw(raw)
        logger.warning(f"Report {report_id} not found on rivnefish")
        return None
