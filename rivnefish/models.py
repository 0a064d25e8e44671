"""Data models for rivnefish.com catalog records.

Raw upstream payloads are validated with pydantic; anything the bot keeps in
memory is a frozen dataclass so it can be handed out of the state lock by
value.
"""
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PlaceRaw(BaseModel):
    """Item of the `/places` listing."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str


class PlaceInfoRaw(BaseModel):
    """Detailed `/places/<id>` record."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    url: str
    description: str = ""
    rating_avg: Optional[str] = None
    rating_votes: Optional[int] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    thumbnail: Optional[str] = None
    permit: Optional[str] = None  # "free", "paid"
    area: Optional[str] = None
    time_to_fish: Optional[str] = None  # "full_day", "day_only"
    price_notes: Optional[str] = None


class FishRaw(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str


class ReportRaw(BaseModel):
    """Item of the paged `/reports` listing."""
    model_config = ConfigDict(extra="ignore")

    id: int
    place_id: int
    title: str = ""
    url: str
    description: str = ""
    fish: list[int] = Field(default_factory=list)
    photos: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class Place:
    id: int
    name: str


@dataclass(frozen=True)
class FishKind:
    id: int
    name: str


@dataclass(frozen=True)
class PlaceInfo:
    """Display-ready view of a fishing place."""
    id: int
    name: str
    url: str
    thumbnail: str
    payment_str: str
    rating_str: str
    votes: int
    area_str: Optional[str]
    hours_str: Optional[str]
    contact_str: Optional[str]
    desc: str
    desc_short: str


@dataclass(frozen=True)
class Report:
    id: int
    place_id: int
    title: str
    url: str
    description: str
    fish_ids: tuple[int, ...] = field(default_factory=tuple)
    photos: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_raw(cls, raw: ReportRaw) -> "Report":
        return cls(
            id=raw.id,
            place_id=raw.place_id,
            title=raw.title,
            url=raw.url,
            description=raw.description,
            fish_ids=tuple(raw.fish),
            photos=tuple(raw.photos),
        )
