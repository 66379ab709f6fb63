"""Models for the upstream experiences payload.

Records are validated leniently: a field of the wrong shape is read as absent
instead of failing the whole payload, so one odd record cannot break a feed.
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _text_or_none(value: Any) -> Any:
    """Keep strings and numbers, read anything else as missing."""
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return value
    return None


def _mapping_or_none(value: Any) -> Any:
    return value if isinstance(value, (dict, BaseModel)) else None


class _Upstream(BaseModel):
    """Lenient base: unknown fields are ignored and numbers coerce to text."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, populate_by_name=True)


class LocalizedText(_Upstream):
    en: Optional[str] = None
    fr: Optional[str] = None
    de: Optional[str] = None

    @field_validator("en", "fr", "de", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return _text_or_none(value)

    def resolve(self, fallback: str = "") -> str:
        """Return the first non-empty translation in en, fr, de order."""
        return self.en or self.fr or self.de or fallback


class DateRange(_Upstream):
    start: Optional[str] = Field(default=None, alias="from")

    @field_validator("start", mode="before")
    @classmethod
    def start_text(cls, value: Any) -> Any:
        # Anything but a string cannot be an ISO timestamp
        return value if isinstance(value, str) else None


class Address(_Upstream):
    number: Optional[str] = None
    street: Optional[str] = None
    postcode: Optional[str] = None
    town: Optional[str] = None
    country: Optional[str] = None

    @field_validator("number", "street", "postcode", "town", "country", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return _text_or_none(value)


class Location(_Upstream):
    address: Optional[Address] = None

    @field_validator("address", mode="before")
    @classmethod
    def object_fields(cls, value: Any) -> Any:
        return _mapping_or_none(value)


class Venue(_Upstream):
    location: Optional[Location] = None

    @field_validator("location", mode="before")
    @classmethod
    def object_fields(cls, value: Any) -> Any:
        return _mapping_or_none(value)


class Media(_Upstream):
    url: Optional[str] = None

    @field_validator("url", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return _text_or_none(value)


class Previews(_Upstream):
    media: Optional[Media] = None

    @field_validator("media", mode="before")
    @classmethod
    def object_fields(cls, value: Any) -> Any:
        return _mapping_or_none(value)


class Picture(_Upstream):
    previews: Optional[Previews] = None
    alt: Optional[str] = None

    @field_validator("previews", mode="before")
    @classmethod
    def object_fields(cls, value: Any) -> Any:
        return _mapping_or_none(value)

    @field_validator("alt", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return _text_or_none(value)


class Event(_Upstream):
    """A single experience record as returned by the events API."""

    id: str
    title: Optional[LocalizedText] = None
    description: Optional[LocalizedText] = None
    # Entries keep their position so "first" still means the first upstream entry
    dates: Optional[List[Optional[DateRange]]] = None
    venues: Optional[List[Optional[Venue]]] = None
    pictures: Optional[List[Optional[Picture]]] = None
    categories: Optional[List[Optional[str]]] = None
    tags: Optional[List[Optional[str]]] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def localized_fields(cls, value: Any) -> Any:
        return _mapping_or_none(value)

    @field_validator("dates", "venues", "pictures", mode="before")
    @classmethod
    def object_lists(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        return [_mapping_or_none(entry) for entry in value]

    @field_validator("categories", "tags", mode="before")
    @classmethod
    def text_lists(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        return [_text_or_none(entry) for entry in value]

    def display_title(self) -> str:
        return (self.title or LocalizedText()).resolve("Event")

    def display_description(self) -> str:
        return (self.description or LocalizedText()).resolve("")

    def first_start(self) -> Optional[str]:
        """Raw start instant of the first date range, if any."""
        if self.dates and self.dates[0] is not None:
            return self.dates[0].start
        return None

    def first_address(self) -> Optional[Address]:
        venue = self.venues[0] if self.venues else None
        if venue and venue.location:
            return venue.location.address
        return None

    def first_image_url(self) -> str:
        picture = self.pictures[0] if self.pictures else None
        if picture and picture.previews and picture.previews.media:
            return picture.previews.media.url or ""
        return ""


class ExperiencesPayload(_Upstream):
    records: List[Event]
