"""
Data structures describing catalog items and the jobs resolved from input URLs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Store(Enum):
    """The two catalogs an account can download from."""

    BEATPORT = "beatport"
    BEATSOURCE = "beatsource"

    @property
    def api_base(self) -> str:
        return f"https://api.{self.value}.com/v4/"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class ItemKind(Enum):
    """Kinds of catalog pages a URL can point to."""

    TRACK = "track"
    RELEASE = "release"
    PLAYLIST = "playlist"
    CHART = "chart"


@dataclass(frozen=True)
class CatalogURL:
    """A parsed store URL."""

    store: Store
    kind: ItemKind
    item_id: str
    url: str


@dataclass
class Job:
    """
    The work resolved from one input URL: a display name plus the raw track
    objects returned by the store, in listing order.
    """

    source: CatalogURL
    name: str
    tracks: list[dict[str, Any]] = field(default_factory=list)
    cover_url: str | None = None

    @property
    def store(self) -> Store:
        return self.source.store
