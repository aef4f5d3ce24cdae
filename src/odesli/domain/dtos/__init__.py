"""
Data Transfer Objects returned by the client.

Hey future me - these are dumb data carriers! No network, no validation beyond shape.
LinkResult is what a successful lookup returns, BatchSuccess/BatchFailure is what
a batch returns per input URL.

Flow: upstream JSON -> normalize_response() -> LinkResult -> (plugin transformers) -> caller
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal


@dataclass(frozen=True)
class PlatformLink:
    """Link to one entity on one platform."""

    url: str
    entity_unique_id: str | None = None
    native_app_uri_mobile: str | None = None
    native_app_uri_desktop: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlatformLink":
        """Build from an upstream `linksByPlatform` value."""
        return cls(
            url=data.get("url", ""),
            entity_unique_id=data.get("entityUniqueId"),
            native_app_uri_mobile=data.get("nativeAppUriMobile"),
            native_app_uri_desktop=data.get("nativeAppUriDesktop"),
        )


@dataclass(frozen=True)
class EntityData:
    """One platform-specific representation of a song or album.

    `artist_name` is already split into a list ("A1, A2" -> ["A1", "A2"]).
    """

    id: str | None
    type: str | None
    title: str | None = None
    artist_name: list[str] | None = None
    thumbnail_url: str | None = None
    thumbnail_width: int | None = None
    thumbnail_height: int | None = None
    api_provider: str | None = None
    platforms: list[str] = field(default_factory=list)


# Hey future me - `raw` is a copy of the upstream document exactly as received, so
# nothing the service sends is lost, even fields we don't model here.
@dataclass(frozen=True)
class LinkResult:
    """Canonical result of a successful lookup."""

    entity_unique_id: str
    entities_by_unique_id: dict[str, EntityData]
    links_by_platform: dict[str, PlatformLink]
    id: str | None
    title: str | None
    artist: list[str] | None
    type: str | None
    thumbnail: str | None
    page_url: str | None = None
    user_country: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    def url_for(self, platform: str) -> str | None:
        """Get the link for a platform, or None if the service found no match there."""
        link = self.links_by_platform.get(platform)
        return link.url if link else None


@dataclass(frozen=True)
class BatchSuccess:
    """Successful batch item."""

    url: str
    result: LinkResult | dict[str, Any]
    success: Literal[True] = True


@dataclass(frozen=True)
class BatchFailure:
    """Failed batch item with enough context to decide about a retry."""

    url: str
    error: str
    error_kind: str
    retryable: bool
    suggestion: str
    platform: str | None = None
    extracted_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    success: Literal[False] = False


BatchItemResult = BatchSuccess | BatchFailure


__all__ = [
    "BatchFailure",
    "BatchItemResult",
    "BatchSuccess",
    "EntityData",
    "LinkResult",
    "PlatformLink",
]
