"""Normalization of upstream lookup documents into LinkResult."""

import copy
import logging
from typing import Any

from odesli.domain.dtos import EntityData, LinkResult, PlatformLink

logger = logging.getLogger(__name__)

ARTIST_SEPARATOR = ", "


def split_artists(artist_name: Any) -> list[str] | None:
    """Split "A1, A2" into ["A1", "A2"]. Lists pass through, anything else is None."""
    if isinstance(artist_name, str):
        return artist_name.split(ARTIST_SEPARATOR) if artist_name else []
    if isinstance(artist_name, list):
        return list(artist_name)
    return None


def _convert_entity(data: dict[str, Any]) -> EntityData:
    return EntityData(
        id=data.get("id"),
        type=data.get("type"),
        title=data.get("title"),
        artist_name=split_artists(data.get("artistName")),
        thumbnail_url=data.get("thumbnailUrl"),
        thumbnail_width=data.get("thumbnailWidth"),
        thumbnail_height=data.get("thumbnailHeight"),
        api_provider=data.get("apiProvider"),
        platforms=list(data.get("platforms") or []),
    )


# Hey future me - the document may come straight out of the response cache. It is
# NEVER mutated here, cache hits must see the same artistName strings as the first call.
def normalize_response(document: dict[str, Any] | None) -> LinkResult | dict[str, Any]:
    """Convert an upstream document into a LinkResult.

    Every entity's comma-separated `artistName` becomes a list, and id, title,
    artist, type and thumbnail are hoisted from the entity named by
    `entityUniqueId`.

    Args:
        document: Parsed upstream JSON, or None when the service found no match

    Returns:
        LinkResult, or the document unchanged (`{}` for None) when it does not
        name a resolvable primary entity
    """
    if not document:
        return {}

    entity_unique_id = document.get("entityUniqueId")
    raw_entities = document.get("entitiesByUniqueId")
    if (
        not entity_unique_id
        or not isinstance(raw_entities, dict)
        or not isinstance(raw_entities.get(entity_unique_id), dict)
    ):
        logger.debug("Lookup document without resolvable entity, passing through")
        return document

    entities = {
        key: _convert_entity(value)
        for key, value in raw_entities.items()
        if isinstance(value, dict)
    }
    links = {
        platform: PlatformLink.from_dict(value)
        for platform, value in (document.get("linksByPlatform") or {}).items()
        if isinstance(value, dict)
    }
    primary = entities[entity_unique_id]

    return LinkResult(
        entity_unique_id=entity_unique_id,
        entities_by_unique_id=entities,
        links_by_platform=links,
        id=primary.id,
        title=primary.title,
        artist=primary.artist_name,
        type=primary.type,
        thumbnail=primary.thumbnail_url,
        page_url=document.get("pageUrl"),
        user_country=document.get("userCountry"),
        raw=copy.deepcopy(document),
    )
