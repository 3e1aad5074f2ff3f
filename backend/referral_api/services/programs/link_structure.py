from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...models.enums import LinkStructure

DEFAULT_SHORT_DOMAIN = "refer.partnerlinks.io"
DEFAULT_SITE = "partnerlinks.io"
EXAMPLE_KEY = "steven"

_COMING_SOON = frozenset({LinkStructure.query, LinkStructure.path})


@dataclass(frozen=True)
class LinkStructureOption:
    id: LinkStructure
    label: str
    example: str
    coming_soon: bool = False


def pretty_url(url: Optional[str]) -> str:
    """``https://www.acme.com/`` -> ``acme.com``."""
    value = (url or "").strip()
    for prefix in ("https://", "http://"):
        if value.startswith(prefix):
            value = value[len(prefix):]
            break
    if value.startswith("www."):
        value = value[4:]
    return value.rstrip("/")


def is_link_structure_available(structure: LinkStructure | str) -> bool:
    try:
        return LinkStructure(structure) not in _COMING_SOON
    except ValueError:
        return False


def get_link_structure_options(domain: Optional[str] = None, url: Optional[str] = None) -> list[LinkStructureOption]:
    """Link naming strategies a program can pick, with examples for its domain/url."""
    short_domain = (domain or "").strip() or DEFAULT_SHORT_DOMAIN
    site = pretty_url(url) or DEFAULT_SITE
    return [
        LinkStructureOption(
            id=LinkStructure.short,
            label="Short link",
            example=f"{short_domain}/{EXAMPLE_KEY}",
            coming_soon=LinkStructure.short in _COMING_SOON,
        ),
        LinkStructureOption(
            id=LinkStructure.query,
            label="Query parameter",
            example=f"{site}?via={EXAMPLE_KEY}",
            coming_soon=LinkStructure.query in _COMING_SOON,
        ),
        LinkStructureOption(
            id=LinkStructure.path,
            label="Dynamic path",
            example=f"{site}/refer/{EXAMPLE_KEY}",
            coming_soon=LinkStructure.path in _COMING_SOON,
        ),
    ]
