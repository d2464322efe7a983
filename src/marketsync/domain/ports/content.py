"""Ports for collaborators that produce listing content."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from decimal import Decimal

    from marketsync.domain.model import SourceItem
    from marketsync.domain.ports.marketplace import ListingDraft


@runtime_checkable
class ImageLookup(Protocol):
    """Discover public picture URLs for a catalog item."""

    def __call__(self, item: SourceItem) -> Sequence[str]: ...


@runtime_checkable
class ListingContent(Protocol):
    """Build marketplace payloads (title, description, category, tax) for an item."""

    def image_urls(self, item: SourceItem) -> Sequence[str]: ...

    def build_draft(
        self,
        item: SourceItem,
        *,
        quantity: int,
        price: Decimal,
        images: Sequence[str],
    ) -> ListingDraft: ...
