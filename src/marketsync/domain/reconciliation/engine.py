"""Reconciliation engine: drift queries, single-item predicates and views."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from marketsync.domain.model import Classification
from marketsync.domain.ports.persistence import ItemQuery
from marketsync.domain.time_windows import utcnow

from .plan import ItemDecision, decide, prioritise
from .rules import classify, matches

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

    from marketsync.domain.model import ItemPair
    from marketsync.domain.policy import SyncPolicy
    from marketsync.domain.ports.persistence import MirrorItemRepository
    from marketsync.domain.time_windows import Clock

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DecisionPage:
    """One keyset page of a classification query, confirmed by the pure predicates."""

    decisions: tuple[ItemDecision, ...]
    missing: tuple[str, ...] = field(default_factory=tuple)
    next_after: str | None = None


class ReconciliationEngine:
    """Classifies source/mirror pairs and orders the corrective actions."""

    def __init__(self, *, policy: SyncPolicy, clock: Clock = utcnow) -> None:
        self._policy = policy
        self._clock = clock

    @property
    def policy(self) -> SyncPolicy:
        return self._policy

    def now(self) -> datetime:
        return self._clock()

    def evaluate(self, pair: ItemPair, *, now: datetime | None = None) -> ItemDecision:
        moment = now or self._clock()
        return decide(pair, classify(pair, now=moment, policy=self._policy))

    def matches(
        self,
        pair: ItemPair,
        classification: Classification,
        *,
        now: datetime | None = None,
    ) -> bool:
        return matches(pair, classification, now=now or self._clock(), policy=self._policy)

    def page(
        self,
        repository: MirrorItemRepository,
        classification: Classification,
        *,
        now: datetime,
        after: str | None = None,
        limit: int | None = None,
    ) -> DecisionPage:
        """Fetch and confirm one page of items currently matching ``classification``."""

        page_size = limit or self._policy.batch_size
        pairs = repository.find_pairs(
            ItemQuery(
                classification=classification,
                now=now,
                policy=self._policy,
                after=after,
                limit=page_size,
            )
        )
        decisions: list[ItemDecision] = []
        missing: list[str] = []
        for pair in pairs:
            if pair.source is None:
                missing.append(pair.item_id)
                continue
            found = classify(pair, now=now, policy=self._policy)
            if classification in found:
                decisions.append(decide(pair, found))

        next_after = pairs[-1].item_id if len(pairs) >= page_size else None
        return DecisionPage(
            decisions=tuple(prioritise(decisions)),
            missing=tuple(missing),
            next_after=next_after,
        )

    def iter_matching(
        self,
        repository: MirrorItemRepository,
        classification: Classification,
        *,
        now: datetime | None = None,
    ) -> Iterator[ItemDecision]:
        """Enumerate every item matching ``classification`` (read-only views)."""

        moment = now or self._clock()
        after: str | None = None
        while True:
            current = self.page(repository, classification, now=moment, after=after)
            yield from current.decisions
            if current.next_after is None:
                return
            after = current.next_after

    def overview(
        self,
        repository: MirrorItemRepository,
        *,
        now: datetime | None = None,
    ) -> dict[Classification, int]:
        """Count of items per classification, for status dashboards."""

        moment = now or self._clock()
        counts: dict[Classification, int] = {}
        for classification in Classification:
            counts[classification] = sum(
                1 for _ in self.iter_matching(repository, classification, now=moment)
            )
        log.debug("Status overview: %s", counts)
        return counts

    def recently_changed(
        self,
        repository: MirrorItemRepository,
        *,
        now: datetime | None = None,
    ) -> list[ItemDecision]:
        """Listed items whose source changed within the recent-change window."""

        moment = now or self._clock()
        cutoff = moment - self._policy.recent_change_window
        return [
            decision
            for decision in self.iter_matching(
                repository, Classification.CONTENT_STALE, now=moment
            )
            if decision.pair.source is not None and decision.pair.source.updated >= cutoff
        ]

    def stale_out_of_stock(
        self,
        repository: MirrorItemRepository,
        *,
        now: datetime | None = None,
    ) -> list[ItemDecision]:
        """Listed items that have been out of stock for longer than the stale age."""

        moment = now or self._clock()
        cutoff = moment - self._policy.stale_out_of_stock_age
        return [
            decision
            for decision in self.iter_matching(
                repository, Classification.STALE_UNAVAILABLE, now=moment
            )
            if decision.pair.source is not None
            and decision.pair.source.quantity <= 0
            and decision.pair.source.updated <= cutoff
        ]
