"""Per-run result summaries returned by every entry point."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Final

from marketsync.domain.errors import TransientRemoteError
from marketsync.domain.model import OutcomeStatus

MISSING: Final[str] = "missing"
AFFECTED_STATUSES: Final[frozenset[str]] = frozenset(
    {OutcomeStatus.SUCCEEDED, OutcomeStatus.RECOVERED, OutcomeStatus.ENDED}
)


@dataclass(frozen=True, slots=True)
class ItemError:
    record_id: str
    operation: str
    message: str
    transient: bool = False

    def __str__(self) -> str:
        kind = "transient" if self.transient else "error"
        return f"{self.operation} {self.record_id} [{kind}]: {self.message}"


@dataclass(slots=True)
class SyncReport:
    """Per-category counts plus the first few error details of one run."""

    operation: str
    max_errors: int = 10
    counts: Counter[str] = field(default_factory=Counter[str])
    errors: list[ItemError] = field(default_factory=list)

    @property
    def affected(self) -> int:
        return sum(count for key, count in self.counts.items() if key in AFFECTED_STATUSES)

    @property
    def failed(self) -> int:
        return self.counts[OutcomeStatus.FAILED]

    def record(self, status: OutcomeStatus | str, amount: int = 1) -> None:
        self.counts[str(status)] += amount

    def record_missing(self, record_id: str) -> None:
        """Count a record without its counterpart and keep its id among the details."""

        self.counts[MISSING] += 1
        self._detail(
            ItemError(
                record_id=record_id,
                operation=self.operation,
                message="missing counterpart",
            )
        )

    def record_failure(
        self,
        record_id: str,
        operation: str,
        message: str,
        *,
        transient: bool = False,
    ) -> None:
        self.counts[OutcomeStatus.FAILED] += 1
        self._detail(
            ItemError(
                record_id=record_id,
                operation=operation,
                message=message,
                transient=transient,
            )
        )

    def record_error(self, record_id: str, operation: str, error: Exception) -> None:
        self.record_failure(
            record_id,
            operation,
            str(error) or type(error).__name__,
            transient=isinstance(error, TransientRemoteError),
        )

    def _detail(self, error: ItemError) -> None:
        if len(self.errors) < self.max_errors:
            self.errors.append(error)

    def merge(self, other: SyncReport) -> None:
        self.counts.update(other.counts)
        room = self.max_errors - len(self.errors)
        if room > 0:
            self.errors.extend(other.errors[:room])

    def summary(self) -> str:
        parts = ", ".join(f"{key}={self.counts[key]}" for key in sorted(self.counts))
        return f"{self.operation}: affected={self.affected}" + (f" ({parts})" if parts else "")
