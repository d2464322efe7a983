from __future__ import annotations

from marketsync.domain.errors import PermanentRemoteError, TransientRemoteError
from marketsync.domain.model import OutcomeStatus
from marketsync.domain.reporting import SyncReport


def test_affected_counts_only_changes() -> None:
    report = SyncReport(operation="quantities")
    report.record(OutcomeStatus.SUCCEEDED, 3)
    report.record(OutcomeStatus.ENDED)
    report.record(OutcomeStatus.UNCHANGED, 5)
    report.record_missing("SC-9")

    assert report.affected == 4
    assert report.counts["missing"] == 1
    assert report.summary().startswith("quantities: affected=4")


def test_error_details_are_capped() -> None:
    report = SyncReport(operation="oversold", max_errors=2)
    for index in range(4):
        report.record_error(f"SC-{index}", "oversold", TransientRemoteError("503", operation="x"))

    assert report.failed == 4
    assert len(report.errors) == 2
    assert report.errors[0].transient


def test_merge_combines_counts_and_errors() -> None:
    first = SyncReport(operation="content-updates", max_errors=2)
    first.record(OutcomeStatus.SUCCEEDED)
    second = SyncReport(operation="content-updates")
    second.record_error("SC-1", "update", PermanentRemoteError("bad", operation="update"))
    second.record_error("SC-2", "update", PermanentRemoteError("bad", operation="update"))
    second.record_error("SC-3", "update", PermanentRemoteError("bad", operation="update"))

    first.merge(second)

    assert first.affected == 1
    assert first.failed == 3
    assert [error.record_id for error in first.errors] == ["SC-1", "SC-2"]
    assert "update SC-1 [error]" in str(first.errors[0])


def test_missing_counterparts_keep_their_ids() -> None:
    report = SyncReport(operation="end-stale", max_errors=2)
    for item_id in ("SC-7", "SC-8", "SC-9"):
        report.record_missing(item_id)

    assert report.counts["missing"] == 3
    assert report.failed == 0
    assert [error.record_id for error in report.errors] == ["SC-7", "SC-8"]
    assert str(report.errors[0]) == "end-stale SC-7 [error]: missing counterpart"
