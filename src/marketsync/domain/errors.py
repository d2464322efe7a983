"""Error taxonomy shared by the reconciliation services and remote adapters."""

from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for errors raised while reconciling a single record."""


class RemoteError(SyncError):
    """A marketplace call did not return a structured success payload."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        status_code: int | None = None,
        error_ids: tuple[int, ...] = (),
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code
        self.error_ids = error_ids

    def __str__(self) -> str:
        status = f" (HTTP {self.status_code})" if self.status_code is not None else ""
        return f"{self.operation}{status}: {self.args[0]}"


class TransientRemoteError(RemoteError):
    """Network failure, timeout, throttling or a server-side error; retry next cycle."""


class PermanentRemoteError(RemoteError):
    """The marketplace rejected the request; repeating it verbatim will fail again."""


class InvalidQuantityError(PermanentRemoteError):
    """The marketplace rejected an availability quantity."""


class RemoteAuthError(PermanentRemoteError):
    """Credentials were rejected or lack the required scope."""


class MissingCounterpartError(SyncError):
    """A mirror row references a source record that no longer exists."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Mirror row references missing source item {item_id}")
        self.item_id = item_id
