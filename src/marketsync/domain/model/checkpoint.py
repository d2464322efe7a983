"""Resumable progress markers for long remote pulls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class SyncCheckpoint:
    name: str
    cursor: str
    updated: datetime
