"""AnalysisTask record and outcome enum for the dispatcher."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from hyperdrafter.services.cancellation import CancellationToken


class AnalysisOutcome(str, Enum):
    """How a single dispatch ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISCARDED = "discarded"  # Content changed during the round trip
    FAILED = "failed"
    SKIPPED = "skipped"  # Content already analyzed, or moved on before dispatch
    CLEARED = "cleared"  # Paragraph empty or missing


@dataclass
class AnalysisTask:
    """In-flight analysis for one paragraph."""
    paragraph_id: str
    snapshot_content: str
    cancellation_token: CancellationToken
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    call: Optional[asyncio.Task] = None  # Remote call; cancelled to interrupt I/O

    def cancel(self, reason: str) -> None:
        self.cancellation_token.cancel(reason)
        if self.call is not None and not self.call.done():
            self.call.cancel()
