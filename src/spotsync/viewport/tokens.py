"""
Cancellation tokens for viewport loads.

Every issued load gets a token with a monotonically increasing generation. The
coordinator cancels the previous token when it issues a new one, and both the
coordinator and the orchestrator check the token before applying any result, so a
slow, superseded load can never overwrite a newer one even if the transport ignores
the abort.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

CancelReason = Literal["superseded", "disposed", "too_wide"]


@dataclass(eq=False)
class CancellationToken:
    generation: int
    _reason: CancelReason | None = field(default=None, init=False, repr=False)

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> CancelReason | None:
        return self._reason

    @property
    def superseded(self) -> bool:
        """True when a newer load now owns the loading indicator."""
        return self._reason == "superseded"

    def cancel(self, reason: CancelReason = "superseded") -> None:
        if self._reason is None:
            self._reason = reason
