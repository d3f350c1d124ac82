"""Cooperative cancellation tokens for in-flight analyses."""

from typing import Callable, List, Optional

from hyperdrafter.services.exceptions import AnalysisCancelledError


class CancellationToken:
    """
    Cancellation context passed into remote calls.

    Cancelling a token runs its callbacks once, in registration order.

    Example:
        >>> caller = CancellationToken()
        >>> token = CancellationToken.combine(caller)
        >>> caller.cancel("shutdown")
        >>> token.reason
        'shutdown'
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Optional[str] = None
        self._callbacks: List[Callable[[str], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel the token. Subsequent calls are no-ops."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(reason)

    def add_callback(self, callback: Callable[[str], None]) -> None:
        """Register a callback for cancellation (runs immediately if already cancelled)."""
        if self._cancelled:
            callback(self._reason or "cancelled")
        else:
            self._callbacks.append(callback)

    @classmethod
    def combine(cls, *tokens: Optional["CancellationToken"]) -> "CancellationToken":
        """Create a token cancelled by whichever of the given tokens fires first."""
        combined = cls()
        for token in tokens:
            if token is not None:
                token.add_callback(combined.cancel)
        return combined

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            AnalysisCancelledError: If the token has been cancelled
        """
        if self._cancelled:
            raise AnalysisCancelledError(self._reason or "cancelled")
