"""Cooperative cancellation for pipeline runs and merges."""

from typing import Optional

from ..errors import RunCancelledError


class CancellationToken:
    """Flag checked by long-running loops between units of work."""

    def __init__(self) -> None:
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    def cancel(self, reason: str = "cancelled") -> None:
        if self._reason is None:
            self._reason = reason

    def raise_if_cancelled(self) -> None:
        if self._reason is not None:
            raise RunCancelledError(self._reason)


def check(token: Optional[CancellationToken]) -> None:
    """Raise RunCancelledError if ``token`` is set and cancelled."""
    if token is not None:
        token.raise_if_cancelled()
