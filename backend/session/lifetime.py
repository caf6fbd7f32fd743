"""
Cooperative cancellation for connections and probe runs.

Responsibilities:
- Carry a one-way "cancelled" flag plus the reason it was cancelled
- Propagate cancellation from a parent (process) token to its children

Non-responsibilities:
- NO preemption: loops check the token at iteration boundaries only
- NO locks: every token is mutated from a single event loop
"""

from __future__ import annotations

import weakref


class LifetimeToken:
    """
    Cancellation signal shared between a connection's control handlers
    and its processing loop.

    Lifecycle:
    1. Created per connection (child of the process token)
    2. cancel() on close frame, process shutdown or interrupt
    3. Loop observes `cancelled` before its next read and exits

    cancel() is idempotent: the first reason wins.
    """

    def __init__(self, parent: LifetimeToken | None = None) -> None:
        self._reason: str | None = None
        self._children: weakref.WeakSet[LifetimeToken] = weakref.WeakSet()

        if parent is not None:
            if parent.cancelled:
                self._reason = parent.reason
            else:
                parent._children.add(self)

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if self._reason is not None:
            return

        self._reason = reason
        for child in list(self._children):
            child.cancel(reason)
        self._children.clear()

    def child(self) -> LifetimeToken:
        """Derive a token that is cancelled whenever this one is."""
        return LifetimeToken(parent=self)
