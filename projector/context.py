"""
Request-scoped context.

A RequestContext carries a cancellation signal, an optional deadline and a
chain of immutable values for one logical call tree. Deriving a child with
with_value() never mutates the parent, so values cached during one call are
invisible to independent calls sharing the same root context.
"""

import threading
import time
from typing import Any, Optional

from .errors import ContextCancelledError, DeadlineExceededError

_NO_KEY = object()


class RequestContext:
    """
    Usage:
        ctx = RequestContext.background().with_timeout(5)
        ctx = ctx.with_value(key, value)
        ctx.check()  # raises if cancelled or past deadline
    """

    def __init__(
        self,
        parent: Optional["RequestContext"] = None,
        key: Any = _NO_KEY,
        value: Any = None,
        deadline: Optional[float] = None,
    ) -> None:
        self._parent = parent
        self._key = key
        self._value = value
        self._cancel_event = parent._cancel_event if parent is not None else threading.Event()
        parent_deadline = parent.deadline if parent is not None else None
        if deadline is None:
            self.deadline = parent_deadline
        elif parent_deadline is None:
            self.deadline = deadline
        else:
            self.deadline = min(deadline, parent_deadline)

    @classmethod
    def background(cls) -> "RequestContext":
        return cls()

    def with_value(self, key: Any, value: Any) -> "RequestContext":
        return RequestContext(parent=self, key=key, value=value)

    def with_timeout(self, seconds: float) -> "RequestContext":
        return RequestContext(parent=self, deadline=time.monotonic() + seconds)

    def value(self, key: Any) -> Any:
        ctx: Optional[RequestContext] = self
        while ctx is not None:
            if ctx._key is not _NO_KEY and ctx._key is key:
                return ctx._value
            ctx = ctx._parent
        return None

    def cancel(self) -> None:
        """Cancel this context and every context sharing its root."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def check(self) -> None:
        """
        Raise if the call tree should stop.

        Raises:
            ContextCancelledError: If cancel() was called
            DeadlineExceededError: If the deadline has passed
        """
        if self._cancel_event.is_set():
            raise ContextCancelledError("context cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise DeadlineExceededError("context deadline exceeded")
