"""Synchronous lifecycle notifications.

Each component exposes its notifications as ``Event`` attributes.
Observers subscribe a callable and receive a ``Subscription`` handle;
cancelling is removing the handle. ``emit`` invokes handlers in
registration order on the caller's tick.

Example:
    >>> from flight.events import Event
    >>>
    >>> on_target_reached = Event("target_reached")
    >>> sub = on_target_reached.subscribe(lambda target: print(target))
    >>> on_target_reached.emit(target)
    >>> on_target_reached.unsubscribe(sub)
"""

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

_handle_ids = itertools.count(1)


@dataclass(frozen=True)
class Subscription:
    """Handle returned by ``Event.subscribe``."""
    event_name: str
    handle_id: int


@dataclass
class Event:
    """Ordered observer list for one notification.

    Attributes:
        name: Notification name (used in logs)
    """
    name: str
    _handlers: list[tuple[Subscription, Callable[..., Any]]] = field(
        default_factory=list, init=False, repr=False
    )

    def subscribe(self, handler: Callable[..., Any]) -> Subscription:
        """Register ``handler``; it runs after all earlier subscribers."""
        sub = Subscription(self.name, next(_handle_ids))
        self._handlers.append((sub, handler))
        return sub

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a handler. Returns False if the handle was not registered."""
        for i, (sub, _) in enumerate(self._handlers):
            if sub == subscription:
                del self._handlers[i]
                return True
        return False

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()

    def emit(self, *args: Any) -> None:
        """Invoke every handler in registration order.

        A failing handler is logged and skipped; it does not stop the
        remaining handlers or propagate into the tick loop.
        """
        for sub, handler in list(self._handlers):
            try:
                handler(*args)
            except Exception:
                logger.exception("Handler %d for '%s' failed", sub.handle_id, self.name)

    def __len__(self) -> int:
        return len(self._handlers)
