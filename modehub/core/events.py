"""
Lifecycle events — a small synchronous observer registry.

Stateful entities (modules) own an ``EventEmitter`` and announce every
lifecycle transition through it. Listeners are plain callables; nothing in
the engine depends on a listener being attached, and a failing listener is
logged and skipped rather than breaking the pipeline.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]

# Lifecycle event names, in pipeline order
WILL_FETCH = "will-fetch"
DID_FETCH = "did-fetch"
WILL_CHECKOUT = "will-checkout"
DID_CHECKOUT = "did-checkout"
WILL_CONFIGURE = "will-configure"
DID_CONFIGURE = "did-configure"
WILL_BUILD = "will-build"
DID_BUILD = "did-build"
WILL_ACTIVATE = "will-activate"
DID_ACTIVATE = "did-activate"
WILL_DEACTIVATE = "will-deactivate"
DID_DEACTIVATE = "did-deactivate"
WILL_UNINSTALL = "will-uninstall"
DID_UNINSTALL = "did-uninstall"
INFO = "info"

LIFECYCLE_EVENTS = (
    WILL_FETCH, DID_FETCH, WILL_CHECKOUT, DID_CHECKOUT,
    WILL_CONFIGURE, DID_CONFIGURE, WILL_BUILD, DID_BUILD,
    WILL_ACTIVATE, DID_ACTIVATE, WILL_DEACTIVATE, DID_DEACTIVATE,
    WILL_UNINSTALL, DID_UNINSTALL, INFO,
)


class EventEmitter:
    """Per-entity listener registry.

    Listeners are called in registration order with the emitting source
    as first argument, followed by the event's own arguments.
    """

    def __init__(self, source: Any = None) -> None:
        self._source = source
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe ``listener`` to ``event``. Returns an unsubscribe function."""
        self._listeners[event].append(listener)

        def unsubscribe() -> None:
            self.off(event, listener)

        return unsubscribe

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> int:
        """Call every listener of ``event``. Returns how many were called."""
        listeners = self.listeners(event)
        logger.debug("%s: %s%s", self._source, event, f" {args!r}" if args else "")
        for listener in listeners:
            try:
                listener(self._source, *args)
            except Exception:
                logger.exception("Listener %r for '%s' failed", listener, event)
        return len(listeners)
