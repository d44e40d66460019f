"""Cache invalidation events.

Publishers (ingestion) announce corpus changes; subscribers (answer caches)
drop whatever the change made stale. The bus is a plain object handed to
both sides, so separate engines in one process stay isolated.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

from docchat.core.logging import get_logger

logger = get_logger(__name__)

DOCUMENTS_CHANGED = "documents:changed"
CACHE_CLEAR_ALL = "cache:clear-all"
CACHE_INVALIDATE = "cache:invalidate"

EVENTS = (DOCUMENTS_CHANGED, CACHE_CLEAR_ALL, CACHE_INVALIDATE)

Handler = Callable[..., Any]


class CacheInvalidationBus:
    """Synchronous publish/subscribe channel for cache events.

    Handlers run in subscription order on the emitter's call stack. A
    handler that raises is logged and skipped; the remaining handlers
    still run.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Tuple[str, Handler]]] = {event: [] for event in EVENTS}

    # =========================================================================
    # Emitters
    # =========================================================================

    def emit_documents_changed(self, emitter: str) -> int:
        """Announce that documents were added, replaced or removed.

        Args:
            emitter: Name of the publishing component, for logging.

        Returns:
            Number of handlers that ran successfully.
        """
        logger.info(f"{emitter} emitted {DOCUMENTS_CHANGED}")
        return self._emit(DOCUMENTS_CHANGED)

    def emit_clear_all(self, emitter: str) -> int:
        """Ask every subscriber to drop all cached state."""
        logger.info(f"{emitter} emitted {CACHE_CLEAR_ALL}")
        return self._emit(CACHE_CLEAR_ALL)

    def emit_invalidate(self, emitter: str, pattern: Optional[str] = None) -> int:
        """Ask subscribers to invalidate keys matching ``pattern``.

        The pattern is advisory; subscribers may clear everything.
        """
        logger.info(f"{emitter} emitted {CACHE_INVALIDATE} (pattern: {pattern or '*'})")
        return self._emit(CACHE_INVALIDATE, pattern)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def on_documents_changed(self, subscriber: str, handler: Callable[[], Any]) -> None:
        self._subscribe(DOCUMENTS_CHANGED, subscriber, handler)

    def on_clear_all(self, subscriber: str, handler: Callable[[], Any]) -> None:
        self._subscribe(CACHE_CLEAR_ALL, subscriber, handler)

    def on_invalidate(self, subscriber: str, handler: Callable[[Optional[str]], Any]) -> None:
        self._subscribe(CACHE_INVALIDATE, subscriber, handler)

    def off_documents_changed(self, handler: Callable[[], Any]) -> bool:
        return self._unsubscribe(DOCUMENTS_CHANGED, handler)

    def off_clear_all(self, handler: Callable[[], Any]) -> bool:
        return self._unsubscribe(CACHE_CLEAR_ALL, handler)

    def off_invalidate(self, handler: Callable[[Optional[str]], Any]) -> bool:
        return self._unsubscribe(CACHE_INVALIDATE, handler)

    def listener_count(self, event: str) -> int:
        """Number of handlers subscribed to ``event``."""
        return len(self._handlers.get(event, []))

    def remove_all_listeners(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()

    # =========================================================================
    # Internals
    # =========================================================================

    def _subscribe(self, event: str, subscriber: str, handler: Handler) -> None:
        self._handlers[event].append((subscriber, handler))
        logger.debug(f"{subscriber} subscribed to {event}")

    def _unsubscribe(self, event: str, handler: Handler) -> bool:
        handlers = self._handlers[event]
        for i, (subscriber, registered) in enumerate(handlers):
            if registered == handler:
                del handlers[i]
                logger.debug(f"{subscriber} unsubscribed from {event}")
                return True
        return False

    def _emit(self, event: str, *args: Any) -> int:
        succeeded = 0

        # Copy so handlers may unsubscribe while the event is dispatched
        for subscriber, handler in list(self._handlers[event]):
            try:
                handler(*args)
                succeeded += 1
            except Exception as e:
                logger.error(
                    f"Handler of {subscriber} failed on {event}: {e}",
                    exc_info=True,
                )

        return succeeded
