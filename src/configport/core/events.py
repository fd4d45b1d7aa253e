import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from configport.core.modules.transfer.constants import TransferEvent

logger = structlog.get_logger(__name__)

Listener = Callable[[TransferEvent, dict[str, Any]], Awaitable[None] | None]


class EventBus:
    """Observer registry for refresh signals sent to the host application.

    Each event carries only the minimal delta a listener needs to decide whether
    to re-fetch. A failing listener is logged and never breaks the emitting operation.
    """

    def __init__(self) -> None:
        self._listeners: dict[TransferEvent, list[Listener]] = {}

    def subscribe(self, event: TransferEvent, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a callable that removes it."""
        self._listeners.setdefault(event, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    async def emit(self, event: TransferEvent, detail: dict[str, Any]) -> None:
        logger.debug("event_emitted", event=event.value, listeners=len(self._listeners.get(event, [])))
        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(event, detail)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("event_listener_failed", event=event.value, error=str(e))
