import logging
from typing import Any, Awaitable, Callable, Dict, List

from readaloud.playback.events import PlaybackEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[..., Awaitable[Any]]

class EventRouter:
    """Fans playback events out to subscribers (UI binding, console, tests)."""

    def __init__(self):
        self._handlers: Dict[PlaybackEvent, List[EventHandler]] = {}

    def register(self, event: PlaybackEvent, handler: EventHandler):
        self._handlers.setdefault(event, []).append(handler)

    def unregister(self, event: PlaybackEvent, handler: EventHandler):
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    async def dispatch(self, event: PlaybackEvent, *args, **kwargs):
        handlers = list(self._handlers.get(event, []))
        if not handlers:
            logger.debug(f"No handler for event {event.name}")
            return
        for handler in handlers:
            try:
                logger.debug(f"Dispatching event {event.name}", extra={"event": event.name})
                await handler(*args, **kwargs)
            except Exception as e:
                # A failing subscriber must not leave the controller half-transitioned
                logger.error(f"Error handling event {event.name}: {e}", exc_info=True)
