import logging
from typing import List, Optional

from readaloud.core.exceptions import (
    EngineError,
    TextEmpty,
    TextTooShort,
    UnsupportedPlatformError,
    VoicesNotReady,
)
from readaloud.interfaces.speech import ABCSpeechEngine, EngineEvent, Utterance
from readaloud.playback.chunker import chunk
from readaloud.playback.events import PlaybackEvent
from readaloud.playback.policies import Policies
from readaloud.playback.router import EventRouter
from readaloud.playback.state import PlaybackSnapshot, State
from readaloud.playback.voices import VoiceSelection

logger = logging.getLogger(__name__)

class PlaybackController:
    """
    State machine driving an engine through a queue of chunks.

    IDLE -> PLAYING(i) <-> PAUSED(i), PLAYING(last) -> FINISHED,
    any -> ERRORED on engine error, any -> IDLE on stop().

    Each chunk end submits exactly one next chunk. Notifications are matched
    against the current generation and index; anything else is stale.
    """

    def __init__(self, engine: ABCSpeechEngine, voices: VoiceSelection,
                 router: Optional[EventRouter] = None, policies: Optional[Policies] = None):
        self.engine = engine
        self.voices = voices
        self.router = router or EventRouter()
        self.policies = policies or Policies()

        self.state = State.IDLE
        self.text = ""
        self.queue: List[str] = []
        self.index = 0
        self.reason: Optional[str] = None
        self.status = "Ready"
        self.generation = 0
        # next chunk waiting for play() after an end arrived while paused
        self._held = False

        self.engine.on_event(self.handle_engine_event)

    # -- observable output --------------------------------------------------

    def snapshot(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            state=self.state,
            index=self.index,
            total=len(self.queue),
            status=self.status,
            reason=self.reason,
        )

    async def transition(self, new_state: State):
        if self.state == new_state:
            return

        old_state = self.state
        self.state = new_state
        logger.info(f"Playback transition: {old_state.name} -> {new_state.name}",
                    extra={"old_state": old_state.name, "new_state": new_state.name, "index": self.index})
        await self.router.dispatch(PlaybackEvent.STATE_CHANGED, self.snapshot())

    async def set_status(self, status: str):
        self.status = status
        await self.router.dispatch(PlaybackEvent.STATUS_CHANGED, self.snapshot())

    # -- commands -----------------------------------------------------------

    async def set_text(self, text: str):
        """Replace the document text, stopping any reading in progress first."""
        if self.state.active:
            await self.stop()
        self.text = text or ""

    async def play(self):
        """
        Start reading from the first chunk, or resume a paused reading.

        Raises:
            UnsupportedPlatformError: the engine has no speech capability
            VoicesNotReady: the engine has not reported any voice yet
            TextEmpty, TextTooShort: the text cannot be read
        """
        if not self.engine.supported:
            raise UnsupportedPlatformError()
        if not self.engine.list_voices():
            raise VoicesNotReady()

        if self.state == State.PAUSED and self._held:
            self._held = False
            await self.transition(State.PLAYING)
            await self.set_status("Resumed")
            await self._submit(self.index)
            return

        if self.state == State.PAUSED and self.engine.is_paused:
            await self.engine.resume()
            await self.transition(State.PLAYING)
            await self.set_status("Resumed")
            return

        if self.engine.is_speaking and not self.engine.is_paused:
            logger.debug("Engine already speaking, ignoring play")
            return

        text = self.text.strip()
        if not text:
            raise TextEmpty()
        if len(text) < self.policies.min_text_length:
            raise TextTooShort()

        await self._fresh_start(text)

    async def pause(self):
        if self.state != State.PLAYING:
            return
        if not self.engine.is_speaking or self.engine.is_paused:
            return
        await self.engine.pause()
        await self.transition(State.PAUSED)
        await self.set_status("Paused")

    async def stop(self):
        """Cancel the engine and drop the queue. Safe from any state."""
        await self.engine.cancel()
        self.generation += 1
        self._held = False
        self.queue = []
        self.index = 0
        self.reason = None
        await self.transition(State.IDLE)
        await self.set_status("Stopped")

    # -- engine notifications -----------------------------------------------

    async def handle_engine_event(self, event: EngineEvent, utterance: Utterance, reason: Optional[str] = None):
        if utterance.generation != self.generation:
            logger.debug(f"Dropping stale {event.name} from generation {utterance.generation}",
                         extra={"event": event.name, "generation": utterance.generation})
            return

        if event == EngineEvent.STARTED:
            await self.on_chunk_start(utterance.index)
        elif event == EngineEvent.ENDED:
            await self.on_chunk_end(utterance.index)
        elif event == EngineEvent.ERROR:
            await self.on_chunk_error(utterance.index, reason or "unknown error")
        elif event == EngineEvent.PAUSED:
            if self._is_current(utterance.index):
                await self.set_status("Paused")
        elif event == EngineEvent.RESUMED:
            if self._is_current(utterance.index):
                await self.set_status("Resumed")

    async def on_chunk_start(self, index: int):
        if not self._is_current(index):
            return
        await self.set_status(f"Reading chunk {index + 1} of {len(self.queue)}...")

    async def on_chunk_end(self, index: int):
        if not self._is_current(index):
            return

        if index >= len(self.queue) - 1:
            await self.transition(State.FINISHED)
            await self.set_status("Finished reading")
            return

        self.index = index + 1
        if self.state == State.PAUSED:
            # the engine finished the chunk before the pause took hold
            self._held = True
            return
        await self._submit(self.index)

    async def on_chunk_error(self, index: int, reason: str):
        if not self._is_current(index):
            return
        await self._fail(reason)

    # -- internals ----------------------------------------------------------

    def _is_current(self, index: int) -> bool:
        if self.state.active and index == self.index and 0 <= index < len(self.queue):
            return True
        logger.debug(f"Ignoring stale callback for chunk {index}",
                     extra={"chunk_index": index, "current_index": self.index, "state": self.state.name})
        return False

    async def _fresh_start(self, text: str):
        if self.engine.is_speaking:
            await self.engine.cancel()

        queue = chunk(text, self.policies.max_chunk_length)
        if not any(queue):
            raise TextEmpty()

        self.generation += 1
        self._held = False
        self.queue = queue
        self.index = 0
        self.reason = None
        logger.info(f"Starting playback of {len(queue)} chunks", extra={"chunks": len(queue)})
        await self.transition(State.PLAYING)
        await self._submit(0)

    async def _submit(self, index: int):
        # Voice, language and rate are read now, not when the queue was built
        utterance = Utterance(
            text=self.queue[index],
            index=index,
            generation=self.generation,
            language=self.voices.language,
            rate=self.voices.rate,
            volume=self.voices.volume,
            voice=self.voices.resolve(),
        )
        try:
            await self.engine.speak(utterance)
        except EngineError as e:
            logger.error(f"Engine rejected chunk {index}: {e}")
            await self._fail(str(e))

    async def _fail(self, reason: str):
        self.generation += 1
        self._held = False
        self.queue = []
        self.index = 0
        self.reason = reason
        await self.transition(State.ERRORED)
        await self.set_status(f"Error occurred: {reason}")
