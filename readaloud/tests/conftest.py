from typing import List, Optional

import pytest

from readaloud.interfaces.speech import (
    ABCSpeechEngine,
    EngineEvent,
    EngineEventHandler,
    Utterance,
    Voice,
    VoicesChangedHandler,
)
from readaloud.playback.controller import PlaybackController
from readaloud.playback.policies import Policies
from readaloud.playback.router import EventRouter
from readaloud.playback.voices import VoiceSelection

VOICES = [
    Voice(name="Alice", language="en-US", is_default=True),
    Voice(name="Bob", language="en-GB"),
    Voice(name="Claire", language="fr-FR"),
]

class FakeSpeechEngine(ABCSpeechEngine):
    """In-memory engine; tests deliver lifecycle notifications by hand."""

    def __init__(self, voices: Optional[List[Voice]] = None, supported: bool = True):
        self._supported = supported
        self.voices = list(VOICES if voices is None else voices)
        self.spoken: List[Utterance] = []
        self.current: Optional[Utterance] = None
        self.paused = False
        self.calls: List[str] = []
        self._callback: Optional[EngineEventHandler] = None
        self._voices_callback: Optional[VoicesChangedHandler] = None

    @property
    def supported(self) -> bool:
        return self._supported

    @property
    def is_speaking(self) -> bool:
        return self.current is not None

    @property
    def is_paused(self) -> bool:
        return self.paused

    def list_voices(self) -> List[Voice]:
        return list(self.voices)

    def on_event(self, callback: EngineEventHandler) -> None:
        self._callback = callback

    def on_voices_changed(self, callback: VoicesChangedHandler) -> None:
        self._voices_callback = callback

    async def speak(self, utterance: Utterance) -> None:
        self.calls.append("speak")
        self.spoken.append(utterance)
        self.current = utterance
        self.paused = False

    async def pause(self) -> None:
        self.calls.append("pause")
        self.paused = True

    async def resume(self) -> None:
        self.calls.append("resume")
        self.paused = False

    async def cancel(self) -> None:
        self.calls.append("cancel")
        self.current = None
        self.paused = False

    # Test helpers

    async def load_voices(self, voices: List[Voice]):
        self.voices = list(voices)
        if self._voices_callback:
            await self._voices_callback()

    async def deliver(self, event: EngineEvent, utterance: Utterance, reason: Optional[str] = None):
        """Deliver a notification, even for an utterance that is no longer current."""
        if event in (EngineEvent.ENDED, EngineEvent.ERROR) and utterance is self.current:
            self.current = None
        await self._callback(event, utterance, reason)

    async def start_current(self):
        await self.deliver(EngineEvent.STARTED, self.current)

    async def finish_current(self):
        await self.deliver(EngineEvent.ENDED, self.current)

    async def fail_current(self, reason: str = "synthesis-failed"):
        await self.deliver(EngineEvent.ERROR, self.current, reason)

@pytest.fixture
def engine():
    return FakeSpeechEngine()

@pytest.fixture
def router():
    return EventRouter()

@pytest.fixture
def voices():
    selection = VoiceSelection(language="en")
    selection.refresh(VOICES)
    return selection

@pytest.fixture
def controller(engine, voices, router):
    return PlaybackController(engine, voices, router, Policies())
