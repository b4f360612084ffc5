import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from readaloud.core.config import Config
from readaloud.core.logging import set_correlation_id
from readaloud.interfaces.speech import ABCSpeechEngine, Voice
from readaloud.playback.controller import PlaybackController
from readaloud.playback.events import PlaybackEvent
from readaloud.playback.policies import Policies
from readaloud.playback.router import EventRouter
from readaloud.playback.state import PlaybackSnapshot
from readaloud.playback.voices import VoiceSelection

logger = logging.getLogger(__name__)

@dataclass
class ReadingSession:
    """
    Everything one reader needs: engine, voice selection, controller and router.
    Sessions share nothing, so several can run side by side.
    """
    engine: ABCSpeechEngine
    controller: PlaybackController
    voices: VoiceSelection
    router: EventRouter
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def create(cls, engine: ABCSpeechEngine, config: Optional[Config] = None,
               router: Optional[EventRouter] = None) -> "ReadingSession":
        config = config or Config()
        router = router or EventRouter()
        voices = VoiceSelection.from_config(config.voice)
        controller = PlaybackController(engine, voices, router, Policies.from_config(config.chunking))
        session = cls(engine=engine, controller=controller, voices=voices, router=router)
        engine.on_voices_changed(session.refresh_voices)
        session.voices.refresh(engine.list_voices())
        set_correlation_id(session.session_id)

        if not engine.supported:
            logger.error("Speech synthesis is not supported on this platform; playback disabled")
        logger.info(f"Reading session {session.session_id} created")
        return session

    @property
    def supported(self) -> bool:
        return self.engine.supported

    def snapshot(self) -> PlaybackSnapshot:
        return self.controller.snapshot()

    async def refresh_voices(self) -> List[Voice]:
        available = self.voices.refresh(self.engine.list_voices())
        await self.router.dispatch(PlaybackEvent.VOICES_CHANGED, available)
        return available

    # Command surface

    async def play(self):
        await self.controller.play()

    async def pause(self):
        await self.controller.pause()

    async def stop(self):
        await self.controller.stop()

    async def set_text(self, text: str):
        await self.controller.set_text(text)

    async def set_language(self, tag: str) -> List[Voice]:
        """Change language; takes effect from the next submitted chunk."""
        self.voices.language = tag.strip()
        logger.info(f"Language set to {self.voices.language}")
        return await self.refresh_voices()

    def set_voice(self, name: Optional[str]):
        self.voices.voice_name = name or None
        if name and self.voices.resolve() is None:
            logger.warning(f"Voice {name!r} not available for {self.voices.language}, using engine default")

    def set_rate(self, value) -> float:
        return self.voices.set_rate(value)

    async def close(self):
        await self.controller.stop()
        await self.engine.close()
