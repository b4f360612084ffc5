import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from readaloud.interfaces.speech import Voice
from readaloud.playback.events import PlaybackEvent
from readaloud.playback.session import ReadingSession
from readaloud.playback.state import PlaybackSnapshot, State

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ControlState:
    play: bool
    pause: bool
    stop: bool

def controls_for(state: State, supported: bool = True, busy: bool = False) -> ControlState:
    """
    Which controls are enabled in `state`.

    `busy` is set while an upload is in flight; an unsupported platform never
    enables play.
    """
    if state == State.PLAYING:
        controls = ControlState(play=False, pause=True, stop=True)
    elif state == State.PAUSED:
        controls = ControlState(play=True, pause=False, stop=True)
    else:
        controls = ControlState(play=True, pause=False, stop=False)

    if busy:
        controls = ControlState(play=False, pause=False, stop=controls.stop)
    if not supported:
        controls = ControlState(play=False, pause=controls.pause, stop=controls.stop)
    return controls

RenderCallback = Callable[["UIBinding"], Awaitable[None]]

class UIBinding:
    """
    Keeps the latest status, controls and progress of a session for display.
    Only reads controller state; every change goes through the session commands.
    """

    def __init__(self, session: ReadingSession, on_change: Optional[RenderCallback] = None):
        self.session = session
        self.on_change = on_change
        self.busy = False
        self.snapshot: PlaybackSnapshot = session.snapshot()
        self.status = self.snapshot.status
        self.voices: List[Voice] = list(session.voices.available)

        if not session.supported:
            self.status = "Warning: speech synthesis is not supported on this platform."

        session.router.register(PlaybackEvent.STATE_CHANGED, self._on_snapshot)
        session.router.register(PlaybackEvent.STATUS_CHANGED, self._on_snapshot)
        session.router.register(PlaybackEvent.VOICES_CHANGED, self._on_voices)

    @property
    def controls(self) -> ControlState:
        return controls_for(self.snapshot.state, self.session.supported, self.busy)

    @property
    def progress(self) -> tuple:
        return self.snapshot.progress

    async def upload_started(self):
        self.busy = True
        self.status = "Uploading..."
        await self._changed()

    async def upload_succeeded(self):
        self.busy = False
        self.snapshot = self.session.snapshot()
        self.status = "File uploaded and content loaded."
        await self._changed()

    async def upload_failed(self, message: str):
        self.busy = False
        logger.warning(f"Upload failed: {message}")
        self.status = "Error uploading file."
        await self._changed()

    def render(self) -> str:
        controls = self.controls
        flags = " ".join(
            f"[{name}]" if enabled else f" {name} "
            for name, enabled in (("play", controls.play), ("pause", controls.pause), ("stop", controls.stop))
        )
        index, total = self.progress
        progress = f" ({index + 1}/{total})" if total and self.snapshot.state.active else ""
        return f"{self.status}{progress}  {flags}"

    async def _on_snapshot(self, snapshot: PlaybackSnapshot):
        self.snapshot = snapshot
        self.status = snapshot.status
        await self._changed()

    async def _on_voices(self, voices: List[Voice]):
        self.voices = list(voices)
        await self._changed()

    async def _changed(self):
        if self.on_change:
            await self.on_change(self)
