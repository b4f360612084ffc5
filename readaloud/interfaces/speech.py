from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Awaitable, Callable, List, Optional

class EngineEvent(Enum):
    STARTED = auto()
    PAUSED = auto()
    RESUMED = auto()
    ENDED = auto()
    ERROR = auto()

@dataclass(frozen=True)
class Voice:
    name: str
    language: str
    is_default: bool = False
    id: Optional[str] = None # engine-specific handle, falls back to name

    @property
    def engine_id(self) -> str:
        return self.id or self.name

@dataclass(frozen=True)
class Utterance:
    """One chunk as submitted to the engine."""
    text: str
    index: int
    generation: int
    language: str
    rate: float = 1.0
    volume: float = 1.0
    voice: Optional[Voice] = None

EngineEventHandler = Callable[[EngineEvent, Utterance, Optional[str]], Awaitable[None]]
VoicesChangedHandler = Callable[[], Awaitable[None]]

class ABCSpeechEngine(ABC):
    """
    Interface for asynchronous speech synthesis engines.
    Responsibility: Speak one utterance at a time and report its lifecycle.

    Lifecycle notifications for a submitted utterance arrive in the order
    STARTED, (PAUSED, RESUMED)*, then exactly one of ENDED or ERROR.
    cancel() suppresses every further notification for the in-flight utterance.
    """

    @property
    @abstractmethod
    def supported(self) -> bool:
        """False when the platform offers no speech capability."""
        pass

    @property
    @abstractmethod
    def is_speaking(self) -> bool:
        """True while an utterance is in flight, paused or not."""
        pass

    @property
    @abstractmethod
    def is_paused(self) -> bool:
        pass

    @abstractmethod
    def list_voices(self) -> List[Voice]:
        """
        Return the voices known so far.
        May be empty until the engine finishes its asynchronous initialisation.
        """
        pass

    @abstractmethod
    def on_event(self, callback: EngineEventHandler) -> None:
        """Register the callback receiving utterance lifecycle notifications."""
        pass

    @abstractmethod
    def on_voices_changed(self, callback: VoicesChangedHandler) -> None:
        """Register callback fired when the voice list changes."""
        pass

    @abstractmethod
    async def speak(self, utterance: Utterance) -> None:
        """Submit an utterance. Returns once queued, not once spoken."""
        pass

    @abstractmethod
    async def pause(self) -> None:
        pass

    @abstractmethod
    async def resume(self) -> None:
        pass

    @abstractmethod
    async def cancel(self) -> None:
        """Drop the in-flight utterance, if any."""
        pass

    async def start(self) -> None:
        """Start engine resources."""
        pass

    async def close(self) -> None:
        """Release engine resources."""
        pass
