from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

class State(Enum):
    IDLE = auto()
    PLAYING = auto()
    PAUSED = auto()
    FINISHED = auto()
    ERRORED = auto()

    @property
    def active(self) -> bool:
        """True while a chunk queue is being read."""
        return self in (State.PLAYING, State.PAUSED)

@dataclass(frozen=True)
class PlaybackSnapshot:
    """Read-only view of the controller handed to the UI layer."""
    state: State
    index: int
    total: int
    status: str
    reason: Optional[str] = None

    @property
    def progress(self) -> tuple:
        return (self.index, self.total)
