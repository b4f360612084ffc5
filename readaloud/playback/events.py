from enum import Enum, auto

class PlaybackEvent(Enum):
    STATE_CHANGED = auto()
    STATUS_CHANGED = auto()
    VOICES_CHANGED = auto()
