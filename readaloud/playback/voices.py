import logging
from dataclasses import dataclass, field
from typing import List, Optional

from readaloud.core.config import VoiceConfig
from readaloud.core.exceptions import InvalidSetting
from readaloud.interfaces.speech import Voice

logger = logging.getLogger(__name__)

MIN_RATE = 0.1
MAX_RATE = 10.0

def normalize_tag(tag: str) -> str:
    return tag.strip().replace("_", "-").lower()

def filter_voices(voices: List[Voice], language: str) -> List[Voice]:
    """Keep the voices whose language tag starts with `language` (case-insensitive)."""
    prefix = normalize_tag(language)
    return [v for v in voices if normalize_tag(v.language).startswith(prefix)]

@dataclass
class VoiceSelection:
    """
    Language, voice and rate chosen by the user.
    Not owned by the controller: it is read each time a chunk is submitted.
    """
    language: str = "en-US"
    voice_name: Optional[str] = None
    rate: float = 1.0
    volume: float = 1.0
    available: List[Voice] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: VoiceConfig) -> "VoiceSelection":
        selection = cls(language=config.language, voice_name=config.voice, volume=config.volume)
        selection.set_rate(config.rate)
        return selection

    def refresh(self, voices: List[Voice]) -> List[Voice]:
        """
        Rebuild the filtered voice list for the current language.
        When the selected voice is not in the new list, the first one is selected.
        """
        self.available = filter_voices(voices, self.language)
        names = [v.name for v in self.available]
        if self.voice_name not in names:
            self.voice_name = names[0] if names else None
        logger.debug(f"Voices for {self.language}: {names}", extra={"language": self.language})
        return self.available

    def set_rate(self, value) -> float:
        try:
            rate = float(value)
        except (TypeError, ValueError) as e:
            raise InvalidSetting(f"Rate must be a number, got {value!r}") from e
        if not MIN_RATE <= rate <= MAX_RATE:
            raise InvalidSetting(f"Rate must be between {MIN_RATE} and {MAX_RATE}, got {rate}")
        self.rate = rate
        return rate

    def resolve(self) -> Optional[Voice]:
        """The selected voice, or None (engine default) when it is not in the filtered list."""
        for voice in self.available:
            if voice.name == self.voice_name:
                return voice
        return None
