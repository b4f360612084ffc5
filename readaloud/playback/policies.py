from dataclasses import dataclass

from readaloud.core.config import ChunkingConfig
from readaloud.playback.chunker import DEFAULT_MAX_LENGTH

@dataclass
class Policies:
    max_chunk_length: int = DEFAULT_MAX_LENGTH
    min_text_length: int = 5

    @classmethod
    def from_config(cls, config: ChunkingConfig) -> "Policies":
        return cls(max_chunk_length=config.max_length, min_text_length=config.min_text_length)
