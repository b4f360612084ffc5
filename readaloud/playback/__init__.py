"""
Playback Module - readaloud

Chunked, sequential reading of text through an asynchronous speech engine.

Main Components:
- chunk: Split text into speakable chunks
- PlaybackController: State machine driving the engine chunk by chunk
- ReadingSession: Engine, voice selection, controller and router for one reader

Example Usage:
    from readaloud.playback import ReadingSession
    from readaloud.engine.pyttsx3_engine import Pyttsx3SpeechEngine
    from readaloud.core.config import Config

    config = Config.load()
    engine = Pyttsx3SpeechEngine(config.engine)
    session = ReadingSession.create(engine, config)
    await engine.start()

    await session.set_text("Hello world. This is a test.")
    await session.play()
"""

from readaloud.playback.chunker import chunk
from readaloud.playback.controller import PlaybackController
from readaloud.playback.session import ReadingSession
from readaloud.playback.state import PlaybackSnapshot, State

__all__ = [
    "chunk",
    "PlaybackController",
    "PlaybackSnapshot",
    "ReadingSession",
    "State",
]
