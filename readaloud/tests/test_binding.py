import io

import pytest
from conftest import FakeSpeechEngine

from readaloud.core.config import Config
from readaloud.core.exceptions import ExtractionError
from readaloud.playback.session import ReadingSession
from readaloud.playback.state import State
from readaloud.ui.binding import ControlState, UIBinding, controls_for
from readaloud.ui.console import ConsoleReader

def test_controls_per_state():
    assert controls_for(State.IDLE) == ControlState(play=True, pause=False, stop=False)
    assert controls_for(State.PLAYING) == ControlState(play=False, pause=True, stop=True)
    assert controls_for(State.PAUSED) == ControlState(play=True, pause=False, stop=True)
    assert controls_for(State.FINISHED) == ControlState(play=True, pause=False, stop=False)
    assert controls_for(State.ERRORED) == ControlState(play=True, pause=False, stop=False)

def test_controls_when_busy_or_unsupported():
    assert controls_for(State.IDLE, busy=True) == ControlState(play=False, pause=False, stop=False)
    assert controls_for(State.IDLE, supported=False).play is False
    assert controls_for(State.PAUSED, supported=False).play is False

@pytest.mark.asyncio
async def test_binding_follows_controller():
    engine = FakeSpeechEngine()
    session = ReadingSession.create(engine, Config())
    binding = UIBinding(session)

    await session.set_text("Hello world. This is a test.")
    await session.play()
    await engine.start_current()
    assert binding.controls == ControlState(play=False, pause=True, stop=True)
    assert binding.status == "Reading chunk 1 of 1..."
    assert binding.progress == (0, 1)

    await session.pause()
    assert binding.status == "Paused"
    assert binding.controls.play

    await session.stop()
    assert binding.status == "Stopped"
    assert binding.controls == ControlState(play=True, pause=False, stop=False)

class StubClient:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error

    async def extract(self, path):
        if self.error:
            raise self.error
        return self.content

def _reader(engine, client):
    session = ReadingSession.create(engine, Config())
    out = io.StringIO()
    return session, ConsoleReader(session, client, stdin=io.StringIO(""), stdout=out), out

@pytest.mark.asyncio
async def test_console_commands_drive_session():
    engine = FakeSpeechEngine()
    session, reader, out = _reader(engine, StubClient())

    assert await reader.handle("text Hello world. This is a test.")
    assert await reader.handle("play")
    assert session.snapshot().state == State.PLAYING
    assert await reader.handle("pause")
    assert session.snapshot().state == State.PAUSED
    assert await reader.handle("stop")
    assert session.snapshot().state == State.IDLE
    assert await reader.handle("rate 1.25")
    assert session.voices.rate == 1.25
    assert await reader.handle("quit") is False

@pytest.mark.asyncio
async def test_console_reports_validation_errors():
    engine = FakeSpeechEngine(voices=[])
    session, reader, out = _reader(engine, StubClient())

    await reader.handle("text Hello world.")
    await reader.handle("play")
    await reader.handle("rate fast")

    output = out.getvalue()
    assert "Voices are not loaded yet" in output
    assert "Rate must be a number" in output
    assert session.snapshot().state == State.IDLE

@pytest.mark.asyncio
async def test_open_document_replaces_text_and_stops_playback():
    engine = FakeSpeechEngine()
    session, reader, out = _reader(engine, StubClient(content="Uploaded text. It is long enough."))

    await reader.handle("text Hello world. This is a test.")
    await reader.handle("play")
    await reader.handle("open book.txt")

    assert session.controller.text == "Uploaded text. It is long enough."
    assert session.snapshot().state == State.IDLE
    assert engine.calls[-1] == "cancel"
    assert reader.binding.status == "File uploaded and content loaded."
    assert not reader.binding.busy

@pytest.mark.asyncio
async def test_failed_upload_leaves_text_untouched():
    engine = FakeSpeechEngine()
    session, reader, out = _reader(engine, StubClient(error=ExtractionError("Failed to read file", 500)))

    await reader.handle("text Hello world. This is a test.")
    await reader.handle("open broken.pdf")

    assert session.controller.text == "Hello world. This is a test."
    assert reader.binding.status == "Error uploading file."
    assert "Failed to read file" in out.getvalue()
    assert not reader.binding.busy

@pytest.mark.asyncio
async def test_console_run_reads_until_eof():
    engine = FakeSpeechEngine()
    session = ReadingSession.create(engine, Config())
    out = io.StringIO()
    reader = ConsoleReader(session, StubClient(), stdin=io.StringIO("text Hello world. Again.\nplay\n"), stdout=out)

    await reader.run()

    assert session.snapshot().state == State.PLAYING
    assert "Commands:" in out.getvalue()
