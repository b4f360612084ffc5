import pytest
from conftest import FakeSpeechEngine, VOICES

from readaloud.core.config import Config, VoiceConfig
from readaloud.core.exceptions import InvalidSetting, UnsupportedPlatformError, VoicesNotReady
from readaloud.interfaces.speech import Voice
from readaloud.playback.session import ReadingSession
from readaloud.playback.state import State
from readaloud.playback.voices import VoiceSelection, filter_voices

def test_filter_voices_by_language_prefix():
    assert [v.name for v in filter_voices(VOICES, "en")] == ["Alice", "Bob"]
    assert [v.name for v in filter_voices(VOICES, "en_us")] == ["Alice"]
    assert [v.name for v in filter_voices(VOICES, "fr-FR")] == ["Claire"]
    assert filter_voices(VOICES, "de") == []

def test_refresh_selects_first_voice_when_selection_missing():
    selection = VoiceSelection(language="fr", voice_name="Alice")
    selection.refresh(VOICES)
    assert selection.voice_name == "Claire"

    selection.language = "de"
    selection.refresh(VOICES)
    assert selection.voice_name is None
    assert selection.resolve() is None

def test_set_rate_validation():
    selection = VoiceSelection()
    assert selection.set_rate("1.5") == 1.5
    with pytest.raises(InvalidSetting):
        selection.set_rate("fast")
    with pytest.raises(InvalidSetting):
        selection.set_rate(0)
    assert selection.rate == 1.5

@pytest.mark.asyncio
async def test_session_wires_controller_and_voices():
    engine = FakeSpeechEngine()
    config = Config()
    config.voice.language = "en-GB"
    session = ReadingSession.create(engine, config)

    assert [v.name for v in session.voices.available] == ["Bob"]
    await session.set_text("Hello world. This is a test.")
    await session.play()
    assert session.snapshot().state == State.PLAYING
    assert engine.spoken[0].voice.name == "Bob"
    assert engine.spoken[0].language == "en-GB"

@pytest.mark.asyncio
async def test_voices_loaded_later_are_picked_up():
    engine = FakeSpeechEngine(voices=[])
    session = ReadingSession.create(engine, Config())
    await session.set_text("Hello world. This is a test.")

    with pytest.raises(VoicesNotReady):
        await session.play()

    await engine.load_voices([Voice(name="Late", language="en-US")])
    assert session.voices.voice_name == "Late"

    await session.play()
    assert engine.spoken[0].voice.name == "Late"

@pytest.mark.asyncio
async def test_language_change_applies_to_next_chunk():
    engine = FakeSpeechEngine()
    config = Config()
    config.chunking.max_length = 30
    session = ReadingSession.create(engine, config)
    await session.set_text("First sentence is here. Second sentence is here.")
    await session.play()
    assert engine.spoken[0].language == "en-US"

    await session.set_language("fr-FR")
    assert session.snapshot().state == State.PLAYING
    await engine.finish_current()

    assert engine.spoken[1].language == "fr-FR"
    assert engine.spoken[1].voice.name == "Claire"

@pytest.mark.asyncio
async def test_set_voice_outside_filtered_list_uses_default():
    engine = FakeSpeechEngine()
    session = ReadingSession.create(engine, Config())
    session.set_voice("Claire")
    await session.set_text("Hello world. This is a test.")
    await session.play()
    assert engine.spoken[0].voice is None

@pytest.mark.asyncio
async def test_unsupported_session_rejects_play():
    engine = FakeSpeechEngine(supported=False)
    session = ReadingSession.create(engine, Config())
    assert not session.supported
    await session.set_text("Hello world. This is a test.")
    with pytest.raises(UnsupportedPlatformError):
        await session.play()

@pytest.mark.asyncio
async def test_sessions_are_independent():
    first = ReadingSession.create(FakeSpeechEngine(), Config())
    second = ReadingSession.create(FakeSpeechEngine(), Config())
    await first.set_text("Hello world. This is a test.")
    await first.play()

    assert first.snapshot().state == State.PLAYING
    assert second.snapshot().state == State.IDLE
    assert first.session_id != second.session_id

@pytest.mark.asyncio
async def test_close_stops_playback():
    engine = FakeSpeechEngine()
    session = ReadingSession.create(engine, Config())
    await session.set_text("Hello world. This is a test.")
    await session.play()
    await session.close()
    assert session.snapshot().state == State.IDLE
    assert not engine.is_speaking

def test_rate_from_config_is_validated():
    assert VoiceSelection.from_config(VoiceConfig(rate=2.0)).rate == 2.0
    for rate in (0, -1.0, 50.0):
        with pytest.raises(InvalidSetting):
            VoiceSelection.from_config(VoiceConfig(rate=rate))

def test_session_rejects_out_of_range_rate():
    config = Config()
    config.voice.rate = 0
    with pytest.raises(InvalidSetting):
        ReadingSession.create(FakeSpeechEngine(), config)
