import asyncio
import itertools
import logging
import queue
import threading
import time
from functools import partial
from typing import Callable, List, Optional, Set

import pyttsx3

from readaloud.core.config import EngineConfig
from readaloud.core.exceptions import EngineError
from readaloud.interfaces.speech import (
    ABCSpeechEngine,
    EngineEvent,
    EngineEventHandler,
    Utterance,
    Voice,
    VoicesChangedHandler,
)
from readaloud.playback.voices import filter_voices

logger = logging.getLogger(__name__)

def _init_pyttsx3(driver_name: Optional[str]):
    return pyttsx3.init(driverName=driver_name)

def _language_of(voice) -> str:
    languages = getattr(voice, "languages", None) or []
    if not languages:
        return ""
    first = languages[0]
    if isinstance(first, bytes):
        # espeak prefixes the tag with a priority byte
        first = first.decode("utf-8", errors="ignore")
    return "".join(ch for ch in first if ch.isprintable()).strip().replace("_", "-")

class Pyttsx3SpeechEngine(ABCSpeechEngine):
    """
    Speech engine backed by a local pyttsx3 driver.

    pyttsx3 is not thread-safe and blocks while speaking, so the driver lives
    on a worker thread pumped with startLoop(False)/iterate(). Commands reach
    the worker through a queue; driver callbacks are handed back to the
    asyncio loop with call_soon_threadsafe. All utterance bookkeeping happens
    on the loop thread.

    pyttsx3 has no pause: pausing stops the current segment and remembers the
    offset of the last word started, resuming speaks the rest.
    """

    def __init__(self, config: EngineConfig, engine_factory: Optional[Callable] = None):
        self.config = config
        self._factory = engine_factory or _init_pyttsx3
        self._engine = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._commands: "queue.Queue[Callable[[], None]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._running = threading.Event()
        self._tasks: Set[asyncio.Task] = set()
        self._seq = itertools.count()

        self._event_callback: Optional[EngineEventHandler] = None
        self._voices_callback: Optional[VoicesChangedHandler] = None
        self._voices: List[Voice] = []

        # Loop-thread state for the utterance in flight
        self._current: Optional[Utterance] = None
        self._token: Optional[str] = None
        self._offset = 0
        self._word_location = 0
        self._paused = False
        self._started = False

        try:
            self._engine = self._factory(self.config.driver_name)
            logger.info(f"pyttsx3 engine initialized (driver: {self.config.driver_name or 'default'})")
        except Exception as e:
            logger.error(f"Failed to initialize pyttsx3: {e}")

    @property
    def supported(self) -> bool:
        return self._engine is not None

    @property
    def is_speaking(self) -> bool:
        return self._current is not None

    @property
    def is_paused(self) -> bool:
        return self._paused

    def list_voices(self) -> List[Voice]:
        return list(self._voices)

    def on_event(self, callback: EngineEventHandler) -> None:
        self._event_callback = callback

    def on_voices_changed(self, callback: VoicesChangedHandler) -> None:
        self._voices_callback = callback

    async def start(self) -> None:
        if not self.supported or self._running.is_set():
            return
        self._loop = asyncio.get_running_loop()
        self._engine.connect("started-utterance", self._on_started)
        self._engine.connect("started-word", self._on_word)
        self._engine.connect("finished-utterance", self._on_finished)
        self._engine.connect("error", self._on_error)

        self._running.set()
        self._thread = threading.Thread(target=self._run, name="pyttsx3-worker", daemon=True)
        self._thread.start()
        logger.info("pyttsx3 worker started")

    async def close(self) -> None:
        await self.cancel()
        self._running.clear()
        if self._thread:
            await asyncio.get_running_loop().run_in_executor(None, self._thread.join, 2.0)
            self._thread = None
        logger.info("pyttsx3 worker stopped")

    async def speak(self, utterance: Utterance) -> None:
        if not self.supported or not self._running.is_set():
            raise EngineError("Speech engine is not running")
        if self._current is not None:
            self._drop()

        self._current = utterance
        self._offset = 0
        self._word_location = 0
        self._paused = False
        self._started = False
        self._say_from(0)

    async def pause(self) -> None:
        if self._current is None or self._paused:
            return
        self._paused = True
        self._offset += self._word_location
        self._word_location = 0
        self._token = None
        self._commands.put(self._do_stop)
        self._emit(EngineEvent.PAUSED, self._current)

    async def resume(self) -> None:
        if self._current is None or not self._paused:
            return
        self._paused = False
        self._emit(EngineEvent.RESUMED, self._current)
        if not self._current.text[self._offset:].strip():
            self._finish(EngineEvent.ENDED)
            return
        self._say_from(self._offset)

    async def cancel(self) -> None:
        self._drop()

    # -- loop thread ----------------------------------------------------------

    def _say_from(self, offset: int):
        utterance = self._current
        self._token = f"utterance-{next(self._seq)}"
        rate = int(self.config.base_words_per_minute * utterance.rate)
        self._commands.put(partial(
            self._do_say,
            utterance.text[offset:],
            self._token,
            self._voice_id_for(utterance),
            rate,
            max(0.0, min(1.0, utterance.volume)),
        ))

    def _voice_id_for(self, utterance: Utterance) -> Optional[str]:
        if utterance.voice:
            return utterance.voice.engine_id
        matching = filter_voices(self._voices, utterance.language)
        return matching[0].engine_id if matching else None

    def _drop(self):
        if self._current is None:
            return
        self._current = None
        self._token = None
        self._paused = False
        self._commands.put(self._do_stop)

    def _finish(self, event: EngineEvent, reason: Optional[str] = None):
        utterance = self._current
        self._current = None
        self._token = None
        self._paused = False
        self._emit(event, utterance, reason)

    def _emit(self, event: EngineEvent, utterance: Utterance, reason: Optional[str] = None):
        if self._event_callback is None:
            return
        self._spawn(self._event_callback(event, utterance, reason))

    def _spawn(self, coro):
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _set_voices(self, voices: List[Voice]):
        self._voices = voices
        logger.info(f"Loaded {len(voices)} voices")
        if self._voices_callback:
            self._spawn(self._voices_callback())

    def _handle_started(self, name: str):
        if name != self._token or self._started:
            return
        self._started = True
        self._emit(EngineEvent.STARTED, self._current)

    def _handle_word(self, name: str, location: int):
        if name == self._token:
            self._word_location = location

    def _handle_finished(self, name: str, completed: bool):
        if name != self._token:
            return
        if completed:
            self._finish(EngineEvent.ENDED)
        else:
            self._finish(EngineEvent.ERROR, "interrupted")

    def _handle_error(self, name: str, reason: str):
        if name != self._token:
            return
        self._finish(EngineEvent.ERROR, reason)

    # -- worker thread --------------------------------------------------------

    def _post(self, fn, *args):
        self._loop.call_soon_threadsafe(fn, *args)

    def _on_started(self, name):
        self._post(self._handle_started, name)

    def _on_word(self, name, location, length):
        self._post(self._handle_word, name, location)

    def _on_finished(self, name, completed):
        self._post(self._handle_finished, name, completed)

    def _on_error(self, name, exception):
        self._post(self._handle_error, name, str(exception))

    def _read_voices(self) -> List[Voice]:
        default_id = self._engine.getProperty("voice")
        voices = []
        for v in self._engine.getProperty("voices") or []:
            voices.append(Voice(
                name=v.name or v.id,
                language=_language_of(v),
                is_default=v.id == default_id,
                id=v.id,
            ))
        return voices

    def _do_say(self, text: str, token: str, voice_id: Optional[str], rate: int, volume: float):
        try:
            if voice_id:
                self._engine.setProperty("voice", voice_id)
            self._engine.setProperty("rate", rate)
            self._engine.setProperty("volume", volume)
            self._engine.say(text, token)
        except Exception as e:
            logger.error(f"pyttsx3 rejected utterance {token}: {e}")
            self._post(self._handle_error, token, str(e))

    def _do_stop(self):
        self._engine.stop()

    def _run(self):
        try:
            self._post(self._set_voices, self._read_voices())
            self._engine.startLoop(False)
        except Exception as e:
            logger.error(f"pyttsx3 worker failed to start: {e}", exc_info=True)
            self._running.clear()
            return

        try:
            while self._running.is_set():
                while True:
                    try:
                        command = self._commands.get_nowait()
                    except queue.Empty:
                        break
                    try:
                        command()
                    except Exception as e:
                        logger.error(f"pyttsx3 command failed: {e}", exc_info=True)
                self._engine.iterate()
                time.sleep(self.config.poll_interval)
        finally:
            self._engine.endLoop()
