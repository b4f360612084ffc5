import asyncio
import logging
import sys
from typing import Optional, TextIO

from readaloud.core.exceptions import ExtractionError, PlaybackError
from readaloud.extraction.client import DocumentUploadClient
from readaloud.playback.session import ReadingSession
from readaloud.ui.binding import UIBinding

logger = logging.getLogger(__name__)

HELP = """Commands:
  play | pause | stop        control reading
  text <words>               replace the text to read
  open <path>                upload a .txt, .pdf or .docx file and load its text
  lang <tag>                 select a language (e.g. en-US)
  voice <name>               select a voice for the current language
  voices                     list voices for the current language
  rate <value>               speech rate multiplier (1.0 = normal)
  status                     show the current status
  quit                       exit"""

class ConsoleReader:
    """Line-oriented front-end mapping typed commands onto a reading session."""

    def __init__(self, session: ReadingSession, client: DocumentUploadClient,
                 stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self.session = session
        self.client = client
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.binding = UIBinding(session, on_change=self._render)
        self._last_line: Optional[str] = None

    def write(self, line: str):
        print(line, file=self.stdout, flush=True)

    async def _render(self, binding: UIBinding):
        line = binding.render()
        if line != self._last_line:
            self._last_line = line
            self.write(line)

    async def run(self):
        self.write(HELP)
        self.write(self.binding.render())
        loop = asyncio.get_running_loop()
        while True:
            line = await loop.run_in_executor(None, self.stdin.readline)
            if not line:
                break
            if not await self.handle(line.strip()):
                break

    async def handle(self, line: str) -> bool:
        """Run one command. Returns False when the reader should exit."""
        if not line:
            return True
        command, _, argument = line.partition(" ")
        command = command.lower()
        argument = argument.strip()

        try:
            if command in ("quit", "exit"):
                return False
            elif command == "play":
                await self.session.play()
            elif command == "pause":
                await self.session.pause()
            elif command == "stop":
                await self.session.stop()
            elif command == "text":
                await self.session.set_text(argument)
                self.write(f"Loaded {len(argument)} characters.")
            elif command == "open":
                await self.open_document(argument)
            elif command == "lang":
                voices = await self.session.set_language(argument)
                if not voices:
                    self.write("No voices available for selected language")
            elif command == "voice":
                self.session.set_voice(argument)
            elif command == "voices":
                self.list_voices()
            elif command == "rate":
                self.write(f"Rate set to {self.session.set_rate(argument)}")
            elif command == "status":
                self.write(self.binding.render())
            elif command == "help":
                self.write(HELP)
            else:
                self.write(f"Unknown command: {command}. Type 'help' for the list of commands.")
        except PlaybackError as e:
            self.write(str(e))
        return True

    async def open_document(self, path: str):
        if not path:
            self.write("Usage: open <path>")
            return
        await self.binding.upload_started()
        try:
            content = await self.client.extract(path)
        except ExtractionError as e:
            await self.binding.upload_failed(e.message)
            self.write(f"Error uploading file: {e.message}")
            return
        await self.session.set_text(content)
        await self.session.refresh_voices()
        await self.binding.upload_succeeded()

    def list_voices(self):
        voices = self.session.voices.available
        if not voices:
            self.write("No voices available for selected language")
            return
        for voice in voices:
            marker = "*" if voice.name == self.session.voices.voice_name else " "
            default = " [default]" if voice.is_default else ""
            self.write(f"{marker} {voice.name} ({voice.language}){default}")
