import argparse
import asyncio
import logging
import signal

from readaloud.core.config import Config
from readaloud.core.exceptions import InvalidSetting
from readaloud.core.logging import setup_logging
from readaloud.engine.pyttsx3_engine import Pyttsx3SpeechEngine
from readaloud.extraction.client import DocumentUploadClient
from readaloud.extraction.service import run_server
from readaloud.playback.session import ReadingSession
from readaloud.playback.voices import VoiceSelection
from readaloud.ui.console import ConsoleReader

logger = logging.getLogger("main")

async def serve(config: Config):
    logger.info("Starting upload service...")
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)
    await run_server(config.upload, stop_event)

async def read(config: Config, args: argparse.Namespace):
    logger.info("Starting reader...")
    engine = Pyttsx3SpeechEngine(config.engine)
    session = ReadingSession.create(engine, config)
    client = DocumentUploadClient(config.upload)
    reader = ConsoleReader(session, client)

    try:
        await engine.start()
        if args.file:
            await reader.open_document(args.file)
        elif args.text:
            await session.set_text(" ".join(args.text))
        await reader.run()
    finally:
        await session.close()

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="readaloud", description="Read text and documents aloud")
    parser.add_argument("--log-level", type=str, default=None, help="Override the log level")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the document upload service")

    reader = sub.add_parser("read", help="Start the interactive reader")
    reader.add_argument("--file", type=str, default=None, help="Document to upload and load on start")
    reader.add_argument("--language", type=str, default=None, help="Language tag, e.g. en-US")
    reader.add_argument("--rate", type=float, default=None, help="Speech rate multiplier")
    reader.add_argument("--endpoint", type=str, default=None, help="Upload service URL")
    reader.add_argument("text", nargs="*", help="Text to load on start")
    return parser

def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    config = Config.load()
    if args.log_level:
        config.logging.level = args.log_level.upper()
    setup_logging(level=config.logging.level, fmt=config.logging.format)

    if args.command == "serve":
        asyncio.run(serve(config))
        return

    if args.language:
        config.voice.language = args.language
    if args.rate is not None:
        try:
            config.voice.rate = VoiceSelection().set_rate(args.rate)
        except InvalidSetting as e:
            parser.error(str(e))
    if args.endpoint:
        config.upload.endpoint = args.endpoint
    asyncio.run(read(config, args))

if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
