"""
Document extraction service.

POST /upload with a multipart field named "document" returns
{"content": "<text>"} on success and {"error": "<message>"} otherwise
(400 for client mistakes, 500 when extraction fails). The uploaded file is
stored under the upload directory only while it is being read.
"""

import asyncio
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Optional

from aiohttp import hdrs, web
from aiohttp.multipart import BodyPartReader, MultipartReader

from readaloud.core.config import UploadConfig
from readaloud.core.exceptions import ExtractionError, UnsupportedDocumentType
from readaloud.core.logging import set_correlation_id
from readaloud.extraction.extractors import extract_text

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", UploadConfig)

FIELD_NAME = "document"
NO_FILE = "No file uploaded"
MALFORMED = "Malformed upload"
READ_FAILED = "Failed to read file"

def json_error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)

@web.middleware
async def error_middleware(request: web.Request, handler):
    set_correlation_id(str(uuid.uuid4()))
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        if e.status == web.HTTPRequestEntityTooLarge.status_code:
            return json_error(e.reason, 400)
        return json_error(e.reason, e.status)
    except Exception as e:
        logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
        return json_error("Internal server error", 500)

def _mimetype(value: str) -> str:
    return value.split(";", 1)[0].strip().lower()

def _temp_path(upload_dir: str, filename: str) -> Path:
    safe_name = Path(filename.replace("\\", "/")).name or "upload"
    return Path(upload_dir) / f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{safe_name}"

def _remove(path: Path):
    if not path.exists():
        return
    try:
        os.remove(path)
    except OSError as e:
        logger.error(f"Failed to delete uploaded file {path}: {e}")

async def _find_document(reader: MultipartReader) -> Optional[BodyPartReader]:
    while True:
        part = await reader.next()
        if part is None:
            return None
        if isinstance(part, BodyPartReader) and part.name == FIELD_NAME:
            return part
        await part.release()

async def _save(part: BodyPartReader, path: Path, max_size: int) -> int:
    size = 0
    with open(path, "wb") as f:
        while True:
            chunk = await part.read_chunk()
            if not chunk:
                break
            size += len(chunk)
            if size > max_size:
                raise ExtractionError(f"File exceeds the {max_size // (1024 * 1024)} MiB upload limit", 400)
            f.write(chunk)
    return size

async def upload(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]

    if not request.content_type.startswith("multipart/"):
        return json_error(NO_FILE, 400)

    try:
        reader = await request.multipart()
        part = await _find_document(reader)
    except ValueError as e:
        logger.warning(f"Malformed multipart upload: {e}")
        return json_error(MALFORMED, 400)

    if part is None or not part.filename:
        return json_error(NO_FILE, 400)

    content_type = _mimetype(part.headers.get(hdrs.CONTENT_TYPE, ""))
    if content_type not in config.allowed_types:
        logger.info(f"Rejected upload {part.filename!r} with type {content_type!r}")
        return json_error(UnsupportedDocumentType().message, 400)

    path = _temp_path(config.upload_dir, part.filename)
    try:
        try:
            size = await _save(part, path, config.max_size)
        except ExtractionError as e:
            return json_error(e.message, e.status or 400)
        except ValueError as e:
            logger.warning(f"Malformed multipart upload: {e}")
            return json_error(MALFORMED, 400)

        logger.info(f"Stored upload {part.filename!r} ({size} bytes, {content_type})",
                    extra={"size": size, "content_type": content_type})

        loop = asyncio.get_running_loop()
        try:
            content = await loop.run_in_executor(None, extract_text, path, content_type)
        except Exception as e:
            logger.error(f"Failed to read file {part.filename!r}: {e}", exc_info=True)
            return json_error(READ_FAILED, 500)

        return web.json_response({"content": content})
    finally:
        _remove(path)

async def _ensure_upload_dir(app: web.Application):
    upload_dir = Path(app[CONFIG_KEY].upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Upload directory ready: {upload_dir.resolve()}")

def create_app(config: UploadConfig) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[CONFIG_KEY] = config
    app.router.add_post("/upload", upload)
    app.on_startup.append(_ensure_upload_dir)
    return app

async def run_server(config: UploadConfig, stop_event: asyncio.Event):
    """Serve until `stop_event` is set."""
    runner = web.AppRunner(create_app(config))
    await runner.setup()
    site = web.TCPSite(runner, config.host, config.port)
    await site.start()
    logger.info(f"Upload service listening on http://{config.host}:{config.port}")
    try:
        await stop_event.wait()
    finally:
        await runner.cleanup()
        logger.info("Upload service stopped")
