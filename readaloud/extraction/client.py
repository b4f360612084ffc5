import logging
from pathlib import Path
from typing import Dict, Optional

import aiohttp

from readaloud.core.config import DOCX, PDF, PLAIN_TEXT, UploadConfig
from readaloud.core.exceptions import ExtractionError, UnsupportedDocumentType

logger = logging.getLogger(__name__)

CONTENT_TYPES: Dict[str, str] = {
    ".txt": PLAIN_TEXT,
    ".pdf": PDF,
    ".docx": DOCX,
}

def content_type_for(path: Path) -> str:
    """
    Raises:
        UnsupportedDocumentType: the extension is not .txt, .pdf or .docx
    """
    content_type = CONTENT_TYPES.get(Path(path).suffix.lower())
    if content_type is None:
        raise UnsupportedDocumentType()
    return content_type

class DocumentUploadClient:
    """Sends a local document to the extraction service and returns its text."""

    def __init__(self, config: UploadConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._session = session

    async def extract(self, path) -> str:
        """
        Upload `path` and return the extracted text.

        Raises:
            UnsupportedDocumentType: rejected locally, nothing was sent
            ExtractionError: the service answered with an error or was unreachable
        """
        path = Path(path)
        content_type = content_type_for(path)
        if not path.is_file():
            raise ExtractionError(f"File not found: {path}")

        try:
            if self._session is not None:
                return await self._post(self._session, path, content_type)
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                return await self._post(session, path, content_type)
        except aiohttp.ClientError as e:
            logger.error(f"Upload of {path.name} failed: {e}")
            raise ExtractionError(f"Failed to upload file: {e}") from e

    async def _post(self, session: aiohttp.ClientSession, path: Path, content_type: str) -> str:
        logger.info(f"Uploading {path.name} ({content_type}) to {self.config.endpoint}")
        with open(path, "rb") as f:
            form = aiohttp.FormData()
            form.add_field("document", f, filename=path.name, content_type=content_type)
            async with session.post(self.config.endpoint, data=form) as response:
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    payload = {}

                if response.status != 200:
                    message = payload.get("error") if isinstance(payload, dict) else None
                    message = message or f"Upload failed with status {response.status}"
                    logger.error(f"Upload service error {response.status}: {message}")
                    raise ExtractionError(message, response.status)

        content = payload.get("content") if isinstance(payload, dict) else None
        if not isinstance(content, str):
            raise ExtractionError("Upload service returned no content", response.status)
        return content
