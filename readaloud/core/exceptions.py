from typing import Optional

class ReadAloudError(Exception):
    """Base exception for all application errors."""
    pass

class ConfigurationError(ReadAloudError):
    pass

class PlaybackError(ReadAloudError):
    """Raised when a playback command is rejected before any state change."""
    pass

class VoicesNotReady(PlaybackError):
    def __init__(self, message: str = "Voices are not loaded yet. Please wait a moment and try again."):
        super().__init__(message)

class TextEmpty(PlaybackError):
    def __init__(self, message: str = "Please enter or upload some text to read."):
        super().__init__(message)

class TextTooShort(PlaybackError):
    def __init__(self, message: str = "Text is too short to read. Please enter more content."):
        super().__init__(message)

class UnsupportedPlatformError(PlaybackError):
    def __init__(self, message: str = "Speech synthesis is not supported on this platform."):
        super().__init__(message)

class InvalidSetting(PlaybackError):
    pass

class EngineError(ReadAloudError):
    pass

class ExtractionError(ReadAloudError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status

class UnsupportedDocumentType(ExtractionError):
    def __init__(self, message: str = "Only plain text (.txt), PDF (.pdf) and Word (.docx) files are allowed.",
                 status: Optional[int] = 400):
        super().__init__(message, status)
