# errors.py


class TipPoolError(Exception):
    """Base class for every error raised by the tip pool calculator."""


# --- Core validation errors (deterministic, never retried) ---
class InvalidInput(TipPoolError, ValueError):
    pass


class EmptyInput(TipPoolError, ValueError):
    pass


class NegativePayout(TipPoolError, ValueError):
    pass


class NonFiniteInput(TipPoolError, ValueError):
    pass


# --- OCR provider failures ---
class OCRError(TipPoolError):
    kind = "unexpected"
    default_message = "An unexpected error occurred while processing the image."

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class MissingKey(OCRError):
    kind = "missing_key"
    default_message = "API key missing. Please configure the Gemini API key."


class AuthError(OCRError):
    kind = "auth_error"
    default_message = (
        "Authentication error. Your Gemini API key may be invalid or missing Vision API permissions."
    )


class QuotaExceeded(OCRError):
    kind = "quota_exceeded"
    default_message = "Gemini API quota exceeded. Please try again later or check your API key limits."


class NoTextFound(OCRError):
    kind = "no_text_found"
    default_message = "No text extracted from the image. Try a clearer image or manual entry."


class Unexpected(OCRError):
    kind = "unexpected"
