# ocr.py
import io
import logging
import re

from PIL import Image, UnidentifiedImageError

from config import Settings
from errors import NoTextFound, OCRError, Unexpected
import gemini_client

logger = logging.getLogger(__name__)

PROVIDERS = ("gemini", "tesseract", "vision")


def clean_ocr_text(text):
    # Normalise dash variants so "Name – 8" parses like "Name - 8"
    text = text.replace('—', '-').replace('–', '-')

    # Merge hours split over lines ("24.\n5" -> "24.5")
    text = re.sub(r'([0-9]+)\.\s*\n\s*([0-9]+)', r'\1.\2', text)

    # Trim extra spaces per line, drop blank lines
    lines = [re.sub(r'[ \t]{2,}', ' ', line.strip()) for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def to_jpeg(image_bytes: bytes) -> bytes:
    """Re-encode any readable upload as RGB JPEG."""
    try:
        img = Image.open(io.BytesIO(image_bytes)).convert('RGB')
    except (UnidentifiedImageError, OSError) as exc:
        raise Unexpected("The uploaded file is not a readable image.") from exc
    out = io.BytesIO()
    img.save(out, format='JPEG', quality=90)
    return out.getvalue()


def _tesseract_text(image_bytes: bytes) -> str:
    import pytesseract

    img = Image.open(io.BytesIO(image_bytes)).convert('RGB')
    try:
        return pytesseract.image_to_string(
            img,
            config="--psm 6 -c preserve_interword_spaces=1"
        )
    except pytesseract.TesseractError as exc:
        raise Unexpected(f"Tesseract failed: {exc}") from exc


def _vision_text(image_bytes: bytes) -> str:
    from google.cloud import vision

    client = vision.ImageAnnotatorClient()
    response = client.text_detection(image=vision.Image(content=image_bytes))
    if response.error.message:
        raise Unexpected(f"Vision API error: {response.error.message}")
    texts = response.text_annotations
    return texts[0].description if texts else ''


def extract_text_from_image(image_bytes: bytes, settings: Settings) -> str:
    """
    Extract text from an uploaded image with the configured provider
    (Gemini by default, or local Tesseract / Google Cloud Vision).

    Raises an OCRError subclass on any failure, never returns empty text.
    """
    provider = settings.ocr_provider
    if provider not in PROVIDERS:
        raise Unexpected(f"Unknown OCR provider: {provider}")

    jpeg = to_jpeg(image_bytes)
    logger.info("Running OCR with %s on %d byte image", provider, len(jpeg))

    try:
        if provider == "gemini":
            raw_text = gemini_client.analyze_image(jpeg, settings)
        elif provider == "tesseract":
            raw_text = _tesseract_text(jpeg)
        else:
            raw_text = _vision_text(jpeg)
    except OCRError:
        raise
    except Exception as exc:
        logger.exception("OCR provider %s failed", provider)
        raise Unexpected() from exc

    cleaned_text = clean_ocr_text(raw_text or '')
    if not cleaned_text:
        raise NoTextFound()

    logger.debug("Raw OCR text: %s", (raw_text or '')[:500])
    return cleaned_text


class OCRService:
    """Callable wrapper so the Flask app can take OCR as an injected dependency."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def __call__(self, image_bytes: bytes) -> str:
        return extract_text_from_image(image_bytes, self.settings)
