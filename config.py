# config.py
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DENOMINATIONS = "20,10,5,1,0.25,0.10,0.05,0.01"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1/models"


def parse_denominations(raw: str) -> Tuple[Decimal, ...]:
    """Parse a comma separated list of dollar amounts, largest first."""
    values = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            values.append(Decimal(part))
        except InvalidOperation:
            raise ValueError(f"Invalid denomination in TIP_DENOMINATIONS: {part!r}")
    return tuple(sorted(set(values), reverse=True))


@dataclass
class Settings:
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-pro"
    gemini_api_url: Optional[str] = None
    ocr_provider: str = "gemini"
    ocr_timeout: float = 60.0
    storage_backend: str = "memory"
    database_path: str = "tips.db"
    max_upload_mb: int = 10
    denominations: Tuple[Decimal, ...] = field(
        default_factory=lambda: parse_denominations(DEFAULT_DENOMINATIONS)
    )
    port: int = 5000
    log_level: str = "INFO"

    @property
    def gemini_endpoint(self) -> str:
        if self.gemini_api_url:
            return self.gemini_api_url
        return f"{GEMINI_BASE_URL}/{self.gemini_model}:generateContent"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


def load_settings() -> Settings:
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("NETLIFY_GEMINI_API_KEY") or "",
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-pro"),
        gemini_api_url=os.getenv("GEMINI_API_URL") or None,
        ocr_provider=os.getenv("OCR_PROVIDER", "gemini").strip().lower(),
        ocr_timeout=float(os.getenv("OCR_TIMEOUT", "60")),
        storage_backend=os.getenv("STORAGE_BACKEND", "memory").strip().lower(),
        database_path=os.getenv("DATABASE_PATH", "tips.db"),
        max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", "10")),
        denominations=parse_denominations(os.getenv("TIP_DENOMINATIONS", DEFAULT_DENOMINATIONS)),
        port=int(os.getenv("FLASK_PORT", "5000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
