# hours_parser.py
import logging
import math
import re

from models import ParseResult, PartnerHours

logger = logging.getLogger(__name__)

# "John Smith: 32", "Maria Garcia - 24.5", "Alex − 18.75 hours"
HOURS_LINE_RE = re.compile(r'^(.+?)[:\-−]\s*(\d+(?:\.\d+)?)')


def parse_partner_hours(text: str) -> ParseResult:
    """
    Pull partner names and hours out of OCR text, one partner per line.

    Lines that don't look like ``name: hours`` (or that carry a blank name,
    zero hours or hours too large for a float) are returned in ``skipped`` so
    callers can show them instead of dropping rows silently.
    """
    partners = []
    skipped = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not line:
            continue
        m = HOURS_LINE_RE.match(line)
        if not m:
            skipped.append(line)
            continue
        name = m.group(1).strip()
        hours = float(m.group(2))
        if not name or not math.isfinite(hours) or hours <= 0:
            skipped.append(line)
            continue
        partners.append(PartnerHours(name=name, hours=hours))

    if skipped:
        logger.info("Skipped %d OCR lines that did not match 'name: hours'", len(skipped))
    return ParseResult(partners=partners, skipped=skipped)


def format_ocr_result(text: str) -> str:
    return "\n".join(line.strip() for line in (text or "").splitlines() if line.strip())
