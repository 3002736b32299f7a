"""Tag vocabulary used in Facebook event descriptions.

Organizers annotate events with bracketed tags that drive publication on the
association website:

    [SITE] [STAGE] [CLUB:lanester] [TARIF:Adulte|20€] [PRIX:Enfant:10]
    [SESSION:2025-12-15|14:00-17:00] [LIEU:Dojo Municipal, 1 rue de Paris, Lyon]
    [PLACES:40]

Every pattern here is case-insensitive. Helpers never raise on malformed
input, they return None and the tag is treated as absent.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from vodao.models.event import ParsedLocation


SITE_TAG = "[SITE]"

EVENT_TYPE_TAGS = {
    "[STAGE]": "stage",
    "[SEMINAIRE]": "seminar",
    "[SEMINAR]": "seminar",
    "[COMPETITION]": "competition",
    "[DEMONSTRATION]": "demonstration",
    "[DEMO]": "demonstration",
}

# Values accepted in [TYPE:...]
EVENT_TYPE_ALIASES = {
    "competition": "competition",
    "compétition": "competition",
    "stage": "stage",
    "demonstration": "demonstration",
    "démonstration": "demonstration",
    "demo": "demonstration",
    "seminar": "seminar",
    "seminaire": "seminar",
    "séminaire": "seminar",
    "other": "other",
    "autre": "other",
}

CLUB_TAGS = {
    "[CUBLIZE]": "cublize",
    "[LANESTER]": "lanester",
    "[MONTAIGUT]": "montaigut-sur-save",
    "[MONTAIGUTSURSAVE]": "montaigut-sur-save",
    "[TREGUEUX]": "tregueux",
    "[TRÉGUEUX]": "tregueux",
    "[WIMILLE]": "wimille",
}

ALL_CLUBS_TAGS = ("[TOUS]", "[ALL]", "[TOUS LES CLUBS]")

FREE_PRICE_LABEL = "Gratuit"
DEFAULT_PRICE_LABEL = "Tarif unique"

_DATE = r"\d{4}-\d{2}-\d{2}|\d{2}[/-]\d{2}[/-]\d{4}"
_TIME = r"\d{1,2}[h:]?\d{2}"
_AMOUNT = r"(\d+(?:[.,]\d{1,2})?)\s*(?:€|EUR)?"

SITE_PATTERN = re.compile(r"\[SITE\]", re.IGNORECASE)
FREE_PATTERN = re.compile(r"\[(?:GRATUIT|FREE)\]", re.IGNORECASE)
UNLIMITED_PATTERN = re.compile(r"\[(?:ILLIMITE|ILLIMITÉ|UNLIMITED)\]", re.IGNORECASE)

# Bare keyword tags such as [STAGE], [LANESTER] or [TOUS LES CLUBS]
KEYWORD_TAG_PATTERN = re.compile(r"\[([A-Za-zÀ-ÿ][A-Za-zÀ-ÿ\s]*)\]")

TYPE_PATTERN = re.compile(r"\[TYPE:\s*([^\]]+?)\s*\]", re.IGNORECASE)
CLUB_PATTERN = re.compile(r"\[CLUB:\s*([A-Za-z0-9][A-Za-z0-9-]*)\s*\]", re.IGNORECASE)

# [SESSION:2025-12-15|14:00-17:00] with optional |notes
SESSION_PATTERN = re.compile(
    rf"\[SESSION:\s*({_DATE})\s*\|\s*({_TIME})\s*-\s*({_TIME})(?:\s*\|\s*([^\]]*?))?\s*\]",
    re.IGNORECASE,
)

# [DATE:2025-12-15], [DATE:15/12/2025] or [DATE:2025-12-15:14:00-17:00]
DATE_PATTERN = re.compile(
    rf"\[DATE:\s*({_DATE})(?:(?:\s*[:|]\s*|\s+)({_TIME})(?:\s*-\s*({_TIME}))?)?\s*\]",
    re.IGNORECASE,
)

# [HORAIRE:14:00-17:00], [HORAIRE:14h00]
TIME_PATTERN = re.compile(
    rf"\[HORAIRE:\s*({_TIME})(?:\s*-\s*({_TIME}))?\s*\]",
    re.IGNORECASE,
)

# [PRIX:25€] or [PRIX:Adulte:20]
PRICE_PATTERN = re.compile(
    rf"\[PRIX:\s*(?:([^\]:|]+?)\s*:\s*)?{_AMOUNT}\s*\]",
    re.IGNORECASE,
)

# [TARIF:Adulte|25€]
TARIFF_PATTERN = re.compile(
    rf"\[TARIF:\s*([^|\]]+?)\s*\|\s*{_AMOUNT}\s*\]",
    re.IGNORECASE,
)

LOCATION_PATTERN = re.compile(r"\[(?:LIEU|ADRESSE):\s*([^\]]+?)\s*\]", re.IGNORECASE)

CAPACITY_PATTERN = re.compile(r"\[(?:CAPACITE|CAPACITÉ|PLACES):\s*(\d+)\s*\]", re.IGNORECASE)

# Everything stripped from titles and descriptions, in application order
STRIPPED_PATTERNS = (
    SITE_PATTERN,
    FREE_PATTERN,
    UNLIMITED_PATTERN,
    SESSION_PATTERN,
    DATE_PATTERN,
    TIME_PATTERN,
    TARIFF_PATTERN,
    PRICE_PATTERN,
    LOCATION_PATTERN,
    CAPACITY_PATTERN,
    TYPE_PATTERN,
    CLUB_PATTERN,
    KEYWORD_TAG_PATTERN,
)


def normalize_tag(tag: str) -> str:
    """Upper-case a keyword tag and collapse its inner whitespace."""
    inner = " ".join(tag.strip().strip("[]").split())
    return f"[{inner.upper()}]"


def should_publish_to_site(content: str) -> bool:
    """Check whether the content carries the [SITE] publication tag."""
    return SITE_PATTERN.search(content) is not None


def get_event_type_from_tag(tag: str) -> Optional[str]:
    """Map a keyword tag such as [STAGE] to its event type."""
    return EVENT_TYPE_TAGS.get(normalize_tag(tag))


def normalize_event_type(value: str) -> Optional[str]:
    """Map the value of a [TYPE:...] tag to a known event type."""
    return EVENT_TYPE_ALIASES.get(value.strip().lower())


def get_club_slug_from_tag(tag: str) -> Optional[str]:
    """Map a keyword tag such as [LANESTER] to its club slug."""
    return CLUB_TAGS.get(normalize_tag(tag))


def is_all_clubs_tag(tag: str) -> bool:
    return normalize_tag(tag) in ALL_CLUBS_TAGS


def is_free_event(content: str) -> bool:
    return FREE_PATTERN.search(content) is not None


def is_unlimited_capacity(content: str) -> bool:
    return UNLIMITED_PATTERN.search(content) is not None


def normalize_date(date_str: str) -> Optional[str]:
    """
    Normalize a tag date to ISO format.

    Args:
        date_str: YYYY-MM-DD, DD/MM/YYYY or DD-MM-YYYY

    Returns:
        YYYY-MM-DD, or None when the text is not a real calendar date
    """
    value = date_str.strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y"):
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    return None


def normalize_time(time_str: str) -> Optional[str]:
    """
    Normalize a tag time to HH:MM.

    Args:
        time_str: HH:MM, HHhMM, H:MM or HHMM

    Returns:
        HH:MM, or None when hours or minutes are out of range
    """
    match = re.fullmatch(r"(\d{1,2})[hH:]?(\d{2})", time_str.strip())
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None

    return f"{hours:02d}:{minutes:02d}"


def parse_price_to_cents(price_str: str) -> Optional[int]:
    """
    Convert an amount in whole currency units to cents.

    Args:
        price_str: "25", "25.50" or "25,50"

    Returns:
        Amount in cents, or None if the amount cannot be read
    """
    try:
        amount = Decimal(price_str.strip().replace(",", "."))
    except InvalidOperation:
        return None

    if amount < 0:
        return None

    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_location(location_str: str) -> ParsedLocation:
    """Split 'name, address, city' into a ParsedLocation."""
    parts = [part.strip() for part in location_str.split(",")]

    def part(index: int) -> Optional[str]:
        return parts[index] or None if index < len(parts) else None

    return ParsedLocation(
        raw=location_str.strip(),
        name=part(0),
        address=part(1),
        city=part(2),
    )
