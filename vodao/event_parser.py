"""Parser extracting structured event data from tagged Facebook events."""

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import structlog

from vodao import tags
from vodao.models.event import (
    ExtractedEventData,
    ParsedLocation,
    ParsedPrice,
    ParsedSession,
    ParsedTags,
)
from vodao.models.facebook import FacebookEventData


logger = structlog.get_logger(__name__)

UNTITLED_EVENT = "Événement sans titre"


def _extract_sessions(content: str) -> List[ParsedSession]:
    """Extract sessions from [SESSION], [DATE] and [HORAIRE] tags, in text order."""
    positioned: List[Tuple[int, ParsedSession]] = []

    for match in tags.SESSION_PATTERN.finditer(content):
        date = tags.normalize_date(match.group(1))
        if not date:
            continue
        positioned.append((match.start(), ParsedSession(
            date=date,
            start_time=tags.normalize_time(match.group(2)),
            end_time=tags.normalize_time(match.group(3)),
            notes=(match.group(4) or "").strip() or None,
        )))

    # Dates without inline times are paired with [HORAIRE] tags below
    bare_dates: List[Tuple[int, str]] = []
    for match in tags.DATE_PATTERN.finditer(content):
        date = tags.normalize_date(match.group(1))
        if not date:
            continue
        if match.group(2):
            positioned.append((match.start(), ParsedSession(
                date=date,
                start_time=tags.normalize_time(match.group(2)),
                end_time=tags.normalize_time(match.group(3)) if match.group(3) else None,
            )))
        else:
            bare_dates.append((match.start(), date))

    times: List[Tuple[Optional[str], Optional[str]]] = []
    for match in tags.TIME_PATTERN.finditer(content):
        start = tags.normalize_time(match.group(1))
        end = tags.normalize_time(match.group(2)) if match.group(2) else None
        times.append((start, end))

    for index, (position, date) in enumerate(bare_dates):
        if len(times) == len(bare_dates):
            start, end = times[index]
        elif len(times) == 1:
            start, end = times[0]
        else:
            start, end = None, None
        positioned.append((position, ParsedSession(date=date, start_time=start, end_time=end)))

    positioned.sort(key=lambda item: item[0])
    return [session for _, session in positioned]


def _extract_prices(content: str, is_free: bool) -> List[ParsedPrice]:
    """Extract price tiers; a free tag replaces every other price."""
    if is_free:
        return [ParsedPrice(label=tags.FREE_PRICE_LABEL, price_cents=0)]

    positioned: List[Tuple[int, ParsedPrice]] = []
    for pattern in (tags.TARIFF_PATTERN, tags.PRICE_PATTERN):
        for match in pattern.finditer(content):
            cents = tags.parse_price_to_cents(match.group(2))
            if cents is None:
                continue
            label = (match.group(1) or "").strip() or tags.DEFAULT_PRICE_LABEL
            positioned.append((match.start(), ParsedPrice(label=label, price_cents=cents)))

    positioned.sort(key=lambda item: item[0])
    return [price for _, price in positioned]


def _extract_locations(content: str) -> List[ParsedLocation]:
    return [
        tags.parse_location(match.group(1))
        for match in tags.LOCATION_PATTERN.finditer(content)
        if match.group(1).strip()
    ]


def _extract_clubs(content: str) -> Tuple[List[str], bool]:
    """Extract club slugs from [CLUB:slug] and keyword tags, and the all-clubs flag."""
    candidates: List[Tuple[int, str]] = []
    is_all_clubs = False

    for match in tags.KEYWORD_TAG_PATTERN.finditer(content):
        tag = match.group(0)
        if tags.is_all_clubs_tag(tag):
            is_all_clubs = True
            continue
        slug = tags.get_club_slug_from_tag(tag)
        if slug:
            candidates.append((match.start(), slug))

    for match in tags.CLUB_PATTERN.finditer(content):
        candidates.append((match.start(), match.group(1).lower()))

    candidates.sort(key=lambda item: item[0])

    club_slugs: List[str] = []
    for _, slug in candidates:
        if slug not in club_slugs:
            club_slugs.append(slug)

    return club_slugs, is_all_clubs


def _extract_event_type(content: str, warnings: List[str]) -> Optional[str]:
    """Return the first event type in text order; later conflicting ones are reported."""
    found: List[Tuple[int, str]] = []

    for match in tags.KEYWORD_TAG_PATTERN.finditer(content):
        event_type = tags.get_event_type_from_tag(match.group(0))
        if event_type:
            found.append((match.start(), event_type))

    for match in tags.TYPE_PATTERN.finditer(content):
        event_type = tags.normalize_event_type(match.group(1))
        if event_type:
            found.append((match.start(), event_type))

    if not found:
        return None

    found.sort(key=lambda item: item[0])
    chosen = found[0][1]
    for _, other in found[1:]:
        if other != chosen:
            warnings.append(f"Conflicting event type '{other}' ignored, keeping '{chosen}'")

    return chosen


def _extract_max_capacity(content: str, warnings: List[str]) -> Optional[int]:
    """Return the first positive capacity, or None when unlimited or absent."""
    if tags.is_unlimited_capacity(content):
        return None

    values = [int(match.group(1)) for match in tags.CAPACITY_PATTERN.finditer(content)]
    if not values:
        return None

    for other in values[1:]:
        if other != values[0]:
            warnings.append(f"Conflicting capacity {other} ignored, keeping {values[0]}")

    return values[0] if values[0] > 0 else None


def strip_tags(content: str) -> str:
    """
    Remove every recognized tag and normalize whitespace.

    Spaces are collapsed within each line and runs of blank lines are
    reduced to a single one. Unrecognized bracketed text with a colon is
    left in place.
    """
    for pattern in tags.STRIPPED_PATTERNS:
        content = pattern.sub("", content)

    lines = [" ".join(line.split()) for line in content.splitlines()]
    cleaned = "\n".join(lines).strip()
    return re.sub(r"\n{3,}", "\n\n", cleaned)


def parse_event_tags(content: str) -> ParsedTags:
    """
    Parse every tag in an event text.

    Malformed tags are skipped, this function never raises on user text.

    Args:
        content: Title and description joined by a newline

    Returns:
        ParsedTags with the publish flag, type, clubs, prices, sessions,
        locations, capacity and the text without tags
    """
    warnings: List[str] = []
    is_free = tags.is_free_event(content)
    club_slugs, is_all_clubs = _extract_clubs(content)

    parsed = ParsedTags(
        should_publish=tags.should_publish_to_site(content),
        event_type=_extract_event_type(content, warnings),
        club_slugs=club_slugs,
        is_all_clubs=is_all_clubs,
        is_free=is_free,
        max_capacity=_extract_max_capacity(content, warnings),
        sessions=_extract_sessions(content),
        prices=_extract_prices(content, is_free),
        locations=_extract_locations(content),
        cleaned_content=strip_tags(content),
        warnings=warnings,
    )

    if warnings:
        logger.debug("Conflicting tags ignored", warnings=warnings)

    return parsed


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a Facebook timestamp.

    Accepts ISO-8601 (with 'Z', '+01:00' or '+0100' offsets) and Unix seconds.
    Returns None for anything else.
    """
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    if text.isdigit():
        try:
            return datetime.fromtimestamp(int(text), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("Timestamp out of range", value=value)
            return None

    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = re.sub(r"([+-]\d{2})(\d{2})$", r"\1:\2", text)

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Unparsable timestamp", value=value)
        return None


def _place_to_location(facebook_event: FacebookEventData) -> Optional[str]:
    place = facebook_event.place
    if not place:
        return None

    parts = []
    if place.name:
        parts.append(place.name)
    if place.location:
        for value in (place.location.street, place.location.city, place.location.zip):
            if value:
                parts.append(value)

    return ", ".join(parts) if parts else None


def extract_event_data(facebook_event: FacebookEventData) -> ExtractedEventData:
    """
    Extract everything needed to store an event from a Facebook payload.

    Args:
        facebook_event: Raw event payload

    Returns:
        ExtractedEventData with cleaned title and description, parsed dates,
        location, cover image and parsed tags
    """
    title_content = facebook_event.name or ""
    description_content = facebook_event.description or ""

    parsed_tags = parse_event_tags(f"{title_content}\n{description_content}")

    title = strip_tags(title_content).replace("\n", " ")
    if not title:
        title = re.sub(r"\[[^\]]*\]", "", title_content).strip()
    if not title:
        title = UNTITLED_EVENT

    description = strip_tags(description_content) or None

    if parsed_tags.locations:
        location = parsed_tags.locations[0].raw
    else:
        location = _place_to_location(facebook_event)

    cover_image_url = facebook_event.cover.source if facebook_event.cover else None

    return ExtractedEventData(
        title=title,
        description=description,
        start_date=parse_timestamp(facebook_event.start_time),
        end_date=parse_timestamp(facebook_event.end_time),
        location=location,
        cover_image_url=cover_image_url or None,
        parsed_tags=parsed_tags,
    )


def summarize_tags(parsed_tags: ParsedTags) -> Dict[str, object]:
    """Compact view of parsed tags for logging."""
    return {
        "publish": parsed_tags.should_publish,
        "type": parsed_tags.event_type,
        "clubs": parsed_tags.club_slugs,
        "all_clubs": parsed_tags.is_all_clubs,
        "sessions": len(parsed_tags.sessions),
        "prices": len(parsed_tags.prices),
        "locations": len(parsed_tags.locations),
        "capacity": parsed_tags.max_capacity,
    }
