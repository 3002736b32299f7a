"""Conversion of Facebook page webhook notifications into event payloads."""

import hashlib
import hmac
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog

from vodao.event_parser import UNTITLED_EVENT
from vodao.models.facebook import FacebookCover, FacebookEventData
from vodao.tags import should_publish_to_site


logger = structlog.get_logger(__name__)

FEED_ITEMS = frozenset({"status", "post", "photo", "video", "link", "share"})
MAX_TITLE_LENGTH = 200
SIGNATURE_PREFIX = "sha256="


def _created_time_to_iso(created_time: Any) -> str:
    if created_time is None or str(created_time).strip() == "":
        return datetime.now(timezone.utc).isoformat()

    text = str(created_time).strip()
    if text.isdigit():
        try:
            return datetime.fromtimestamp(int(text), tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            logger.warning("Post creation time out of range", created_time=text)
            return datetime.now(timezone.utc).isoformat()
    return text


def payload_from_feed_change(change: Dict[str, Any]) -> Optional[FacebookEventData]:
    """
    Build an event payload from one change of a page webhook.

    Only published posts carrying the [SITE] tag are converted. The first
    line of the message becomes the title and the whole message the
    description, so that tags in either are parsed.

    Returns:
        FacebookEventData, or None when the change is not an importable post
    """
    if change.get("field") != "feed":
        logger.debug("Webhook change ignored", field=change.get("field"))
        return None

    value = change.get("value") or {}
    item = value.get("item")
    post_id = value.get("post_id")

    if item not in FEED_ITEMS or not post_id:
        logger.debug("Feed item ignored", item=item, post_id=post_id)
        return None

    message = value.get("message") or ""
    if not should_publish_to_site(message):
        logger.debug("Post without [SITE] tag ignored", post_id=post_id)
        return None

    first_line = message.split("\n", 1)[0] or UNTITLED_EVENT

    return FacebookEventData(
        id=str(post_id),
        name=first_line[:MAX_TITLE_LENGTH],
        description=message,
        start_time=_created_time_to_iso(value.get("created_time")),
        cover=FacebookCover(source=value["photo"]) if value.get("photo") else None,
    )


def payloads_from_webhook(body: Dict[str, Any]) -> List[FacebookEventData]:
    """Collect importable payloads from every entry of a page webhook body."""
    if body.get("object") != "page":
        logger.info("Webhook object not handled", object=body.get("object"))
        return []

    payloads = []
    for entry in body.get("entry") or []:
        for change in entry.get("changes") or []:
            payload = payload_from_feed_change(change)
            if payload is not None:
                payloads.append(payload)

    logger.info("Webhook body converted", payloads=len(payloads))
    return payloads


def verify_subscription(mode: Optional[str],
                        token: Optional[str],
                        challenge: Optional[str],
                        expected_token: Optional[str]) -> Optional[str]:
    """
    Answer the subscription handshake of the webhook.

    Returns:
        The challenge to echo back, or None when the request must be refused
    """
    if mode == "subscribe" and expected_token and token is not None \
            and hmac.compare_digest(token, expected_token):
        logger.info("Webhook subscription verified")
        return challenge

    logger.warning("Webhook subscription refused", mode=mode)
    return None


def verify_signature(body: Union[bytes, str], signature_header: Optional[str], secret: str) -> bool:
    """
    Check the X-Hub-Signature-256 header of a webhook request.

    Args:
        body: Raw request body, exactly as received
        signature_header: Header value, "sha256=<hex digest>"
        secret: Application secret shared with Facebook

    Returns:
        True when the HMAC-SHA256 of the body matches the header
    """
    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        return False

    if isinstance(body, str):
        body = body.encode("utf-8")

    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    received = signature_header[len(SIGNATURE_PREFIX):]
    return hmac.compare_digest(expected, received)
