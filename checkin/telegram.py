from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

TELEGRAM_ENDPOINT = "https://api.telegram.org/bot{token}/sendMessage"

CONFIG_ERROR = "Server configuration error: Bot token not found."

# Substrings of the provider's error description. Order matters: first match wins.
BLOCKED_MARKER = "blocked"
NOT_APPROVED_MARKER = "can't initiate conversation"
CHAT_NOT_FOUND_MARKER = "chat not found"


@dataclass(frozen=True)
class NotificationOutcome:
    success: bool
    error: Optional[str] = None
    is_blocked: bool = False
    is_not_approved: bool = False
    is_chat_not_found: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error,
            "isBlocked": self.is_blocked,
            "isNotApproved": self.is_not_approved,
            "isChatNotFound": self.is_chat_not_found,
        }


def classify_failure(description: str, error: str, status: Optional[int] = None) -> NotificationOutcome:
    """
    Builds a failed outcome from the provider's error description.

    status=None is the `ok: false` response body path and checks every rule.
    With an HTTP status only 403 (blocked / not approved) and 400 (chat not found)
    are classified; anything else stays a generic failure.
    """
    text = description or ""
    blocked = not_approved = chat_not_found = False

    if status is None or status == 403:
        if BLOCKED_MARKER in text:
            blocked = True
        elif NOT_APPROVED_MARKER in text:
            not_approved = True
    if not (blocked or not_approved) and (status is None or status == 400):
        chat_not_found = CHAT_NOT_FOUND_MARKER in text

    return NotificationOutcome(
        success=False,
        error=error,
        is_blocked=blocked,
        is_not_approved=not_approved,
        is_chat_not_found=chat_not_found,
    )


def _description_from_response(resp: Optional[requests.Response]) -> str:
    if resp is None:
        return ""
    try:
        data = resp.json() or {}
    except ValueError:
        return ""
    return str(data.get("description") or "") if isinstance(data, dict) else ""


def send_telegram_message(
    chat_id: str,
    message: str,
    token: Optional[str] = None,
    timeout: int = 30,
    session: Optional[requests.Session] = None,
) -> NotificationOutcome:
    """Sends `message` (HTML parse mode) to `chat_id` through the Telegram Bot API.

    Never raises. A missing bot token is reported as a failed outcome before any
    network call is made.
    """
    if token is None:
        token = os.getenv("TELEGRAM_BOT_TOKEN", "")
    token = token.strip()
    if not token:
        logger.error("TELEGRAM_BOT_TOKEN is not set in environment variables.")
        return NotificationOutcome(success=False, error=CONFIG_ERROR)

    payload = {"chat_id": chat_id, "text": message, "parse_mode": "HTML"}
    http = session or requests

    try:
        r = http.post(TELEGRAM_ENDPOINT.format(token=token), json=payload, timeout=timeout)
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict):
            data = {}
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        description = _description_from_response(e.response) or str(e)
        outcome = classify_failure(description, f"HTTP Error: {status} - {description}", status)
        logger.warning("Telegram send to chat_id=%s failed: %s", chat_id, outcome.error)
        return outcome
    except Exception as e:
        logger.warning("Telegram send to chat_id=%s failed: %s", chat_id, e)
        return NotificationOutcome(success=False, error=f"Execution error: {e}")

    if data.get("ok"):
        return NotificationOutcome(success=True)

    description = str(data.get("description") or "Unknown Telegram error")
    outcome = classify_failure(description, f"Telegram API Error: {description}")
    logger.warning("Telegram send to chat_id=%s rejected: %s", chat_id, description)
    return outcome
