"""Chat-webhook notifications (Teams MessageCard payload)."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any

import requests

from envctl.environments import Environment

logger = logging.getLogger(__name__)

_TIMEOUT = 10


class NotificationStatus(Enum):
    """Outcome shown on the card, with its theme colour."""

    SUCCESS = ("Success", "28A745")
    WARNING = ("Success with warnings", "FFA500")
    FAILURE = ("Failed", "DC3545")

    def __init__(self, label: str, color: str) -> None:
        self.label = label
        self.color = color


def build_card(
    title: str,
    env: Environment,
    status: NotificationStatus,
    details: str,
    timestamp: datetime,
) -> dict[str, Any]:
    """Build the MessageCard JSON body."""
    stamp = timestamp.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    return {
        "@type": "MessageCard",
        "@context": "https://schema.org/extensions",
        "themeColor": status.color,
        "title": title,
        "summary": f"{title}: {status.label}",
        "sections": [
            {
                "activityTitle": f"{env.value} - {status.label}",
                "facts": [
                    {"name": "Environment", "value": env.value},
                    {"name": "Status", "value": status.label},
                    {"name": "Details", "value": details},
                    {"name": "Timestamp", "value": stamp},
                ],
            }
        ],
    }


def send_notification(
    webhook_url: str | None,
    title: str,
    env: Environment,
    status: NotificationStatus,
    details: str,
    timestamp: datetime,
) -> bool:
    """POST a card to *webhook_url*.

    Never raises: delivery problems are logged as warnings and reported
    through the return value.
    """
    if not webhook_url:
        logger.warning("No webhook configured, skipping '%s' notification", status.label)
        return False

    payload = build_card(title, env, status, details, timestamp)
    try:
        response = requests.post(webhook_url, json=payload, timeout=_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Failed to send notification: %s", exc)
        return False

    logger.info("Notification sent (%s)", status.label)
    return True
