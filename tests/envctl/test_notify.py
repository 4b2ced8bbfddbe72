"""Tests for envctl.notify."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import requests
from envctl.environments import Environment
from envctl.notify import NotificationStatus, build_card, send_notification

_WHEN = datetime(2026, 5, 4, 18, 30, tzinfo=timezone.utc)


def _facts(card: dict) -> dict[str, str]:
    return {f["name"]: f["value"] for f in card["sections"][0]["facts"]}


class TestNotificationStatus:
    def test_labels(self) -> None:
        assert NotificationStatus.SUCCESS.label == "Success"
        assert NotificationStatus.WARNING.label == "Success with warnings"
        assert NotificationStatus.FAILURE.label == "Failed"

    def test_colors_distinct(self) -> None:
        colors = {s.color for s in NotificationStatus}
        assert len(colors) == 3


class TestBuildCard:
    def test_payload_shape(self) -> None:
        card = build_card(
            "Environment Startup: QA",
            Environment.QA,
            NotificationStatus.WARNING,
            "web unhealthy",
            _WHEN,
        )
        assert card["@type"] == "MessageCard"
        assert card["title"] == "Environment Startup: QA"
        assert card["themeColor"] == NotificationStatus.WARNING.color
        assert card["sections"][0]["activityTitle"] == "QA - Success with warnings"
        facts = _facts(card)
        assert facts["Environment"] == "QA"
        assert facts["Status"] == "Success with warnings"
        assert facts["Details"] == "web unhealthy"
        assert facts["Timestamp"] == "2026-05-04 18:30:00 UTC"


class TestSendNotification:
    def test_posts_json(self) -> None:
        response = MagicMock()
        with patch("envctl.notify.requests.post", return_value=response) as post:
            sent = send_notification(
                "https://hook", "t", Environment.DEVELOPMENT, NotificationStatus.SUCCESS, "d", _WHEN
            )
        assert sent is True
        post.assert_called_once()
        assert post.call_args.args[0] == "https://hook"
        assert post.call_args.kwargs["json"]["title"] == "t"
        assert post.call_args.kwargs["timeout"] == 10

    def test_no_webhook_skips(self) -> None:
        with patch("envctl.notify.requests.post") as post:
            sent = send_notification(
                None, "t", Environment.DEVELOPMENT, NotificationStatus.SUCCESS, "d", _WHEN
            )
        assert sent is False
        post.assert_not_called()

    def test_connection_error_is_swallowed(self) -> None:
        with patch(
            "envctl.notify.requests.post", side_effect=requests.ConnectionError("refused")
        ):
            sent = send_notification(
                "https://hook", "t", Environment.QA, NotificationStatus.FAILURE, "d", _WHEN
            )
        assert sent is False

    def test_http_error_is_swallowed(self) -> None:
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("400")
        with patch("envctl.notify.requests.post", return_value=response):
            sent = send_notification(
                "https://hook", "t", Environment.QA, NotificationStatus.SUCCESS, "d", _WHEN
            )
        assert sent is False
