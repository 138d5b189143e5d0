"""Tests for payload flattening and settings helpers."""

import pytest
from pydantic import ValidationError

from boardsync.config import Settings
from boardsync.schemas.webhook import CardNotification, TrelloWebhookPayload


class TestWebhookPayload:
    def test_flattens_nested_payload(self):
        payload = TrelloWebhookPayload.model_validate(
            {
                "action": {
                    "type": "updateCard",
                    "data": {
                        "card": {
                            "id": "c1",
                            "name": "Ship release",
                            "due": "2025-03-10T00:00:00.000Z",
                            "shortLink": "abc123",
                            "closed": True,
                            "idList": "ignored",
                        },
                        "board": {"id": "b1", "name": "Eng"},
                        "listAfter": {"id": "l2"},
                    },
                }
            }
        )

        assert payload.to_notification() == CardNotification(
            action_type="updateCard",
            card_id="c1",
            card_name="Ship release",
            due="2025-03-10T00:00:00.000Z",
            short_link="abc123",
            closed=True,
            board_id="b1",
            board_name="Eng",
        )

    def test_board_actions_have_empty_card(self):
        payload = TrelloWebhookPayload.model_validate(
            {"action": {"type": "updateBoard", "data": {"board": {"id": "b1", "name": "Eng"}}}}
        )
        notification = payload.to_notification()
        assert notification.card_id == ""
        assert notification.due == ""
        assert notification.closed is False

    def test_null_due_becomes_empty_string(self):
        payload = TrelloWebhookPayload.model_validate(
            {"action": {"type": "updateCard", "data": {"card": {"id": "c1", "due": None}}}}
        )
        assert payload.to_notification().due == ""

    def test_action_is_required(self):
        with pytest.raises(ValidationError):
            TrelloWebhookPayload.model_validate({"model": {}})

    def test_source_url(self):
        notification = CardNotification(action_type="updateCard", short_link="abc123")
        assert notification.source_url == "https://trello.com/c/abc123"


class TestSettings:
    def test_board_ids_merge_single_and_list(self):
        settings = Settings(
            _env_file=None,
            trello_board_id="b1",
            trello_board_ids="b2, b1 ,,b3",
        )
        assert settings.board_ids == ["b1", "b2", "b3"]

    def test_board_ids_empty_by_default(self):
        settings = Settings(_env_file=None, trello_board_id="", trello_board_ids="")
        assert settings.board_ids == []

    def test_sync_database_url(self):
        settings = Settings(_env_file=None, database_url="sqlite+aiosqlite:///./cards.db")
        assert settings.sync_database_url == "sqlite:///./cards.db"

    def test_retry_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.retry_max_attempts == 3
        assert settings.server_port == 8080
