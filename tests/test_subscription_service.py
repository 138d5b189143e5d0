"""Tests for the Trello client and the subscription manager."""

from urllib.parse import parse_qs

import httpx
import pytest

from boardsync.core.exceptions import (
    RetriesExhaustedError,
    SubscriptionError,
    UnrecoverableAPIError,
)
from boardsync.core.trello import TRELLO_API_BASE, WEBHOOK_DESCRIPTION, TrelloClient
from boardsync.services.subscription_service import SubscriptionManager

CALLBACK_URL = "https://sync.example.com/api/trello-webhook"


def make_trello(handler) -> TrelloClient:
    return TrelloClient(
        api_key="key",
        api_token="token",
        callback_url=CALLBACK_URL,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class FakeTrelloAPI:
    """Serves webhook create/delete; per-board and per-webhook failure switches."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.webhooks: dict[str, str] = {}
        self.fail_boards: dict[str, int] = {}
        self.fail_deletes: dict[str, int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            form = parse_qs(request.content.decode())
            board_id = form["idModel"][0]
            if board_id in self.fail_boards:
                return httpx.Response(self.fail_boards[board_id], text="nope")
            webhook_id = f"wh-{board_id}"
            self.webhooks[webhook_id] = board_id
            return httpx.Response(200, json={"id": webhook_id, "idModel": board_id})

        webhook_id = request.url.path.rsplit("/", 1)[-1]
        if webhook_id in self.fail_deletes:
            return httpx.Response(self.fail_deletes[webhook_id], text="nope")
        self.webhooks.pop(webhook_id, None)
        return httpx.Response(200, json={"_value": None})


class TestTrelloClient:
    async def test_create_webhook_posts_form(self):
        api = FakeTrelloAPI()
        trello = make_trello(api)

        webhook_id = await trello.create_webhook("board-1")

        assert webhook_id == "wh-board-1"
        request = api.requests[0]
        assert str(request.url) == f"{TRELLO_API_BASE}/webhooks/"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        form = parse_qs(request.content.decode())
        assert form == {
            "key": ["key"],
            "token": ["token"],
            "callbackURL": [CALLBACK_URL],
            "idModel": ["board-1"],
            "description": [WEBHOOK_DESCRIPTION],
        }

    async def test_create_webhook_without_id_is_terminal(self):
        trello = make_trello(lambda request: httpx.Response(200, json={}))
        with pytest.raises(UnrecoverableAPIError):
            await trello.create_webhook("board-1")

    async def test_delete_webhook_sends_credentials(self):
        api = FakeTrelloAPI()
        trello = make_trello(api)

        await trello.delete_webhook("wh-1")

        request = api.requests[0]
        assert request.method == "DELETE"
        assert request.url.path == "/1/webhooks/wh-1"
        assert request.url.params["key"] == "key"
        assert request.url.params["token"] == "token"

    async def test_requires_connect(self):
        trello = TrelloClient(api_key="k", api_token="t", callback_url=CALLBACK_URL)
        with pytest.raises(RuntimeError):
            await trello.create_webhook("board-1")


class TestSubscriptionManager:
    async def test_register_all_tracks_each_board(self, executor):
        api = FakeTrelloAPI()
        manager = SubscriptionManager(make_trello(api), executor)

        subscriptions = await manager.register_all(["board-1", "board-2"])

        assert subscriptions == {"board-1": "wh-board-1", "board-2": "wh-board-2"}
        assert manager.subscriptions == subscriptions

    async def test_register_failure_rolls_back_and_is_fatal(self, executor):
        api = FakeTrelloAPI()
        api.fail_boards["board-2"] = 400
        manager = SubscriptionManager(make_trello(api), executor)

        with pytest.raises(SubscriptionError) as exc_info:
            await manager.register_all(["board-1", "board-2", "board-3"])

        assert exc_info.value.board_id == "board-2"
        assert manager.subscriptions == {}
        assert api.webhooks == {}
        posted = [parse_qs(r.content.decode())["idModel"][0] for r in api.requests if r.method == "POST"]
        assert posted == ["board-1", "board-2"]

    async def test_register_retries_server_errors(self, executor):
        api = FakeTrelloAPI()
        api.fail_boards["board-1"] = 500
        manager = SubscriptionManager(make_trello(api), executor)

        with pytest.raises(SubscriptionError) as exc_info:
            await manager.register_all(["board-1"])

        assert isinstance(exc_info.value.__cause__, RetriesExhaustedError)
        assert len(api.requests) == 3

    async def test_register_all_requires_boards(self, executor):
        manager = SubscriptionManager(make_trello(FakeTrelloAPI()), executor)
        with pytest.raises(SubscriptionError):
            await manager.register_all([])

    async def test_deregister_all_continues_past_failures(self, executor, caplog):
        api = FakeTrelloAPI()
        manager = SubscriptionManager(make_trello(api), executor)
        await manager.register_all(["board-1", "board-2", "board-3"])
        api.fail_deletes["wh-board-2"] = 401

        failures = await manager.deregister_all()

        assert list(failures) == ["board-2"]
        deleted = [r.url.path for r in api.requests if r.method == "DELETE"]
        assert deleted == [
            "/1/webhooks/wh-board-1",
            "/1/webhooks/wh-board-2",
            "/1/webhooks/wh-board-3",
        ]
        assert manager.subscriptions == {"board-2": "wh-board-2"}
        assert "Error deleting webhook wh-board-2" in caplog.text

    async def test_deregister_single(self, executor):
        api = FakeTrelloAPI()
        manager = SubscriptionManager(make_trello(api), executor)
        webhook_id = await manager.register("board-1")

        await manager.deregister(webhook_id)

        assert manager.subscriptions == {}
        assert api.webhooks == {}
