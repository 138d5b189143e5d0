"""
Webhook-related Pydantic schemas.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

TRELLO_CARD_URL = "https://trello.com/c/{short_link}"


# ============== Wire Shape ==============


class TrelloCardData(BaseModel):
    """Card section of a Trello action."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    name: str = ""
    due: Optional[str] = ""
    short_link: str = Field(default="", alias="shortLink")
    closed: bool = False


class TrelloBoardData(BaseModel):
    """Board section of a Trello action."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""


class TrelloActionData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    card: TrelloCardData = Field(default_factory=TrelloCardData)
    board: TrelloBoardData = Field(default_factory=TrelloBoardData)


class TrelloAction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = ""  # e.g. "updateCard"
    data: TrelloActionData = Field(default_factory=TrelloActionData)


class TrelloWebhookPayload(BaseModel):
    """Body Trello POSTs to the callback URL."""

    model_config = ConfigDict(extra="ignore")

    action: TrelloAction

    def to_notification(self) -> "CardNotification":
        """Flatten the nested wire shape."""
        card = self.action.data.card
        board = self.action.data.board
        return CardNotification(
            action_type=self.action.type,
            card_id=card.id,
            card_name=card.name,
            due=card.due or "",
            short_link=card.short_link,
            closed=card.closed,
            board_id=board.id,
            board_name=board.name,
        )


# ============== Domain Input ==============


class CardNotification(BaseModel):
    """A single card change, as the reconciliation engine sees it.

    ``due`` is the empty string when the card has no due date.
    """

    model_config = ConfigDict(frozen=True)

    action_type: str
    card_id: str = ""
    card_name: str = ""
    due: str = ""
    short_link: str = ""
    closed: bool = False
    board_id: str = ""
    board_name: str = ""

    @property
    def source_url(self) -> str:
        return TRELLO_CARD_URL.format(short_link=self.short_link)


# ============== Responses ==============


class WebhookResponse(BaseModel):
    """Response from webhook processing."""

    received: bool = True
    processed: bool
    item_id: Optional[str] = None
    outcome: Optional[str] = None
    error: Optional[str] = None
