"""Messages exchanged between listeners and the reactions service."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SongEventType(str, Enum):
    """Kind of event a listener sends for a song."""

    PLAY = "PLAY"
    PAUSE = "PAUSE"
    REACTION = "REACTION"


class SongEvent(BaseModel):
    """An event a listener sends about a song channel."""

    nickname: str = Field(..., min_length=1, description="Listener nickname (charged identity)")
    song_id: str = Field(..., min_length=1, description="Song channel identifier")
    event_type: SongEventType = Field(..., description="PLAY, PAUSE or REACTION")
    content: Optional[str] = Field(
        default=None, description="Reaction kind (like, heart, fire...) for REACTION events"
    )

    @property
    def channel(self) -> str:
        return f"/songs/{self.song_id}"


class NotificationType(str, Enum):
    """Classification clients use to render private notifications."""

    LIMIT_REACHED = "LIMIT_REACHED"
    PAYMENT_ERROR = "PAYMENT_ERROR"


class PrivateNotification(BaseModel):
    """Message delivered to a single listener only."""

    type: NotificationType
    title: str
    message: str
    status: Optional[str] = Field(default=None, description="Charge status behind the notification")
