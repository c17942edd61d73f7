from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EventName(str, Enum):
    LOBBY_CREATED = "lobbyCreated"
    LOBBY_JOINED = "lobbyJoined"
    UPDATE_PLAYERS = "updatePlayers"
    GAME_STARTED = "gameStarted"
    YOUR_WORD = "yourWord"
    DESCRIPTION_RECEIVED = "descriptionReceived"
    DESCRIPTIONS_SUBMITTED = "descriptionsSubmitted"
    VOTE_RECEIVED = "voteReceived"
    PLAYER_KICKED = "playerKicked"
    NO_ELIMINATION = "noElimination"
    GAME_OVER = "gameOver"


@dataclass
class Event:
    """Something to emit. ``to`` is a player id for private events, None for the whole lobby."""

    name: EventName
    payload: dict = field(default_factory=dict)
    to: str | None = None

    @property
    def private(self) -> bool:
        return self.to is not None
