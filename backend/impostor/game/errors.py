from __future__ import annotations


class GameError(Exception):
    """A rejected command. Reported to the caller only; no state was changed."""

    code = "game_error"
    message = "Command rejected"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_payload(self) -> dict:
        return {"error": self.code, "message": self.message}


class LobbyNotFound(GameError):
    code = "lobby_not_found"
    message = "Lobby not found"


class AlreadyStarted(GameError):
    code = "already_started"
    message = "Game already started"


class TooFewPlayers(GameError):
    code = "too_few_players"
    message = "At least 4 players are needed to start"


class NotStarted(GameError):
    code = "not_started"
    message = "Descriptions are not being collected"


class AlreadyKicked(GameError):
    code = "already_kicked"
    message = "Eliminated players cannot take part in this round"


class DuplicateSubmission(GameError):
    code = "duplicate_submission"
    message = "Description already submitted this round"


class NotInVotingPhase(GameError):
    code = "not_in_voting_phase"
    message = "Voting is not open"


class GameNotActive(GameError):
    code = "game_not_active"
    message = "No game in progress"


class InvalidTarget(GameError):
    code = "invalid_target"
    message = "Vote target is not an active player"


class InvalidDescription(GameError):
    code = "invalid_description"
    message = "Invalid description"


class InvalidPayload(GameError):
    code = "invalid_payload"
    message = "Invalid payload"


class OnlyHost(GameError):
    code = "only_host"
    message = "Only the host can do that"


class NotInLobby(GameError):
    code = "not_in_lobby"
    message = "You are not in this lobby"


class AlreadyInLobby(GameError):
    code = "already_in_lobby"
    message = "Leave your current lobby first"


class LobbyCodeExhausted(RuntimeError):
    """No free lobby code could be generated; raise the code length."""
