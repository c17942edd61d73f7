from __future__ import annotations

import logging
import random
from threading import RLock

from . import coordinator
from .errors import AlreadyInLobby, AlreadyStarted, LobbyCodeExhausted, LobbyNotFound
from .events import Event
from .models import Lobby


log = logging.getLogger(__name__)

# No 0/O or 1/I, codes get read out loud.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_CODE_ATTEMPTS = 1000


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class LobbyRegistry:
    """All live lobbies of one process, keyed by code.

    The map is guarded by its own lock; a lobby's state is guarded by the
    lobby's lock (always taken after the registry lock). A connection belongs
    to at most one lobby: creating or joining while still in another lobby
    raises ``AlreadyInLobby``, ``move_player`` does the switch in one step.
    """

    def __init__(
        self,
        code_length: int = 6,
        describe_duration_sec: int = 0,
        vote_duration_sec: int = 0,
        rng: random.Random | None = None,
    ) -> None:
        if code_length < 1:
            raise ValueError("code_length must be positive")
        self.code_length = code_length
        self.describe_duration_sec = describe_duration_sec
        self.vote_duration_sec = vote_duration_sec
        self._rng = rng or random.Random()
        self._lock = RLock()
        self._lobbies: dict[str, Lobby] = {}
        self._player_lobby: dict[str, str] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._lobbies)

    def __contains__(self, code: str) -> bool:
        with self._lock:
            return normalize_code(code) in self._lobbies

    def _generate_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = "".join(self._rng.choice(CODE_ALPHABET) for _ in range(self.code_length))
            if code not in self._lobbies:
                return code
        raise LobbyCodeExhausted(
            f"no free lobby code after {MAX_CODE_ATTEMPTS} attempts "
            f"({len(self._lobbies)} lobbies, code length {self.code_length})"
        )

    def _check_free(self, player_id: str, code: str | None = None) -> None:
        current = self._player_lobby.get(player_id)
        if current is not None and current != code:
            raise AlreadyInLobby()

    def create_lobby(self, host_id: str, host_name: str) -> Lobby:
        with self._lock:
            self._check_free(host_id)
            code = self._generate_code()
            lobby = Lobby(
                code=code,
                host_id=host_id,
                describe_duration_sec=self.describe_duration_sec,
                vote_duration_sec=self.vote_duration_sec,
                rng=random.Random(self._rng.getrandbits(64)),
            )
            coordinator.add_player(lobby, host_id, host_name)
            self._lobbies[code] = lobby
            self._player_lobby[host_id] = code
            log.info("lobby %s created by %s", code, host_name)
            return lobby

    def _joinable(self, code: str) -> Lobby:
        lobby = self._lobbies.get(normalize_code(code))
        if lobby is None:
            raise LobbyNotFound()
        if lobby.started:
            raise AlreadyStarted()
        return lobby

    def join_lobby(self, code: str, player_id: str, name: str) -> Lobby:
        with self._lock:
            lobby = self._joinable(code)
            self._check_free(player_id, lobby.code)
            with lobby.lock:
                if lobby.started:
                    raise AlreadyStarted()
                coordinator.add_player(lobby, player_id, name)
            self._player_lobby[player_id] = lobby.code
            log.info("lobby %s: %s joined", lobby.code, name)
            return lobby

    def move_player(
        self, code: str, player_id: str, name: str
    ) -> tuple[Lobby, Lobby | None, list[Event]]:
        """Join ``code``, leaving the player's current lobby first.

        The target is validated before anything else changes, so a rejected
        move leaves the current lobby untouched. Returns the joined lobby, the
        lobby that was left (or None) and the events of leaving it.
        """
        with self._lock:
            lobby = self._joinable(code)
            previous: Lobby | None = None
            events: list[Event] = []
            if self._player_lobby.get(player_id) not in (None, lobby.code):
                previous, events = self.remove_player(player_id)
            return self.join_lobby(lobby.code, player_id, name), previous, events

    def remove_player(self, player_id: str) -> tuple[Lobby | None, list[Event]]:
        with self._lock:
            code = self._player_lobby.pop(player_id, None)
            lobby = self._lobbies.get(code) if code else None
            if lobby is None:
                return None, []

            events = coordinator.remove_player(lobby, player_id)
            if not lobby.players:
                del self._lobbies[lobby.code]
                log.info("lobby %s closed", lobby.code)
            return lobby, events

    def get(self, code: str) -> Lobby | None:
        with self._lock:
            return self._lobbies.get(normalize_code(code))

    def lobby_of(self, player_id: str) -> Lobby | None:
        with self._lock:
            code = self._player_lobby.get(player_id)
            return self._lobbies.get(code) if code else None

    def list_lobbies(self) -> list[Lobby]:
        with self._lock:
            return list(self._lobbies.values())
