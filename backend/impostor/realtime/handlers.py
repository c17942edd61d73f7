from __future__ import annotations

import logging

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game import coordinator
from ..game.errors import GameError, InvalidPayload, LobbyNotFound, NotInLobby, OnlyHost
from ..game.events import Event, EventName
from ..game.models import Lobby
from ..game.registry import LobbyRegistry, normalize_code


log = logging.getLogger(__name__)


def _validate_name(name: str) -> bool:
    n = (name or "").strip()
    if not n:
        return False
    if len(n) > 16:
        return False
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        return False
    # No control characters.
    for ch in n:
        if ord(ch) < 32:
            return False
    return True


def register_socketio_handlers(socketio: SocketIO, registry: LobbyRegistry) -> None:
    lobby_tasks: dict[str, bool] = {}

    def _emit_events(code: str, events: list[Event]) -> None:
        for event in events:
            socketio.emit(event.name.value, event.payload, to=event.to or code)

    def _fail(err: GameError) -> dict:
        log.info("rejected command from %s: %s", request.sid, err.code)
        emit("error", err.to_payload())
        return {"ok": False, **err.to_payload()}

    def _caller_lobby(payload: dict) -> Lobby:
        code = normalize_code(str(payload.get("code", "")))
        if not code:
            raise InvalidPayload("Missing lobby code")
        lobby = registry.get(code)
        if lobby is None:
            raise LobbyNotFound()
        if request.sid not in lobby.players:
            raise NotInLobby()
        return lobby

    def _require_host(lobby: Lobby) -> None:
        if request.sid != lobby.host_id:
            raise OnlyHost()

    def _leave_current() -> None:
        lobby, events = registry.remove_player(request.sid)
        if lobby is None:
            return
        leave_room(lobby.code)
        _emit_events(lobby.code, events)

    def _ensure_lobby_task(code: str) -> None:
        if lobby_tasks.get(code):
            return
        lobby = registry.get(code)
        if lobby is None or not (lobby.describe_duration_sec or lobby.vote_duration_sec):
            return
        lobby_tasks[code] = True

        def _runner() -> None:
            try:
                while True:
                    current = registry.get(code)
                    if current is None or not current.started:
                        break
                    events = coordinator.expire_phase(current)
                    if events:
                        _emit_events(code, events)
                    socketio.sleep(0.25)
            finally:
                lobby_tasks.pop(code, None)

        socketio.start_background_task(_runner)

    @socketio.on("createLobby")
    def create_lobby(data):
        payload = data or {}
        name = str(payload.get("name", "")).strip()
        if not _validate_name(name):
            return _fail(InvalidPayload("Invalid player name"))

        _leave_current()
        lobby = registry.create_lobby(request.sid, name)
        join_room(lobby.code)

        state = coordinator.lobby_public_state(lobby)
        emit(EventName.LOBBY_CREATED.value, state)
        return {"ok": True, "code": lobby.code, "you": request.sid, "players": state["players"]}

    @socketio.on("joinLobby")
    def join_lobby(data):
        payload = data or {}
        code = normalize_code(str(payload.get("code", "")))
        name = str(payload.get("name", "")).strip()
        if not code or not _validate_name(name):
            return _fail(InvalidPayload())

        try:
            lobby, previous, left_events = registry.move_player(code, request.sid, name)
        except GameError as e:
            return _fail(e)

        if previous is not None:
            leave_room(previous.code)
            _emit_events(previous.code, left_events)

        join_room(lobby.code)
        state = coordinator.lobby_public_state(lobby)
        emit(EventName.LOBBY_JOINED.value, state)
        socketio.emit(EventName.UPDATE_PLAYERS.value, state, to=lobby.code)
        return {"ok": True, "code": lobby.code, "you": request.sid, "players": state["players"]}

    @socketio.on("leaveLobby")
    def leave_lobby(data):
        try:
            _caller_lobby(data or {})
        except GameError as e:
            return _fail(e)

        _leave_current()
        return {"ok": True}

    @socketio.on("startGame")
    def start_game(data):
        try:
            lobby = _caller_lobby(data or {})
            _require_host(lobby)
            events = coordinator.start_game(lobby)
        except GameError as e:
            return _fail(e)

        _emit_events(lobby.code, events)
        _ensure_lobby_task(lobby.code)
        return {"ok": True, "round": lobby.round}

    @socketio.on("submitDescription")
    def submit_description(data):
        payload = data or {}
        text = payload.get("text")
        try:
            if not isinstance(text, str):
                raise InvalidPayload("Missing description text")
            lobby = _caller_lobby(payload)
            events = coordinator.submit_description(lobby, request.sid, text)
        except GameError as e:
            return _fail(e)

        _emit_events(lobby.code, events)
        return {"ok": True}

    @socketio.on("submitVote")
    def submit_vote(data):
        payload = data or {}
        target_id = str(payload.get("targetId", "")).strip()
        try:
            if not target_id:
                raise InvalidPayload("Missing vote target")
            lobby = _caller_lobby(payload)
            events = coordinator.submit_vote(lobby, request.sid, target_id)
        except GameError as e:
            return _fail(e)

        _emit_events(lobby.code, events)
        return {"ok": True}

    @socketio.on("nextRound")
    def next_round(data):
        try:
            lobby = _caller_lobby(data or {})
            _require_host(lobby)
            events = coordinator.next_round(lobby)
        except GameError as e:
            return _fail(e)

        _emit_events(lobby.code, events)
        _ensure_lobby_task(lobby.code)
        return {"ok": True, "round": lobby.round}

    @socketio.on("returnToLobby")
    def return_to_lobby(data):
        try:
            lobby = _caller_lobby(data or {})
            _require_host(lobby)
        except GameError as e:
            return _fail(e)

        _emit_events(lobby.code, coordinator.return_to_lobby(lobby))
        return {"ok": True}

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        _leave_current()
