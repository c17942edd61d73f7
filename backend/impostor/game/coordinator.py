from __future__ import annotations

import logging
import re
import time

from .errors import (
    AlreadyKicked,
    AlreadyStarted,
    DuplicateSubmission,
    GameNotActive,
    InvalidDescription,
    InvalidTarget,
    NotInLobby,
    NotInVotingPhase,
    NotStarted,
    TooFewPlayers,
)
from .events import Event, EventName
from .models import Description, Lobby, Player, WordPair
from .words import DEFAULT_WORD_PAIRS, pick_pair


log = logging.getLogger(__name__)

MIN_PLAYERS = 4
MINORITY_RATIO = 0.25
DESCRIPTION_MAX_LEN = 280

WORD_PAIRS: tuple[WordPair, ...] = DEFAULT_WORD_PAIRS


def now_ms() -> int:
    return int(time.time() * 1000)


def _deadline(duration_sec: int) -> int | None:
    if duration_sec <= 0:
        return None
    return now_ms() + duration_sec * 1000


def _tokens(text: str) -> list[str]:
    return re.findall(r"[0-9a-z\u4e00-\u9fff]+", text.lower())


def _names_word(text: str, word: str) -> bool:
    w = word.strip().lower()
    if not w:
        return False
    return w in _tokens(text)


def minority_count(active_count: int) -> int:
    return max(1, int(active_count * MINORITY_RATIO))


def lobby_public_state(lobby: Lobby) -> dict:
    # Never includes assigned words.
    with lobby.lock:
        described = {d.player_id for d in lobby.descriptions}
        players = [
            {
                "id": p.id,
                "name": p.name,
                "eliminated": p.eliminated,
                "isHost": p.id == lobby.host_id,
                "hasDescribed": p.id in described,
                "hasVoted": p.id in lobby.votes,
            }
            for p in lobby.players.values()
        ]
        return {
            "code": lobby.code,
            "hostId": lobby.host_id,
            "phase": lobby.phase,
            "started": lobby.started,
            "round": lobby.round,
            "phaseEndsAtMs": lobby.phase_ends_at_ms,
            "players": players,
        }


def _players_event(lobby: Lobby) -> Event:
    return Event(EventName.UPDATE_PLAYERS, lobby_public_state(lobby))


def add_player(lobby: Lobby, player_id: str, name: str) -> Player:
    with lobby.lock:
        if lobby.started:
            raise AlreadyStarted()

        player = lobby.players.get(player_id)
        if player is None:
            player = Player(id=player_id, name=name)
            lobby.players[player_id] = player
        else:
            player.name = name

        if not lobby.host_id or lobby.host_id not in lobby.players:
            lobby.host_id = player_id
        return player


def remove_player(lobby: Lobby, player_id: str) -> list[Event]:
    """Drop a player from the roster and re-evaluate the running game.

    Their description, any vote they cast and any vote cast against them are
    discarded, so the barriers only ever count players still in the lobby.
    Returns nothing once the roster is empty; the registry deletes the lobby
    in that case.
    """
    with lobby.lock:
        player = lobby.players.pop(player_id, None)
        if player is None:
            return []

        lobby.descriptions = [d for d in lobby.descriptions if d.player_id != player_id]
        lobby.votes = {
            voter: target
            for voter, target in lobby.votes.items()
            if voter != player_id and target != player_id
        }

        if lobby.host_id == player_id:
            lobby.host_id = next(iter(lobby.players), "")

        if not lobby.players:
            return []

        log.info("lobby %s: player %s left", lobby.code, player.name)

        events: list[Event] = []
        if lobby.started:
            over = check_game_over(lobby)
            events.extend(over)
            if not over:
                events.extend(_advance_if_ready(lobby))

        events.append(_players_event(lobby))
        return events


def assign_words(lobby: Lobby, pairs: tuple[WordPair, ...] | list[WordPair] | None = None) -> WordPair:
    with lobby.lock:
        active = lobby.active_players
        pair = pick_pair(lobby.rng, pairs or WORD_PAIRS)

        k = min(minority_count(len(active)), len(active))
        # Uniform over all k-subsets regardless of roster order.
        minority = {p.id for p in lobby.rng.sample(active, k)}

        for p in lobby.players.values():
            if p.eliminated:
                p.assigned_word = None
            elif p.id in minority:
                p.assigned_word = pair.minority_word
            else:
                p.assigned_word = pair.majority_word

        lobby.word_pair = pair
        lobby.minority_ids = [p.id for p in active if p.id in minority]
        return pair


def _open_describing(lobby: Lobby) -> list[Event]:
    lobby.descriptions = []
    lobby.votes = {}
    assign_words(lobby)
    lobby.phase = "describing"
    lobby.phase_ends_at_ms = _deadline(lobby.describe_duration_sec)

    events = [
        Event(
            EventName.GAME_STARTED,
            {"code": lobby.code, "round": lobby.round, "state": lobby_public_state(lobby)},
        )
    ]
    for p in lobby.active_players:
        events.append(
            Event(
                EventName.YOUR_WORD,
                {"code": lobby.code, "round": lobby.round, "word": p.assigned_word},
                to=p.id,
            )
        )
    return events


def start_game(lobby: Lobby) -> list[Event]:
    with lobby.lock:
        if lobby.started:
            raise AlreadyStarted()
        if lobby.phase != "lobby":
            raise AlreadyStarted("Return to the lobby before starting a new game")
        # Everyone in the roster plays a fresh game.
        if len(lobby.players) < MIN_PLAYERS:
            raise TooFewPlayers()

        for p in lobby.players.values():
            p.eliminated = False
            p.assigned_word = None

        lobby.started = True
        lobby.round = 1
        events = _open_describing(lobby)
        log.info("lobby %s: game started with %d players", lobby.code, len(lobby.players))
        return events


def next_round(lobby: Lobby) -> list[Event]:
    with lobby.lock:
        if not lobby.started:
            raise GameNotActive()

        lobby.round += 1
        events = _open_describing(lobby)
        log.info("lobby %s: round %d", lobby.code, lobby.round)
        return events


def return_to_lobby(lobby: Lobby) -> list[Event]:
    with lobby.lock:
        lobby.started = False
        lobby.round = 0
        lobby.phase = "lobby"
        lobby.descriptions = []
        lobby.votes = {}
        lobby.word_pair = None
        lobby.minority_ids = []
        lobby.phase_ends_at_ms = None
        for p in lobby.players.values():
            p.assigned_word = None
            p.eliminated = False
        return [_players_event(lobby)]


def _description_progress(lobby: Lobby) -> tuple[int, int]:
    active = set(lobby.active_ids)
    submitted = sum(1 for d in lobby.descriptions if d.player_id in active)
    return submitted, len(active)


def _vote_progress(lobby: Lobby) -> tuple[int, int]:
    active = set(lobby.active_ids)
    submitted = sum(1 for voter in lobby.votes if voter in active)
    return submitted, len(active)


def submit_description(lobby: Lobby, player_id: str, text: str) -> list[Event]:
    with lobby.lock:
        if not lobby.started or lobby.phase != "describing":
            raise NotStarted()

        player = lobby.players.get(player_id)
        if player is None:
            raise NotInLobby()
        if player.eliminated:
            raise AlreadyKicked()
        if any(d.player_id == player_id for d in lobby.descriptions):
            raise DuplicateSubmission()

        t = (text or "").strip()
        if not t:
            raise InvalidDescription("Description is empty")
        if len(t) > DESCRIPTION_MAX_LEN:
            raise InvalidDescription(f"Description is longer than {DESCRIPTION_MAX_LEN} characters")
        if player.assigned_word and _names_word(t, player.assigned_word):
            raise InvalidDescription("Describe your word without naming it")

        lobby.descriptions.append(Description(player_id=player.id, name=player.name, text=t))

        submitted, needed = _description_progress(lobby)
        events = [
            Event(
                EventName.DESCRIPTION_RECEIVED,
                {"code": lobby.code, "playerId": player.id, "submitted": submitted, "needed": needed},
            )
        ]
        events.extend(_close_descriptions_if_ready(lobby))
        return events


def _close_descriptions_if_ready(lobby: Lobby) -> list[Event]:
    if lobby.phase != "describing":
        return []
    submitted, needed = _description_progress(lobby)
    if needed == 0 or submitted < needed:
        return []
    return _close_descriptions(lobby)


def _close_descriptions(lobby: Lobby) -> list[Event]:
    lobby.phase = "voting"
    lobby.votes = {}
    lobby.phase_ends_at_ms = _deadline(lobby.vote_duration_sec)
    return [
        Event(
            EventName.DESCRIPTIONS_SUBMITTED,
            {
                "code": lobby.code,
                "round": lobby.round,
                "phaseEndsAtMs": lobby.phase_ends_at_ms,
                "descriptions": [
                    {"playerId": d.player_id, "name": d.name, "text": d.text}
                    for d in lobby.descriptions
                ],
            },
        )
    ]


def submit_vote(lobby: Lobby, voter_id: str, target_id: str) -> list[Event]:
    with lobby.lock:
        if not lobby.started or lobby.phase != "voting":
            raise NotInVotingPhase()

        voter = lobby.players.get(voter_id)
        if voter is None:
            raise NotInLobby()
        if voter.eliminated:
            raise AlreadyKicked()

        target = lobby.players.get(target_id)
        if target is None or target.eliminated:
            raise InvalidTarget()

        # Last vote wins; an existing key keeps its original position.
        lobby.votes[voter_id] = target_id

        submitted, needed = _vote_progress(lobby)
        events = [
            Event(
                EventName.VOTE_RECEIVED,
                {"code": lobby.code, "voterId": voter_id, "submitted": submitted, "needed": needed},
            )
        ]
        if submitted >= needed:
            events.extend(_resolve_votes(lobby))
        return events


def tally_votes(votes: dict[str, str]) -> tuple[str | None, dict[str, int]]:
    """Return (eliminated target, counts).

    Targets are counted in the order they first appear in ``votes``. Only a
    strictly higher count replaces the leader, so on a tie the target that was
    voted for first wins. This is deterministic on purpose.
    """
    counts: dict[str, int] = {}
    for target in votes.values():
        counts[target] = counts.get(target, 0) + 1

    chosen: str | None = None
    best = 0
    for target, count in counts.items():
        if count > best:
            chosen = target
            best = count
    return chosen, counts


def _resolve_votes(lobby: Lobby) -> list[Event]:
    active = set(lobby.active_ids)
    votes = {v: t for v, t in lobby.votes.items() if v in active and t in active}
    target_id, counts = tally_votes(votes)

    lobby.phase = "results"
    lobby.phase_ends_at_ms = None

    if target_id is None:
        log.info("lobby %s: round %d closed without votes", lobby.code, lobby.round)
        return [Event(EventName.NO_ELIMINATION, {"code": lobby.code, "round": lobby.round})]

    target = lobby.players[target_id]
    target.eliminated = True
    log.info("lobby %s: %s voted out with %d votes", lobby.code, target.name, counts[target_id])

    events = [
        Event(
            EventName.PLAYER_KICKED,
            {
                "code": lobby.code,
                "round": lobby.round,
                "id": target.id,
                "name": target.name,
                "votes": counts,
            },
        ),
        Event(
            EventName.GAME_OVER,
            {"code": lobby.code, "reason": "kicked", "message": "You were voted out"},
            to=target.id,
        ),
    ]
    events.extend(check_game_over(lobby))
    return events


def check_game_over(lobby: Lobby) -> list[Event]:
    with lobby.lock:
        if not lobby.started:
            return []

        active = lobby.active_players
        if len(active) <= 2:
            return _end_game(lobby, "too_few_players", "Too few players remain")

        # The first active player in roster order defines the common word.
        common_word = active[0].assigned_word
        minority_remaining = sum(1 for p in active if p.assigned_word != common_word)

        if minority_remaining == 0:
            return _end_game(lobby, "majority_wins", "The impostors were found")
        if minority_remaining >= len(active) - minority_remaining:
            return _end_game(lobby, "minority_wins", "The impostors took over")
        return []


def _end_game(lobby: Lobby, reason: str, message: str) -> list[Event]:
    pair = lobby.word_pair
    payload = {
        "code": lobby.code,
        "round": lobby.round,
        "reason": reason,
        "message": message,
        "wordPair": (
            {"majority": pair.majority_word, "minority": pair.minority_word} if pair else None
        ),
        "minorityIds": list(lobby.minority_ids),
    }

    lobby.started = False
    lobby.phase = "game_over"
    lobby.phase_ends_at_ms = None
    for p in lobby.players.values():
        p.assigned_word = None

    log.info("lobby %s: game over (%s) after round %d", lobby.code, reason, lobby.round)
    return [Event(EventName.GAME_OVER, payload)]


def _advance_if_ready(lobby: Lobby) -> list[Event]:
    if lobby.phase == "describing":
        return _close_descriptions_if_ready(lobby)
    if lobby.phase == "voting":
        submitted, needed = _vote_progress(lobby)
        if needed and submitted >= needed:
            return _resolve_votes(lobby)
    return []


def force_advance(lobby: Lobby, phase: str | None = None, round: int | None = None) -> list[Event]:
    """Close the current phase without waiting for the barrier.

    Meant for external timers. When ``phase``/``round`` are given and the lobby
    has already moved past them, nothing happens.
    """
    with lobby.lock:
        if not lobby.started:
            return []
        if phase is not None and lobby.phase != phase:
            return []
        if round is not None and lobby.round != round:
            return []

        if lobby.phase == "describing":
            log.info("lobby %s: description time is up", lobby.code)
            return _close_descriptions(lobby)
        if lobby.phase == "voting":
            log.info("lobby %s: voting time is up", lobby.code)
            return _resolve_votes(lobby)
        return []


def expire_phase(lobby: Lobby, now: int | None = None) -> list[Event]:
    with lobby.lock:
        if lobby.phase_ends_at_ms is None:
            return []
        if (now if now is not None else now_ms()) < lobby.phase_ends_at_ms:
            return []
        return force_advance(lobby, phase=lobby.phase, round=lobby.round)
