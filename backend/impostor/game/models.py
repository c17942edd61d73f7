from __future__ import annotations

import random
from dataclasses import dataclass, field
from threading import RLock
from typing import Literal


Phase = Literal["lobby", "describing", "voting", "results", "game_over"]


@dataclass(frozen=True)
class WordPair:
    majority_word: str
    minority_word: str


@dataclass
class Player:
    id: str
    name: str
    assigned_word: str | None = None
    eliminated: bool = False


@dataclass
class Description:
    player_id: str
    name: str
    text: str


@dataclass
class Lobby:
    code: str
    host_id: str
    phase: Phase = "lobby"
    started: bool = False
    round: int = 0
    word_pair: WordPair | None = None
    minority_ids: list[str] = field(default_factory=list)
    # Insertion order matters: the first active player supplies the reference
    # word for win evaluation.
    players: dict[str, Player] = field(default_factory=dict)
    descriptions: list[Description] = field(default_factory=list)
    # voter -> target. Re-votes overwrite in place, so a voter keeps the
    # position of their first vote; the tally tie-break depends on it.
    votes: dict[str, str] = field(default_factory=dict)
    phase_ends_at_ms: int | None = None
    describe_duration_sec: int = 0
    vote_duration_sec: int = 0
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    @property
    def active_players(self) -> list[Player]:
        return [p for p in self.players.values() if not p.eliminated]

    @property
    def active_ids(self) -> list[str]:
        return [p.id for p in self.players.values() if not p.eliminated]
