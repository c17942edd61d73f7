from __future__ import annotations

import random

from .models import WordPair


# (majority, minority). Pairs are close enough that a vague description fits
# both, which is what lets the minority hide.
DEFAULT_WORD_PAIRS: tuple[WordPair, ...] = (
    WordPair("happy", "joyful"),
    WordPair("big", "huge"),
    WordPair("hot", "warm"),
    WordPair("fast", "quick"),
    WordPair("dark", "gloomy"),
    WordPair("loud", "noisy"),
    WordPair("soft", "fluffy"),
    WordPair("strong", "powerful"),
    WordPair("sweet", "sugary"),
    WordPair("cat", "tiger"),
    WordPair("coffee", "tea"),
    WordPair("guitar", "violin"),
    WordPair("beach", "desert"),
    WordPair("train", "subway"),
    WordPair("pizza", "pie"),
    WordPair("river", "lake"),
    WordPair("moon", "sun"),
    WordPair("doctor", "nurse"),
    WordPair("castle", "palace"),
    WordPair("snow", "ice"),
)


def pick_pair(
    rng: random.Random | None = None,
    pairs: tuple[WordPair, ...] | list[WordPair] = DEFAULT_WORD_PAIRS,
) -> WordPair:
    if not pairs:
        raise ValueError("word pair catalog is empty")
    return (rng or random).choice(list(pairs))
