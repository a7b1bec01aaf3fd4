from __future__ import annotations

import random
from typing import Literal, Protocol


Difficulty = Literal["easy", "medium", "hard"]
DIFFICULTIES: tuple[Difficulty, ...] = ("easy", "medium", "hard")


class UnknownDifficultyError(ValueError):
    pass


class WordSupplier(Protocol):
    def select_word(self, difficulty: Difficulty) -> str: ...

    def words_for(self, difficulty: Difficulty) -> list[str]: ...


DEFAULT_WORDS: dict[str, list[str]] = {
    "easy": [
        "cat", "dog", "sun", "tree", "house", "car", "fish", "apple", "ball", "book",
        "moon", "star", "hat", "cup", "bird", "boat", "shoe", "cake", "door", "key",
        "bed", "egg", "flower", "clock", "chair", "pizza", "snake", "train", "cloud", "duck",
    ],
    "medium": [
        "guitar", "rainbow", "castle", "rocket", "pirate", "ladder", "camera", "bridge",
        "penguin", "volcano", "helmet", "island", "candle", "dragon", "tornado", "anchor",
        "snowman", "compass", "lighthouse", "windmill", "kangaroo", "backpack", "umbrella",
        "scarecrow", "treasure", "airplane", "saxophone", "mermaid", "igloo", "cactus",
    ],
    "hard": [
        "gravity", "democracy", "nostalgia", "hibernation", "avalanche", "time machine",
        "black hole", "photosynthesis", "jet lag", "traffic jam", "procrastinate",
        "eclipse", "constellation", "evolution", "echo", "silhouette", "wifi", "deja vu",
        "sunburn", "earthquake", "blueprint", "bankruptcy", "migration", "camouflage",
        "inflation", "orbit", "reflection", "illusion", "friction", "telepathy",
    ],
}


def pick_words(words: list[str], count: int) -> list[str]:
    unique = list(dict.fromkeys(w for w in words if w.strip()))
    if count >= len(unique):
        random.shuffle(unique)
        return unique
    return random.sample(unique, count)


class StaticWordSupplier:
    """Picks words uniformly at random from fixed per-difficulty lists.

    Repeats across calls are expected; the game loop filters them.
    """

    def __init__(self, words: dict[str, list[str]] | None = None):
        self._words = {d: list(ws) for d, ws in (words or DEFAULT_WORDS).items()}

    def words_for(self, difficulty: Difficulty) -> list[str]:
        words = self._words.get(difficulty)
        if words is None:
            raise UnknownDifficultyError(difficulty)
        return list(words)

    def select_word(self, difficulty: Difficulty) -> str:
        words = self._words.get(difficulty)
        if not words:
            raise UnknownDifficultyError(difficulty)
        return random.choice(words)
