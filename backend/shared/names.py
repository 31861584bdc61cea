"""Deterministic human-readable names for battles and players.

Names are derived from an id, so the same id always yields the same name
(``Adjective-Noun-NN``). Games can supply their own word lists.
"""

from __future__ import annotations

import hashlib
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

PLAYER_ADJECTIVES = ("Swift", "Bold", "Brave", "Lucky", "Noble", "Quick", "Sharp", "Calm", "Eager", "Keen")
PLAYER_NOUNS = ("Player", "Warrior", "Scout", "Champion", "Seeker", "Runner", "Hunter", "Ranger", "Pioneer", "Voyager")

BATTLE_ADJECTIVES = (
    "Molting",
    "Brooding",
    "Plucked",
    "Flightless",
    "Migratory",
    "Territorial",
    "Peckish",
    "Hollow",
    "Grounded",
    "Soaring",
)
BATTLE_NOUNS = (
    "Skirmish",
    "Siege",
    "Sortie",
    "Standoff",
    "Offensive",
    "Ambush",
    "Retreat",
    "Stalemate",
    "Incursion",
    "Blitz",
)

_SUFFIX_MODULO = 100


class NameKind(StrEnum):
    PLAYER = "player"
    BATTLE = "battle"


def generate_name(
    seed: str,
    kind: NameKind = NameKind.PLAYER,
    adjectives: Sequence[str] = (),
    nouns: Sequence[str] = (),
) -> str:
    """Derive a name from ``seed``. Custom word lists win when both are non-empty."""
    if not (adjectives and nouns):
        if kind == NameKind.BATTLE:
            adjectives, nouns = BATTLE_ADJECTIVES, BATTLE_NOUNS
        else:
            adjectives, nouns = PLAYER_ADJECTIVES, PLAYER_NOUNS

    numeric = int(hashlib.sha256(seed.encode("utf-8")).hexdigest()[:8], 16)
    adjective = adjectives[numeric % len(adjectives)]
    noun = nouns[(numeric // len(adjectives)) % len(nouns)]
    suffix = (numeric // (len(adjectives) * len(nouns))) % _SUFFIX_MODULO
    return f"{adjective}-{noun}-{suffix}"
