"""Hint templates and selection for the hint_system intervention."""

from __future__ import annotations

import random
from typing import Iterable

HINT_TEMPLATES: dict[str, tuple[str, ...]] = {
    "combat_tips": (
        "Try using your dodge ability just before the enemy attacks",
        "Blocking can reduce damage significantly",
        "Look for enemy attack patterns to predict their moves",
        "Use your special abilities when enemies are vulnerable",
        "Environmental objects can be used as weapons or shields",
    ),
    "strategy_hints": (
        "Focus on one enemy at a time to avoid being overwhelmed",
        "Keep moving to avoid getting surrounded",
        "Use the terrain to your advantage",
        "Save your powerful abilities for tough enemies",
        "Watch your stamina - don't exhaust yourself",
    ),
    "weakness_reveals": (
        "This enemy is weak to fire attacks",
        "Attack after the enemy finishes their combo",
        "This enemy has slower reactions to side attacks",
        "Use ranged attacks when the enemy is charging",
        "This enemy becomes vulnerable after using special abilities",
    ),
}


class HintSelector:
    """Draws a small shuffled batch of hints from the requested categories.

    Args:
        rng: Source of randomness; pass a seeded Random for reproducible output.
        per_category: Hints drawn from each category.
        batch_size: Maximum hints returned per batch.
    """

    def __init__(self, rng: random.Random | None = None, per_category: int = 2, batch_size: int = 3) -> None:
        self._rng = rng or random.Random()
        self._per_category = per_category
        self._batch_size = batch_size

    def select(self, categories: Iterable[str]) -> list[str]:
        hints: list[str] = []
        for category in categories:
            templates = HINT_TEMPLATES.get(category)
            if not templates:
                continue
            count = min(self._per_category, len(templates))
            hints.extend(self._rng.sample(templates, count))
        self._rng.shuffle(hints)
        return hints[: self._batch_size]
