"""Descriptive summaries over a session's intervention log.

Pure functions.  The log feeds dashboards only; nothing here takes part
in intervention decisions.
"""

from __future__ import annotations

from collections import Counter
from typing import Sequence

from player_pulse.domain.enums import InterventionTier
from player_pulse.domain.intervention import InterventionAnalytics, InterventionLogEntry


def summarize(log: Sequence[InterventionLogEntry]) -> InterventionAnalytics:
    if not log:
        return InterventionAnalytics()
    return InterventionAnalytics(
        total_interventions=len(log),
        intervention_types=count_intervention_types(log),
        average_frustration_level=round(sum(e.frustration_level for e in log) / len(log), 4),
        intervention_frequency=round(intervention_frequency(log), 4),
        most_common_level=most_common_level(log),
    )


def count_intervention_types(log: Sequence[InterventionLogEntry]) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for entry in log:
        counts.update(t.value for t in entry.interventions)
    return dict(counts)


def intervention_frequency(log: Sequence[InterventionLogEntry]) -> float:
    """Activations per minute across the logged span; 0 when undefined."""
    if len(log) < 2:
        return 0.0
    span_ms = log[-1].timestamp - log[0].timestamp
    if span_ms <= 0:
        return 0.0
    return len(log) / (span_ms / 60_000)


def most_common_level(log: Sequence[InterventionLogEntry]) -> str:
    """Most frequent tier; ties go to the tier seen first."""
    counts = Counter(e.intervention_level.value for e in log)
    best, best_count = InterventionTier.NONE.value, 0
    for level, count in counts.items():
        if count > best_count:
            best, best_count = level, count
    return best
