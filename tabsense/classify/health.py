"""
Tab Health Score — a 0–100 summary of how cluttered the browser is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

TAB_ALLOWANCE = 10
TAB_PENALTY = 2          # per open tab above the allowance
DUPLICATE_PENALTY = 5    # per tab in the duplicate set


@dataclass
class HealthScore:
    score: int
    rank: str
    penalties: List[str] = field(default_factory=list)


def health_score(tab_count: int, duplicate_count: int) -> HealthScore:
    score = 100
    penalties: List[str] = []

    if tab_count > TAB_ALLOWANCE:
        p = (tab_count - TAB_ALLOWANCE) * TAB_PENALTY
        score -= p
        penalties.append(f"-{p} for {tab_count} open tabs")

    if duplicate_count > 0:
        p = duplicate_count * DUPLICATE_PENALTY
        score -= p
        penalties.append(f"-{p} for {duplicate_count} duplicate tabs")

    score = max(0, min(100, score))

    if score < 50:
        rank = "Tab Hoarder"
    elif score < 80:
        rank = "Browser Boss"
    else:
        rank = "Zen Master"

    return HealthScore(score=score, rank=rank, penalties=penalties)
