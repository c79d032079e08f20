"""
Tab Classifier — maps a tab snapshot to three derived sets.

  inactive   — not focused, last activation older than a threshold
  duplicate  — every member of a URL group with two or more tabs
  heavy      — audible, or on a known streaming/conferencing/design site

Pure and stateless: safe to call from any task or thread.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from ..tabs.models import TabRecord


@dataclass
class ClassificationResult:
    inactive: List[TabRecord] = field(default_factory=list)
    duplicate: List[TabRecord] = field(default_factory=list)
    heavy: List[TabRecord] = field(default_factory=list)


def is_inactive(tab: TabRecord, now: float, threshold_minutes: float) -> bool:
    if tab.is_active or tab.last_active_at is None:
        return False
    return now - tab.last_active_at > threshold_minutes * 60.0


def is_heavy(tab: TabRecord, heavy_sites: Iterable[str]) -> bool:
    if tab.is_audible:
        return True
    if not tab.url:
        return False
    # Containment on the whole URL, so a query string naming a site also counts.
    return any(site and site in tab.url for site in heavy_sites)


def find_duplicates(tabs: Sequence[TabRecord]) -> List[TabRecord]:
    """
    Group by exact URL string. Groups are emitted in the order their first
    member was seen; each group is emitted whole, first-seen member first.
    """
    groups: Dict[str, List[TabRecord]] = {}
    for tab in tabs:
        if tab.url:
            groups.setdefault(tab.url, []).append(tab)

    result: List[TabRecord] = []
    for members in groups.values():
        if len(members) >= 2:
            result.extend(members)
    return result


class TabClassifier:
    """
    Usage:
        clf = TabClassifier(heavy_sites=config.heavy_sites)
        result = clf.classify(tabs, now=time.time(), inactive_minutes=30)
    """

    def __init__(self, heavy_sites: Iterable[str], inactive_minutes: float = 30.0):
        self.heavy_sites = list(heavy_sites)
        self.inactive_minutes = inactive_minutes

    def classify(
        self,
        tabs: Sequence[TabRecord],
        now: float,
        inactive_minutes: float | None = None,
    ) -> ClassificationResult:
        threshold = self.inactive_minutes if inactive_minutes is None else inactive_minutes
        return ClassificationResult(
            inactive=[t for t in tabs if is_inactive(t, now, threshold)],
            duplicate=find_duplicates(tabs),
            heavy=[t for t in tabs if is_heavy(t, self.heavy_sites)],
        )
