"""Aggregation Engine: summary statistics over an incident snapshot.

Pure and synchronous: no I/O, recomputed from scratch on every call.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from ..schemas import INCIDENT_STATUSES


def _get(item: Any, name: str):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _top(counts: dict[str, int], n: int) -> list[tuple[str, int]]:
    # sorted() is stable, so equal counts keep first-seen order
    if n <= 0:
        return []
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:n]


@dataclass
class Summary:
    """Counts derived from one incident snapshot."""
    total: int = 0
    by_status: dict[str, int] = field(default_factory=lambda: {s: 0 for s in INCIDENT_STATUSES})
    critical: int = 0
    high: int = 0
    category_counts: dict[str, int] = field(default_factory=dict)
    location_counts: dict[str, int] = field(default_factory=dict)

    def top_categories(self, n: int) -> list[tuple[str, int]]:
        return _top(self.category_counts, n)

    def top_locations(self, n: int) -> list[tuple[str, int]]:
        return _top(self.location_counts, n)

    def ratio(self, count: int) -> Optional[float]:
        """Fraction of the total, or None when there are no incidents."""
        if self.total == 0:
            return None
        return count / self.total

    def share(self, count: int) -> str:
        """Percentage of the total for display; ``"0%"`` when the total is zero."""
        ratio = self.ratio(count)
        if ratio is None:
            return "0%"
        return f"{ratio:.0%}"

    def to_dict(self, top_n: int = 5) -> dict:
        return {
            "total": self.total,
            "by_status": dict(self.by_status),
            "critical": self.critical,
            "high": self.high,
            "critical_share": self.share(self.critical),
            "high_share": self.share(self.high),
            "category_counts": dict(self.category_counts),
            "location_counts": dict(self.location_counts),
            "top_categories": [{"category": k, "count": v} for k, v in self.top_categories(top_n)],
            "top_locations": [{"location": k, "count": v} for k, v in self.top_locations(top_n)],
        }


def summarize(incidents: Iterable[Any]) -> Summary:
    """Compute a :class:`Summary` from incident records or dicts."""
    summary = Summary()
    for incident in incidents:
        summary.total += 1

        status = _get(incident, "status")
        if status in summary.by_status:
            summary.by_status[status] += 1

        priority = _get(incident, "priority")
        if priority == "critical":
            summary.critical += 1
        elif priority == "high":
            summary.high += 1

        # Unlabelled records count toward the total and status only
        category = _get(incident, "category")
        if category is not None:
            summary.category_counts[category] = summary.category_counts.get(category, 0) + 1

        location = _get(incident, "location")
        if location is not None:
            summary.location_counts[location] = summary.location_counts.get(location, 0) + 1
    return summary
