"""
Leaderboard ranking for WasteWatch participants
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from wastewatch.crowdsource.report_handler import User


@dataclass(frozen=True)
class LeaderboardEntry:
    """A participant and their score."""
    id: str
    name: str
    score: int
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class RankedEntry:
    """A leaderboard entry with its 1-based position."""
    rank: int
    entry: LeaderboardEntry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "id": self.entry.id,
            "name": self.entry.name,
            "score": self.entry.score,
            "avatar_url": self.entry.avatar_url,
        }


def rank(entries: Iterable[LeaderboardEntry]) -> List[RankedEntry]:
    """
    Rank participants by descending score.

    The sort is stable, so tied entries keep their input order. Ranks are
    positional (1..n); ties do not share a rank number.
    """
    ordered = sorted(entries, key=lambda e: e.score, reverse=True)
    return [RankedEntry(rank=i, entry=e) for i, e in enumerate(ordered, start=1)]


def entries_from_users(users: Iterable[User]) -> List[LeaderboardEntry]:
    """Build leaderboard entries from users' GreenUnits."""
    return [
        LeaderboardEntry(
            id=u.id,
            name=u.name,
            score=u.green_units,
            avatar_url=u.avatar_url,
        )
        for u in users
    ]
