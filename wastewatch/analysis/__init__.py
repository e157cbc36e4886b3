"""
WasteWatch - Analysis Module
Read-side views over users and reports.
"""

from wastewatch.analysis.leaderboard import (
    LeaderboardEntry,
    RankedEntry,
    rank,
    entries_from_users,
)

__all__ = [
    "LeaderboardEntry",
    "RankedEntry",
    "rank",
    "entries_from_users",
]
