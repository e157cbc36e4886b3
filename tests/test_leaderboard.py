"""
Tests for leaderboard ranking
"""
from wastewatch.analysis.leaderboard import LeaderboardEntry, entries_from_users, rank
from wastewatch.crowdsource.report_handler import User


class TestRank:
    """Test suite for leaderboard ranking."""

    def test_sorted_input_keeps_order(self):
        scores = [980, 870, 820, 740, 690, 640]
        entries = [LeaderboardEntry(id=f"u{i}", name=f"user{i}", score=s) for i, s in enumerate(scores)]

        ranked = rank(entries)

        assert [r.rank for r in ranked] == [1, 2, 3, 4, 5, 6]
        assert [r.entry for r in ranked] == entries

    def test_unsorted_input(self):
        entries = [
            LeaderboardEntry(id="a", name="a", score=10),
            LeaderboardEntry(id="b", name="b", score=30),
            LeaderboardEntry(id="c", name="c", score=20),
        ]

        ranked = rank(entries)

        assert [r.entry.id for r in ranked] == ["b", "c", "a"]

    def test_ties_keep_input_order(self):
        entries = [
            LeaderboardEntry(id="first", name="first", score=500),
            LeaderboardEntry(id="top", name="top", score=900),
            LeaderboardEntry(id="second", name="second", score=500),
        ]

        ranked = rank(entries)

        assert [r.entry.id for r in ranked] == ["top", "first", "second"]
        assert [r.rank for r in ranked] == [1, 2, 3]

    def test_empty(self):
        assert rank([]) == []

    def test_entries_from_users(self):
        users = [
            User(id="u1", name="sriram", email="s@example.com", green_units=980, avatar_url="/a.png"),
            User(id="u2", name="chandu", email="c@example.com", green_units=870),
        ]

        ranked = rank(entries_from_users(users))

        assert ranked[0].to_dict() == {
            "rank": 1,
            "id": "u1",
            "name": "sriram",
            "score": 980,
            "avatar_url": "/a.png",
        }
        assert ranked[1].entry.score == 870
