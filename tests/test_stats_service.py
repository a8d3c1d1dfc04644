"""Unit tests for matching statistics."""

import pytest

from dadcircles.matching.services.stats_service import MatchingStatsService, compute_matching_stats

from conftest import NOW, make_user


class TestComputeMatchingStats:
    def test_empty(self):
        stats = compute_matching_stats([], NOW)

        assert stats == {
            "total_users": 0,
            "matched_users": 0,
            "unmatched_users": 0,
            "by_location": {},
        }

    def test_counts_per_location_and_stage(self):
        users = [
            make_user("a", age_months=2, group_id="g1"),
            make_user("b", age_months=3),
            make_user("c", age_months=10),
            make_user("d", city="Denver", state_code="CO", due=(6, 2025)),
            make_user("e", city="Denver", state_code="CO", age_months=24, group_id="g2"),
        ]

        stats = compute_matching_stats(users, NOW)

        assert stats["total_users"] == 5
        assert stats["matched_users"] == 2
        assert stats["unmatched_users"] == 3
        assert stats["by_location"]["Austin, TX"] == {
            "total": 3,
            "matched": 1,
            "unmatched": 2,
            "by_life_stage": {"Expecting": 0, "Newborn": 2, "Infant": 1, "Toddler": 0},
        }
        assert stats["by_location"]["Denver, CO"]["by_life_stage"] == {
            "Expecting": 1, "Newborn": 0, "Infant": 0, "Toddler": 1,
        }

    def test_user_without_location_counts_toward_totals_only(self):
        users = [
            make_user("a", age_months=5),
            make_user("b", city=None, state_code=None, age_months=5),
        ]

        stats = compute_matching_stats(users, NOW)

        assert stats["total_users"] == 2
        assert list(stats["by_location"]) == ["Austin, TX"]
        assert stats["by_location"]["Austin, TX"]["total"] == 1

    def test_child_past_toddler_has_no_stage(self):
        stats = compute_matching_stats([make_user("a", age_months=40)], NOW)

        entry = stats["by_location"]["Austin, TX"]
        assert entry["total"] == 1
        assert sum(entry["by_life_stage"].values()) == 0

    def test_ineligible_users_are_ignored(self):
        stats = compute_matching_stats([make_user("a", age_months=5, eligible=False)], NOW)
        assert stats["total_users"] == 0

    def test_totals_add_up(self):
        users = [make_user(f"u{i}", age_months=i, group_id="g" if i % 3 == 0 else None) for i in range(1, 30)]

        stats = compute_matching_stats(users, NOW)

        assert stats["matched_users"] + stats["unmatched_users"] == stats["total_users"]
        for entry in stats["by_location"].values():
            assert entry["matched"] + entry["unmatched"] == entry["total"]


class TestMatchingStatsService:
    @pytest.mark.asyncio
    async def test_reads_every_eligible_user(self, repository):
        repository.add_user(make_user("a", age_months=5, group_id="g1"))
        repository.add_user(make_user("b", age_months=5))
        repository.add_user(make_user("c", age_months=5, eligible=False))
        service = MatchingStatsService(repository, clock=lambda: NOW)

        stats = await service.get_matching_stats()

        assert stats["total_users"] == 2
        assert stats["matched_users"] == 1
