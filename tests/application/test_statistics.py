"""Tests for StatisticsReporter."""

import pytest

from marketlinks.application.statistics import StatisticsReporter, completion_percentage
from marketlinks.domain import LinkableRef, LinkStatus


@pytest.fixture
def reporter(session_factory) -> StatisticsReporter:
    return StatisticsReporter(session_factory)


class TestCompletionPercentage:
    """Tests for completion_percentage."""

    def test_no_variant_links_is_complete(self) -> None:
        """Zero variant links is vacuously complete."""
        assert completion_percentage(0, 0) == 100

    def test_three_of_four(self) -> None:
        """3 of 4 hierarchical is 75%."""
        assert completion_percentage(3, 4) == 75.0

    def test_rounded_to_two_decimals(self) -> None:
        """Percentages are rounded to two decimals."""
        assert completion_percentage(1, 3) == 33.33


class TestHierarchyStatistics:
    """Tests for get_hierarchy_statistics."""

    @pytest.mark.asyncio
    async def test_empty_store(self, reporter, seeded) -> None:
        """An empty store is fully complete with zero counts."""
        stats = await reporter.get_hierarchy_statistics()

        assert stats.total == 0
        assert stats.hierarchy_completion_pct == 100
        assert stats.by_status == {"pending": 0, "linked": 0, "failed": 0, "unlinked": 0}
        assert stats.by_account == {}

    @pytest.mark.asyncio
    async def test_counts_and_breakdown(self, reporter, seeded, make_link) -> None:
        """Counts, completion and the per-channel breakdown."""
        tee = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id, status=LinkStatus.LINKED)
        mug = await make_link(LinkableRef.product(seeded.mug.id), seeded.shopify.id)
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id, parent_link_id=tee.id)
        await make_link(
            LinkableRef.variant(seeded.v2.id), seeded.shopify.id, parent_link_id=tee.id, status=LinkStatus.LINKED
        )
        await make_link(LinkableRef.variant(seeded.w1.id), seeded.shopify.id, parent_link_id=mug.id)
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.ebay.id, status=LinkStatus.FAILED)

        stats = await reporter.get_hierarchy_statistics()

        assert stats.total == 6
        assert stats.product_links == 2
        assert stats.variant_links == 4
        assert stats.hierarchical_links == 3
        assert stats.orphaned_variants == 1
        assert stats.hierarchy_completion_pct == 75.0
        assert stats.by_status == {"pending": 3, "linked": 2, "failed": 1, "unlinked": 0}
        assert stats.by_account["shopify"]["hierarchy_completion_pct"] == 100
        assert stats.by_account["ebay"]["hierarchy_completion_pct"] == 0.0
        assert stats.by_account["ebay"]["orphaned_variants"] == 1

    @pytest.mark.asyncio
    async def test_account_filter_drops_breakdown(self, reporter, seeded, make_link) -> None:
        """Filtered statistics cover one account and have no breakdown."""
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id, parent_link_id="x")
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.ebay.id)

        stats = await reporter.get_hierarchy_statistics(seeded.ebay.id)

        assert stats.total == 1
        assert stats.hierarchy_completion_pct == 0.0
        assert stats.by_account is None
        assert stats.to_dict()["orphaned_variants"] == 1
