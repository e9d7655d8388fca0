"""Hierarchy health statistics."""

from dataclasses import asdict, dataclass, field
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketlinks.infrastructure.repositories import LinkRepository

logger = structlog.get_logger()


def completion_percentage(hierarchical_links: int, variant_links: int) -> float:
    """Share of variant links that have a parent, rounded to two decimals.

    Vacuously complete (100) when there are no variant links.
    """
    if variant_links == 0:
        return 100.0
    return round(hierarchical_links / variant_links * 100, 2)


@dataclass
class HierarchyStatistics:
    """Link counts and completion for one account or the whole store.

    ``by_account`` is keyed by marketplace channel and only filled when the
    statistics are not restricted to one account.
    """

    total: int = 0
    product_links: int = 0
    variant_links: int = 0
    hierarchical_links: int = 0
    orphaned_variants: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    hierarchy_completion_pct: float = 100.0
    by_account: dict[str, dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


class StatisticsReporter:
    """Aggregates link counts for monitoring."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def get_hierarchy_statistics(self, account_id: str | None = None) -> HierarchyStatistics:
        """Collect hierarchy statistics.

        Args:
            account_id: Restrict counts to one marketplace account.

        Returns:
            HierarchyStatistics, with a per-channel breakdown when unfiltered.
        """
        async with self.session_factory() as session:
            links = LinkRepository(session)
            counts = await links.count_hierarchy(account_id)
            by_status = await links.count_by_status(account_id)

            by_account = None
            if account_id is None:
                by_account = {
                    channel: {
                        **channel_counts,
                        "hierarchy_completion_pct": completion_percentage(
                            channel_counts["hierarchical_links"], channel_counts["variant_links"]
                        ),
                    }
                    for channel, channel_counts in (await links.count_hierarchy_by_channel()).items()
                }

        stats = HierarchyStatistics(
            **counts,
            by_status=by_status,
            hierarchy_completion_pct=completion_percentage(counts["hierarchical_links"], counts["variant_links"]),
            by_account=by_account,
        )
        logger.debug(
            "Computed hierarchy statistics",
            account_id=account_id,
            total=stats.total,
            completion=stats.hierarchy_completion_pct,
        )
        return stats
