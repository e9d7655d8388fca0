"""Tests for HierarchyRebuilder."""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from marketlinks.application.hierarchy_rebuild import HierarchyRebuilder
from marketlinks.domain import LinkableRef


@pytest.fixture
def rebuilder(session_factory) -> HierarchyRebuilder:
    return HierarchyRebuilder(session_factory)


class TestRebuildForAccount:
    """Tests for rebuilding one account's hierarchy."""

    @pytest.mark.asyncio
    async def test_empty_account(self, rebuilder, seeded) -> None:
        """An account with no links yields an empty report."""
        report = await rebuilder.rebuild_for_account(seeded.shopify.id)

        assert report.success
        assert report.product_links_processed == 0
        assert report.variant_links_fixed == 0
        assert report.orphaned_links_found == 0

    @pytest.mark.asyncio
    async def test_repoints_and_attaches(self, rebuilder, seeded, make_link, load_links) -> None:
        """Wrong parents are repointed and missing ones attached."""
        tee_link = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id, sku="ABC")
        parentless = await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id)
        misparented = await make_link(LinkableRef.variant(seeded.v2.id), seeded.shopify.id, parent_link_id="gone")
        no_product_link = await make_link(LinkableRef.variant(seeded.w1.id), seeded.shopify.id)

        report = await rebuilder.rebuild_for_account(seeded.shopify.id)

        assert report.product_links_processed == 1
        assert report.variant_links_repointed == 1
        assert report.variant_links_fixed == 1
        assert report.orphaned_links_found == 1
        assert report.errors == []

        stored = {link.id: link for link in await load_links()}
        assert stored[parentless.id].parent_link_id == tee_link.id
        assert stored[misparented.id].parent_link_id == tee_link.id
        assert stored[no_product_link.id].parent_link_id is None

    @pytest.mark.asyncio
    async def test_parents_valid_after_rebuild(self, rebuilder, seeded, make_link, load_links) -> None:
        """Every parent left after a rebuild is the product link on the same account."""
        shopify_tee = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id)
        ebay_tee = await make_link(LinkableRef.product(seeded.tee.id), seeded.ebay.id)
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id, parent_link_id=ebay_tee.id)
        await make_link(LinkableRef.variant(seeded.v2.id), seeded.shopify.id)

        await rebuilder.rebuild_for_account(seeded.shopify.id)

        stored = {link.id: link for link in await load_links()}
        variant_owner = {seeded.v1.id: seeded.tee.id, seeded.v2.id: seeded.tee.id}
        for link in stored.values():
            if link.is_variant_level and link.parent_link_id is not None:
                parent = stored[link.parent_link_id]
                assert parent.is_product_level
                assert parent.account_id == link.account_id
                assert parent.linkable_id == variant_owner[link.linkable_id]
                assert parent.id == shopify_tee.id

    @pytest.mark.asyncio
    async def test_other_accounts_untouched(self, rebuilder, seeded, make_link, load_links) -> None:
        """Only the rebuilt account's links change."""
        await make_link(LinkableRef.product(seeded.tee.id), seeded.ebay.id)
        ebay_orphan = await make_link(LinkableRef.variant(seeded.v1.id), seeded.ebay.id)

        report = await rebuilder.rebuild_for_account(seeded.shopify.id)

        assert report.variant_links_fixed == 0
        stored = {link.id: link for link in await load_links()}
        assert stored[ebay_orphan.id].parent_link_id is None

    @pytest.mark.asyncio
    async def test_variant_missing_from_catalog_counted_as_orphan(self, rebuilder, seeded, make_link) -> None:
        """Parentless links of deleted variants cannot be attached."""
        await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id)
        await make_link(LinkableRef.variant("deleted-variant"), seeded.shopify.id)

        report = await rebuilder.rebuild_for_account(seeded.shopify.id)

        assert report.orphaned_links_found == 1
        assert report.variant_links_fixed == 0

    @pytest.mark.asyncio
    async def test_idempotent(self, rebuilder, seeded, make_link) -> None:
        """A second rebuild has nothing left to fix."""
        await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id)
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id)

        await rebuilder.rebuild_for_account(seeded.shopify.id)
        report = await rebuilder.rebuild_for_account(seeded.shopify.id)

        assert report.product_links_processed == 1
        assert report.variant_links_fixed == 0
        assert report.variant_links_repointed == 0

    @pytest.mark.asyncio
    async def test_unknown_account(self, rebuilder, seeded) -> None:
        """Unknown accounts are reported as an error."""
        report = await rebuilder.rebuild_for_account("missing")

        assert not report.success
        assert report.errors[0]["account_id"] == "missing"

    @pytest.mark.asyncio
    async def test_failed_product_link_does_not_stop_batch(
        self, rebuilder, seeded, make_link, load_links, monkeypatch
    ) -> None:
        """A store failure on one product link is recorded and the rest are still rebuilt."""
        tee_link = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id)
        mug_link = await make_link(LinkableRef.product(seeded.mug.id), seeded.shopify.id)
        tee_variant = await make_link(LinkableRef.variant(seeded.v2.id), seeded.shopify.id, parent_link_id="gone")
        mug_variant = await make_link(LinkableRef.variant(seeded.w1.id), seeded.shopify.id, parent_link_id="gone")
        parentless = await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id)

        repoint_children = rebuilder._repoint_children

        async def fail_for_tee(product_link_id: str) -> int:
            if product_link_id == tee_link.id:
                raise SQLAlchemyError("deadlock detected")
            return await repoint_children(product_link_id)

        monkeypatch.setattr(rebuilder, "_repoint_children", fail_for_tee)

        report = await rebuilder.rebuild_for_account(seeded.shopify.id)

        assert not report.success
        [error] = report.errors
        assert error["product_link_id"] == tee_link.id
        assert "deadlock detected" in error["error"]
        assert report.product_links_processed == 1
        assert report.variant_links_repointed == 1
        assert report.variant_links_fixed == 1

        stored = {link.id: link for link in await load_links()}
        assert stored[mug_variant.id].parent_link_id == mug_link.id
        assert stored[tee_variant.id].parent_link_id == "gone"
        assert stored[parentless.id].parent_link_id == tee_link.id
