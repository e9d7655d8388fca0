"""Tests for IntegrityValidator and IssueRepairer."""

import pytest

from marketlinks.application.integrity import IntegrityValidator, IssueRepairer, IssueType
from marketlinks.domain import LinkableRef, LinkStatus


@pytest.fixture
def validator(session_factory) -> IntegrityValidator:
    return IntegrityValidator(session_factory)


@pytest.fixture
def repairer(session_factory, validator) -> IssueRepairer:
    return IssueRepairer(session_factory, validator)


class TestIntegrityValidator:
    """Tests for defect detection."""

    @pytest.mark.asyncio
    async def test_healthy_store(self, validator, seeded, make_link) -> None:
        """A correct hierarchy reports no issues."""
        parent = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id)
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id, parent_link_id=parent.id)

        report = await validator.validate()

        assert report.total_issues == 0
        assert report.status == "healthy"

    @pytest.mark.asyncio
    async def test_every_parentless_variant_reported(self, validator, seeded, make_link) -> None:
        """N parentless variant links give exactly N orphan issues."""
        parent = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id)
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id, parent_link_id=parent.id)
        orphans = [
            await make_link(LinkableRef.variant(seeded.v2.id), seeded.shopify.id, sku="ABC-002"),
            await make_link(LinkableRef.variant(seeded.v1.id), seeded.ebay.id),
            await make_link(LinkableRef.variant(seeded.w1.id), seeded.ebay.id),
        ]

        report = await validator.validate()

        found = report.of_type(IssueType.ORPHANED_VARIANT)
        assert len(found) == 3
        assert {issue.link_id for issue in found} == {link.id for link in orphans}
        assert report.status == "issues_found"

    @pytest.mark.asyncio
    async def test_issue_context(self, validator, seeded, make_link) -> None:
        """Issues carry the marketplace and SKU of the link."""
        orphan = await make_link(LinkableRef.variant(seeded.v2.id), seeded.shopify.id, sku="ABC-002")

        [issue] = (await validator.validate()).issues

        assert issue.id == f"orphaned_variant:{orphan.id}"
        assert issue.marketplace == "shopify"
        assert issue.sku == "ABC-002"
        assert issue.account_id == seeded.shopify.id
        assert issue.to_dict()["type"] == "orphaned_variant"

    @pytest.mark.asyncio
    async def test_account_filter(self, validator, seeded, make_link) -> None:
        """Validation can be scoped to one account."""
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id)
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.ebay.id)

        report = await validator.validate(seeded.ebay.id)

        assert report.total_issues == 1
        assert report.issues[0].marketplace == "ebay"

    @pytest.mark.asyncio
    async def test_dangling_parent(self, validator, seeded, make_link) -> None:
        """A parent that no longer exists is an invalid_parent issue."""
        link = await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id, parent_link_id="gone")

        report = await validator.validate()

        [issue] = report.issues
        assert issue.type is IssueType.INVALID_PARENT
        assert issue.link_id == link.id
        assert issue.details["parent_link_id"] == "gone"

    @pytest.mark.asyncio
    async def test_cross_marketplace_children(self, validator, seeded, make_link) -> None:
        """A product link with a child on another account is reported on the product link."""
        parent = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id)
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id, parent_link_id=parent.id)
        foreign = await make_link(LinkableRef.variant(seeded.v2.id), seeded.ebay.id, parent_link_id=parent.id)

        report = await validator.validate()

        [issue] = report.issues
        assert issue.type is IssueType.CROSS_MARKETPLACE_VARIANTS
        assert issue.link_id == parent.id
        assert issue.details["child_link_ids"] == [foreign.id]
        assert issue.details["child_marketplaces"] == ["ebay"]

    @pytest.mark.asyncio
    async def test_all_checks_accumulate(self, validator, seeded, make_link) -> None:
        """All three checks run in one pass."""
        parent = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id)
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.ebay.id, parent_link_id=parent.id)
        await make_link(LinkableRef.variant(seeded.v2.id), seeded.shopify.id)
        await make_link(LinkableRef.variant(seeded.w1.id), seeded.shopify.id, parent_link_id="gone")

        report = await validator.validate()

        assert report.total_issues == 3
        assert {issue.type for issue in report.issues} == set(IssueType)


class TestIssueRepairer:
    """Tests for automatic fixes."""

    @pytest.mark.asyncio
    async def test_orphan_gets_new_pending_product_link(self, repairer, validator, seeded, make_link, load_links) -> None:
        """Orphans without a product link get a pending one."""
        orphan = await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id)

        report = await repairer.repair()

        assert report.fixed_count == 1
        assert report.failed_count == 0
        stored = {link.id: link for link in await load_links()}
        parent = stored[stored[orphan.id].parent_link_id]
        assert parent.is_product_level
        assert parent.linkable_id == seeded.tee.id
        assert parent.account_id == seeded.shopify.id
        assert parent.status is LinkStatus.PENDING
        assert parent.internal_sku == "ABC"
        assert (await validator.validate()).total_issues == 0

    @pytest.mark.asyncio
    async def test_orphans_of_one_product_share_new_parent(self, repairer, seeded, make_link, load_links) -> None:
        """Fixing several orphans of one product creates one product link."""
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id)
        await make_link(LinkableRef.variant(seeded.v2.id), seeded.shopify.id)

        report = await repairer.repair()

        assert report.fixed_count == 2
        stored = await load_links()
        product_links = [link for link in stored if link.is_product_level]
        assert len(product_links) == 1
        assert {link.parent_link_id for link in stored if link.is_variant_level} == {product_links[0].id}

    @pytest.mark.asyncio
    async def test_orphan_attached_to_existing_product_link(self, repairer, seeded, make_link, load_links) -> None:
        """An existing product link is reused."""
        parent = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id, status=LinkStatus.LINKED)
        orphan = await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id)

        await repairer.repair()

        stored = {link.id: link for link in await load_links()}
        assert stored[orphan.id].parent_link_id == parent.id
        assert stored[parent.id].status is LinkStatus.LINKED
        assert len(stored) == 2

    @pytest.mark.asyncio
    async def test_invalid_parent_reattached(self, repairer, seeded, make_link, load_links) -> None:
        """Dangling parents are cleared and replaced."""
        parent = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id)
        link = await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id, parent_link_id="gone")

        report = await repairer.repair()

        assert [issue.type for issue in report.fixed] == [IssueType.INVALID_PARENT]
        stored = {link.id: link for link in await load_links()}
        assert stored[link.id].parent_link_id == parent.id

    @pytest.mark.asyncio
    async def test_cross_marketplace_not_fixed(self, repairer, seeded, make_link, load_links) -> None:
        """Cross-marketplace defects are reported as failed and left alone."""
        parent = await make_link(LinkableRef.product(seeded.tee.id), seeded.shopify.id)
        foreign = await make_link(LinkableRef.variant(seeded.v2.id), seeded.ebay.id, parent_link_id=parent.id)

        report = await repairer.repair()

        assert report.fixed == []
        [failure] = report.failed
        assert failure.issue.type is IssueType.CROSS_MARKETPLACE_VARIANTS
        assert failure.error_code == "UNFIXABLE_DEFECT"
        assert "manual intervention" in failure.reason
        stored = {link.id: link for link in await load_links()}
        assert stored[foreign.id].parent_link_id == parent.id

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(self, repairer, seeded, make_link) -> None:
        """Fixable issues are fixed even when others fail."""
        await make_link(LinkableRef.variant("deleted-variant"), seeded.shopify.id)
        await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id)

        report = await repairer.repair()

        assert report.fixed_count == 1
        assert report.failed_count == 1
        assert report.failed[0].error_code == "NOT_FOUND"
        assert not report.success

    @pytest.mark.asyncio
    async def test_repair_selected_issues(self, repairer, seeded, make_link, load_links) -> None:
        """Only the requested issues are fixed, by issue ID or link ID."""
        first = await make_link(LinkableRef.variant(seeded.v1.id), seeded.shopify.id)
        second = await make_link(LinkableRef.variant(seeded.w1.id), seeded.ebay.id)
        untouched = await make_link(LinkableRef.variant(seeded.v2.id), seeded.ebay.id)

        report = await repairer.repair([f"orphaned_variant:{first.id}", second.id])

        assert {issue.link_id for issue in report.fixed} == {first.id, second.id}
        stored = {link.id: link for link in await load_links()}
        assert stored[untouched.id].parent_link_id is None
