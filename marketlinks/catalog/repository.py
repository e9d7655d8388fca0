"""Catalog repository for read-only product and variant lookups.

Implements the ``CatalogAccessor`` port on top of an async session.
"""

from collections.abc import Sequence

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketlinks.catalog.models import Product, ProductVariant


class CatalogRepository:
    """Repository for catalog reads.

    Never writes: products and variants belong to the catalog subsystem.

    Example usage:
        async with async_session_factory() as session:
            catalog = CatalogRepository(session)
            variant = await catalog.find_variant_by_sku(product.id, "ABC-001")
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get_product(self, product_id: str) -> Product | None:
        """Get product by ID."""
        return await self.session.get(Product, product_id)

    async def get_variant(self, variant_id: str) -> ProductVariant | None:
        """Get variant by ID."""
        return await self.session.get(ProductVariant, variant_id)

    async def find_variant_by_sku(self, product_id: str, sku: str) -> ProductVariant | None:
        """Find a variant of a product by its SKU.

        Args:
            product_id: Owning product ID.
            sku: Variant SKU.

        Returns:
            Variant if the product has one with that SKU, None otherwise.
        """
        query = select(ProductVariant).where(
            and_(
                ProductVariant.product_id == product_id,
                ProductVariant.sku == sku,
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_owning_product(self, variant: ProductVariant) -> Product | None:
        """Resolve the product a variant belongs to."""
        return await self.get_product(variant.product_id)

    async def list_variant_ids(self, product_id: str) -> list[str]:
        """List IDs of all variants of a product."""
        query = select(ProductVariant.id).where(ProductVariant.product_id == product_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_products_with_sku_variants(self) -> Sequence[tuple[Product, list[ProductVariant]]]:
        """List products together with their variants that carry a SKU.

        Products without any such variant are left out.

        Returns:
            Pairs of product and its SKU-bearing variants, ordered by product name.
        """
        query = (
            select(Product, ProductVariant)
            .join(ProductVariant, ProductVariant.product_id == Product.id)
            .where(and_(ProductVariant.sku.is_not(None), ProductVariant.sku != ""))
            .order_by(Product.name, Product.id, ProductVariant.sku)
        )
        result = await self.session.execute(query)

        grouped: dict[str, tuple[Product, list[ProductVariant]]] = {}
        for product, variant in result.all():
            grouped.setdefault(product.id, (product, []))[1].append(variant)
        return list(grouped.values())
