"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Self

from marketlinks.domain.base import ValueObject

# Internal SKU stored on a product-level link when the product has no parent SKU.
NO_SKU = "NO-SKU"


# ============================================================================
# Linkable Reference
# ============================================================================


class LinkableKind(str, Enum):
    """Kind of catalog entity a marketplace link points at."""

    PRODUCT = "product"
    VARIANT = "variant"


class LinkLevel(str, Enum):
    """Level of a link in the product/variant hierarchy."""

    PRODUCT = "product"
    VARIANT = "variant"

    @classmethod
    def for_kind(cls, kind: LinkableKind) -> Self:
        """Derive the hierarchy level from the linkable kind.

        Args:
            kind: Kind of catalog entity.

        Returns:
            Matching link level.
        """
        return cls(kind.value)


@dataclass(frozen=True)
class LinkableRef(ValueObject):
    """Tagged reference to a catalog product or variant.

    Attributes:
        kind: Whether the reference is a product or a variant.
        id: Catalog entity ID.
    """

    kind: LinkableKind
    id: str

    @classmethod
    def product(cls, product_id: str) -> Self:
        """Create a reference to a catalog product."""
        return cls(kind=LinkableKind.PRODUCT, id=product_id)

    @classmethod
    def variant(cls, variant_id: str) -> Self:
        """Create a reference to a catalog variant."""
        return cls(kind=LinkableKind.VARIANT, id=variant_id)

    @property
    def level(self) -> LinkLevel:
        """Hierarchy level of a link for this reference."""
        return LinkLevel.for_kind(self.kind)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


# ============================================================================
# Marketplace Matches
# ============================================================================


@dataclass(frozen=True)
class ProductMatch(ValueObject):
    """Product found on a marketplace for a probed SKU.

    Attributes:
        external_id: Marketplace product identifier.
        sku: SKU as the marketplace spells it.
        title: Listing title, when the marketplace reports one.
        extra: Any further marketplace fields kept for auditing.
    """

    external_id: str
    sku: str
    title: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_marketplace_data(self) -> dict[str, Any]:
        """Shape the match as a product marketplace payload."""
        return {
            **self.extra,
            "product_id": self.external_id,
            "sku": self.sku,
            "title": self.title,
        }


@dataclass(frozen=True)
class VariantMatch(ValueObject):
    """Variant found on a marketplace under a matched product.

    Attributes:
        external_product_id: Marketplace product identifier.
        external_variant_id: Marketplace variant identifier.
        sku: SKU as the marketplace spells it.
        title: Listing title, when the marketplace reports one.
        extra: Any further marketplace fields kept for auditing.
    """

    external_product_id: str
    external_variant_id: str
    sku: str
    title: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_marketplace_data(self, internal_sku: str) -> dict[str, Any]:
        """Shape the match as a variant marketplace payload.

        Args:
            internal_sku: Catalog SKU of the variant the match belongs to.
        """
        return {
            **self.extra,
            "internal_sku": internal_sku,
            "product_id": self.external_product_id,
            "variant_id": self.external_variant_id,
            "sku": self.sku,
            "title": self.title,
        }
