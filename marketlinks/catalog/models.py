"""SQLAlchemy models for the product catalog.

Defines Product and ProductVariant tables. The catalog is owned by
another subsystem; the link engine only reads these rows.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketlinks.infrastructure.database import Base


class Product(Base):
    """Product entity in the catalog.

    Attributes:
        id: Unique product identifier (UUID string).
        name: Display name.
        parent_sku: SKU shared by the product's variants, if assigned.
        created_at: Creation timestamp.
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    parent_sku: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    variants: Mapped[list["ProductVariant"]] = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, parent_sku={self.parent_sku}, name={self.name[:30]})>"


class ProductVariant(Base):
    """Product variant (e.g., size, color combinations).

    Attributes:
        id: Unique variant identifier.
        product_id: Owning product ID.
        sku: Variant SKU, unique within the product.
        color: Colour option.
        size: Size option.
    """

    __tablename__ = "product_variants"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    size: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Relationships
    product: Mapped["Product"] = relationship("Product", back_populates="variants")

    __table_args__ = (
        UniqueConstraint("product_id", "sku", name="uq_variants_product_sku"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ProductVariant(id={self.id}, sku={self.sku})>"

    @property
    def display_title(self) -> str:
        """Human-readable option summary, falling back to the SKU."""
        options = [o for o in (self.color, self.size) if o]
        return " / ".join(options) if options else (self.sku or self.id)
