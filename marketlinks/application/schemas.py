"""Marketplace payload schemas.

Pydantic models that validate the product and variant data a caller
hands to a hierarchy sync. Unknown keys are kept so the full payload
can be stored on the link for auditing.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from marketlinks.domain.exceptions import InvalidMarketplaceDataError


class ProductMarketplaceData(BaseModel):
    """Product as reported by a marketplace."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    product_id: str = Field(..., min_length=1, description="Marketplace product identifier")
    sku: str = Field(..., min_length=1, description="SKU as listed on the marketplace")
    title: str | None = Field(default=None, description="Listing title")


class VariantMarketplaceData(BaseModel):
    """Variant as reported by a marketplace."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    internal_sku: str = Field(..., min_length=1, description="Catalog SKU used to resolve the variant")
    sku: str | None = Field(default=None, description="SKU as listed on the marketplace")
    variant_id: str | None = Field(default=None, description="Marketplace variant identifier")
    product_id: str | None = Field(default=None, description="Marketplace product identifier")
    title: str | None = Field(default=None, description="Listing title")


def parse_product_data(data: ProductMarketplaceData | dict[str, Any]) -> ProductMarketplaceData:
    """Validate a product payload.

    Raises:
        InvalidMarketplaceDataError: If required fields are missing.
    """
    if isinstance(data, ProductMarketplaceData):
        return data
    try:
        return ProductMarketplaceData.model_validate(data)
    except ValidationError as e:
        raise InvalidMarketplaceDataError(
            "product data needs a product_id and sku",
            errors=e.errors(include_url=False, include_context=False),
        ) from e


def parse_variant_data(
    data: list[VariantMarketplaceData | dict[str, Any]],
) -> list[VariantMarketplaceData]:
    """Validate a list of variant payloads.

    Raises:
        InvalidMarketplaceDataError: If any entry lacks an internal_sku.
    """
    parsed = []
    for index, entry in enumerate(data):
        if isinstance(entry, VariantMarketplaceData):
            parsed.append(entry)
            continue
        try:
            parsed.append(VariantMarketplaceData.model_validate(entry))
        except ValidationError as e:
            raise InvalidMarketplaceDataError(
                f"variant entry {index} needs an internal_sku",
                errors=e.errors(include_url=False, include_context=False),
            ) from e
    return parsed
