"""Domain layer - value objects, state machine, exceptions, ports.

This module exports the core building blocks of the link hierarchy:

- **Value Objects**: Immutable references and marketplace matches
  (LinkableRef, ProductMatch, VariantMatch)
- **State Machine**: Link status transitions (LinkStatus)
- **Exceptions**: Domain-specific errors
- **Ports**: Protocols for the catalog and marketplace collaborators

Example usage:
    from marketlinks.domain import LinkableRef, LinkStatus

    ref = LinkableRef.variant("b7c1...")
    assert ref.level.value == "variant"
    assert LinkStatus.PENDING.can_transition_to(LinkStatus.LINKED)
"""

# Base classes
from marketlinks.domain.base import ValueObject

# Exceptions
from marketlinks.domain.exceptions import (
    AccountNotFoundError,
    DomainError,
    InvalidMarketplaceDataError,
    InvalidStateTransitionError,
    LinkConflictError,
    LinkNotFoundError,
    NotFoundError,
    ProductNotFoundError,
    StoreFailureError,
    UnfixableDefectError,
    VariantNotFoundError,
)

# Ports
from marketlinks.domain.ports import CatalogAccessor, MarketplaceDataSource

# State Machines
from marketlinks.domain.state_machines import LinkStatus, validate_link_transition

# Value Objects
from marketlinks.domain.value_objects import (
    NO_SKU,
    LinkableKind,
    LinkableRef,
    LinkLevel,
    ProductMatch,
    VariantMatch,
)

__all__ = [
    # Base classes
    "ValueObject",
    # Value Objects
    "NO_SKU",
    "LinkableKind",
    "LinkableRef",
    "LinkLevel",
    "ProductMatch",
    "VariantMatch",
    # State Machines
    "LinkStatus",
    "validate_link_transition",
    # Ports
    "CatalogAccessor",
    "MarketplaceDataSource",
    # Exceptions
    "DomainError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "ProductNotFoundError",
    "VariantNotFoundError",
    "AccountNotFoundError",
    "LinkNotFoundError",
    "LinkConflictError",
    "InvalidMarketplaceDataError",
    "UnfixableDefectError",
    "StoreFailureError",
]
