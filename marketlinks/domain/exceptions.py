"""Domain exceptions.

All domain-level errors raised while building, repairing or auditing the
marketplace link hierarchy. Expected conditions (missing catalog rows,
unusable marketplace payloads) are caught by the application services and
turned into failed results; ``StoreFailureError`` always propagates.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid link status transition is attempted."""

    error_code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "MarketplaceLink").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Lookup Errors
# ============================================================================


class NotFoundError(DomainError):
    """Base class for a referenced record that does not exist."""

    error_code = "NOT_FOUND"
    entity_type = "Entity"

    def __init__(self, entity_id: str) -> None:
        """Initialize not found error.

        Args:
            entity_id: ID that could not be resolved.
        """
        super().__init__(
            f"{self.entity_type} {entity_id} not found",
            details={"entity_type": self.entity_type, "entity_id": entity_id},
        )
        self.entity_id = entity_id


class ProductNotFoundError(NotFoundError):
    """Raised when a catalog product cannot be resolved."""

    entity_type = "Product"


class VariantNotFoundError(NotFoundError):
    """Raised when a catalog variant cannot be resolved."""

    entity_type = "ProductVariant"


class AccountNotFoundError(NotFoundError):
    """Raised when a marketplace account cannot be resolved."""

    entity_type = "MarketplaceAccount"


class LinkNotFoundError(NotFoundError):
    """Raised when a marketplace link cannot be resolved."""

    entity_type = "MarketplaceLink"


# ============================================================================
# Link Errors
# ============================================================================


class LinkConflictError(DomainError):
    """Raised when a second link would be stored for the same linkable and account."""

    error_code = "LINK_CONFLICT"

    def __init__(self, linkable_type: str, linkable_id: str, account_id: str) -> None:
        """Initialize link conflict error.

        Args:
            linkable_type: Kind of catalog entity.
            linkable_id: Catalog entity ID.
            account_id: Marketplace account ID.
        """
        super().__init__(
            f"A {linkable_type} link for {linkable_id} already exists on account {account_id}",
            details={
                "linkable_type": linkable_type,
                "linkable_id": linkable_id,
                "account_id": account_id,
            },
        )


class InvalidMarketplaceDataError(DomainError):
    """Raised when a marketplace payload lacks the fields a sync needs."""

    error_code = "INVALID_MARKETPLACE_DATA"

    def __init__(self, reason: str, errors: list[dict[str, Any]] | None = None) -> None:
        """Initialize invalid marketplace data error.

        Args:
            reason: Explanation of what is wrong with the payload.
            errors: Field-level validation errors.
        """
        super().__init__(
            f"Invalid marketplace data: {reason}",
            details={"reason": reason, "errors": errors or []},
        )


class UnfixableDefectError(DomainError):
    """Raised when a hierarchy defect cannot be repaired automatically."""

    error_code = "UNFIXABLE_DEFECT"

    def __init__(self, issue_type: str, link_id: str) -> None:
        """Initialize unfixable defect error.

        Args:
            issue_type: Defect type tag.
            link_id: Link the defect was reported on.
        """
        super().__init__(
            f"Issue '{issue_type}' on link {link_id} requires manual intervention",
            details={"issue_type": issue_type, "link_id": link_id},
        )


class StoreFailureError(DomainError):
    """Raised when the underlying link store fails.

    Always aborts the enclosing unit of work and is never converted
    into a failed result.
    """

    error_code = "STORE_FAILURE"

    def __init__(self, operation: str, reason: str) -> None:
        """Initialize store failure error.

        Args:
            operation: Operation that was running.
            reason: Underlying error text.
        """
        super().__init__(
            f"Link store failure during {operation}: {reason}",
            details={"operation": operation, "reason": reason},
        )
