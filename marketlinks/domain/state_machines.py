"""State machine for marketplace link status.

Deterministic transitions that define how a link moves between
pending, linked, failed and unlinked. ``linked_at`` bookkeeping lives
on the link model; this module only decides what is allowed.
"""

from enum import Enum

from marketlinks.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Link Status State Machine
# ============================================================================


class LinkStatus(str, Enum):
    """Marketplace link lifecycle states.

    State diagram:
        PENDING ───────────────┬──────────────────────► FAILED
          │                    │                          │
          │ link               │ unlink                   │ retry
          ▼                    ▼                          ▼
        LINKED ──────────► UNLINKED ────────────────► PENDING
          ▲  │ refresh          │
          └──┘                  │ relink
                                ▼
                              LINKED
    """

    PENDING = "pending"
    LINKED = "linked"
    FAILED = "failed"
    UNLINKED = "unlinked"

    def can_transition_to(self, target: "LinkStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _LINK_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["LinkStatus"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return sorted(_LINK_TRANSITIONS.get(self, set()), key=lambda s: s.value)

    def is_linked(self) -> bool:
        """Check if the link is confirmed on the marketplace side."""
        return self is LinkStatus.LINKED

    def is_active(self) -> bool:
        """Check if the link still takes part in syncing.

        Returns:
            True unless the marketplace stopped reporting the entity.
        """
        return self is not LinkStatus.UNLINKED


# Link state transitions (defined outside enum to avoid Enum restrictions)
_LINK_TRANSITIONS: dict[LinkStatus, set[LinkStatus]] = {
    LinkStatus.PENDING: {LinkStatus.LINKED, LinkStatus.FAILED, LinkStatus.UNLINKED},
    LinkStatus.LINKED: {LinkStatus.LINKED, LinkStatus.FAILED, LinkStatus.UNLINKED},
    LinkStatus.FAILED: {LinkStatus.PENDING, LinkStatus.LINKED, LinkStatus.UNLINKED},
    LinkStatus.UNLINKED: {LinkStatus.PENDING, LinkStatus.LINKED},
}


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_link_transition(
    link_id: str,
    current_status: LinkStatus,
    target_status: LinkStatus,
) -> None:
    """Validate and raise if link status transition is invalid.

    Args:
        link_id: Link identifier for error message.
        current_status: Current link status.
        target_status: Target link status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="MarketplaceLink",
            entity_id=link_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )
