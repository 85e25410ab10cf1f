# slot_booking/domain/state_machine.py

from enum import Enum
from typing import Dict, Set

from slot_booking.domain.exceptions import InvalidStateTransitionError


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class TransitionSource(str, Enum):
    CLIENT_VERIFY = "client_verify"
    WEBHOOK = "webhook"
    ADMIN_ACTION = "admin_action"
    CUSTOMER = "customer"


class LedgerEffect(str, Enum):
    NONE = "none"
    RESERVE = "reserve"
    RELEASE = "release"


class OrderStateMachine:
    """
    Central lifecycle controller for order transitions.
    Defines the legal state transitions for customer and gateway driven flows.
    Admin overrides skip the transition table but share the ledger rule.
    """

    _ALLOWED_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
        OrderStatus.PENDING: {
            OrderStatus.CONFIRMED,
            OrderStatus.CANCELLED,
            OrderStatus.FAILED,
        },
        OrderStatus.CONFIRMED: {
            OrderStatus.CANCELLED,
        },
        OrderStatus.FAILED: {
            OrderStatus.CANCELLED,
        },
        OrderStatus.CANCELLED: set(),
    }

    @classmethod
    def can_transition(
        cls,
        from_status: OrderStatus,
        to_status: OrderStatus,
    ) -> bool:
        """
        Returns True if transition is allowed.
        """
        cls._ensure_valid_status(from_status)
        cls._ensure_valid_status(to_status)

        return to_status in cls._ALLOWED_TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(
        cls,
        from_status: OrderStatus,
        to_status: OrderStatus,
    ) -> None:
        """
        Raises InvalidStateTransitionError if transition is illegal.
        """
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(
                from_state=from_status.value,
                to_state=to_status.value,
            )

    @classmethod
    def is_terminal(cls, status: OrderStatus) -> bool:
        """
        Returns True if the state is terminal (no further transitions allowed).
        """
        cls._ensure_valid_status(status)
        return len(cls._ALLOWED_TRANSITIONS.get(status, set())) == 0

    @classmethod
    def get_allowed_transitions(
        cls, status: OrderStatus
    ) -> Set[OrderStatus]:
        """
        Returns allowed next states from current state.
        """
        cls._ensure_valid_status(status)
        return cls._ALLOWED_TRANSITIONS.get(status, set())

    @classmethod
    def ledger_effect(
        cls,
        from_status: OrderStatus,
        to_status: OrderStatus,
    ) -> LedgerEffect:
        """
        Slot ledger side effect of moving an order between two states.

        Only pending -> confirmed reserves and only confirmed -> cancelled
        releases. Every other pair is a plain status write.
        """
        cls._ensure_valid_status(from_status)
        cls._ensure_valid_status(to_status)

        if from_status == OrderStatus.PENDING and to_status == OrderStatus.CONFIRMED:
            return LedgerEffect.RESERVE
        if from_status == OrderStatus.CONFIRMED and to_status == OrderStatus.CANCELLED:
            return LedgerEffect.RELEASE
        return LedgerEffect.NONE

    @staticmethod
    def _ensure_valid_status(status: OrderStatus) -> None:
        if not isinstance(status, OrderStatus):
            raise TypeError(
                f"Expected OrderStatus, got {type(status)}"
            )
