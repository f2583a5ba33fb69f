"""
Order state machine for managing order status transitions
"""

from typing import Dict, FrozenSet, List

from storefront.models.order import OrderStatus


class OrderStateMachine:
    """
    Manages valid order status transitions
    """

    transitions: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
        OrderStatus.PENDING: frozenset({
            OrderStatus.PROCESSING,
            OrderStatus.CANCELLED,
        }),
        OrderStatus.PROCESSING: frozenset({
            OrderStatus.SHIPPED,
            OrderStatus.CANCELLED,
        }),
        OrderStatus.SHIPPED: frozenset({
            OrderStatus.DELIVERED,
        }),
        OrderStatus.DELIVERED: frozenset(),  # Terminal state
        OrderStatus.CANCELLED: frozenset(),  # Terminal state
    }

    def can_transition(self, current_status: OrderStatus, new_status: OrderStatus) -> bool:
        """
        Check if transition is valid

        Args:
            current_status: Current order status
            new_status: Desired new status

        Returns:
            True if transition is allowed
        """
        return new_status in self.transitions.get(current_status, frozenset())

    def get_valid_transitions(self, current_status: OrderStatus) -> List[OrderStatus]:
        """List of valid next statuses, in declaration order of ``OrderStatus``."""
        allowed = self.transitions.get(current_status, frozenset())
        return [status for status in OrderStatus if status in allowed]

    def is_terminal_state(self, status: OrderStatus) -> bool:
        return not self.transitions.get(status)

    def releases_stock(self, current_status: OrderStatus, new_status: OrderStatus) -> bool:
        # Stock was decremented at checkout; only an unshipped cancellation returns it.
        return new_status == OrderStatus.CANCELLED and current_status in (
            OrderStatus.PENDING,
            OrderStatus.PROCESSING,
        )


order_state_machine = OrderStateMachine()
