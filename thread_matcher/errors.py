"""Typed exceptions for thread matching.

Routes and CLI commands catch these to pick a status code or exit message;
input insufficiency and search failures are not exceptions (see
DiscoveryResult.reason and SearchOutcome).
"""


class ThreadMatcherError(Exception):
    """Base exception for all thread matching errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class InvalidConversationIdError(ThreadMatcherError):
    """Operator-supplied conversation id has the wrong format. Maps to HTTP 400."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(
            f"Invalid conversation ID format: {conversation_id!r} (expected 'cnv_' followed by letters/digits)"
        )
        self.conversation_id = conversation_id


class ThreadLinkNotFoundError(ThreadMatcherError):
    """No thread link exists for the order. Maps to HTTP 404."""

    def __init__(self, order_number: str) -> None:
        super().__init__(f"No thread link for order {order_number!r}")
        self.order_number = order_number


class InvalidTransitionError(ThreadMatcherError):
    """Review action not allowed from the link's current status. Maps to HTTP 409."""

    def __init__(self, order_number: str, current_status: str, action: str) -> None:
        super().__init__(
            f"Cannot {action} thread for order {order_number!r}: current status is {current_status!r}"
        )
        self.order_number = order_number
        self.current_status = current_status
        self.action = action


class MatchingConfigError(ThreadMatcherError, ValueError):
    """Matching weights/thresholds file is missing or invalid."""
