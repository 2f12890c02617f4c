VERIFICATION_STATUSES = ("pending", "approved", "rejected")
TERMINAL_STATUSES = {"approved", "rejected"}

_ACTION_TARGET = {"approve": "approved", "reject": "rejected"}

# users.verification_status that follows a review outcome
USER_STATUS_FOR_REVIEW = {"approved": "verified", "rejected": "rejected"}


class InvalidTransition(ValueError):
    pass


def transition_status(current: str, action: str) -> str:
    if action not in _ACTION_TARGET:
        raise InvalidTransition(f"Unknown action: {action}")
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(f"Verification already {current}")
    if current != "pending":
        raise InvalidTransition(f"Unknown verification status: {current}")
    return _ACTION_TARGET[action]
