"""Exceptions raised by swipefeed collaborators and caught at engine boundaries."""


class SwipeFeedError(Exception):
    """Base exception for swipefeed errors."""

    pass


class BackendError(SwipeFeedError):
    """Raised when a collaborator call fails (network, database)."""

    def __init__(self, operation: str, reason: str = ""):
        self.operation = operation
        self.reason = reason
        message = f"{operation} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RewindUnavailableError(SwipeFeedError):
    """Raised when an interaction cannot be rewound."""

    def __init__(self, interaction_id: str):
        self.interaction_id = interaction_id
        super().__init__(f"Interaction cannot be rewound: {interaction_id}")
