"""
Workflow engine error taxonomy.
NotFound and StateMismatch are recoverable at the call site; ConfigurationError is fatal.
"""


class WorkflowError(Exception):
    """Base class for workflow engine errors."""


class NotFound(WorkflowError):
    """Raised when a client id is not known to the engine."""

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client not found: {client_id}")


class StateMismatch(WorkflowError):
    """Raised when the caller's view of a client's stage is stale."""

    def __init__(self, client_id: str, expected: str, actual: str):
        self.client_id = client_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Client {client_id} is in '{actual}', not '{expected}'"
        )


class ConfigurationError(WorkflowError):
    """Raised when rules, seed data or settings are invalid at startup."""


class SimulationDisabled(WorkflowError):
    """Raised when a simulated action is requested outside demo mode."""
