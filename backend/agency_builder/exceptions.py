class WorkflowError(Exception):
    """Base exception for the agency workflow builder."""
    pass


class InvalidWorkflowFormatError(WorkflowError):
    """Raised when persisted workflow JSON cannot be interpreted."""
    pass


class InvalidPrincipalError(WorkflowError, ValueError):
    """Raised when a canister reference is not a valid principal text."""
    pass


class WorkflowNotReadyError(WorkflowError):
    """Raised when a workflow cannot be saved or executed yet."""
    pass


class TemplateError(WorkflowError):
    pass
