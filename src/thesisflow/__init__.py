"""thesisflow package root."""

from thesisflow.exceptions import (
    ConfigurationError,
    PermissionDenied,
    ToolFailure,
    TransportError,
    UsageError,
    VcsError,
    WorkflowError,
)

__all__ = [
    "__version__",
    "ConfigurationError",
    "PermissionDenied",
    "ToolFailure",
    "TransportError",
    "UsageError",
    "VcsError",
    "WorkflowError",
]

__version__ = "0.1.0"
