"""
Exception types for the service binding projector.
"""


class ProjectorError(Exception):
    """Base class for all projector failures."""
    pass


class MappingLookupError(ProjectorError, LookupError):
    """Raised when the REST mapping or workload resource mapping cannot be resolved."""
    pass


class MappingDecodeError(ProjectorError, ValueError):
    """Raised when a stashed mapping annotation is not a valid mapping document."""
    pass


class MappingEncodeError(ProjectorError, ValueError):
    """Raised when a mapping snapshot cannot be serialized."""
    pass


class MappingPathError(ProjectorError, ValueError):
    """Raised when a mapping path expression is not supported."""
    pass


class WriteBackError(ProjectorError):
    """Raised when a mutated pod template cannot be written back to the workload."""
    pass


class SelectorError(ProjectorError, ValueError):
    """Raised when a label selector is malformed."""
    pass


class ContextCancelledError(ProjectorError):
    """Raised when the request context was cancelled."""
    pass


class DeadlineExceededError(ContextCancelledError):
    """Raised when the request context deadline has passed."""
    pass
