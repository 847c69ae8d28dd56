"""
Error taxonomy for mctm.

Every error raised by the package derives from MCTMError, and also from the
builtin exception a caller would naturally catch for that failure.
"""


class MCTMError(Exception):
    """Base class for all mctm errors."""


class AllocationError(MCTMError, MemoryError):
    """Engine, container or buffer construction failed."""


class InvalidConfig(MCTMError, ValueError):
    """Hyperparameters that cannot describe a valid machine."""


class SizeMismatch(MCTMError, ValueError):
    """Caller buffer does not match the engine dimensions."""


class OutOfRangeInput(MCTMError, IndexError):
    """Input shorter than required, or an index outside its valid range."""


class LifecycleError(MCTMError, RuntimeError):
    """Operation called in the wrong lifecycle phase (before initialize, after destroy)."""
