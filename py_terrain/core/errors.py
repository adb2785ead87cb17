"""
Exception types raised by the terrain generation core.

- NotInitializedError: a query reached a component before ``initialize(seed)``
- InvalidParameterError: a configuration value was rejected at construction time
"""


class TerrainError(Exception):
    """Base class for terrain generation errors."""


class NotInitializedError(TerrainError, RuntimeError):
    """Raised when a component is queried before it was initialized with a seed."""

    def __init__(self, component: str):
        super().__init__(f"{component} queried before initialize(seed) was called")
        self.component = component


class InvalidParameterError(TerrainError, ValueError):
    """Raised when a generation parameter is outside its valid range."""

    def __init__(self, name: str, value, reason: str):
        super().__init__(f"Invalid {name}={value!r}: {reason}")
        self.name = name
        self.value = value
        self.reason = reason
