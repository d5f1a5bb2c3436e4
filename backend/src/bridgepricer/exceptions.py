"""
Error types raised by the path generators.

Both errors signal caller misuse and are never retried.
"""


class BridgeError(ValueError):
    """Base class for path generator contract violations."""


class OrderingViolation(BridgeError):
    """Raised when a simulation time grid is not strictly increasing."""

    def __init__(self, position: int, previous: float, current: float) -> None:
        self.position = position
        self.previous = previous
        self.current = current
        super().__init__(
            f"Time steps must be in strictly increasing order: "
            f"t[{position}] = {current} follows {previous}"
        )


class ShapeMismatch(BridgeError):
    """Raised when a path buffer does not have the shape the generator needs."""

    def __init__(self, message: str, expected: tuple = (), actual: tuple = ()) -> None:
        self.expected = expected
        self.actual = actual
        detail = message
        if expected or actual:
            detail += f" (expected {expected}, got {actual})"
        super().__init__(detail)
