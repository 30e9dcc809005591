from __future__ import annotations


class InvalidInputError(ValueError):
    """Raised in strict mode for income or progress outside their domain."""

    def __init__(self, field: str, value: object, message: str) -> None:
        super().__init__(f"{field}: {message} (got {value!r})")
        self.field = field
        self.value = value


class BracketEditError(ValueError):
    pass


__all__ = ["InvalidInputError", "BracketEditError"]
