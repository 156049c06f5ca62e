class StrictIvarsError(Exception):
    """Base class for errors raised by strictivars."""


class ConfigError(StrictIvarsError):
    """Raised when a config spec cannot be resolved or loaded."""


class ScopeError(StrictIvarsError):
    """Raised when scope enter/exit calls are not properly nested."""


class AnnotationOutOfRangeError(StrictIvarsError):
    """Raised when an annotation targets an offset outside the source text."""

    def __init__(self, offset: int, length: int):
        self.offset = offset
        self.length = length
        super().__init__(f"Annotation offset {offset} outside of source text [0, {length}]")
