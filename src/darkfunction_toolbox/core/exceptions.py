"""Exception hierarchy for the darkfunction-toolbox framework."""

from __future__ import annotations


class ToolboxError(Exception):
    """Base exception for all darkfunction-toolbox errors."""


class ToolError(ToolboxError):
    """Raised when a tool encounters an error during execution."""


class ValidationError(ToolboxError):
    """Raised when parameter validation fails."""


class PipelineError(ToolboxError):
    """Raised when a pipeline encounters an error."""


class ParseError(ToolboxError):
    """Base class for every failure while reading a manifest.

    Args:
        message: Human-readable description of the failure.
        attribute: Name of the offending XML attribute, when one is known.
    """

    def __init__(self, message: str, *, attribute: str | None = None) -> None:
        super().__init__(message)
        self.attribute = attribute

    def with_context(self, context: str) -> ParseError:
        """Return an error of the same kind with *context* prefixed to the message."""
        return type(self)(f"{context} >> {self}", attribute=self.attribute)


class IoFailure(ParseError):
    """The manifest file is missing, unreadable, or empty."""


class MalformedXml(ParseError):
    """The underlying XML document could not be parsed."""


class MissingRequiredNode(ParseError):
    """An expected element (``<img>``, ``<definitions>``, ``<animations>``...) is absent."""


class MissingOrEmptyAttribute(ParseError):
    """A required string attribute is absent or empty."""


class InvalidNumericAttribute(ParseError):
    """A required numeric attribute is absent or not an integer."""


class MissingRootDirectory(ParseError):
    """The atlas has no root ``<dir>`` named ``/``."""


class EmptyAnimation(ToolboxError):
    """Playback was requested on an animation without frames."""
