"""BaseTool ABC: the contract shared by the atlas and animation tools."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from darkfunction_toolbox.core.events import EventBus
from darkfunction_toolbox.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ToolParameter:
    """Declarative parameter definition: drives CLI options, defaults and validation."""

    name: str
    label: str
    type: type
    default: Any = None
    required: bool = False
    choices: list[Any] | None = None
    min_value: float | None = None
    max_value: float | None = None
    help: str = ""

    def coerce(self, value: Any) -> Any:
        """Convert loosely typed input (``str`` paths, numeric strings, ``int`` floats) to ``type``.

        Values that cannot be converted are returned unchanged so that
        validation can report them.
        """
        if value is None:
            return None
        if self.type is Path and isinstance(value, (str, os.PathLike)):
            return Path(value)
        if self.type in (int, float) and isinstance(value, str):
            try:
                return self.type(value.strip())
            except ValueError:
                return value
        if self.type is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        return value

    def accepts(self, value: Any) -> bool:
        """Return True if *value* is an instance of ``type`` (``bool`` is not a number)."""
        if isinstance(value, bool) and self.type is not bool:
            return False
        return isinstance(value, self.type)


class BaseTool(ABC):
    """Template Method base for every tool in the toolbox.

    ``run()`` resolves the parameters (defaults filled in, values coerced),
    validates them, then calls ``_do_execute``.  Subclasses provide metadata,
    a parameter schema, pipeline port types and the execution logic.
    """

    # ── metadata (override in subclass) ────────────────────────
    name: str
    display_name: str
    description: str
    version: str = "0.1.0"
    category: str = "General"

    def __init__(self, event_bus: EventBus | None = None) -> None:
        """Initialise the tool with an optional event bus.

        Args:
            event_bus: Event bus for progress and log events.
                       A private bus is created if none is provided.
        """
        self.event_bus = event_bus or EventBus()

    # ── parameter schema ───────────────────────────────────────
    @abstractmethod
    def define_parameters(self) -> list[ToolParameter]:
        """Return the list of parameters this tool accepts."""
        ...

    def resolve_params(self, params: dict[str, Any]) -> dict[str, Any]:
        """Return *params* with schema defaults for missing or ``None`` values.

        Declared parameters are coerced to their schema type; undeclared keys
        are passed through untouched.  Resolving twice gives the same result.
        """
        resolved = dict(params)
        for param in self.define_parameters():
            value = params.get(param.name)
            resolved[param.name] = param.coerce(param.default if value is None else value)
        return resolved

    # ── I/O port declarations (for pipeline chaining) ─────────
    @abstractmethod
    def input_types(self) -> list[type]:
        """Return data types this tool can receive (empty list = entry point)."""
        ...

    @abstractmethod
    def output_types(self) -> list[type]:
        """Return data types this tool produces (empty list = terminal)."""
        ...

    # ── lifecycle (Template Method skeleton) ───────────────────
    def run(self, params: dict[str, Any], input_data: Any = None) -> Any:
        """Execute the tool: public entry point, do NOT override.

        Args:
            params: Dictionary of parameter values keyed by parameter name.
            input_data: Optional output of a preceding pipeline stage.

        Returns:
            The result produced by ``_do_execute``.
        """
        resolved = self.resolve_params(params)
        self.validate(resolved)
        self._pre_execute(resolved)
        result = self._do_execute(resolved, input_data)
        self._post_execute(result)
        return result

    def validate(self, params: dict[str, Any]) -> None:
        """Validate params against ``define_parameters()``.

        The base implementation checks ``required`` parameters, value types,
        ``choices`` and the numeric ``min_value``/``max_value`` bounds of every
        supplied value.  Override to add tool-specific rules.

        Raises:
            ValidationError: If any parameter is invalid.
        """
        for param in self.define_parameters():
            value = params.get(param.name)
            if value is None:
                if param.required:
                    msg = f"Parameter '{param.name}' is required"
                    raise ValidationError(msg)
                continue
            if not param.accepts(value):
                msg = f"Parameter '{param.name}' must be {param.type.__name__}, got {type(value).__name__}"
                raise ValidationError(msg)
            if param.choices is not None and value not in param.choices:
                msg = f"Parameter '{param.name}' must be one of {param.choices}, got '{value}'"
                raise ValidationError(msg)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                if param.min_value is not None and value < param.min_value:
                    msg = f"Parameter '{param.name}' must be >= {param.min_value}, got {value}"
                    raise ValidationError(msg)
                if param.max_value is not None and value > param.max_value:
                    msg = f"Parameter '{param.name}' must be <= {param.max_value}, got {value}"
                    raise ValidationError(msg)

    def _pre_execute(self, params: dict[str, Any]) -> None:
        """Hook called before execution; logs the resolved parameters."""
        logger.debug("Running %s with %s", self.name, params)

    @abstractmethod
    def _do_execute(self, params: dict[str, Any], input_data: Any) -> Any:
        """Core logic: MUST override.

        Args:
            params: Resolved and validated parameter dictionary.
            input_data: Optional input from a pipeline stage.

        Returns:
            The tool's result.
        """
        ...

    def _post_execute(self, result: Any) -> None:
        """Hook called after execution; logs the result type."""
        logger.debug("%s produced %s", self.name, type(result).__name__)
