"""AtlasInspectorTool: BaseTool wrapper for atlas inspection."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from darkfunction_toolbox.core.base_tool import BaseTool, ToolParameter
from darkfunction_toolbox.core.datatypes import AtlasReport
from darkfunction_toolbox.core.events import EventBus
from darkfunction_toolbox.tools.atlas_inspector.logic import inspect_atlas, validate_atlas_params


class AtlasInspectorTool(BaseTool):
    """List the sprites of a darkFunction atlas and resolve sprite paths."""

    name = "atlas_inspector"
    display_name = "Atlas Inspector"
    description = "List and resolve sprites of a darkFunction .sprites atlas"
    version = "0.1.0"
    category = "Atlas"

    def __init__(self, event_bus: EventBus | None = None) -> None:
        """Initialise the atlas inspector tool.

        Args:
            event_bus: Shared event bus for progress reporting.
        """
        super().__init__(event_bus=event_bus)

    def define_parameters(self) -> list[ToolParameter]:
        """Return the parameter schema for atlas inspection."""
        return [
            ToolParameter(
                name="input",
                label="Atlas file",
                type=Path,
                required=True,
                help="Path to the darkFunction .sprites atlas manifest.",
            ),
            ToolParameter(
                name="resolve",
                label="Sprite path",
                type=str,
                default=None,
                help="Sprite path to look up, e.g. '/brown/2'.",
            ),
        ]

    def input_types(self) -> list[type]:
        """Atlas inspection is a pipeline entry point."""
        return []

    def output_types(self) -> list[type]:
        """Produce an ``AtlasReport``."""
        return [AtlasReport]

    def validate(self, params: dict[str, Any]) -> None:
        """Validate parameters with atlas-specific rules.

        Raises:
            ValidationError: If the atlas path is missing or invalid.
        """
        values = self.resolve_params(params)
        super().validate(values)
        validate_atlas_params(atlas_path=values["input"])

    def _do_execute(self, params: dict[str, Any], input_data: Any) -> AtlasReport:
        """Run the atlas inspection logic."""
        return inspect_atlas(
            params["input"],
            resolve=params["resolve"],
            event_bus=self.event_bus,
        )
