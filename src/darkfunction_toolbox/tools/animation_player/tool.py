"""AnimationPlayerTool: BaseTool wrapper for playback simulation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from darkfunction_toolbox.core.base_tool import BaseTool, ToolParameter
from darkfunction_toolbox.core.config import DEFAULTS
from darkfunction_toolbox.core.datatypes import AtlasReport, PlaybackTrace
from darkfunction_toolbox.core.events import EventBus
from darkfunction_toolbox.core.exceptions import ValidationError
from darkfunction_toolbox.tools.animation_player.logic import simulate_playback, validate_playback_params


class AnimationPlayerTool(BaseTool):
    """Simulate playback of a darkFunction animation and trace its frames.

    Accepts an ``AtlasReport`` from a preceding atlas-inspector stage to
    resolve the sprites drawn by each frame.
    """

    name = "animation_player"
    display_name = "Animation Player"
    description = "Simulate playback of a darkFunction .anim animation"
    version = "0.1.0"
    category = "Animation"

    def __init__(self, event_bus: EventBus | None = None) -> None:
        """Initialise the animation player tool.

        Args:
            event_bus: Shared event bus for progress reporting.
        """
        super().__init__(event_bus=event_bus)

    def define_parameters(self) -> list[ToolParameter]:
        """Return the parameter schema for playback simulation."""
        return [
            ToolParameter(
                name="input",
                label="Animation file",
                type=Path,
                required=True,
                help="Path to the darkFunction .anim manifest.",
            ),
            ToolParameter(
                name="animation",
                label="Animation",
                type=str,
                default=None,
                help="Animation name (default: the first one declared).",
            ),
            ToolParameter(
                name="atlas",
                label="Atlas file",
                type=Path,
                default=None,
                help="Atlas used to resolve sprites (default: the set's spriteSheet).",
            ),
            ToolParameter(
                name="step_ms",
                label="Step (ms)",
                type=float,
                default=DEFAULTS["step_ms"],
                min_value=0.001,
                help="Simulation tick in milliseconds.",
            ),
            ToolParameter(
                name="duration_ms",
                label="Duration (ms)",
                type=float,
                default=DEFAULTS["duration_ms"],
                min_value=0,
                help="Total simulated time in milliseconds.",
            ),
            ToolParameter(
                name="speed",
                label="Speed",
                type=float,
                default=DEFAULTS["speed"],
                help="Playback speed multiplier (<= 0 means normal speed).",
            ),
            ToolParameter(
                name="enforce_loops",
                label="Enforce loops",
                type=bool,
                default=DEFAULTS["enforce_loops"],
                help="Stop after the animation's 'loops' passes instead of looping forever.",
            ),
            ToolParameter(
                name="delay_scale",
                label="Delay scale",
                type=int,
                default=DEFAULTS["delay_scale"],
                min_value=0,
                help="Milliseconds per authored delay unit.",
            ),
        ]

    def input_types(self) -> list[type]:
        """Accept an ``AtlasReport`` from a preceding pipeline stage."""
        return [AtlasReport]

    def output_types(self) -> list[type]:
        """Produce a ``PlaybackTrace``."""
        return [PlaybackTrace]

    def validate(self, params: dict[str, Any]) -> None:
        """Validate parameters with playback-specific rules.

        Unset values are checked against their defaults.

        Raises:
            ValidationError: If parameters are invalid.
        """
        values = self.resolve_params(params)
        super().validate(values)
        validate_playback_params(
            anim_path=values["input"],
            step_ms=values["step_ms"],
            duration_ms=values["duration_ms"],
        )

        atlas = values["atlas"]
        if atlas is not None and not atlas.exists():
            msg = f"Atlas file does not exist: '{atlas}'"
            raise ValidationError(msg)

    def _do_execute(self, params: dict[str, Any], input_data: Any) -> PlaybackTrace:
        """Run the playback simulation.

        Args:
            params: Resolved parameter dictionary.
            input_data: Optional ``AtlasReport`` from a pipeline stage.
        """
        report = input_data if isinstance(input_data, AtlasReport) else None

        return simulate_playback(
            params["input"],
            animation=params["animation"],
            atlas_path=params["atlas"],
            atlas_report=report,
            step_ms=params["step_ms"],
            duration_ms=params["duration_ms"],
            speed=params["speed"],
            enforce_loops=params["enforce_loops"],
            delay_scale=params["delay_scale"],
            event_bus=self.event_bus,
        )
