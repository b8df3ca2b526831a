"""Pipeline & PipelineStage: chain tools through their input/output ports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from darkfunction_toolbox.core.exceptions import PipelineError

if TYPE_CHECKING:
    from darkfunction_toolbox.core.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class PipelineStage:
    """A single stage in a pipeline, binding a tool name to its parameters.

    Attributes:
        tool_name: Registry slug of the tool to execute.
        params: Parameter dictionary passed to ``tool.run()``.
    """

    tool_name: str
    params: dict[str, Any] = field(default_factory=dict)


class Pipeline:
    """Sequence of stages where stage *N*'s result is stage *N+1*'s ``input_data``.

    A typical chain inspects an atlas and then plays an animation against it::

        pipeline = Pipeline("preview")
        pipeline.add_stage("atlas_inspector", {"input": atlas_path})
        pipeline.add_stage("animation_player", {"input": anim_path})
        trace = pipeline.run()

    Args:
        name: Human-readable pipeline name.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._stages: list[PipelineStage] = []

    @property
    def stages(self) -> list[PipelineStage]:
        """Return a copy of the ordered stage list."""
        return list(self._stages)

    def add_stage(self, tool_name: str, params: dict[str, Any] | None = None) -> None:
        """Append a stage to the pipeline.

        Args:
            tool_name: Registry slug of the tool (e.g. ``"animation_player"``).
            params: Parameters forwarded to the tool's ``run()`` method.
        """
        self._stages.append(PipelineStage(tool_name=tool_name, params=params or {}))

    def validate(self, registry: ToolRegistry | None = None) -> None:
        """Check the pipeline before running it.

        Without a registry only emptiness is checked.  With one, every stage
        must name a registered tool and each tool must accept at least one of
        the types its predecessor produces.

        Raises:
            PipelineError: If the pipeline is empty or its stages do not chain.
        """
        if not self._stages:
            msg = f"Pipeline '{self.name}' has no stages"
            raise PipelineError(msg)
        if registry is None:
            return

        previous = None
        for stage in self._stages:
            tool = registry.get(stage.tool_name)
            if tool is None:
                msg = f"Tool '{stage.tool_name}' not found in registry"
                raise PipelineError(msg)
            if previous is not None:
                produced = previous.output_types()
                if not set(produced) & set(tool.input_types()):
                    names = ", ".join(t.__name__ for t in produced) or "nothing"
                    msg = f"Tool '{tool.name}' cannot accept {names} from '{previous.name}'"
                    raise PipelineError(msg)
            previous = tool

    def run(self, input_data: Any = None) -> Any:
        """Execute all stages in order, threading data through the chain.

        Args:
            input_data: Initial data fed into the first stage.

        Returns:
            The result produced by the last stage.

        Raises:
            PipelineError: If the pipeline does not validate or the first
                stage cannot accept *input_data*.
        """
        from darkfunction_toolbox.core.registry import ToolRegistry

        registry = ToolRegistry()
        if not len(registry):
            registry.discover()
        self.validate(registry)

        first = registry.get(self._stages[0].tool_name)
        if input_data is not None and first is not None and not isinstance(input_data, tuple(first.input_types())):
            msg = f"Tool '{first.name}' cannot accept {type(input_data).__name__} as pipeline input"
            raise PipelineError(msg)

        result = input_data
        for index, stage in enumerate(self._stages, start=1):
            tool = registry.get(stage.tool_name)
            if tool is None:
                msg = f"Tool '{stage.tool_name}' not found in registry"
                raise PipelineError(msg)
            logger.info("Pipeline '%s': stage %d/%d '%s'", self.name, index, len(self._stages), stage.tool_name)
            result = tool.run(params=stage.params, input_data=result)

        return result
