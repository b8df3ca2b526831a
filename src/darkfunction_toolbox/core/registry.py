"""ToolRegistry: singleton that discovers and caches tool instances."""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from types import ModuleType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from darkfunction_toolbox.core.base_tool import BaseTool
    from darkfunction_toolbox.core.events import EventBus

logger = logging.getLogger(__name__)

_TOOLS_PACKAGE = "darkfunction_toolbox.tools"


class ToolRegistry:
    """Singleton registry of tool instances keyed by their slug.

    ``discover()`` imports ``darkfunction_toolbox.tools.<pkg>.tool`` for each
    tool sub-package and registers every concrete ``BaseTool`` defined there.
    Tools can also be added by hand with ``register()``.
    """

    _instance: ToolRegistry | None = None
    _tools: dict[str, BaseTool]

    def __new__(cls) -> ToolRegistry:
        """Return the singleton instance, creating it on first call."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._tools = {}
        return cls._instance

    def discover(self, event_bus: EventBus | None = None) -> list[str]:
        """Register all tools shipped in ``darkfunction_toolbox.tools``.

        Args:
            event_bus: Shared event bus injected into each tool.

        Returns:
            Slugs of the tools registered by this call, in discovery order.
        """
        tools_package = importlib.import_module(_TOOLS_PACKAGE)
        registered: list[str] = []

        for module_info in pkgutil.iter_modules(tools_package.__path__):
            if not module_info.ispkg:
                continue
            try:
                tool_module = importlib.import_module(f"{_TOOLS_PACKAGE}.{module_info.name}.tool")
            except ModuleNotFoundError:
                logger.debug("Skipping %s: no tool.py found", module_info.name)
                continue

            for tool_class in _tool_classes(tool_module):
                registered.append(self.register(tool_class(event_bus=event_bus)))

        return registered

    def register(self, tool: BaseTool) -> str:
        """Add *tool* under its slug, replacing any tool of the same name."""
        if tool.name in self._tools:
            logger.warning("Tool '%s' registered twice; keeping the later instance", tool.name)
        self._tools[tool.name] = tool
        logger.info("Registered tool: %s", tool.name)
        return tool.name

    def get(self, name: str) -> BaseTool | None:
        """Look up a tool by its slug (e.g. ``"atlas_inspector"``)."""
        return self._tools.get(name)

    def all_tools(self) -> dict[str, BaseTool]:
        """Return all registered tools as a name to instance mapping."""
        return dict(self._tools)

    def by_category(self) -> dict[str, list[BaseTool]]:
        """Group the registered tools by their ``category``."""
        groups: dict[str, list[BaseTool]] = {}
        for tool in self._tools.values():
            groups.setdefault(tool.category, []).append(tool)
        return groups

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton; intended for testing only."""
        cls._instance = None


def _tool_classes(module: ModuleType) -> list[type[BaseTool]]:
    """Return the concrete ``BaseTool`` subclasses defined in *module*."""
    from darkfunction_toolbox.core.base_tool import BaseTool

    return [
        obj
        for _name, obj in inspect.getmembers(module, inspect.isclass)
        if issubclass(obj, BaseTool) and obj.__module__ == module.__name__ and not inspect.isabstract(obj)
    ]
