"""Atlas Inspector tool: lists and resolves sprites of a darkFunction ``.sprites`` atlas."""

from darkfunction_toolbox.tools.atlas_inspector.tool import AtlasInspectorTool

__all__ = ["AtlasInspectorTool"]
