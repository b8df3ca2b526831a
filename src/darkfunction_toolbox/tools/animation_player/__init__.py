"""Animation Player tool: simulates playback of a darkFunction ``.anim`` animation."""

from darkfunction_toolbox.tools.animation_player.tool import AnimationPlayerTool

__all__ = ["AnimationPlayerTool"]
