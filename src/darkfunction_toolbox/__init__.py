"""darkFunction sprite-atlas and animation manifest toolbox."""

from darkfunction_toolbox.formats.animation import Animation, AnimationSet, Frame, FrameLayer, PlaybackState
from darkfunction_toolbox.formats.sprite_atlas import Directory, SpriteAtlas, SpriteRect

__all__ = [
    "Animation",
    "AnimationSet",
    "Directory",
    "Frame",
    "FrameLayer",
    "PlaybackState",
    "SpriteAtlas",
    "SpriteRect",
]
