"""Storyboard artifact grouping and version handling."""

from .busy import BusySet
from .grouping import StoryboardItem, StoryboardSnapshot, group_storyboard_files

__all__ = ["BusySet", "StoryboardItem", "StoryboardSnapshot", "group_storyboard_files"]
