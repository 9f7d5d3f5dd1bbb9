"""Wrappers around the external inspection and transfer tools."""

from .inspector import SkopeoInspector
from .transfer import Aria2Transfer

__all__ = ["SkopeoInspector", "Aria2Transfer"]
