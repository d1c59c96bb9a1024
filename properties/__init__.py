"""
properties package

Inspector panel for editing the active field.
"""

from properties.dock import InspectorPanel

__all__ = ["InspectorPanel"]
