"""
canvas package

PyQt6 graphics items, scene, view and the per-page sync engine for fields.
"""

from canvas.mixins import FieldLinkMixin
from canvas.items import (
    FieldItem,
    PlaceholderFieldItem,
    ImageFieldItem,
    TextFieldItem,
)
from canvas.reconcile import CreateOp, RemoveOp, SceneKind, SceneObjectSpec, UpdateOp, reconcile
from canvas.scene import FieldScene
from canvas.sync import PageSyncEngine
from canvas.view import PageView

__all__ = [
    "FieldLinkMixin",
    "FieldItem",
    "PlaceholderFieldItem",
    "ImageFieldItem",
    "TextFieldItem",
    "CreateOp",
    "RemoveOp",
    "SceneKind",
    "SceneObjectSpec",
    "UpdateOp",
    "reconcile",
    "FieldScene",
    "PageSyncEngine",
    "PageView",
]
