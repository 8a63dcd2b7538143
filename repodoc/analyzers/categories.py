"""Heuristic widget/service/model classification for discovered classes."""

from __future__ import annotations

from typing import Optional

from ..models import ClassCategory, ClassInfo

_SERVICE_NAME_MARKERS = ("Service", "Repository", "Provider", "Controller")
_SERVICE_METHOD_MARKERS = ("fetch", "get", "load", "save", "update", "delete")
_MODEL_NAME_MARKERS = ("Model", "Entity", "Data", "DTO")


def categorize(info: ClassInfo) -> Optional[ClassCategory]:
    """Return the first matching category, checked in widget, service, model order."""
    if _is_widget(info):
        return ClassCategory.WIDGET
    if _is_service(info):
        return ClassCategory.SERVICE
    if _is_model(info):
        return ClassCategory.MODEL
    return None


def _is_widget(info: ClassInfo) -> bool:
    if info.superclass and "Widget" in info.superclass:
        return True
    return any("Widget" in name for name in info.interfaces)


def _is_service(info: ClassInfo) -> bool:
    if any(marker in info.name for marker in _SERVICE_NAME_MARKERS):
        return True
    return any(marker in method for method in info.methods for marker in _SERVICE_METHOD_MARKERS)


def _is_model(info: ClassInfo) -> bool:
    return any(marker in info.name for marker in _MODEL_NAME_MARKERS)


__all__ = ["categorize"]
