"""Copying the fields named by a path mask from one object to another."""

from __future__ import annotations

import copy
import dataclasses
import types
from typing import Any


class FieldMaskError(ValueError):
    """Raised when a mask cannot be applied to the given objects."""


def _is_struct(value: Any) -> bool:
    if value is None or isinstance(value, (type, types.ModuleType)) or callable(value):
        return False
    if dataclasses.is_dataclass(value):
        return True
    return hasattr(value, "__dict__")


def _paths(mask: Any) -> list[str]:
    if mask is None:
        return []
    if isinstance(mask, str):
        return [mask]
    return list(getattr(mask, "paths", mask))


def _zero_like(value: Any) -> Any:
    """Return a blank instance of the type of ``value``."""
    cls = type(value)
    if dataclasses.is_dataclass(cls):
        instance = cls.__new__(cls)
        for field in dataclasses.fields(cls):
            if field.default is not dataclasses.MISSING:
                initial = field.default
            elif field.default_factory is not dataclasses.MISSING:
                initial = field.default_factory()
            else:
                initial = None
            object.__setattr__(instance, field.name, initial)
        return instance
    try:
        return cls()
    except TypeError as exc:
        raise FieldMaskError(f"cannot create an empty {cls.__name__}") from exc


def _copy_value(value: Any) -> Any:
    return copy.copy(value) if _is_struct(value) else value


def _require(src: Any, dst: Any, part: str, full_path: str, root: Any) -> None:
    if not hasattr(src, part) or not hasattr(dst, part):
        raise FieldMaskError(
            f'Field path "{full_path}" doesn\'t exist in type {type(root).__name__}'
        )


def _merge_path(source: Any, dest: Any, full_path: str) -> None:
    *parents, leaf = full_path.split(".")
    src, dst = source, dest
    for part in parents:
        if not _is_struct(dst):
            return
        _require(src, dst, part, full_path, source)
        src_child = getattr(src, part)
        dst_child = getattr(dst, part)
        if src_child is None:
            return
        if dst_child is None and _is_struct(src_child):
            dst_child = _zero_like(src_child)
            setattr(dst, part, dst_child)
        src, dst = src_child, dst_child
    if not _is_struct(dst):
        return
    _require(src, dst, leaf, full_path, source)
    setattr(dst, leaf, _copy_value(getattr(src, leaf)))


def merge_with_mask(source: Any, dest: Any, mask: Any) -> None:
    """Copy the fields of ``source`` named by the dotted paths in ``mask`` into ``dest``.

    ``mask`` is a sequence of paths, an object with a ``paths`` attribute, or None.
    Missing intermediate objects in ``dest`` are created. Paths that lead
    through something that is not an object with attributes are skipped.
    """
    paths = _paths(mask)
    if not paths:
        return
    if source is None:
        raise FieldMaskError("Source object is nil")
    if dest is None:
        raise FieldMaskError("Destination object is nil")
    if type(source) is not type(dest):
        raise FieldMaskError("Types of source and destination objects do not match")
    for full_path in paths:
        _merge_path(source, dest, full_path)