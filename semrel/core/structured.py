"""Helpers for safely working with dynamic (untyped) structures.

Use these at the boundaries where TOML configuration or JSON notes are
ingested. They validate at runtime and narrow types statically.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def as_obj_list(obj: object) -> ObjList | None:
    if isinstance(obj, list):
        return cast(ObjList, obj)
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value, stripping whitespace.

    Returns None if missing, not a str, or empty after stripping.
    """
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    value = table.get(key)
    return value if isinstance(value, bool) else None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def get_list(table: Mapping[str, object], key: str) -> ObjList | None:
    return as_obj_list(table.get(key))


def deep_merge(base: object, override: object) -> object:
    """Recursively merge ``override`` into ``base`` and return the result.

    Tables merge key by key and lists merge index by index; on any other
    conflict the ``override`` value wins. Neither input is modified.
    """
    base_dict = as_str_dict(base)
    override_dict = as_str_dict(override)
    if base_dict is not None and override_dict is not None:
        merged: StrDict = dict(base_dict)
        for key, value in override_dict.items():
            merged[key] = deep_merge(merged[key], value) if key in merged else value
        return merged

    base_list = as_obj_list(base)
    override_list = as_obj_list(override)
    if base_list is not None and override_list is not None:
        out: ObjList = list(base_list)
        for idx, value in enumerate(override_list):
            if idx < len(out):
                out[idx] = deep_merge(out[idx], value)
            else:
                out.append(value)
        return out

    return override
