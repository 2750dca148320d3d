"""Recursive merge of a partial config delta onto a config document."""

import copy
from collections.abc import Mapping
from typing import Any


def deep_merge(base: Mapping[str, Any], delta: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``base`` with ``delta`` applied.

    Mappings on both sides merge key by key. Any other value in ``delta``
    (lists, scalars, or a mapping over a non-mapping) replaces the base value
    outright. ``None`` in ``delta`` leaves the base value untouched. Neither
    argument is modified.
    """
    result = copy.deepcopy(dict(base))
    for key, value in delta.items():
        if value is None:
            continue
        current = result.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result
