from typing import Any

UNSET = object()
"""Marks a value that should not override anything when merging configs."""


def recursive_merge(*dictionaries: dict | None) -> dict:
    """Merge dictionaries left to right; nested dicts are merged, other values replaced.

    Values that are `UNSET` are skipped, so CLI options that were not given
    do not clobber values from config files.
    """
    if not dictionaries:
        return {}
    result: dict[str, Any] = {}
    for dictionary in dictionaries:
        if dictionary is None:
            continue
        for key, value in dictionary.items():
            if value is UNSET:
                continue
            if isinstance(value, dict):
                base = result.get(key)
                result[key] = recursive_merge(base if isinstance(base, dict) else None, value)
            else:
                result[key] = value
    return result
