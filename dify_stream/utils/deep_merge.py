import copy
from typing import Any, Dict, Optional


def deep_merge(defaults: Dict[str, Any], layer: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Return a new config dict with `layer` laid over `defaults`.

    Nested sections are merged key by key, any other value in `layer`
    replaces the default. Neither argument is modified.
    """
    merged = copy.deepcopy(defaults)
    for section, value in (layer or {}).items():
        current = merged.get(section)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[section] = deep_merge(current, value)
        else:
            merged[section] = copy.deepcopy(value)
    return merged
