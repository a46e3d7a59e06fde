from typing import List, Set

from auth.scopes import BASE_SCOPES, SCOPE_GROUPS

_tool_scopes: Set[str] = set()


def register_tool_scopes(scopes: List[str]):
    """Adds a list of scopes, or scope group names, to the global tool scope set."""
    for scope in scopes:
        _tool_scopes.update(SCOPE_GROUPS.get(scope, [scope]))


def get_required_scopes() -> List[str]:
    """
    Returns a sorted list of all unique scopes required by the registered
    tools, plus the base scopes required for authentication.
    """
    all_scopes = set(BASE_SCOPES)
    all_scopes.update(_tool_scopes)
    return sorted(all_scopes)


def get_registered_tool_scopes() -> List[str]:
    """Returns only the scopes registered by tools, excluding base scopes."""
    return sorted(_tool_scopes)


def clear_tool_scopes() -> None:
    _tool_scopes.clear()
