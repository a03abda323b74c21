"""
Stable ordering for projected entries.

Volumes, volume mounts and environment variables all follow the same rule:
entries this projector does not own keep their relative order and come
first; owned entries follow as a block sorted by name.
"""

from typing import Callable, List, TypeVar

T = TypeVar("T")


def sort_projected_last(
    items: List[T],
    is_projected: Callable[[T], bool],
    order_key: Callable[[T], str],
) -> List[T]:
    """
    Return items with projected entries moved to a trailing, sorted block.

    Args:
        items: Entries to order
        is_projected: Predicate identifying owned entries
        order_key: Sort key for owned entries

    Returns:
        New list; the input is not modified
    """
    kept = [item for item in items if not is_projected(item)]
    projected = sorted((item for item in items if is_projected(item)), key=order_key)
    return kept + projected


def name_of(item: dict) -> str:
    return item.get("name", "")
