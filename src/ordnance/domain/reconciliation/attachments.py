"""Union of list-valued fields (attachment slots, tags) across providers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


def _clean(entry: object) -> str | None:
    if not isinstance(entry, str):
        return None
    cleaned = " ".join(entry.split())
    return cleaned or None


def merge_string_lists(lists: Iterable[Iterable[object]]) -> tuple[str, ...]:
    """Case/whitespace-insensitive union, sorted by normalized key.

    The first spelling seen for each entry is kept; non-strings and blanks are dropped.
    """

    seen: dict[str, str] = {}
    for entries in lists:
        for entry in entries:
            cleaned = _clean(entry)
            if cleaned is None:
                continue
            seen.setdefault(cleaned.casefold(), cleaned)
    return tuple(seen[key] for key in sorted(seen))


def merge_attachments(
    slot_maps: Iterable[Mapping[str, Iterable[object]]],
) -> dict[str, tuple[str, ...]]:
    """Merge per-slot attachment lists; slots are keyed by their trimmed name."""

    by_slot: dict[str, list[Iterable[object]]] = {}
    for slot_map in slot_maps:
        for slot, entries in slot_map.items():
            slot_name = _clean(slot)
            if slot_name is None:
                continue
            if isinstance(entries, str):
                entries = (entries,)  # noqa: PLW2901
            by_slot.setdefault(slot_name, []).append(entries)
    merged = {slot: merge_string_lists(lists) for slot, lists in sorted(by_slot.items())}
    return {slot: entries for slot, entries in merged.items() if entries}
