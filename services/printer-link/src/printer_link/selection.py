"""Resolve which OctoPrint instance a send goes to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from .errors import NoInstancesConfigured
from .models import Instance


@dataclass(frozen=True)
class Selection:
    """Selection decision.

    ``instance`` is the best automatic pick. When ``ambiguous`` is set the
    caller should let the user choose among ``candidates`` instead.
    """

    instance: Instance
    candidates: Tuple[Instance, ...]
    ambiguous: bool = False
    explicit: bool = False


def select_instance(
    instances: Sequence[Instance],
    instance_id: Optional[str] = None,
    *,
    interactive: bool = True,
) -> Selection:
    """
    Pick a target instance.

    Priority:
    1. ``instance_id`` if it is present in ``instances``
    2. the default instance
    3. the first instance

    Interactive callers get ``ambiguous=True`` whenever more than one
    instance exists and no explicit id resolved; programmatic callers
    (``interactive=False``) always get the automatic pick.

    Raises:
        NoInstancesConfigured: ``instances`` is empty
    """
    if not instances:
        raise NoInstancesConfigured()

    candidates = tuple(instances)

    if instance_id is not None:
        explicit = next((inst for inst in candidates if inst.id == instance_id), None)
        if explicit is not None:
            return Selection(instance=explicit, candidates=candidates, explicit=True)

    target = next((inst for inst in candidates if inst.default), candidates[0])
    return Selection(
        instance=target,
        candidates=candidates,
        ambiguous=interactive and len(candidates) > 1,
    )


def parse_pick(answer: Optional[str], count: int, fallback: int = 1) -> Optional[int]:
    """Turn a numbered picker answer into a 0-based index.

    Blank answers use ``fallback``; numbers are clamped into ``[1, count]``;
    anything else cancels (None).
    """
    if count <= 0:
        return None
    text = (answer or "").strip()
    if not text:
        number = fallback
    else:
        try:
            number = int(text)
        except ValueError:
            return None
    return max(1, min(count, number)) - 1


def format_choices(candidates: Sequence[Instance]) -> str:
    """Numbered list of candidates, one per line: ``1. Name (url)``."""
    return "\n".join(
        f"{pos}. {inst.display_name} ({inst.url})" for pos, inst in enumerate(candidates, start=1)
    )


class PromptPicker:
    """Numbered prompt picker: ``ask(text, default)`` returns the typed answer, or None on dismiss."""

    def __init__(self, ask: Callable[[str, str], Optional[str]]) -> None:
        self._ask = ask

    def choose(self, candidates: Sequence[Instance], suggested: Instance) -> Optional[Instance]:
        suggested_pos = next(
            (pos for pos, inst in enumerate(candidates, start=1) if inst.id == suggested.id), 1
        )
        text = f"Send to which OctoPrint?\n{format_choices(candidates)}\nEnter number:"
        answer = self._ask(text, str(suggested_pos))
        if answer is None:
            return None
        idx = parse_pick(answer, len(candidates), fallback=suggested_pos)
        return None if idx is None else candidates[idx]


__all__ = ["Selection", "select_instance", "parse_pick", "format_choices", "PromptPicker"]
