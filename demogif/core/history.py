from typing import Iterable, Iterator, List

from .types import Action, ActionType


def format_action(action: Action) -> str:
    """One past-tense line describing what an action did."""
    if action.type is ActionType.TYPE:
        return f"Typed {action.text!r} into {action.selector}"
    if action.type is ActionType.CLICK:
        return f"Clicked {action.selector}"
    if action.type is ActionType.NAVIGATE:
        return f"Navigated to {action.url}"
    if action.type is ActionType.HOVER:
        return f"Hovered over {action.selector}"
    if action.type is ActionType.SCROLL:
        return f"Scrolled by ({action.x}, {action.y})"
    return f"Waited {action.wait_ms or 0}ms"


def format_plan(actions: Iterable[Action]) -> List[str]:
    """Console lines for a freshly planned batch."""
    lines = []
    for i, action in enumerate(actions, start=1):
        marker = " [checkpoint]" if action.checkpoint else ""
        if action.type is ActionType.TYPE:
            target = f"{action.selector} (text: {action.text!r})"
        elif action.type is ActionType.WAIT:
            target = f"{action.wait_ms or 0}ms"
        elif action.type is ActionType.NAVIGATE:
            target = action.url
        elif action.type is ActionType.SCROLL:
            target = f"({action.x}, {action.y})"
        else:
            target = action.selector
        lines.append(f"  [{i}] {action.type.value} → {target}{marker}")
    return lines


class CompletedActionLog:
    """Append-only record of actions executed so far, across all batches."""

    def __init__(self):
        self._actions: List[Action] = []

    def extend(self, actions: Iterable[Action]) -> None:
        self._actions.extend(actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(list(self._actions))

    def __len__(self) -> int:
        return len(self._actions)

    def summary(self) -> str:
        """Numbered, human-readable list handed back to the planner."""
        return "".join(
            f"{i}. {format_action(a)}\n" for i, a in enumerate(self._actions, start=1)
        )
