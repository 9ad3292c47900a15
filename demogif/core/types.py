from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TypedDict

from PIL import Image


class ActionType(str, Enum):
    CLICK = "click"
    TYPE = "type"
    SCROLL = "scroll"
    HOVER = "hover"
    WAIT = "wait"
    NAVIGATE = "navigate"


# Actions that need a selector resolved before they can run
TARGETED_ACTIONS = {ActionType.CLICK, ActionType.TYPE, ActionType.HOVER}


@dataclass
class Action:
    type: ActionType
    selector: str = ""
    text: str = ""
    x: int = 0
    y: int = 0
    url: str = ""
    wait_ms: Optional[int] = None
    checkpoint: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        """Build an action from the planner JSON shape ({"action": "click", ...})."""
        if not isinstance(data, dict):
            raise ValueError(f"Action must be an object, got {type(data).__name__}")
        raw_type = str(data.get("action") or data.get("type") or "").strip().lower()
        try:
            action_type = ActionType(raw_type)
        except ValueError:
            raise ValueError(f"Unknown action type: {raw_type!r}") from None

        selector = str(data.get("selector") or "")
        if action_type in TARGETED_ACTIONS and not selector:
            raise ValueError(f"{action_type.value} action missing selector")
        url = str(data.get("url") or "")
        if action_type is ActionType.NAVIGATE and not url:
            raise ValueError("navigate action missing url")

        wait = data.get("wait")
        return cls(
            type=action_type,
            selector=selector,
            text=str(data.get("text") or ""),
            x=int(data.get("x") or 0),
            y=int(data.get("y") or 0),
            url=url,
            wait_ms=int(wait) if wait is not None else None,
            checkpoint=bool(data.get("checkpoint", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"action": self.type.value}
        if self.type in TARGETED_ACTIONS:
            out["selector"] = self.selector
        if self.type is ActionType.TYPE:
            out["text"] = self.text
        if self.type is ActionType.SCROLL:
            out["x"] = self.x
            out["y"] = self.y
        if self.type is ActionType.NAVIGATE:
            out["url"] = self.url
        if self.wait_ms is not None:
            out["wait"] = self.wait_ms
        if self.checkpoint:
            out["checkpoint"] = True
        return out


class CursorState(str, Enum):
    DEFAULT = "default"
    POINTER = "pointer"
    TEXT = "text"


@dataclass(frozen=True)
class CursorSample:
    x: int
    y: int
    state: CursorState = CursorState.DEFAULT
    click: bool = False


@dataclass
class FrameSample:
    image: Image.Image
    # None means the cursor has not been positioned yet
    cursor: Optional[CursorSample]


@dataclass
class Rect:
    x: float
    y: float
    width: float
    height: float

    def center(self):
        return int(self.x + self.width / 2), int(self.y + self.height / 2)


@dataclass
class ExecutionResult:
    frames: List[FrameSample] = field(default_factory=list)
    last_cursor: Optional[CursorSample] = None
    hit_checkpoint: bool = False
    checkpoint_index: Optional[int] = None
    skipped_actions: List[int] = field(default_factory=list)
    dropped_frames: int = 0
    action_frame_counts: List[int] = field(default_factory=list)

    @property
    def images(self) -> List[Image.Image]:
        return [f.image for f in self.frames]

    @property
    def cursors(self) -> List[Optional[CursorSample]]:
        return [f.cursor for f in self.frames]

    @property
    def attempted(self) -> int:
        return len(self.action_frame_counts)


@dataclass
class PageElement:
    selector: str
    role: str
    label: str = ""


@dataclass
class NavItem:
    selector: str
    text: str
    href: str


@dataclass
class PageDescriptor:
    url: str
    title: str
    elements: List[PageElement] = field(default_factory=list)
    navigation: List[NavItem] = field(default_factory=list)
    is_spa: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RunState(TypedDict):
    goal: str
    run_config: Any
    # Live collaborators (kept in-memory for a single run)
    session: Any
    planner: Any
    analyzer: Any
    actions: List[Action]
    frames: List[FrameSample]
    last_cursor: Optional[CursorSample]
    completed: Any
    iteration: int
    hit_checkpoint: bool
    done: bool
    completion_via: Optional[str]
    warning: Optional[Any]
    dropped_frames: int
    skipped_actions: int
