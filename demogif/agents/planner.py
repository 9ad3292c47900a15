import json
from typing import Any, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from ..core.config import DEFAULT_MODEL
from ..core.errors import PlanningFailure
from ..core.history import format_plan
from ..core.types import Action, PageDescriptor

SYSTEM_PROMPT = (
    "You are a browser automation script generator. Convert a natural language request "
    "into precise browser actions for a recorded demo.\n"
    "\n"
    "You receive:\n"
    "1. A page map with the URL, title, interactive elements and navigation links\n"
    "2. The user's request (and, when continuing, the actions already completed)\n"
    "\n"
    "Output a JSON array of actions. Each action has:\n"
    "- \"action\": one of \"click\", \"type\", \"scroll\", \"hover\", \"wait\", \"navigate\"\n"
    "- \"selector\": CSS selector from the page map (required for click, type, hover)\n"
    "- \"text\": text to type (type only)\n"
    "- \"x\", \"y\": scroll delta in pixels (scroll only)\n"
    "- \"url\": destination (navigate only)\n"
    "- \"wait\": milliseconds to wait after the action (optional)\n"
    "- \"checkpoint\": true when the action will change the page substantially "
    "(navigation, opening a modal, submitting a form). Actions after a checkpoint "
    "usually need elements that are not in the current page map, so end the array "
    "at the first checkpoint; you will be asked to continue with a fresh page map.\n"
    "\n"
    "Guidelines:\n"
    "- Use only selectors from the provided page map\n"
    "- Add waits of 300-1000ms after actions that trigger animations, 1000-2000ms after submissions\n"
    "- Keep the sequence minimal but complete\n"
    "- When continuing, return [] if the request is already fully satisfied\n"
    "\n"
    "Example output:\n"
    "[\n"
    "  {\"action\": \"click\", \"selector\": \"#login-btn\", \"wait\": 300, \"checkpoint\": true}\n"
    "]\n"
    "\n"
    "Respond ONLY with the JSON array, no explanation or markdown."
)


def build_user_prompt(descriptor: PageDescriptor, goal: str) -> str:
    page_map = json.dumps(descriptor.to_dict(), indent=2)
    return f"Page map:\n{page_map}\n\nUser request: {goal}"


def build_continue_prompt(descriptor: PageDescriptor, goal: str, completed_summary: str) -> str:
    page_map = json.dumps(descriptor.to_dict(), indent=2)
    return (
        f"Page map (after the last checkpoint):\n{page_map}\n\n"
        f"User request: {goal}\n\n"
        f"Actions already completed:\n{completed_summary or '(none)'}\n"
        "Generate the remaining actions from the current page state. "
        "Return [] if nothing is left to do."
    )


def _extract_json_array(text: str) -> Optional[str]:
    """First balanced [...] block in a model response, or None."""
    start = text.find("[")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_actions_json(response: str) -> List[Action]:
    """Parse a model response into actions; invalid items are dropped, no array is fatal."""
    content = (response or "").strip()
    if "```json" in content:
        content = content.split("```json")[1].split("```")[0].strip()
    elif "```" in content:
        content = content.split("```")[1].split("```")[0].strip()

    try:
        raw: Any = json.loads(content)
    except json.JSONDecodeError:
        block = _extract_json_array(content)
        if block is None:
            raise PlanningFailure(f"No JSON array found in planner response: {response!r}")
        try:
            raw = json.loads(block)
        except json.JSONDecodeError as e:
            raise PlanningFailure(f"Failed to parse extracted JSON ({e}): {block!r}")

    if isinstance(raw, dict) and isinstance(raw.get("actions"), list):
        raw = raw["actions"]
    if not isinstance(raw, list):
        raise PlanningFailure(f"Planner response is not a JSON array: {response!r}")

    actions: List[Action] = []
    for idx, item in enumerate(raw):
        try:
            actions.append(Action.from_dict(item))
        except (ValueError, TypeError) as e:
            print(f"[Planner] Dropping invalid action #{idx + 1}: {e}")
    return actions


class ActionPlanner:
    """LLM planner: initial action list, then continuations after checkpoints."""

    def __init__(self, model: str = DEFAULT_MODEL, llm=None):
        self.model = model
        self.llm = llm or ChatOpenAI(
            model=model,
            temperature=0.0,
            timeout=60,
            max_retries=1,
        )

    def _ask(self, user_prompt: str) -> List[Action]:
        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=user_prompt)]
        try:
            result = self.llm.invoke(messages)
        except Exception as e:
            raise PlanningFailure(f"Planner call failed ({self.model}): {e}")

        content = result.content if isinstance(result.content, str) else str(result.content)
        if not content.strip():
            raise PlanningFailure(f"Empty response from planner ({self.model})")

        actions = parse_actions_json(content)
        print(f"[Planner] {len(actions)} action(s)")
        for line in format_plan(actions):
            print(line)
        return actions

    def plan_actions(self, descriptor: PageDescriptor, goal: str) -> List[Action]:
        print(f"[Planner] Generating actions via {self.model}...")
        return self._ask(build_user_prompt(descriptor, goal))

    def continue_actions(self, descriptor: PageDescriptor, goal: str, completed_summary: str) -> List[Action]:
        print(f"[Planner] Continuing after checkpoint via {self.model}...")
        return self._ask(build_continue_prompt(descriptor, goal, completed_summary))
