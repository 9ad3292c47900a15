from langgraph.graph import END, StateGraph

from .errors import IterationBoundReached
from .executor import execute_batch
from .types import RunState


def plan(state: RunState) -> RunState:
    """Analyse the first page and ask for the initial action list."""
    descriptor = state["analyzer"](state["session"])
    actions = state["planner"].plan_actions(descriptor, state["goal"])
    state["actions"] = actions
    if not actions:
        print("[Orchestrator] Planner returned no actions; nothing to record.")
        state["done"] = True
        state["completion_via"] = "empty_plan"
    return state


def execute(state: RunState) -> RunState:
    """One round: run the current batch and fold its output into the run."""
    config = state["run_config"]
    state["iteration"] += 1
    actions = state["actions"]
    print(f"[Orchestrator] Round {state['iteration']}: executing {len(actions)} action(s)")

    result = execute_batch(state["session"], actions, config, state["last_cursor"])

    state["frames"].extend(result.frames)
    state["last_cursor"] = result.last_cursor
    state["dropped_frames"] += result.dropped_frames
    state["skipped_actions"] += len(result.skipped_actions)

    # Executed prefix when a checkpoint truncated the batch, else the whole list
    state["completed"].extend(actions[:result.attempted])

    # The batch is consumed either way
    state["actions"] = []
    state["hit_checkpoint"] = result.hit_checkpoint

    if not result.hit_checkpoint:
        state["done"] = True
        state["completion_via"] = "batch_exhausted"
    elif state["iteration"] >= config.max_iterations:
        warning = IterationBoundReached(state["iteration"])
        print(f"[Orchestrator] ⚠ {warning}")
        state["warning"] = warning
        state["done"] = True
        state["completion_via"] = "max_iterations"
    return state


def replan(state: RunState) -> RunState:
    """After a checkpoint: fresh page map plus the progress summary."""
    print("[Orchestrator] Checkpoint reached, re-analysing page...")
    descriptor = state["analyzer"](state["session"])
    actions = state["planner"].continue_actions(
        descriptor, state["goal"], state["completed"].summary())
    state["actions"] = actions
    if not actions:
        print("[Orchestrator] Planner reports the goal is satisfied.")
        state["done"] = True
        state["completion_via"] = "goal_satisfied"
    return state


def should_continue(state: RunState) -> str:
    if state.get("done"):
        return END
    return "execute"


def after_execute(state: RunState) -> str:
    if state.get("done"):
        return END
    return "replan"


def build_graph():
    graph = StateGraph(RunState)
    graph.add_node("plan", plan)
    graph.add_node("execute", execute)
    graph.add_node("replan", replan)

    graph.set_entry_point("plan")
    graph.add_conditional_edges(
        "plan", should_continue, {END: END, "execute": "execute"})
    graph.add_conditional_edges(
        "execute", after_execute, {END: END, "replan": "replan"})
    graph.add_conditional_edges(
        "replan", should_continue, {END: END, "execute": "execute"})

    return graph.compile()


def recursion_limit_for(max_iterations: int) -> int:
    # plan + (execute, replan) per round, with headroom
    return 2 * max_iterations + 10
