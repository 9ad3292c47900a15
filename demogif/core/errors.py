class DemoGifError(RuntimeError):
    """Base class for recording failures."""


class ElementNotFound(DemoGifError):
    """A selector resolved to no visible element. The action is skipped."""

    def __init__(self, selector: str, reason: str = ""):
        self.selector = selector
        msg = f"element not found: {selector}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class FrameCaptureFailed(DemoGifError):
    """One screenshot could not be taken or decoded. The frame is dropped."""


class DriverFailure(DemoGifError):
    """Navigation or a load wait failed. Fatal for the run."""


class PlanningFailure(DemoGifError):
    """The planner call failed or returned output with no action list. Fatal."""


class IterationBoundReached(Warning):
    """The planning loop hit its round limit; the run still completes."""

    def __init__(self, iterations: int):
        self.iterations = iterations
        super().__init__(
            f"max iterations reached ({iterations}), stopping with the frames captured so far")
