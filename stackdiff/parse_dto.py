from dataclasses import dataclass, field


@dataclass(frozen=True)
class ThreadKey:
    """Identifies one independent call-stack timeline."""

    pid: int = 0
    tid: int = 0


@dataclass
class Sample:
    """Describes one sampled call stack and how many ticks it lasted.

    Frames are kept in the order the profiler reports them (innermost first).
    """

    key: ThreadKey
    frames: list[str] = field(default_factory=list)
    count: int = 1
