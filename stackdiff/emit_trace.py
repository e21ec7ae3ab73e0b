import logging

import stackdiff.emit_dto as dto

logger = logging.getLogger(__name__)


def emit_trace(samples, context=None):
    """Generates the slice events reconstructing the given samples.

    All frames still open when the samples run out are closed at the end.
    """
    if context is None:
        context = ReconstructionContext()
    for sample in samples:
        yield from apply_sample(context, sample)
    yield from flush(context)

    logger.info(
        "%d samples on %d threads, %d sample units",
        context.num_samples,
        len(context.threads),
        context.now,
    )


class ReconstructionContext:
    """The state of one reconstruction run: the synthetic clock and the
    last emitted stack of every thread (outermost frame first)."""

    def __init__(self):
        self.now = 0
        self.num_samples = 0
        self.threads = {}  # ThreadKey -> list[str]

    def thread_stack(self, key):
        """Returns the last emitted stack for `key`, creating it if necessary."""
        stack = self.threads.get(key)
        if stack is None:
            logger.debug("new timeline pid=%d tid=%d", key.pid, key.tid)
            stack = self.threads[key] = []
        return stack


def apply_sample(context, sample):
    """Advances the clock by the sample count, then yields the minimal End/Begin
    events turning the previous stack of the thread into the sampled one."""
    context.now += sample.count
    context.num_samples += 1
    now = context.now
    key = sample.key

    prev = context.thread_stack(key)
    curr = sample.frames[::-1]

    # Frames are matched by position only.
    common = 0
    while common < len(prev) and common < len(curr) and prev[common] == curr[common]:
        common += 1

    for _ in range(len(prev) - common):
        yield dto.SliceEnd(key=key, timestamp=now)
    del prev[common:]

    for name in curr[common:]:
        yield dto.SliceBegin(name=name, key=key, timestamp=now)
        prev.append(name)


def flush(context):
    """Closes every open frame, innermost first, at the current clock value."""
    for key, stack in context.threads.items():
        for _ in range(len(stack)):
            yield dto.SliceEnd(key=key, timestamp=context.now)
        stack.clear()
