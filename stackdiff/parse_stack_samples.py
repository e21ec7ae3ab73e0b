import enum
import logging
import re

import stackdiff.parse_dto as dto
from stackdiff.symbols import normalize_frame

logger = logging.getLogger(__name__)

_COUNT = re.compile(r"^\d+$")
_UINT = re.compile(r"^[0-9]+$")
_UINT32_MAX = 0xFFFFFFFF


class StackParseError(ValueError):
    """The profiler output cannot be interpreted."""


class State(enum.Enum):
    EXPECTING_NEW_FRAME = enum.auto()  # waiting for the fields or the first frame
    IN_FRAME = enum.auto()  # waiting for the count that ends the sample


class FieldSchema:
    """Names the whitespace-separated fields that precede each stack.

    `pid` and `tid` are parsed, every other name is ignored.
    """

    def __init__(self, names):
        self.names = list(names)

    def __len__(self):
        return len(self.names)

    def parse(self, line):
        """Returns the (pid, tid) found in the header line of a sample."""
        tokens = line.split()
        if len(tokens) != len(self.names):
            raise StackParseError(
                f"Expected {len(self.names)} fields but got {len(tokens)}. "
                f"Problematic line:\n{line}"
            )

        pid, tid = 0, 0
        for name, token in zip(self.names, tokens):
            if name == "pid":
                pid = _parse_uint32(token, "pid")
            elif name == "tid":
                tid = _parse_uint32(token, "tid")
        return pid, tid


def _parse_uint32(token, what):
    if not _UINT.match(token) or int(token) > _UINT32_MAX:
        raise StackParseError(f'"{token}" is not a valid {what}.')
    return int(token)


def _parse_count(line):
    try:
        return int(line)
    except ValueError:
        raise StackParseError(f"'{line}' is not a valid sample count") from None


def read_lines(stream, passthrough=None):
    """Yields the stripped lines of `stream`.

    Every raw line is echoed to `passthrough` first, if given. A read error ends
    the input instead of aborting, so that the samples read so far still count.
    """
    try:
        for line in stream:
            if passthrough is not None:
                passthrough.write(line if line.endswith("\n") else line + "\n")
            yield line.strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.error("reading input: %s", e)


def parse_stack_samples(lines, fields=None):
    """Generates the samples described by the stripped profiler output `lines`."""
    schema = FieldSchema(fields) if fields else None
    state = State.EXPECTING_NEW_FRAME
    pid, tid = 0, 0
    frames = []  # innermost first, as reported

    for line in lines:
        if line == "":
            # Between samples; a truncated sample is dropped.
            if state == State.IN_FRAME and frames:
                logger.warning("discarding incomplete sample of %d frames", len(frames))
            state = State.EXPECTING_NEW_FRAME
            pid, tid = 0, 0
            frames.clear()
        elif state == State.EXPECTING_NEW_FRAME:
            if schema is None:
                frames.append(normalize_frame(line))
            else:
                pid, tid = schema.parse(line)
            state = State.IN_FRAME
        elif state == State.IN_FRAME and _COUNT.match(line):
            yield dto.Sample(
                key=dto.ThreadKey(pid, tid),
                frames=list(frames),
                count=_parse_count(line),
            )
            pid, tid = 0, 0
            frames.clear()
            state = State.EXPECTING_NEW_FRAME
        elif state == State.IN_FRAME:
            frames.append(normalize_frame(line))
        else:
            raise AssertionError(f"bad parser state {state}")
