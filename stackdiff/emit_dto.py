from dataclasses import dataclass

from stackdiff.parse_dto import ThreadKey


@dataclass
class SliceBegin:
    """Describes the start of a frame on a thread timeline."""

    name: str
    key: ThreadKey
    timestamp: int


@dataclass
class SliceEnd:
    """Describes the end of the innermost open frame on a thread timeline."""

    key: ThreadKey
    timestamp: int
