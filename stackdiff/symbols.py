import re

_OFFSET = re.compile(r"\+(0x[0-9a-fA-F]+|\d+)$")
_FUNCTION_ARGUMENTS = re.compile(r"(::.*?)[(<].*")

EMPTY_FRAME = "-"


def normalize_frame(raw):
    """Turns a raw frame label into the canonical frame name.

    Drops the trailing `+0x1a` style offset, collapses C++ argument and template lists
    after a scoped name, and never returns an empty name.
    """
    name = _OFFSET.sub("", raw)
    name = _FUNCTION_ARGUMENTS.sub(r"\1", name)
    if not name:
        name = EMPTY_FRAME
    return name
