import io
import re

import pytest

from stackdiff.parse_dto import Sample, ThreadKey
from stackdiff.parse_stack_samples import (
    FieldSchema,
    StackParseError,
    parse_stack_samples,
    read_lines,
)


def _parse(text, fields=None):
    return list(parse_stack_samples(read_lines(io.StringIO(text)), fields))


def test_samples_without_fields():
    text = """
  app`foo+0x10
  app`main+0x20
    5

  app`bar+0x4
  app`main+0x20
    3
"""
    assert _parse(text) == [
        Sample(key=ThreadKey(0, 0), frames=["app`foo", "app`main"], count=5),
        Sample(key=ThreadKey(0, 0), frames=["app`bar", "app`main"], count=3),
    ]


def test_samples_with_fields():
    text = """
123 42 7
  foo
  main
  2
"""
    assert _parse(text, ["-", "pid", "tid"]) == [
        Sample(key=ThreadKey(pid=42, tid=7), frames=["foo", "main"], count=2)
    ]


def test_each_sample_has_its_own_thread_key():
    samples = _parse("1 2\nfoo\n1\n\n3 4\nbar\n1\n", ["pid", "tid"])
    assert [s.key for s in samples] == [ThreadKey(1, 2), ThreadKey(3, 4)]


def test_numeric_line_starts_a_sample():
    # Counts are only recognized once a sample has started.
    assert _parse("42\nmain\n7\n") == [
        Sample(key=ThreadKey(), frames=["42", "main"], count=7)
    ]


def test_header_only_sample_has_empty_stack():
    assert _parse("1 2\n4\n", ["pid", "tid"]) == [
        Sample(key=ThreadKey(1, 2), frames=[], count=4)
    ]


def test_blank_line_discards_incomplete_sample():
    text = "lost\nframes\n\nmain\n1\n"
    assert _parse(text) == [Sample(key=ThreadKey(), frames=["main"], count=1)]


def test_empty_frame_placeholder():
    assert _parse("+0x1\nmain\n1\n")[0].frames == ["-", "main"]


def test_field_count_mismatch():
    with pytest.raises(StackParseError, match="Expected 2 fields but got 3."):
        _parse("1 2 3\nmain\n1\n", ["pid", "tid"])


def test_field_count_mismatch_names_line():
    with pytest.raises(StackParseError) as e:
        _parse("1 2 3\nmain\n1\n", ["pid", "tid"])
    assert str(e.value).endswith("\n1 2 3")


@pytest.mark.parametrize(
    "line, what, token",
    [
        ("abc 1", "pid", "abc"),
        ("1 -3", "tid", "-3"),
        ("4294967296 1", "pid", "4294967296"),
        ("+5 1", "pid", "+5"),
    ],
)
def test_invalid_pid_or_tid(line, what, token):
    message = f'"{token}" is not a valid {what}.'
    with pytest.raises(StackParseError, match=re.escape(message)):
        FieldSchema(["pid", "tid"]).parse(line)


def test_max_uint32_is_valid():
    assert FieldSchema(["pid", "tid"]).parse("4294967295 0") == (4294967295, 0)


def test_unknown_fields_are_ignored():
    assert FieldSchema(["cpu", "tid", "-"]).parse("3 9 x") == (0, 9)


def test_passthrough_echoes_raw_lines():
    echo = io.StringIO()
    lines = list(read_lines(io.StringIO("  foo+0x1\n  3"), passthrough=echo))
    assert lines == ["foo+0x1", "3"]
    assert echo.getvalue() == "  foo+0x1\n  3\n"


class _FailingStream:
    def __iter__(self):
        yield "main\n"
        yield "1\n"
        raise OSError("device went away")


def test_read_error_ends_input(caplog):
    assert list(read_lines(_FailingStream())) == ["main", "1"]
    assert "device went away" in caplog.text
