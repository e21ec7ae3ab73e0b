import json

from stackdiff.trace_writer import TraceWriter

CATEGORY = "dtrace"


class JSONWriter(TraceWriter):
    """Knows how to write a chrome://tracing JSON array."""

    def __init__(self, out, freq=1000):
        super().__init__(out, freq)
        self._did_event = False

    def header(self):
        self._out.write("[\n")

    def begin(self, name, key, timestamp):
        self._write_event(
            {
                "name": name,
                "cat": CATEGORY,
                "ph": "B",
                "ts": self.microseconds(timestamp),
                "pid": key.pid,
                "tid": key.tid,
            }
        )

    def end(self, key, timestamp):
        self._write_event(
            {
                "ph": "E",
                "ts": self.microseconds(timestamp),
                "pid": key.pid,
                "tid": key.tid,
            }
        )

    def footer(self):
        self._out.write("\n]\n")

    def _write_event(self, event):
        if self._did_event:
            self._out.write(",\n")
        self._out.write(json.dumps(event, separators=(",", ":")))
        self._did_event = True
