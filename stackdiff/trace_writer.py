import stackdiff.emit_dto as dto


class TraceWriter:
    """Base for the writers turning slice events into an interval trace.

    Timestamps given to the writers are in sample units; `freq` is the
    sampling frequency in Hz used to convert them into real time.
    """

    def __init__(self, out, freq=1000):
        self._out = out
        self.us_per_sample = 1_000_000 / freq  # (µs/s) / (samples/s) = µs/sample

    def microseconds(self, timestamp):
        """Converts a timestamp in sample units into microseconds."""
        return round(timestamp * self.us_per_sample)

    def add(self, item):
        """Add an emit dto object to the trace."""
        if isinstance(item, dto.SliceBegin):
            self.begin(item.name, item.key, item.timestamp)
        elif isinstance(item, dto.SliceEnd):
            self.end(item.key, item.timestamp)
        else:
            raise ValueError(f"Unknown object {item}")

    def header(self):
        pass

    def begin(self, name, key, timestamp):
        raise NotImplementedError()

    def end(self, key, timestamp):
        raise NotImplementedError()

    def footer(self):
        pass
