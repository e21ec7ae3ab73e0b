from perfetto.protos.perfetto.trace import perfetto_trace_pb2 as pb2

from stackdiff.trace_writer import TraceWriter

_SEQUENCE_ID = 1
_PACKETS_PER_CHUNK = 4096


class PerfettoWriter(TraceWriter):
    """Knows how to write a perfetto trace file.

    Packets are written in chunks as they come; the concatenated chunks form a
    single `Trace` message.
    """

    def __init__(self, out, freq=1000):
        super().__init__(out, freq)
        self._trace = pb2.Trace()
        self._track_uuid_gen = _track_id_gen()
        self._process_tracks = {}  # pid -> track_uuid
        self._thread_tracks = {}  # ThreadKey -> track_uuid
        self._event_names = {}  # name -> iid
        self._incremental_state_cleared = False

    def header(self):
        self._event_names.clear()
        self._incremental_state_cleared = False

    def begin(self, name, key, timestamp):
        """Adds a slice begin event to the trace."""
        track_uuid = self._thread_track(key)
        packet = self._new_sequence_packet(timestamp)
        packet.track_event.type = pb2.TrackEvent.Type.TYPE_SLICE_BEGIN
        packet.track_event.track_uuid = track_uuid
        packet.track_event.name_iid = self._intern_name(packet, name)
        self._maybe_write()

    def end(self, key, timestamp):
        """Adds a slice end event to the trace."""
        track_uuid = self._thread_track(key)
        packet = self._new_sequence_packet(timestamp)
        packet.track_event.type = pb2.TrackEvent.Type.TYPE_SLICE_END
        packet.track_event.track_uuid = track_uuid
        self._maybe_write()

    def footer(self):
        self.write()

    def write(self):
        """Writes the pending packets to the output."""
        if self._trace.packet:
            self._out.write(self._trace.SerializeToString())
            self._trace.Clear()

    def nanoseconds(self, timestamp):
        return round(timestamp * self.us_per_sample * 1000)

    def _maybe_write(self):
        if len(self._trace.packet) >= _PACKETS_PER_CHUNK:
            self.write()

    def _new_sequence_packet(self, timestamp):
        packet = self._trace.packet.add()
        packet.timestamp = self.nanoseconds(timestamp)
        packet.trusted_packet_sequence_id = _SEQUENCE_ID
        if not self._incremental_state_cleared:
            packet.sequence_flags = (
                pb2.TracePacket.SequenceFlags.SEQ_INCREMENTAL_STATE_CLEARED
            )
            self._incremental_state_cleared = True
        else:
            packet.sequence_flags = (
                pb2.TracePacket.SequenceFlags.SEQ_NEEDS_INCREMENTAL_STATE
            )
        return packet

    def _intern_name(self, packet, name):
        iid = self._event_names.get(name)
        if iid is None:
            iid = self._event_names[name] = len(self._event_names) + 1
            event_name = packet.interned_data.event_names.add()
            event_name.iid = iid
            event_name.name = name
        return iid

    def _process_track(self, pid):
        """Adds a process track to the trace, the first time `pid` is seen."""
        uuid = self._process_tracks.get(pid)
        if uuid is None:
            uuid = self._process_tracks[pid] = next(self._track_uuid_gen)
            packet = self._trace.packet.add()
            packet.track_descriptor.uuid = uuid
            packet.track_descriptor.name = f"Process {pid}"
            packet.track_descriptor.process.pid = pid & 0x7FFFFFFF
        return uuid

    def _thread_track(self, key):
        """Adds a thread track to the trace, the first time `key` is seen."""
        uuid = self._thread_tracks.get(key)
        if uuid is None:
            self._process_track(key.pid)
            uuid = self._thread_tracks[key] = next(self._track_uuid_gen)
            packet = self._trace.packet.add()
            packet.track_descriptor.uuid = uuid
            packet.track_descriptor.thread.pid = key.pid & 0x7FFFFFFF
            packet.track_descriptor.thread.tid = key.tid & 0x7FFFFFFF
            packet.track_descriptor.thread.thread_name = f"Thread {key.tid}"
        return uuid


def _track_id_gen():
    """Generates unique track ids."""
    track_uuid = 1
    while True:
        yield track_uuid
        track_uuid += 1
