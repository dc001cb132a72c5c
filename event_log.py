# event_log.py
"""
Records generation events and persists them for deterministic replay.

File layout (little-endian, no version field):
    int32   count
    count * (float32 time, float32 x, float32 y)

A file is always written in full and read in full. Loading a file with any
other layout is not detected beyond a size check.
"""
import logging
import os
import numpy as np
from collections import deque
from typing import Deque, Iterable, List, NamedTuple, Tuple

# --- Data Contracts ---
#
# class EventLog:
#   - record(time, position) -> None: appends one event. Values are rounded
#     to float32 on entry so a save/load round trip is exact.
#   - save(path) -> int: overwrites `path`, returns the number of events.
#   - load(path) -> int: replaces the in-memory log, returns its length.
#     - Raises: EventLogError if the file is missing, truncated or of the
#       wrong size. The in-memory log is left untouched on failure.
#   - replay_queue() -> Deque[GenerationEvent]: a copy of the events in
#     stored order; consuming it never alters the log.

HEADER_DTYPE = np.dtype('<i4')
EVENT_DTYPE = np.dtype([('time', '<f4'), ('x', '<f4'), ('y', '<f4')])


class EventLogError(Exception):
    """Raised when an event file cannot be read or written."""


class GenerationEvent(NamedTuple):
    time: float
    position: Tuple[float, float]


def _f32(value: float) -> float:
    return float(np.float32(value))


class EventLog:
    """
    An ordered list of generation events.
    """
    def __init__(self, events: Iterable[GenerationEvent] = ()):
        self.events: List[GenerationEvent] = []
        for event in events:
            self.record(event.time, event.position)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    def __bool__(self) -> bool:
        return bool(self.events)

    def record(self, time: float, position) -> None:
        event = GenerationEvent(_f32(time), (_f32(position[0]), _f32(position[1])))
        self.events.append(event)
        logging.debug(f"Recorded generation event #{len(self.events)}: {event}")

    def clear(self) -> None:
        self.events.clear()
        logging.info("Event log cleared.")

    def first_time(self) -> float:
        return self.events[0].time

    def replay_queue(self) -> Deque[GenerationEvent]:
        return deque(self.events)

    def to_bytes(self) -> bytes:
        records = np.empty(len(self.events), dtype=EVENT_DTYPE)
        for i, event in enumerate(self.events):
            records[i] = (event.time, event.position[0], event.position[1])
        header = np.array([len(self.events)], dtype=HEADER_DTYPE)
        return header.tobytes() + records.tobytes()

    @staticmethod
    def parse(data: bytes) -> List[GenerationEvent]:
        if len(data) < HEADER_DTYPE.itemsize:
            raise EventLogError(f"Event file too short for a header ({len(data)} bytes).")
        count = int(np.frombuffer(data, dtype=HEADER_DTYPE, count=1)[0])
        expected = HEADER_DTYPE.itemsize + count * EVENT_DTYPE.itemsize
        if count < 0 or len(data) != expected:
            raise EventLogError(
                f"Event file size mismatch: header announces {count} events "
                f"({expected} bytes), file has {len(data)} bytes."
            )
        if count == 0:
            return []
        records = np.frombuffer(data, dtype=EVENT_DTYPE, count=count,
                                offset=HEADER_DTYPE.itemsize)
        return [
            GenerationEvent(float(r['time']), (float(r['x']), float(r['y'])))
            for r in records
        ]

    def save(self, path: str) -> int:
        try:
            with open(path, 'wb') as f:
                f.write(self.to_bytes())
        except OSError as e:
            logging.error(f"Could not save events to {path}: {e}")
            raise EventLogError(f"Could not save events to {path}: {e}") from e
        logging.info(f"Saved {len(self.events)} events to {path}.")
        return len(self.events)

    def load(self, path: str) -> int:
        try:
            with open(path, 'rb') as f:
                data = f.read()
        except OSError as e:
            logging.error(f"Could not read event file {path}: {e}")
            raise EventLogError(f"Could not read event file {path}: {e}") from e

        try:
            events = self.parse(data)
        except EventLogError as e:
            logging.error(f"Corrupt event file {os.path.abspath(path)}: {e}")
            raise

        self.events = events
        logging.info(f"Loaded {len(self.events)} events from {path}.")
        return len(self.events)
