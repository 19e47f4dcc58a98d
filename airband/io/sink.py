import os
import json
import threading
from collections import deque
from typing import List


class JsonlEventSink:
    """Appends one JSON object per NoteEvent."""

    def __init__(self, path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.f = open(path, 'w', encoding='utf-8')
        self._lock = threading.Lock()   # shake repeats publish from their own threads
        self.count = 0

    def publish(self, event):
        with self._lock:
            self.f.write(json.dumps(event.to_dict()) + '\n')
            self.f.flush()
            self.count += 1

    def close(self):
        with self._lock:
            self.f.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class RecentEvents:
    """Bounded in-memory log of the latest NoteEvents (for overlays)."""

    def __init__(self, maxlen: int = 200):
        self._events = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def publish(self, event):
        with self._lock:
            self._events.append(event)

    def recent(self, n: int = 20) -> List:
        """The N most recent events, newest first."""
        with self._lock:
            return list(self._events)[-n:][::-1]

    def __len__(self):
        return len(self._events)
