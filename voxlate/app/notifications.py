from __future__ import annotations

import queue
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Notification:
    level: str  # "info" | "warning" | "error"
    title: str
    description: str


class NotificationBus:
    """
    Bounded handoff from the session to the presentation layer.
    Session pushes, UI polls (non-blocking).
    """
    def __init__(self, maxsize: int = 16):
        self.q: "queue.Queue[Notification]" = queue.Queue(maxsize=maxsize)

    def push(self, note: Notification) -> None:
        try:
            self.q.put_nowait(note)
        except queue.Full:
            # drop oldest; the newest message describes the current state
            try:
                _ = self.q.get_nowait()
            except queue.Empty:
                return
            try:
                self.q.put_nowait(note)
            except queue.Full:
                return

    def pop(self) -> Optional[Notification]:
        try:
            return self.q.get_nowait()
        except queue.Empty:
            return None


def drain_notifications(bus: NotificationBus, sink: Any, max_items: int) -> int:
    drained = 0
    while drained < max_items:
        note = bus.pop()
        if note is None:
            break
        sink.show(note)
        drained += 1
    return drained
