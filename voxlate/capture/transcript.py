from __future__ import annotations

from typing import Iterable, Optional

from voxlate.contracts import CaptureEnded, CaptureEvent, FinalResult, PartialResult


class TranscriptAccumulator:
    """
    Folds the events of one capture run into a finalized transcript.

    Partial hypotheses only replace `partial` (user feedback); final fragments
    are committed in arrival order, never reordered or deduplicated.
    """

    def __init__(self) -> None:
        self.partial = ""
        self._fragments: list[str] = []
        self._finished = False

    @property
    def committed(self) -> str:
        return "".join(self._fragments)

    def feed(self, event: CaptureEvent) -> Optional[str]:
        """Consume one event; returns the transcript once the run has ended."""
        if self._finished:
            return None
        if isinstance(event, PartialResult):
            self.partial = event.text
        elif isinstance(event, FinalResult):
            self._fragments.append(event.text)
            self.partial = ""
        elif isinstance(event, CaptureEnded):
            return self.finish()
        return None

    def finish(self) -> str:
        self._finished = True
        self.partial = ""
        return self.committed


def accumulate(events: Iterable[CaptureEvent]) -> str:
    acc = TranscriptAccumulator()
    for event in events:
        done = acc.feed(event)
        if done is not None:
            return done
    return acc.finish()
