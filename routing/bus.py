import logging
import queue
from typing import Dict, List, Tuple, Union
from routing.commands import SetParam, StartSource, StopSource

Command = Union[SetParam, StartSource, StopSource]

logger = logging.getLogger(__name__)


def coalesce(commands: List[Command]) -> List[Command]:
    """
    Squash a backlog without changing what the audio thread ends up with.
    Only the last SetParam per (target, name) survives, at its own position.
    A source that is both started and stopped in the backlog never sounds,
    so both commands go.
    """
    last: Dict[Tuple[int, str], int] = {}
    started, stopped = set(), set()
    for i, c in enumerate(commands):
        if isinstance(c, SetParam):
            last[(id(c.target), c.name)] = i
        elif isinstance(c, StartSource):
            started.add(id(c.source))
        elif isinstance(c, StopSource):
            stopped.add(id(c.source))
    silent = started & stopped

    out = []
    for i, c in enumerate(commands):
        if isinstance(c, SetParam):
            if last[(id(c.target), c.name)] != i:
                continue
        elif id(c.source) in silent:
            continue
        out.append(c)
    return out


class EventBus:
    def __init__(self, maxsize=4096) -> None:
        self.q = queue.Queue(maxsize=maxsize)

    def post(self, e: Command) -> None:
        """Never blocks and never raises; a full queue is compacted first."""
        try:
            self.q.put_nowait(e)
            return
        except queue.Full:
            pass

        backlog = self.drain(max_events=self.q.maxsize) + [e]
        kept = coalesce(backlog)
        logger.debug("[Bus] compacted %d pending commands to %d", len(backlog), len(kept))
        for i, c in enumerate(kept):
            try:
                self.q.put_nowait(c)
            except queue.Full:
                logger.warning("[Bus] queue full, dropping %d commands", len(kept) - i)
                break

    def drain(self, max_events=512) -> List[Command]:
        evs = []
        try:
            while len(evs) < max_events:
                evs.append(self.q.get_nowait())
        except queue.Empty:
            pass
        return evs

    def pending(self) -> int:
        return self.q.qsize()
