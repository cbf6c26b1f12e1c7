"""
pyoz Thread Scheduler
Cooperative, priority-ordered scheduling of logical threads

This module provides the thread representation and the thread pool the
machine draws from. Threads are not OS threads: each one is a reified
continuation that the machine advances one reduction step at a time.

Ready threads sit in a priority queue keyed by (priority, arrival order),
so a lower priority value runs first and equal priorities run FIFO.
Blocked threads are parked on a wake list keyed by the variables they are
waiting for and return to the ready queue when one of them is bound.
"""

from __future__ import annotations
import heapq
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pyoz.types import Variable
from pyoz.semantics import SemanticStack


#==============================================================================
# Thread State and Thread Representation
#==============================================================================

class ThreadState(str, Enum):
    """Thread run state"""
    READY = "ready"
    BLOCKED = "blocked"


@dataclass
class Thread:
    """Schedulable unit: identity, priority, run state and continuation"""
    id: int
    priority: int  # Lower runs first
    stack: SemanticStack
    state: ThreadState = ThreadState.READY
    waiting_on: Tuple[Variable, ...] = ()

    def __repr__(self) -> str:
        return (
            f"Thread(id={self.id}, priority={self.priority}, "
            f"state={self.state.value}, frames={len(self.stack)})"
        )


#==============================================================================
# Thread Pool
#==============================================================================

@dataclass(order=True)
class _QueuedThread:
    """Entry in the ready queue"""
    priority: int
    seq: int
    thread: Thread = field(compare=False)


class ThreadPool:
    """
    All live threads of a machine.

    A thread is either queued (Ready) or parked (Blocked). Parked threads
    stay members of the pool, so the pool is empty only when every thread
    has finished.
    """

    def __init__(self) -> None:
        self._queue: List[_QueuedThread] = []
        self._seq = 0
        self._parked: Dict[int, Thread] = {}
        self._waiters: Dict[Variable, List[int]] = {}

    @property
    def ready_count(self) -> int:
        return len(self._queue)

    @property
    def parked_count(self) -> int:
        return len(self._parked)

    def push(self, thread: Thread) -> None:
        """
        Queue a ready thread.

        :param thread: Thread to queue; its state is set to READY
        """
        thread.state = ThreadState.READY
        thread.waiting_on = ()
        self._seq += 1
        heapq.heappush(self._queue, _QueuedThread(thread.priority, self._seq, thread))

    def pop(self) -> Optional[Thread]:
        """
        Remove the best ready thread.

        :returns: Lowest (priority, arrival) thread, or None if none is ready
        """
        if not self._queue:
            return None
        return heapq.heappop(self._queue).thread

    def park(self, thread: Thread, variables: Tuple[Variable, ...]) -> None:
        """
        Park a blocked thread until one of the variables is bound.

        :param thread: Thread that could not proceed
        :param variables: Variables it needs
        """
        thread.state = ThreadState.BLOCKED
        thread.waiting_on = tuple(variables)
        self._parked[thread.id] = thread
        for variable in thread.waiting_on:
            self._waiters.setdefault(variable, []).append(thread.id)

    def wake(self, variable: Variable) -> List[Thread]:
        """
        Requeue every thread parked on a variable that has just been bound.

        :param variable: The newly bound variable
        :returns: Threads moved back to the ready queue, in parking order
        """
        woken: List[Thread] = []
        for thread_id in self._waiters.pop(variable, []):
            thread = self._parked.pop(thread_id, None)
            if thread is None:
                continue
            for other in thread.waiting_on:
                if other != variable and other in self._waiters:
                    self._waiters[other] = [t for t in self._waiters[other] if t != thread_id]
                    if not self._waiters[other]:
                        del self._waiters[other]
            self.push(thread)
            woken.append(thread)
        return woken

    def parked_threads(self) -> List[Thread]:
        """Return parked threads ordered by id"""
        return sorted(self._parked.values(), key=lambda t: t.id)

    def ready_threads(self) -> List[Thread]:
        """Return queued threads in the order they would run"""
        return [entry.thread for entry in sorted(self._queue)]

    def is_empty(self) -> bool:
        return not self._queue and not self._parked

    def __len__(self) -> int:
        return len(self._queue) + len(self._parked)

    def __repr__(self) -> str:
        return f"ThreadPool(ready={len(self._queue)}, parked={len(self._parked)})"
