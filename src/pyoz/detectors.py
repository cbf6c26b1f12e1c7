"""
pyoz Deadlock Detector
Liveness checking for the dataflow scheduler
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Set, Tuple
import logging

from .types import Variable
from .scheduler import ThreadPool

logger = logging.getLogger(__name__)


#==============================================================================
# Detection Options
#==============================================================================

@dataclass
class DetectionOptions:
    """Configuration options for the deadlock detector"""
    enable_deadlock_detection: bool = True
    detailed_reports: bool = True
    max_history: Optional[int] = 1000  # None keeps every wait event


#==============================================================================
# Wait Tracking
#==============================================================================

@dataclass
class WaitEvent:
    """A thread parked on a set of unbound variables"""
    thread_id: int
    variables: Tuple[Variable, ...]
    step: int


@dataclass
class BlockedThread:
    """One stranded thread in a deadlock report"""
    thread_id: int
    priority: int
    waiting_on: Tuple[Variable, ...]


@dataclass
class DeadlockReport:
    """Deadlock report"""
    blocked: List[BlockedThread]
    description: str
    thread_ids: List[int] = field(default_factory=list)


#==============================================================================
# Deadlock Detector
#==============================================================================

class DeadlockDetector:
    """
    DeadlockDetector records which threads wait on which variables

    A deadlock occurs when:
    1. No thread is ready to run
    2. At least one thread is parked on an unbound variable
    3. Only a running thread could bind it, so nothing ever will
    """

    def __init__(self, options: Optional[DetectionOptions] = None) -> None:
        self._options = options or DetectionOptions()
        self.wait_graph: Dict[int, Set[Variable]] = {}  # threadId -> variables waited on
        self.wait_history: Deque[WaitEvent] = deque(maxlen=self._options.max_history)
        self._wait_count = 0
        self._ever_blocked: Set[int] = set()

    def track_wait(self, thread_id: int, variables: Tuple[Variable, ...], step: int) -> None:
        """Track a thread blocking on unbound variables"""
        if not self._options.enable_deadlock_detection:
            return

        self.wait_history.append(WaitEvent(thread_id=thread_id, variables=variables, step=step))
        self._wait_count += 1
        self._ever_blocked.add(thread_id)
        self.wait_graph[thread_id] = set(variables)

    def track_wake(self, thread_id: int) -> None:
        """Track a parked thread returning to the ready queue"""
        self.wait_graph.pop(thread_id, None)

    def was_blocked(self, thread_id: int) -> bool:
        """Check if a thread ever blocked"""
        return thread_id in self._ever_blocked

    def detect_deadlock(self, pool: ThreadPool) -> Optional[DeadlockReport]:
        """Inspect the pool; report if parked threads remain and none is ready"""
        if not self._options.enable_deadlock_detection:
            return None
        if pool.ready_count > 0 or pool.parked_count == 0:
            return None

        report = self.build_report(pool)
        logger.warning(f"[DeadlockDetector] Detected deadlock of {len(report.blocked)} threads")
        return report

    def build_report(self, pool: ThreadPool) -> DeadlockReport:
        """Describe the parked threads of a pool, whatever the detection setting"""
        blocked = [
            BlockedThread(thread_id=t.id, priority=t.priority, waiting_on=t.waiting_on)
            for t in pool.parked_threads()
        ]
        return DeadlockReport(
            blocked=blocked,
            description=self._generate_description(blocked),
            thread_ids=[b.thread_id for b in blocked],
        )

    def _generate_description(self, blocked: List[BlockedThread]) -> str:
        """Generate a human-readable deadlock description"""
        if not self._options.detailed_reports:
            return f"Deadlock: {len(blocked)} threads blocked forever"
        parts = [
            f"thread {b.thread_id} waits on {', '.join(str(v) for v in b.waiting_on)}"
            for b in blocked
        ]
        return "Deadlock: no thread can run; " + "; ".join(parts)

    def clear(self) -> None:
        """Clear all recorded waits"""
        self.wait_graph.clear()
        self.wait_history.clear()
        self._wait_count = 0
        self._ever_blocked.clear()

    def get_stats(self) -> Dict[str, int]:
        """Get statistics about recorded waits"""
        return {
            "waits": self._wait_count,
            "waiting_threads": len(self.wait_graph),
            "threads_ever_blocked": len(self._ever_blocked),
        }
