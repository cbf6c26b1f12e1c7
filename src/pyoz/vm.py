"""
pyoz Virtual Machine
Small-step reduction of instruction trees over a single-assignment store

The machine owns the store and a pool of logical threads. Each scheduling
turn takes the best ready thread, ages its priority by one, reduces exactly
one instruction of its continuation and puts it back:

- Sequence: a frame with several instructions is split into head and tail
- Local: fresh variables are allocated and the body runs in the new scope
- Thread: a new thread runs the body under the current environment
- Assign / AssignAdd: bind a variable; AssignAdd waits for its operands
- Print: report a variable on the output channel
- ProcDef / ProcCall: build and invoke closures

A thread that needs an unbound variable is parked until the variable is
bound. Blocking is ordinary control flow, never an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from pyoz.types import (
    Identifier,
    IdGenerator,
    Instruction,
    Value,
    Variable,
    InsAssign,
    InsAssignAdd,
    InsLocal,
    InsPrint,
    InsProcCall,
    InsProcDef,
    InsThread,
    free_identifiers,
    int_val,
    is_bound,
    proc_val,
)
from pyoz.errors import OzError, exhaustive
from pyoz.env import Environment
from pyoz.store import SingleAssignmentStore
from pyoz.semantics import SemanticInstruction, SemanticStack, semantic_stack
from pyoz.scheduler import Thread, ThreadPool, ThreadState
from pyoz.detectors import DeadlockDetector, DeadlockReport, DetectionOptions
from pyoz.display import format_store, format_value

logger = logging.getLogger(__name__)


#==============================================================================
# Machine Options
#==============================================================================

class OverflowPolicy(str, Enum):
    """What AssignAdd does when a sum leaves the integer range"""
    ERROR = "error"
    WRAP = "wrap"
    SATURATE = "saturate"


class ErrorPolicy(str, Enum):
    """What the run loop does when a step raises OzError"""
    ABORT = "abort"
    KILL_THREAD = "kill_thread"


@dataclass
class VmOptions:
    """Options for program execution"""
    max_steps: Optional[int] = 1_000_000
    trace: bool = False
    spawn_priority: int = 0
    overflow: OverflowPolicy = OverflowPolicy.ERROR
    int_bits: Optional[int] = 32  # None for unbounded integers
    on_error: ErrorPolicy = ErrorPolicy.ABORT
    detect_deadlock: bool = True
    detection: DetectionOptions = field(default_factory=DetectionOptions)


#==============================================================================
# Step and Run Results
#==============================================================================

@dataclass
class ExecutionResult:
    """Outcome of one reduction step"""
    state: ThreadState
    waiting_on: Tuple[Variable, ...] = ()


@dataclass(frozen=True)
class PrintEffect:
    """One Print observation"""
    thread_id: int
    identifier: Identifier
    value: Value
    line: str


@dataclass
class ThreadFailure:
    """A thread dropped under ErrorPolicy.KILL_THREAD"""
    thread_id: int
    error: OzError


@dataclass
class RunResult:
    """Summary of a completed run"""
    steps: int
    failures: List[ThreadFailure] = field(default_factory=list)
    deadlocked: List[Thread] = field(default_factory=list)
    deadlock: Optional[DeadlockReport] = None

    @property
    def ok(self) -> bool:
        return not self.failures and not self.deadlocked


#==============================================================================
# Virtual Machine
#==============================================================================

class Vm:
    """
    Cooperative dataflow machine.

    All store mutation happens inside step(), one instruction per
    scheduling turn, so threads never need locks.
    """

    def __init__(
        self,
        options: Optional[VmOptions] = None,
        output: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the machine.

        Args:
            options: Execution options (optional)
            output: Sink for Print lines (defaults to print)
        """
        self.options = options or VmOptions()
        self.output = output or print
        self.store = SingleAssignmentStore()
        self.pool = ThreadPool()
        self.effects: List[PrintEffect] = []
        self.detector = DeadlockDetector(self.options.detection)
        self.steps = 0
        self._variable_ids = IdGenerator()
        self._thread_ids = IdGenerator()

    #---------------------------------------------------------------------------
    # Construction API
    #---------------------------------------------------------------------------

    def new_variable(self) -> Variable:
        """Allocate a fresh variable in the store"""
        variable = Variable(self._variable_ids.next_id())
        self.store.allocate(variable)
        return variable

    def create_thread(self, stack: SemanticStack, priority: int = 0) -> Thread:
        """
        Add a thread to the pool.

        Args:
            stack: The thread's continuation
            priority: Scheduling priority (lower runs first)

        Returns:
            The queued Thread
        """
        thread = Thread(id=self._thread_ids.next_id(), priority=priority, stack=stack)
        self.pool.push(thread)
        logger.info(f"[Vm] Created thread {thread.id} at priority {priority}")
        return thread

    def spawn_program(
        self,
        instructions: Iterable[Instruction],
        env: Optional[Environment] = None,
        priority: int = 0,
    ) -> Thread:
        """Wrap an instruction sequence as a thread and queue it"""
        return self.create_thread(semantic_stack(instructions, env), priority)

    #---------------------------------------------------------------------------
    # Run Loop
    #---------------------------------------------------------------------------

    def run(self) -> RunResult:
        """
        Run until every thread has finished.

        Returns:
            RunResult with step count, killed threads and stranded threads

        Raises:
            OzError: On a contract violation under ErrorPolicy.ABORT,
                NonTermination past max_steps, or Deadlock when
                detect_deadlock is set
        """
        result = RunResult(steps=0)
        start = self.steps

        while not self.pool.is_empty():
            thread = self.pool.pop()
            if thread is None:
                report = self.detector.detect_deadlock(self.pool)
                if report is None:
                    report = self.detector.build_report(self.pool)
                if self.options.detect_deadlock:
                    raise OzError.deadlock(report.thread_ids, report.description)
                result.deadlocked = self.pool.parked_threads()
                result.deadlock = report
                break

            thread.priority += 1
            if thread.stack.is_empty():
                continue

            self._check_steps()
            try:
                outcome = self.step(thread)
            except OzError as error:
                if self.options.on_error == ErrorPolicy.ABORT:
                    raise
                error.meta = {**(error.meta or {}), "thread": thread.id}
                logger.warning(f"[Vm] Killed thread {thread.id}: {error.code.value}: {error}")
                result.failures.append(ThreadFailure(thread_id=thread.id, error=error))
                continue

            if outcome.state == ThreadState.BLOCKED:
                self.pool.park(thread, outcome.waiting_on)
                self.detector.track_wait(thread.id, outcome.waiting_on, self.steps)
                logger.debug(
                    f"[Vm] Thread {thread.id} blocked on "
                    f"{', '.join(str(v) for v in outcome.waiting_on)}"
                )
            elif thread.stack.is_empty():
                logger.info(f"[Vm] Thread {thread.id} finished")
            else:
                self.pool.push(thread)

        result.steps = self.steps - start
        return result

    def _check_steps(self) -> None:
        self.steps += 1
        max_steps = self.options.max_steps
        if max_steps is not None and self.steps > max_steps:
            raise OzError.non_termination(max_steps)

    #---------------------------------------------------------------------------
    # Reduction (Dispatch)
    #---------------------------------------------------------------------------

    def step(self, thread: Thread) -> ExecutionResult:
        """
        Reduce one instruction of a thread's continuation.

        Args:
            thread: Thread whose top frame is reduced

        Returns:
            ExecutionResult; on BLOCKED the frame is back on the stack untouched
        """
        stack = thread.stack
        frame = stack.pop()
        if frame is None:
            return ExecutionResult(ThreadState.READY)

        instructions = frame.instructions
        if len(instructions) == 0:
            return ExecutionResult(ThreadState.READY)

        if len(instructions) > 1:
            head, tail = frame.split()
            stack.push(tail)
            stack.push(head)
            return ExecutionResult(ThreadState.READY)

        ins = instructions[0]
        if self.options.trace:
            logger.debug(f"[Vm] thread={thread.id} priority={thread.priority} ins={ins.kind}")

        kind = ins.kind
        if kind == "thread":
            return self._execute_thread(ins, frame.env)
        elif kind == "local":
            return self._execute_local(ins, frame.env, stack)
        elif kind == "assign":
            return self._execute_assign(ins, frame.env)
        elif kind == "assignAdd":
            return self._execute_assign_add(ins, frame, stack)
        elif kind == "print":
            return self._execute_print(ins, frame.env, thread)
        elif kind == "procDef":
            return self._execute_proc_def(ins, frame.env)
        elif kind == "procCall":
            return self._execute_proc_call(ins, frame, stack)
        else:
            exhaustive(ins)

    #---------------------------------------------------------------------------
    # Structural Instructions
    #---------------------------------------------------------------------------

    def _execute_thread(self, ins: InsThread, env: Environment) -> ExecutionResult:
        """Spawn body as a new thread sharing the current environment"""
        self.spawn_program(ins.body, env, self.options.spawn_priority)
        return ExecutionResult(ThreadState.READY)

    def _execute_local(self, ins: InsLocal, env: Environment, stack: SemanticStack) -> ExecutionResult:
        """Open a scope with one fresh variable per identifier"""
        new_env = env.adjoin_many((identifier, self.new_variable()) for identifier in ins.ids)
        stack.push(SemanticInstruction(ins.body, new_env))
        return ExecutionResult(ThreadState.READY)

    #---------------------------------------------------------------------------
    # Primitive Instructions
    #---------------------------------------------------------------------------

    def _execute_assign(self, ins: InsAssign, env: Environment) -> ExecutionResult:
        """Bind target to a literal value"""
        self._bind(self._resolve(env, ins.target), ins.value)
        return ExecutionResult(ThreadState.READY)

    def _execute_assign_add(
        self,
        ins: InsAssignAdd,
        frame: SemanticInstruction,
        stack: SemanticStack,
    ) -> ExecutionResult:
        """Bind target to lhs + rhs once both operands are bound"""
        env = frame.env
        lhs_var = self._resolve(env, ins.lhs)
        rhs_var = self._resolve(env, ins.rhs)
        variable = self._resolve(env, ins.target)

        lhs = self._read(lhs_var)
        rhs = self._read(rhs_var)
        waiting = tuple(dict.fromkeys(
            v for v, value in ((lhs_var, lhs), (rhs_var, rhs)) if not is_bound(value)
        ))
        if waiting:
            stack.push(frame)
            return ExecutionResult(ThreadState.BLOCKED, waiting)

        if lhs.kind != "int":
            raise OzError.type_mismatch("int", lhs, f"left operand {ins.lhs}")
        if rhs.kind != "int":
            raise OzError.type_mismatch("int", rhs, f"right operand {ins.rhs}")

        self._bind(variable, int_val(self._add(lhs.value, rhs.value)))
        return ExecutionResult(ThreadState.READY)

    def _execute_print(self, ins: InsPrint, env: Environment, thread: Thread) -> ExecutionResult:
        """Report a variable without waiting for it"""
        value = self._read(self._resolve(env, ins.target))
        line = f"{ins.target} <- {format_value(value)}"
        self.effects.append(PrintEffect(thread.id, ins.target, value, line))
        self.output(line)
        return ExecutionResult(ThreadState.READY)

    def _execute_proc_def(self, ins: InsProcDef, env: Environment) -> ExecutionResult:
        """Bind target to a closure over the free identifiers of the body"""
        params = set(ins.params)
        free = [i for i in free_identifiers(ins.body) if i not in params]
        closure = proc_val(ins.params, ins.body, env.restrict(free))
        self._bind(self._resolve(env, ins.target), closure)
        return ExecutionResult(ThreadState.READY)

    def _execute_proc_call(
        self,
        ins: InsProcCall,
        frame: SemanticInstruction,
        stack: SemanticStack,
    ) -> ExecutionResult:
        """
        Call a procedure.

        Waits until the procedure and every argument are bound, then binds
        a fresh variable per parameter to the argument's value and runs the
        body under the closure environment.
        """
        env = frame.env
        proc_var = self._resolve(env, ins.target)
        arg_vars = [self._resolve(env, a) for a in ins.args]

        proc = self._read(proc_var)
        arg_values = [self._read(v) for v in arg_vars]
        waiting = tuple(
            v for v, value in zip([proc_var, *arg_vars], [proc, *arg_values])
            if not is_bound(value)
        )
        if waiting:
            stack.push(frame)
            return ExecutionResult(ThreadState.BLOCKED, tuple(dict.fromkeys(waiting)))

        if proc.kind != "proc":
            raise OzError.type_mismatch("proc", proc, f"call of {ins.target}")
        if len(proc.params) != len(arg_values):
            raise OzError.arity_mismatch(len(proc.params), len(arg_values), str(ins.target))

        bindings = []
        for param, value in zip(proc.params, arg_values):
            variable = self.new_variable()
            self._bind(variable, value)
            bindings.append((param, variable))

        stack.push(SemanticInstruction(proc.body, proc.env.adjoin_many(bindings)))
        return ExecutionResult(ThreadState.READY)

    #---------------------------------------------------------------------------
    # Helpers
    #---------------------------------------------------------------------------

    def _resolve(self, env: Environment, identifier: Identifier) -> Variable:
        variable = env.lookup(identifier)
        if variable is None:
            raise OzError.unresolved_identifier(identifier)
        return variable

    def _read(self, variable: Variable) -> Value:
        value = self.store.read(variable)
        if value is None:
            raise OzError.unallocated_read(variable)
        return value

    def _bind(self, variable: Variable, value: Value) -> None:
        """Bind a variable and requeue threads waiting on it"""
        self.store.bind(variable, value)
        for woken in self.pool.wake(variable):
            self.detector.track_wake(woken.id)
            logger.debug(f"[Vm] Thread {woken.id} woken by {variable}")

    def _add(self, lhs: int, rhs: int) -> int:
        """Add under the configured integer width and overflow policy"""
        result = lhs + rhs
        bits = self.options.int_bits
        if bits is None:
            return result

        low = -(1 << (bits - 1))
        high = (1 << (bits - 1)) - 1
        if low <= result <= high:
            return result

        policy = self.options.overflow
        if policy == OverflowPolicy.ERROR:
            raise OzError.integer_overflow(lhs, rhs, bits)
        elif policy == OverflowPolicy.WRAP:
            return (result - low) % (1 << bits) + low
        elif policy == OverflowPolicy.SATURATE:
            return high if result > high else low
        else:
            exhaustive(policy)

    #---------------------------------------------------------------------------
    # Observation API
    #---------------------------------------------------------------------------

    def lookup_value(self, env: Environment, identifier: Identifier) -> Optional[Value]:
        """Read the value an identifier denotes in env, or None if unresolved"""
        variable = env.lookup(identifier)
        if variable is None:
            return None
        return self.store.read(variable)

    def show_memory(self) -> str:
        """Send the store table to the output sink and return it"""
        table = format_store(self.store)
        self.output(table)
        return table


#==============================================================================
# Convenience Functions
#==============================================================================

def create_vm(
    options: Optional[VmOptions] = None,
    output: Optional[Callable[[str], None]] = None,
) -> Vm:
    """Create a machine with an empty store and pool"""
    return Vm(options, output)


def run_program(
    instructions: Iterable[Instruction],
    options: Optional[VmOptions] = None,
    output: Optional[Callable[[str], None]] = None,
    priority: int = 0,
) -> Tuple[Vm, RunResult]:
    """
    Run a program from an empty environment.

    Args:
        instructions: Program body
        options: Execution options (optional)
        output: Sink for Print lines (optional)
        priority: Priority of the initial thread

    Returns:
        The finished machine and its RunResult
    """
    vm = Vm(options, output)
    vm.spawn_program(instructions, priority=priority)
    result = vm.run()
    return vm, result
