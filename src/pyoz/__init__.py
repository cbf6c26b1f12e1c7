"""
pyoz

A Python runtime for a dataflow-concurrent language with a
single-assignment store, in the style of Oz. Logical threads share
write-once variables and block implicitly when they read one that has not
been bound yet; a cooperative priority scheduler interleaves them one
reduction step at a time.
"""

from __future__ import annotations

#==============================================================================
# Types
#==============================================================================

from pyoz.types import (
    # Names
    Identifier,
    Variable,
    IdGenerator,
    # Values
    Value,
    UnboundVal,
    IntVal,
    AtomVal,
    RecordVal,
    ProcVal,
    # Instructions
    Instruction,
    InsThread,
    InsLocal,
    InsAssign,
    InsAssignAdd,
    InsPrint,
    InsProcDef,
    InsProcCall,
)

#==============================================================================
# Constructors
#==============================================================================

from pyoz.types import (
    ident,
    # Value constructors
    UNBOUND,
    unbound_val,
    int_val,
    atom_val,
    record_val,
    proc_val,
    # Instruction constructors
    thread_ins,
    local_ins,
    assign_ins,
    assign_add_ins,
    print_ins,
    proc_def_ins,
    proc_call_ins,
)

#==============================================================================
# Type Guards and Utilities
#==============================================================================

from pyoz.types import (
    is_bound,
    is_int,
    is_atom,
    is_record,
    is_proc,
    free_identifiers,
)

#==============================================================================
# Errors
#==============================================================================

from pyoz.errors import (
    ErrorCodes,
    OzError,
)

#==============================================================================
# Environment, Store, Continuations
#==============================================================================

from pyoz.env import (
    Environment,
    empty_env,
)

from pyoz.store import SingleAssignmentStore

from pyoz.semantics import (
    SemanticInstruction,
    SemanticStack,
    semantic_stack,
)

#==============================================================================
# Scheduling
#==============================================================================

from pyoz.scheduler import (
    Thread,
    ThreadState,
    ThreadPool,
)

from pyoz.detectors import (
    DeadlockDetector,
    DeadlockReport,
    DetectionOptions,
)

#==============================================================================
# Machine
#==============================================================================

from pyoz.vm import (
    Vm,
    VmOptions,
    OverflowPolicy,
    ErrorPolicy,
    ExecutionResult,
    PrintEffect,
    RunResult,
    ThreadFailure,
    create_vm,
    run_program,
)

from pyoz.display import (
    format_value,
    format_store,
)

__version__ = "0.1.0"

__all__ = [
    #==========================================================================
    # Types
    #==========================================================================
    "Identifier",
    "Variable",
    "IdGenerator",
    "Value",
    "UnboundVal",
    "IntVal",
    "AtomVal",
    "RecordVal",
    "ProcVal",
    "Instruction",
    "InsThread",
    "InsLocal",
    "InsAssign",
    "InsAssignAdd",
    "InsPrint",
    "InsProcDef",
    "InsProcCall",

    #==========================================================================
    # Constructors
    #==========================================================================
    "ident",
    "UNBOUND",
    "unbound_val",
    "int_val",
    "atom_val",
    "record_val",
    "proc_val",
    "thread_ins",
    "local_ins",
    "assign_ins",
    "assign_add_ins",
    "print_ins",
    "proc_def_ins",
    "proc_call_ins",

    #==========================================================================
    # Type Guards and Utilities
    #==========================================================================
    "is_bound",
    "is_int",
    "is_atom",
    "is_record",
    "is_proc",
    "free_identifiers",

    #==========================================================================
    # Errors
    #==========================================================================
    "ErrorCodes",
    "OzError",

    #==========================================================================
    # Environment, Store, Continuations
    #==========================================================================
    "Environment",
    "empty_env",
    "SingleAssignmentStore",
    "SemanticInstruction",
    "SemanticStack",
    "semantic_stack",

    #==========================================================================
    # Scheduling
    #==========================================================================
    "Thread",
    "ThreadState",
    "ThreadPool",
    "DeadlockDetector",
    "DeadlockReport",
    "DetectionOptions",

    #==========================================================================
    # Machine
    #==========================================================================
    "Vm",
    "VmOptions",
    "OverflowPolicy",
    "ErrorPolicy",
    "ExecutionResult",
    "PrintEffect",
    "RunResult",
    "ThreadFailure",
    "create_vm",
    "run_program",
    "format_value",
    "format_store",
]
