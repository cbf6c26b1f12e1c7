# pyoz Error Types
# Contract violations raised by the store, the environment and the machine

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pyoz.types import Value, Variable, Identifier, atom_val, int_val, record_val


#==============================================================================
# Error Codes
#==============================================================================

class ErrorCodes(str, Enum):
    """Error code constants for pyoz errors"""

    # Store errors
    DOUBLE_ALLOCATION = "DoubleAllocation"
    UNALLOCATED_WRITE = "UnallocatedWrite"
    UNALLOCATED_READ = "UnallocatedRead"
    DOUBLE_BIND = "DoubleBind"
    INVALID_BIND = "InvalidBind"

    # Lookup errors
    UNRESOLVED_IDENTIFIER = "UnresolvedIdentifier"

    # Type errors
    TYPE_MISMATCH = "TypeMismatch"
    ARITY_MISMATCH = "ArityMismatch"
    INTEGER_OVERFLOW = "IntegerOverflow"

    # Liveness errors
    NON_TERMINATION = "NonTermination"
    DEADLOCK = "Deadlock"


#==============================================================================
# pyoz Error Class
#==============================================================================

class OzError(Exception):
    """Base exception class for all pyoz errors"""

    def __init__(self, code: ErrorCodes, message: str, meta: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.meta = meta

    def __str__(self) -> str:
        return self.message

    def to_value(self) -> Value:
        """Convert to an error(code: ...) record"""
        fields: Dict[str, Value] = {"code": atom_val(self.code.value)}
        if self.meta is not None and "thread" in self.meta:
            fields["thread"] = int_val(self.meta["thread"])
        return record_val(fields, label="error")

    #---------------------------------------------------------------------------
    # Static factory methods for common errors
    #---------------------------------------------------------------------------

    @staticmethod
    def double_allocation(variable: Variable) -> "OzError":
        return OzError(
            ErrorCodes.DOUBLE_ALLOCATION,
            f"Attempted to allocate already allocated variable {variable}",
            {"variable": variable},
        )

    @staticmethod
    def unallocated_write(variable: Variable) -> "OzError":
        return OzError(
            ErrorCodes.UNALLOCATED_WRITE,
            f"Attempted to write to unallocated variable {variable}",
            {"variable": variable},
        )

    @staticmethod
    def unallocated_read(variable: Variable) -> "OzError":
        return OzError(
            ErrorCodes.UNALLOCATED_READ,
            f"Attempted to read unallocated variable {variable}",
            {"variable": variable},
        )

    @staticmethod
    def double_bind(variable: Variable, existing: Value) -> "OzError":
        return OzError(
            ErrorCodes.DOUBLE_BIND,
            f"Attempted to write to bound variable {variable} (holds {format_kind(existing)})",
            {"variable": variable, "existing": existing},
        )

    @staticmethod
    def invalid_bind(variable: Variable) -> "OzError":
        return OzError(
            ErrorCodes.INVALID_BIND,
            f"Attempted to bind variable {variable} to the unbound marker",
            {"variable": variable},
        )

    @staticmethod
    def unresolved_identifier(identifier: Identifier) -> "OzError":
        return OzError(
            ErrorCodes.UNRESOLVED_IDENTIFIER,
            f"Unresolved identifier: {identifier}",
            {"identifier": identifier},
        )

    @staticmethod
    def type_mismatch(expected: str, got: Value, context: str | None = None) -> "OzError":
        ctx = f" ({context})" if context else ""
        return OzError(
            ErrorCodes.TYPE_MISMATCH,
            f"Type error{ctx}: expected {expected}, got {format_kind(got)}",
        )

    @staticmethod
    def arity_mismatch(expected: int, got: int, name: str) -> "OzError":
        return OzError(
            ErrorCodes.ARITY_MISMATCH,
            f"Arity error: {name} expects {expected} arguments, got {got}",
        )

    @staticmethod
    def integer_overflow(lhs: int, rhs: int, bits: int) -> "OzError":
        return OzError(
            ErrorCodes.INTEGER_OVERFLOW,
            f"Integer overflow: {lhs} + {rhs} does not fit in {bits} bits",
        )

    @staticmethod
    def non_termination(max_steps: int) -> "OzError":
        return OzError(
            ErrorCodes.NON_TERMINATION,
            f"Program did not terminate within {max_steps} steps",
        )

    @staticmethod
    def deadlock(thread_ids: List[int], description: str) -> "OzError":
        return OzError(
            ErrorCodes.DEADLOCK,
            description,
            {"threads": thread_ids},
        )


#==============================================================================
# Value Formatting (for error messages)
#==============================================================================

def format_kind(v: Value) -> str:
    """Name the kind of a Value for error messages"""
    kind = v.kind

    if kind == "unbound":
        return "unbound"
    elif kind == "int":
        return "int"
    elif kind == "atom":
        return "atom"
    elif kind == "record":
        return f"record({v.label})" if v.label else "record"
    elif kind == "proc":
        return f"proc/{len(v.params)}"
    else:
        return "unknown"


#==============================================================================
# Exhaustiveness Checking
#==============================================================================

def exhaustive(value: Any) -> None:
    """
    Asserts that a value is unreachable, ensuring exhaustive handling.
    Use in dispatch fall-throughs to ensure all variants are handled.

    Raises:
        AssertionError: If called (indicating unhandled case)
    """
    raise AssertionError(f"Unexpected value: {value!r}")
