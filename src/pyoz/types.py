"""
pyoz Type Definitions
Identifiers, store variables, values and instructions of the dataflow machine

This module provides frozen dataclasses for immutable representations,
using Literal 'kind' fields for dispatch. Values and instructions are
mutually recursive: a procedure value carries a body of instructions and
the environment it was defined in.
"""

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Dict,
    Iterable,
    List,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeAlias,
    Union,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from pyoz.env import Environment


#==============================================================================
# Names (identifiers and store variables)
#==============================================================================

@dataclass(frozen=True, order=True)
class Identifier:
    """Source-level name referring to a lexical binding"""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, order=True)
class Variable:
    """Store location handle. Only the machine creates these."""
    id: int

    def __str__(self) -> str:
        return f"v{self.id}"


class IdGenerator:
    """
    Monotonic id source.

    Each machine owns its own generators, so ids are unique per machine
    without any process-wide counter.
    """

    def __init__(self, start: int = 1):
        self._next = start

    def next_id(self) -> int:
        value = self._next
        self._next += 1
        return value

    @property
    def issued(self) -> int:
        """Number of ids handed out so far"""
        return self._next - 1


def ident(name: Union[str, Identifier]) -> Identifier:
    """Coerce a plain string to an Identifier"""
    if isinstance(name, Identifier):
        return name
    return Identifier(name)


#==============================================================================
# Value Domain
#==============================================================================

@dataclass(frozen=True)
class UnboundVal:
    """Marker held by an allocated variable that has not been bound"""
    kind: Literal["unbound"]


@dataclass(frozen=True)
class IntVal:
    """Integer value"""
    kind: Literal["int"]
    value: int


@dataclass(frozen=True)
class AtomVal:
    """Atom (symbolic constant)"""
    kind: Literal["atom"]
    value: str


@dataclass(frozen=True)
class RecordVal:
    """Record: features (atom names) mapped to values, with an optional label"""
    kind: Literal["record"]
    fields: Mapping[str, Value]
    label: Optional[str] = None

    def __post_init__(self) -> None:
        # Read-only view over a private copy
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def arity(self) -> List[str]:
        """Feature names in sorted order"""
        return sorted(self.fields)


@dataclass(frozen=True)
class ProcVal:
    """Procedure closure: formal parameters, body, defining environment"""
    kind: Literal["proc"]
    params: Tuple[Identifier, ...]
    body: Tuple[Instruction, ...]
    env: Environment


Value: TypeAlias = Union[
    UnboundVal,
    IntVal,
    AtomVal,
    RecordVal,
    ProcVal,
]


#==============================================================================
# Instructions
#==============================================================================

@dataclass(frozen=True)
class InsThread:
    """Spawn a thread running body under the current environment"""
    kind: Literal["thread"]
    body: Tuple[Instruction, ...]


@dataclass(frozen=True)
class InsLocal:
    """Introduce fresh variables for ids, visible only to body"""
    kind: Literal["local"]
    ids: Tuple[Identifier, ...]
    body: Tuple[Instruction, ...]


@dataclass(frozen=True)
class InsAssign:
    """Bind target to a literal value"""
    kind: Literal["assign"]
    target: Identifier
    value: Value


@dataclass(frozen=True)
class InsAssignAdd:
    """Bind target to lhs + rhs, waiting until both are bound"""
    kind: Literal["assignAdd"]
    target: Identifier
    lhs: Identifier
    rhs: Identifier


@dataclass(frozen=True)
class InsPrint:
    """Report the current value of target on the output channel"""
    kind: Literal["print"]
    target: Identifier


@dataclass(frozen=True)
class InsProcDef:
    """Bind target to a closure over params and body"""
    kind: Literal["procDef"]
    target: Identifier
    params: Tuple[Identifier, ...]
    body: Tuple[Instruction, ...]


@dataclass(frozen=True)
class InsProcCall:
    """Invoke the procedure bound to target with argument variables"""
    kind: Literal["procCall"]
    target: Identifier
    args: Tuple[Identifier, ...]


Instruction: TypeAlias = Union[
    InsThread,
    InsLocal,
    InsAssign,
    InsAssignAdd,
    InsPrint,
    InsProcDef,
    InsProcCall,
]


#==============================================================================
# Type Guards and Utility Functions
#==============================================================================

def is_bound(v: Value) -> bool:
    """Check if value is anything other than the unbound marker"""
    return v.kind != "unbound"


def is_int(v: Value) -> bool:
    return v.kind == "int"


def is_atom(v: Value) -> bool:
    return v.kind == "atom"


def is_record(v: Value) -> bool:
    return v.kind == "record"


def is_proc(v: Value) -> bool:
    return v.kind == "proc"


def free_identifiers(body: Iterable[Instruction]) -> List[Identifier]:
    """
    Collect the identifiers an instruction sequence uses without declaring.

    Identifiers introduced by Local, and procedure parameters, are bound
    inside their own bodies. The result keeps first-occurrence order.

    Args:
        body: Instructions to scan

    Returns:
        Free identifiers, without duplicates
    """
    from pyoz.errors import exhaustive

    found: Dict[Identifier, None] = {}

    def note(names: Iterable[Identifier], bound: frozenset) -> None:
        for name in names:
            if name not in bound:
                found.setdefault(name, None)

    def visit(instructions: Iterable[Instruction], bound: frozenset) -> None:
        for ins in instructions:
            kind = ins.kind
            if kind == "thread":
                visit(ins.body, bound)
            elif kind == "local":
                visit(ins.body, bound | frozenset(ins.ids))
            elif kind == "assign" or kind == "print":
                note([ins.target], bound)
            elif kind == "assignAdd":
                note([ins.target, ins.lhs, ins.rhs], bound)
            elif kind == "procDef":
                note([ins.target], bound)
                visit(ins.body, bound | frozenset(ins.params))
            elif kind == "procCall":
                note([ins.target, *ins.args], bound)
            else:
                exhaustive(ins)

    visit(body, frozenset())
    return list(found)


#==============================================================================
# Value Constructors
#==============================================================================

UNBOUND = UnboundVal(kind="unbound")


def unbound_val() -> UnboundVal:
    return UNBOUND


def int_val(value: int) -> IntVal:
    return IntVal(kind="int", value=value)


def atom_val(value: str) -> AtomVal:
    return AtomVal(kind="atom", value=value)


def record_val(fields: Mapping[str, Value], label: Optional[str] = None) -> RecordVal:
    return RecordVal(kind="record", fields=fields, label=label)


def proc_val(params: Sequence[Identifier], body: Sequence[Instruction],
             env: Environment) -> ProcVal:
    return ProcVal(kind="proc", params=tuple(params), body=tuple(body), env=env)


#==============================================================================
# Instruction Constructors
#==============================================================================

NameLike: TypeAlias = Union[str, Identifier]


def _idents(names: Iterable[NameLike]) -> Tuple[Identifier, ...]:
    return tuple(ident(n) for n in names)


def thread_ins(body: Sequence[Instruction]) -> InsThread:
    return InsThread(kind="thread", body=tuple(body))


def local_ins(ids: Iterable[NameLike], body: Sequence[Instruction]) -> InsLocal:
    return InsLocal(kind="local", ids=_idents(ids), body=tuple(body))


def assign_ins(target: NameLike, value: Value) -> InsAssign:
    return InsAssign(kind="assign", target=ident(target), value=value)


def assign_add_ins(target: NameLike, lhs: NameLike, rhs: NameLike) -> InsAssignAdd:
    return InsAssignAdd(kind="assignAdd", target=ident(target),
                        lhs=ident(lhs), rhs=ident(rhs))


def print_ins(target: NameLike) -> InsPrint:
    return InsPrint(kind="print", target=ident(target))


def proc_def_ins(target: NameLike, params: Iterable[NameLike],
                 body: Sequence[Instruction]) -> InsProcDef:
    return InsProcDef(kind="procDef", target=ident(target),
                      params=_idents(params), body=tuple(body))


def proc_call_ins(target: NameLike, args: Iterable[NameLike]) -> InsProcCall:
    return InsProcCall(kind="procCall", target=ident(target), args=_idents(args))
