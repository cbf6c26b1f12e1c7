"""
pyoz Single-Assignment Store
Write-once memory shared by every thread of a machine

A variable moves through exactly three states: unallocated, unbound, bound.
Once bound it never changes. Every illegal transition raises OzError and
leaves the store as it was.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from pyoz.types import Value, Variable, UNBOUND, is_bound
from pyoz.errors import OzError


class SingleAssignmentStore:
    """Mapping from Variable to Value with write-once cells"""

    def __init__(self) -> None:
        self._cells: Dict[Variable, Value] = {}

    def allocate(self, variable: Variable) -> None:
        """
        Introduce a variable in the unbound state.

        Raises:
            OzError: DoubleAllocation if the variable is already present
        """
        if variable in self._cells:
            raise OzError.double_allocation(variable)
        self._cells[variable] = UNBOUND

    def read(self, variable: Variable) -> Optional[Value]:
        """
        Read a variable.

        Returns:
            The current value (possibly the unbound marker),
            or None if the variable was never allocated
        """
        return self._cells.get(variable)

    def bind(self, variable: Variable, value: Value) -> None:
        """
        Bind an unbound variable to a value.

        Raises:
            OzError: InvalidBind if value is the unbound marker,
                UnallocatedWrite if the variable was never allocated,
                DoubleBind if it is already bound
        """
        if not is_bound(value):
            raise OzError.invalid_bind(variable)
        existing = self._cells.get(variable)
        if existing is None:
            raise OzError.unallocated_write(variable)
        if is_bound(existing):
            raise OzError.double_bind(variable, existing)
        self._cells[variable] = value

    def is_bound(self, variable: Variable) -> bool:
        """Check if a variable is allocated and bound"""
        value = self._cells.get(variable)
        return value is not None and is_bound(value)

    def items(self) -> List[Tuple[Variable, Value]]:
        """Return (variable, value) pairs in allocation order"""
        return list(self._cells.items())

    def snapshot(self) -> Dict[Variable, Value]:
        """Return a copy of the cells"""
        return dict(self._cells)

    def __contains__(self, variable: Variable) -> bool:
        return variable in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return f"SingleAssignmentStore({len(self._cells)} cells)"
