"""
pyoz Display Helpers
Human-readable rendering of values and of the store
"""

from __future__ import annotations

from typing import List

from pyoz.types import Value
from pyoz.store import SingleAssignmentStore
from pyoz.errors import exhaustive


def format_value(value: Value) -> str:
    """Format a value for display"""
    kind = value.kind

    if kind == "unbound":
        return "Unbound"
    elif kind == "int":
        return str(value.value)
    elif kind == "atom":
        return value.value
    elif kind == "record":
        inner = ", ".join(f"{k}: {format_value(value.fields[k])}" for k in value.arity)
        return f"{value.label or ''}({inner})"
    elif kind == "proc":
        return f"<proc/{len(value.params)}>"
    else:
        exhaustive(value)


def format_store(store: SingleAssignmentStore) -> str:
    """Render the store as a two-column table"""
    rows = [(str(variable), format_value(value)) for variable, value in store.items()]
    left = max([len("Variable")] + [len(r[0]) for r in rows])
    right = max([len("Value")] + [len(r[1]) for r in rows])
    rule = f"|{'-' * (left + 2)}|{'-' * (right + 2)}|"

    lines: List[str] = [rule, f"| {'Variable'.ljust(left)} | {'Value'.ljust(right)} |", rule]
    for name, text in rows:
        lines.append(f"| {name.ljust(left)} | {text.ljust(right)} |")
    lines.append(rule)
    return "\n".join(lines)
