"""
pyoz Environment
Maps identifiers to store variables at a lexical point

This module provides an immutable environment class using the dict.copy()
pattern: every extension or projection returns a new Environment and
leaves the receiver untouched.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Tuple

from pyoz.types import Identifier, Variable


#==============================================================================
# Environment (E)
# Maps identifiers to the variables they denote
#==============================================================================

class Environment:
    """
    Immutable environment.

    Uses dict.copy() pattern to ensure immutability - all operations
    return new Environment instances without modifying the original.
    """

    def __init__(self, bindings: Optional[Dict[Identifier, Variable]] = None):
        """
        Create a new environment.

        Args:
            bindings: Initial identifier bindings (optional)
        """
        self._bindings = dict(bindings) if bindings else {}

    @property
    def bindings(self) -> Dict[Identifier, Variable]:
        """Return a copy of the bindings to prevent external mutation."""
        return dict(self._bindings)

    def lookup(self, identifier: Identifier) -> Optional[Variable]:
        """
        Look up the variable an identifier denotes.

        Args:
            identifier: Identifier to look up

        Returns:
            Variable if found, None otherwise
        """
        return self._bindings.get(identifier)

    def adjoint(self, identifier: Identifier, variable: Variable) -> "Environment":
        """
        Extend the environment with a new binding.
        Returns a new Environment without modifying the original.
        A binding for an identifier already present shadows the old one.

        Args:
            identifier: Identifier to bind
            variable: Variable it denotes

        Returns:
            New Environment with the additional binding
        """
        new_bindings = self._bindings.copy()
        new_bindings[identifier] = variable
        return Environment(new_bindings)

    def adjoin_many(self, bindings: Iterable[Tuple[Identifier, Variable]]) -> "Environment":
        """
        Extend the environment with multiple bindings, applied in order.

        Args:
            bindings: (identifier, variable) pairs

        Returns:
            New Environment with the additional bindings
        """
        new_bindings = self._bindings.copy()
        for identifier, variable in bindings:
            new_bindings[identifier] = variable
        return Environment(new_bindings)

    def restrict(self, identifiers: Iterable[Identifier]) -> "Environment":
        """
        Project the environment onto a set of identifiers.
        Identifiers without a binding are skipped, not reported.

        Args:
            identifiers: Identifiers to keep

        Returns:
            New Environment holding only the kept bindings
        """
        new_bindings: Dict[Identifier, Variable] = {}
        for identifier in identifiers:
            variable = self._bindings.get(identifier)
            if variable is not None:
                new_bindings[identifier] = variable
        return Environment(new_bindings)

    def identifiers(self) -> List[Identifier]:
        """Return the bound identifiers in binding order."""
        return list(self._bindings)

    def __contains__(self, identifier: Identifier) -> bool:
        """Check if an identifier is bound in the environment."""
        return identifier in self._bindings

    def __len__(self) -> int:
        """Return the number of bindings."""
        return len(self._bindings)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Environment):
            return NotImplemented
        return self._bindings == other._bindings

    def __repr__(self) -> str:
        inner = ", ".join(f"{i}: {v}" for i, v in self._bindings.items())
        return f"Environment({{{inner}}})"


def empty_env() -> Environment:
    """
    Create an empty environment.

    Returns:
        New Environment with no bindings
    """
    return Environment()
