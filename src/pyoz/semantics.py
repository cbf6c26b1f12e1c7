"""
pyoz Semantic Stack
Reified continuation of one logical thread

A thread's remaining work is a stack of frames, each pairing a sequence of
pending instructions with the environment they run under. The machine pops
one frame per reduction step and pushes back whatever is left to do.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from pyoz.types import Instruction
from pyoz.env import Environment, empty_env


@dataclass(frozen=True)
class SemanticInstruction:
    """One frame: pending instructions and their environment"""
    instructions: Tuple[Instruction, ...]
    env: Environment

    def split(self) -> Tuple["SemanticInstruction", "SemanticInstruction"]:
        """Split into a one-instruction head and the remaining tail"""
        head = SemanticInstruction(self.instructions[:1], self.env)
        tail = SemanticInstruction(self.instructions[1:], self.env)
        return head, tail


class SemanticStack:
    """Stack of frames. The last frame pushed runs next."""

    def __init__(self, frames: Optional[Iterable[SemanticInstruction]] = None):
        self._frames: List[SemanticInstruction] = list(frames) if frames else []

    @property
    def frames(self) -> List[SemanticInstruction]:
        """Return a copy of the frames, bottom first"""
        return list(self._frames)

    def push(self, frame: SemanticInstruction) -> None:
        self._frames.append(frame)

    def pop(self) -> Optional[SemanticInstruction]:
        if not self._frames:
            return None
        return self._frames.pop()

    def peek(self) -> Optional[SemanticInstruction]:
        if not self._frames:
            return None
        return self._frames[-1]

    def is_empty(self) -> bool:
        return not self._frames

    def __len__(self) -> int:
        return len(self._frames)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticStack):
            return NotImplemented
        return self._frames == other._frames

    def __repr__(self) -> str:
        return f"SemanticStack({len(self._frames)} frames)"


def semantic_stack(instructions: Iterable[Instruction],
                   env: Optional[Environment] = None) -> SemanticStack:
    """
    Build a single-frame stack for a program.

    Args:
        instructions: Program body
        env: Starting environment (empty if omitted)

    Returns:
        New SemanticStack holding one frame
    """
    frame = SemanticInstruction(tuple(instructions), env if env is not None else empty_env())
    return SemanticStack([frame])
