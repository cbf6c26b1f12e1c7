"""
Pytest configuration and fixtures for pyoz tests.
"""

import pytest

from pyoz import Vm, VmOptions


class OutputCapture:
    """Collects Print lines instead of writing them to stdout."""

    def __init__(self):
        self.lines = []

    def __call__(self, line):
        self.lines.append(line)


@pytest.fixture
def output():
    return OutputCapture()


@pytest.fixture
def make_vm(output):
    """Build a machine whose Print output goes to the capture fixture."""
    def factory(**options):
        return Vm(VmOptions(**options), output)
    return factory
