# tests/test_procs.py
"""
Tests for procedure definition and invocation.
"""

import pytest

from pyoz import (
    ErrorCodes,
    OzError,
    ThreadState,
    Variable,
    assign_add_ins,
    assign_ins,
    ident,
    int_val,
    is_proc,
    local_ins,
    print_ins,
    proc_call_ins,
    proc_def_ins,
    thread_ins,
)


class TestProcDef:

    def test_closure_captures_only_free_identifiers(self, make_vm):
        vm = make_vm()
        vm.spawn_program([
            local_ins(["Z", "Add", "Unused"], [
                proc_def_ins("Add", ["P", "Q"], [assign_add_ins("Z", "P", "Q")]),
            ]),
        ])
        vm.run()

        proc = vm.store.read(Variable(2))
        assert is_proc(proc)
        assert proc.params == (ident("P"), ident("Q"))
        assert proc.env.identifiers() == [ident("Z")]
        assert proc.env.lookup(ident("Z")) == Variable(1)

    def test_redefinition_is_a_double_bind(self, make_vm):
        vm = make_vm()
        vm.spawn_program([
            local_ins(["F"], [
                proc_def_ins("F", [], []),
                proc_def_ins("F", [], []),
            ]),
        ])
        with pytest.raises(OzError) as exc:
            vm.run()
        assert exc.value.code == ErrorCodes.DOUBLE_BIND


class TestProcCall:

    def test_call_binds_parameters_from_arguments(self, make_vm, output):
        vm = make_vm()
        vm.spawn_program([
            local_ins(["Z", "Add", "A", "B"], [
                proc_def_ins("Add", ["P", "Q"], [
                    assign_add_ins("Z", "P", "Q"),
                    print_ins("P"),
                ]),
                assign_ins("A", int_val(2)),
                assign_ins("B", int_val(3)),
                proc_call_ins("Add", ["A", "B"]),
                print_ins("Z"),
            ]),
        ])
        result = vm.run()

        assert result.ok
        assert vm.store.read(Variable(1)) == int_val(5)
        # Parameters get fresh variables bound to the argument values
        assert vm.store.read(Variable(5)) == int_val(2)
        assert vm.store.read(Variable(6)) == int_val(3)
        assert output.lines == ["P <- 2", "Z <- 5"]

    def test_closure_is_lexically_scoped(self, make_vm):
        vm = make_vm()
        vm.spawn_program([
            local_ins(["Out", "P"], [
                local_ins(["X"], [
                    assign_ins("X", int_val(7)),
                    proc_def_ins("P", [], [assign_add_ins("Out", "X", "X")]),
                ]),
                local_ins(["X"], [
                    assign_ins("X", int_val(100)),
                    proc_call_ins("P", []),
                ]),
            ]),
        ])
        vm.run()
        assert vm.store.read(Variable(1)) == int_val(14)

    def test_call_waits_for_procedure_and_arguments(self, make_vm):
        vm = make_vm()
        vm.spawn_program([
            local_ins(["Z", "F", "A"], [
                thread_ins([proc_call_ins("F", ["A"])]),
                assign_ins("A", int_val(1)),
                proc_def_ins("F", ["P"], [assign_add_ins("Z", "P", "P")]),
            ]),
        ])
        result = vm.run()

        assert result.ok
        assert vm.store.read(Variable(1)) == int_val(2)
        waits = [event.variables for event in vm.detector.wait_history]
        assert waits == [(Variable(2), Variable(3)), (Variable(2),)]

    def test_blocked_call_keeps_frame(self, make_vm):
        vm = make_vm()
        thread = vm.spawn_program([local_ins(["F"], [proc_call_ins("F", [])])])
        vm.step(thread)
        frames = thread.stack.frames
        outcome = vm.step(thread)
        assert outcome.state == ThreadState.BLOCKED
        assert thread.stack.frames == frames

    def test_calling_a_non_procedure(self, make_vm):
        vm = make_vm()
        vm.spawn_program([
            local_ins(["F"], [
                assign_ins("F", int_val(1)),
                proc_call_ins("F", []),
            ]),
        ])
        with pytest.raises(OzError) as exc:
            vm.run()
        assert exc.value.code == ErrorCodes.TYPE_MISMATCH

    def test_arity_mismatch(self, make_vm):
        vm = make_vm()
        vm.spawn_program([
            local_ins(["F", "A"], [
                assign_ins("A", int_val(1)),
                proc_def_ins("F", ["P", "Q"], []),
                proc_call_ins("F", ["A"]),
            ]),
        ])
        with pytest.raises(OzError) as exc:
            vm.run()
        assert exc.value.code == ErrorCodes.ARITY_MISMATCH

    def test_procedure_called_twice(self, make_vm, output):
        vm = make_vm()
        vm.spawn_program([
            local_ins(["Show", "A", "B"], [
                proc_def_ins("Show", ["V"], [print_ins("V")]),
                assign_ins("A", int_val(1)),
                assign_ins("B", int_val(2)),
                proc_call_ins("Show", ["A"]),
                proc_call_ins("Show", ["B"]),
            ]),
        ])
        vm.run()
        assert output.lines == ["V <- 1", "V <- 2"]
