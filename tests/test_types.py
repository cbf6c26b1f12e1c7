# tests/test_types.py
"""
Tests for values, instruction helpers, display and error values.
"""

from pyoz import (
    ErrorCodes,
    IdGenerator,
    Identifier,
    OzError,
    SingleAssignmentStore,
    UNBOUND,
    Variable,
    assign_add_ins,
    assign_ins,
    atom_val,
    empty_env,
    format_store,
    format_value,
    free_identifiers,
    ident,
    int_val,
    is_bound,
    local_ins,
    print_ins,
    proc_call_ins,
    proc_def_ins,
    proc_val,
    record_val,
    thread_ins,
)


class TestNames:

    def test_ident_coerces_strings(self):
        assert ident("X") == Identifier("X")
        assert ident(Identifier("X")) == Identifier("X")

    def test_identifiers_and_variables_are_comparable(self):
        assert Identifier("A") < Identifier("B")
        assert Variable(1) < Variable(2)
        assert str(Variable(7)) == "v7"

    def test_id_generator_is_monotonic(self):
        gen = IdGenerator()
        assert [gen.next_id() for _ in range(3)] == [1, 2, 3]
        assert gen.issued == 3

    def test_generators_are_independent(self):
        a, b = IdGenerator(), IdGenerator()
        a.next_id()
        assert b.next_id() == 1


class TestValues:

    def test_unbound_marker(self):
        assert not is_bound(UNBOUND)
        assert is_bound(int_val(0))

    def test_record_structural_equality(self):
        a = record_val({"x": int_val(1), "tag": atom_val("p")}, label="point")
        b = record_val({"tag": atom_val("p"), "x": int_val(1)}, label="point")
        assert a == b
        assert a != record_val({"x": int_val(1), "tag": atom_val("p")})

    def test_record_copies_its_fields(self):
        fields = {"x": int_val(1)}
        rec = record_val(fields)
        fields["y"] = int_val(2)
        assert rec.arity == ["x"]

    def test_instruction_constructors_coerce_names(self):
        ins = assign_add_ins("Z", "X", "Y")
        assert ins.target == Identifier("Z")
        assert ins.lhs == Identifier("X")
        assert local_ins(["A"], []).ids == (Identifier("A"),)


class TestFreeIdentifiers:

    def test_flat_body(self):
        body = [assign_ins("X", int_val(1)), assign_add_ins("Z", "X", "Y")]
        assert free_identifiers(body) == [ident("X"), ident("Z"), ident("Y")]

    def test_local_binds_its_ids(self):
        body = [local_ins(["X"], [assign_add_ins("Z", "X", "X")])]
        assert free_identifiers(body) == [ident("Z")]

    def test_thread_body_is_scanned(self):
        body = [thread_ins([print_ins("X")])]
        assert free_identifiers(body) == [ident("X")]

    def test_proc_params_are_bound_in_body(self):
        body = [proc_def_ins("F", ["P"], [assign_add_ins("Out", "P", "K")])]
        assert free_identifiers(body) == [ident("F"), ident("Out"), ident("K")]

    def test_proc_call_uses_target_and_args(self):
        body = [proc_call_ins("F", ["A", "B", "A"])]
        assert free_identifiers(body) == [ident("F"), ident("A"), ident("B")]


class TestDisplay:

    def test_format_scalars(self):
        assert format_value(int_val(-3)) == "-3"
        assert format_value(atom_val("nil")) == "nil"
        assert format_value(UNBOUND) == "Unbound"

    def test_format_record_sorted_features(self):
        rec = record_val({"y": int_val(2), "x": int_val(1)}, label="point")
        assert format_value(rec) == "point(x: 1, y: 2)"

    def test_format_proc(self):
        proc = proc_val([ident("A"), ident("B")], [], empty_env())
        assert format_value(proc) == "<proc/2>"

    def test_format_store_table(self):
        store = SingleAssignmentStore()
        store.allocate(Variable(1))
        store.allocate(Variable(2))
        store.bind(Variable(1), int_val(10))
        lines = format_store(store).splitlines()
        assert lines[1].split("|")[1].strip() == "Variable"
        assert lines[3] == "| v1       | 10      |"
        assert lines[4] == "| v2       | Unbound |"
        assert lines[0] == lines[2] == lines[-1]


class TestErrorValues:

    def test_to_value_is_error_record(self):
        error = OzError.double_bind(Variable(1), int_val(1))
        value = error.to_value()
        assert value.label == "error"
        assert value.fields["code"] == atom_val("DoubleBind")

    def test_factory_messages(self):
        error = OzError.unresolved_identifier(ident("Q"))
        assert error.code == ErrorCodes.UNRESOLVED_IDENTIFIER
        assert str(error) == "Unresolved identifier: Q"
        assert error.meta == {"identifier": ident("Q")}
