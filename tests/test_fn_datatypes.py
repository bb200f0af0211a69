import pytest

from fnlang.fn_datatypes import (
    Bool, Chr, Def, EMPTY, IncomparableValues, NativeOp, Num, Pair, Quot,
    Stack, Word, equals, is_truthy
)


def noop(st):
    return None


# --- Expressions ---

def test_quot_from_text_is_a_string():
    q = Quot.from_text("ab")
    assert q == Quot([Chr("a"), Chr("b")])
    assert q.is_string()
    assert q.text() == "ab"
    assert len(q) == 2


def test_mixed_quot_is_not_a_string():
    assert not Quot([Chr("a"), Num(1)]).is_string()


def test_chr_holds_one_character():
    with pytest.raises(ValueError):
        Chr("ab")


@pytest.mark.parametrize("expr, expected", [
    (Bool(False), False),
    (Bool(True), True),
    (Num(0), True),
    (Quot([]), True),
    (Word("False"), True),
])
def test_truthiness(expr, expected):
    assert is_truthy(expr) is expected


@pytest.mark.parametrize("a, b, expected", [
    (Num(3), Num(3), True),
    (Num(3), Num(4), False),
    (Num(1), Bool(True), False),
    (Word("x"), Word("x"), True),
    (Quot.from_text("a"), Quot.from_text("a"), True),
    (Quot([Num(1)]), Quot([Num(1), Num(2)]), False),
    (Pair(Num(1), Word("a")), Pair(Num(1), Word("a")), True),
    (Pair(Num(1), Word("a")), Pair(Num(2), Word("a")), False),
    (Pair(Num(1), Word("a")), Pair(Num(1), Word("b")), False),
    (NativeOp("f", noop), Num(1), False),
    (Def("d", []), Quot([]), False),
])
def test_equals(a, b, expected):
    assert equals(a, b) is expected


@pytest.mark.parametrize("a, b", [
    (NativeOp("f", noop), NativeOp("f", noop)),
    (Def("d", []), Def("d", [])),
    (Quot([NativeOp("f", noop)]), Quot([NativeOp("g", noop)])),
    (Pair(Num(1), Def("d", [])), Pair(Num(1), Def("e", []))),
    # Elements are compared before lengths
    (Quot([NativeOp("f", noop)]), Quot([NativeOp("f", noop), Num(1)])),
])
def test_equals_refuses_functions_and_definitions(a, b):
    with pytest.raises(IncomparableValues):
        equals(a, b)


@pytest.mark.parametrize("a, b", [
    (Quot([Num(1), NativeOp("f", noop)]), Quot([Num(2), NativeOp("f", noop)])),
    (Quot([Num(1)]), Quot([Num(1), NativeOp("f", noop)])),
    (Pair(Num(1), Def("d", [])), Pair(Num(2), Def("d", []))),
])
def test_equals_earlier_difference_wins_over_refusal(a, b):
    assert equals(a, b) is False


def nested(depth, leaf):
    value = leaf
    for _ in range(depth):
        value = Quot([Num(0), Pair(Word("k"), value)])
    return value


def test_equals_deep_nesting():
    assert equals(nested(5000, Num(1)), nested(5000, Num(1))) is True
    assert equals(nested(5000, Num(1)), nested(5000, Num(2))) is False
    assert nested(5000, Num(1)) == nested(5000, Num(1))


def test_python_equality_on_definitions_is_identity():
    d = Def("d", [Num(1)])
    assert d == d
    assert d != Def("d", [Num(1)])


# --- Stack ---

def test_empty_stack():
    assert EMPTY.is_empty()
    assert not EMPTY
    assert len(EMPTY) == 0
    assert list(EMPTY) == []


def test_from_list_puts_first_item_on_top():
    st = Stack.from_list([Num(1), Num(2), Num(3)])
    assert st.head == Num(1)
    assert st.to_list() == [Num(1), Num(2), Num(3)]
    assert len(st) == 3


def test_push_shares_the_tail():
    base = Stack.from_list([Num(2)])
    pushed = base.push(Num(1))
    assert pushed.tail is base
    assert base.to_list() == [Num(2)]
    assert pushed.to_list() == [Num(1), Num(2)]


def test_split_returns_at_most_n_items():
    st = Stack.from_list([Num(1), Num(2), Num(3)])
    items, rest = st.split(2)
    assert items == [Num(1), Num(2)]
    assert rest.to_list() == [Num(3)]

    items, rest = st.split(5)
    assert items == [Num(1), Num(2), Num(3)]
    assert rest.is_empty()


def test_find_def_is_nearest_first():
    outer = Def("x", [Num(1)])
    inner = Def("x", [Num(2)])
    st = Stack.from_list([Num(0), inner, Word("y"), outer])
    assert st.find_def("x") is inner
    assert st.find_def("y") is None


def test_from_list_onto_base():
    base = Stack.from_list([Num(3)])
    st = Stack.from_list([Num(1), Num(2)], base)
    assert st.to_list() == [Num(1), Num(2), Num(3)]


def test_stack_equality():
    a = Stack.from_list([Num(1), Quot([Word("w")])])
    b = Stack.from_list([Num(1), Quot([Word("w")])])
    assert a == b
    assert a != Stack.from_list([Num(1)])
    assert a != b.push(Num(0))
