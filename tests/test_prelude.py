import pytest

from fnlang.fn_runtime import ScriptRunner
from fnlang.fn_printer import Printer


@pytest.fixture(scope="module")
def runner():
    return ScriptRunner()


def run(runner, source):
    res = runner.handle_script(source)
    assert res.status == 'success', res.error_message
    return Printer().pformat_stack(res.value, definitions=False)


PRELUDE_CASES = [
    ("swap", "swap a b", "b a"),
    ("over", "over a b", "b a b"),
    ("rot", "rot a b c", "c a b"),
    ("unrot", "unrot a b c", "b c a"),
    ("nip", "nip a b", "a"),
    ("i", "i [+ 1 2]", "3"),
    ("if_true", "if True [1] [2]", "1"),
    ("if_false", "if False [1] [2]", "2"),
    ("ifte_then", "ifte [= 0 dup] [1 drop] [pred] 0", "1"),
    ("ifte_else", "ifte [= 0 dup] [drop] [pred] 5", "4"),
    ("not_equal", "!= 3 4", "?True"),
    ("not_equal_same", "!= 3 3", "?False"),
    ("succ", "succ 5", "6"),
    ("pred", "pred 5", "4"),
    ("neg", "neg 5", "-5"),
    ("length", 'length "abc"', "3"),
    ("length_empty", "length []", "0"),
    ("reverse", "reverse [1 2 3]", "[3 2 1]"),
    ("reverse_string", 'reverse "abc"', '"cba"'),
    ("reverse_empty", "reverse []", '""'),
    ("sum", "sum [1 2 3 4]", "10"),
    ("sum_empty", "sum []", "0"),
    ("factorial", "fact 5 def fact [ifte [= 0 dup] [1 drop] [* fact pred dup]]", "120"),
]


@pytest.mark.parametrize("test_id, source, expected", PRELUDE_CASES, ids=[t[0] for t in PRELUDE_CASES])
def test_prelude_words(runner, test_id, source, expected):
    assert run(runner, source) == expected


def test_recursion_deeper_than_the_python_stack(runner):
    items = " ".join(["1"] * 3000)
    assert run(runner, f"length [{items}]") == "3000"


NEST = "n 3000 def n [ifte [= 0 dup] [[] drop] [quote n pred]]"


def test_deeply_nested_result_renders(runner):
    assert run(runner, NEST) == "[" * 3000 + '""' + "]" * 3000


def test_deeply_nested_values_compare(runner):
    assert run(runner, "= dup " + NEST) == "?True"
    assert run(runner, "= quote [] " + NEST) == "?False"


def test_prelude_can_be_disabled():
    runner = ScriptRunner(load_prelude=False)
    assert run(runner, "swap a b") == "swap a b"


def test_custom_prelude(tmp_path):
    prelude = tmp_path / "tiny.fn"
    prelude.write_text("def twice [dup]\n", encoding="utf-8")
    runner = ScriptRunner(prelude_path=str(prelude))
    assert run(runner, "twice 4") == "4 4"
    assert run(runner, "swap a b") == "swap a b"


def test_missing_prelude_is_unreadable(tmp_path):
    runner = ScriptRunner(prelude_path=str(tmp_path / "missing.fn"))
    res = runner.handle_script("1")
    assert res.status == 'error'
    assert res.error.kind == "SourceUnreadable"
