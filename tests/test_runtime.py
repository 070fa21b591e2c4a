"""Evaluator tests: .tests programs plus direct checks of the value model."""

from pathlib import Path

import pytest

from case_files import collect_cases
from wordlang import parse
from wordlang.env import Environment
from wordlang.runtime import BufferOutput, Runtime, run
from wordlang.values import NULL, VFloat, VInt, VList, VString, format_float, is_truthy

RUN_DIR = Path(__file__).parent / "run"

STDIN_PREFIX = "<<< "


def split_input(text: str) -> tuple[str, str]:
    """Separate '<<< ' stdin lines from program lines."""
    program: list[str] = []
    stdin: list[str] = []
    for line in text.split("\n"):
        if line.startswith(STDIN_PREFIX):
            stdin.append(line[len(STDIN_PREFIX) :])
        else:
            program.append(line)
    return "\n".join(program), "".join(s + "\n" for s in stdin)


def split_expected(text: str) -> tuple[list[str], int, str | None]:
    """Separate 'exit:' and 'error:' directives from expected stdout lines."""
    out: list[str] = []
    exit_code = 0
    error: str | None = None
    for line in text.split("\n") if text else []:
        if line.startswith("exit: "):
            exit_code = int(line[6:])
        elif line.startswith("error: "):
            error = line[7:]
            if exit_code == 0:
                exit_code = 1
        else:
            out.append(line)
    return out, exit_code, error


def pytest_generate_tests(metafunc):
    if "run_input" in metafunc.fixturenames:
        params = [
            pytest.param(input_code, expected, id=test_id)
            for test_id, input_code, expected in collect_cases(RUN_DIR)
        ]
        metafunc.parametrize("run_input,run_expected", params)


def test_run(run_input: str, run_expected: str):
    source, stdin = split_input(run_input)
    expected_out, expected_code, expected_error = split_expected(run_expected)
    result = run(parse(source), stdin=stdin)
    actual_out = result.stdout.rstrip("\n").split("\n") if result.stdout else []
    if actual_out != expected_out:
        pytest.fail(
            f"stdout mismatch:\n  expected: {expected_out}\n  actual:   {actual_out}"
            f"\n  error: {result.error}"
        )
    if result.exit_code != expected_code:
        pytest.fail(
            f"exit code mismatch: expected {expected_code}, got {result.exit_code}"
            f" (error: {result.error})"
        )
    if expected_error is None:
        if result.error is not None:
            pytest.fail(f"unexpected runtime error: {result.error}")
    elif result.error is None or expected_error not in result.error:
        pytest.fail(f"expected error containing '{expected_error}', got {result.error}")


# ---------------------------------------------------------------------------
# Direct checks
# ---------------------------------------------------------------------------


def test_program_value_is_last_statement(run_source):
    result = run_source("let x be 2\nx multiply 21")
    assert result.value == VInt(42)
    assert result.exit_code == 0


def test_top_level_return_stops_program(run_source):
    result = run_source('return 7\nprint "unreachable"')
    assert result.value == VInt(7)
    assert result.stdout == ""


def test_runtime_keeps_globals_between_programs():
    out = BufferOutput()
    rt = Runtime(stdout=out)
    rt.execute(parse("let counter be 1"))
    rt.execute(parse("let counter be counter add 1"))
    result = rt.execute(parse("print counter"))
    assert result.exit_code == 0
    assert out.getvalue() == "2\n"


def test_eval_single_node():
    rt = Runtime()
    rt.globals.set("x", VInt(40))
    stmt = parse("x add 2").stmts[0]
    assert rt.eval(stmt, rt.globals) == VInt(42)
    assert rt.eval(stmt.expr.left, rt.globals) == VInt(40)


def test_output_stream_receives_prints():
    out = BufferOutput()
    result = run(parse('print "a"\nprint "b"'), stdout=out)
    assert out.getvalue() == "a\nb\n"
    assert result.stdout == "a\nb\n"


def test_recursion_limit_reports_stack_overflow(run_source):
    result = run_source(
        "let down be function n return call down n add 1 end end function\n"
        "call down 0 end",
        max_depth=50,
    )
    assert result.exit_code == 1
    assert "StackOverflow" in result.error


def test_strict_math_option(run_source):
    source = "print 9223372036854775807 add 1"
    assert run_source(source).stdout == "-9223372036854775808\n"
    strict = run_source(source, strict_math=True)
    assert strict.exit_code == 1
    assert "IntegerOverflow" in strict.error


def test_list_elements_are_shared(run_source):
    result = run_source(
        "let inner be list(1)\nlet outer be list(inner, inner)\n"
        "get item at index 0 from outer equals get item at index 1 from outer"
    )
    assert result.value.to_string() == "true"


def test_environment_set_is_local():
    outer = Environment()
    outer.set("x", VInt(1))
    inner = outer.child()
    inner.set("x", VInt(2))
    assert inner.get("x") == VInt(2)
    assert outer.get("x") == VInt(1)
    assert inner.is_defined("x")
    assert not inner.is_defined("y")
    assert inner.outer is outer


@pytest.mark.parametrize(
    "value,expected",
    [
        (NULL, False),
        (VInt(0), True),
        (VString(""), True),
        (VList([]), True),
    ],
)
def test_truthiness(value, expected):
    assert is_truthy(value) is expected


@pytest.mark.parametrize(
    "f,expected",
    [
        (3.0, "3.000000"),
        (0.1, "0.100000"),
        (-2.5, "-2.500000"),
        (float("inf"), "+Inf"),
        (float("-inf"), "-Inf"),
        (float("nan"), "NaN"),
    ],
)
def test_float_display(f, expected):
    assert format_float(f) == expected
    assert VFloat(f).to_string() == expected


def test_environment_lookup_walks_outer_chain():
    root = Environment()
    root.set("x", VInt(1))
    leaf = root.child().child()
    assert leaf.outer.outer is root
    assert leaf.get("x") == VInt(1)
    assert leaf.get("missing") is None
