"""CLI tests: run main() in-process against temporary program files."""

import io
import logging
from pathlib import Path

import pytest

from wordlang.cli import main


def write_program(tmp_path: Path, source: str) -> str:
    path = tmp_path / "prog.wl"
    path.write_text(source)
    return str(path)


def test_runs_program(tmp_path, capsys):
    path = write_program(tmp_path, 'print "hello"\nprint 1 add 2\n')
    assert main([path]) == 0
    out, err = capsys.readouterr()
    assert out == "hello\n3\n"
    assert err == ""


def test_exit_status_is_returned(tmp_path, capsys):
    path = write_program(tmp_path, "exit 7\n")
    assert main([path]) == 7


def test_runtime_error_goes_to_stderr(tmp_path, capsys):
    path = write_program(tmp_path, 'print "a"\nprint 1 divide 0\n')
    assert main([path]) == 1
    out, err = capsys.readouterr()
    assert out == "a\n"
    assert err == "wordlang: ERROR: DivisionByZero: division by zero\n"


def test_parse_errors_are_all_reported(tmp_path, capsys):
    path = write_program(tmp_path, "let x 5\nprint 1\nlet y be then\n")
    assert main([path]) == 1
    out, err = capsys.readouterr()
    assert out == ""
    lines = err.strip().split("\n")
    assert len(lines) == 2
    assert lines[0] == "wordlang: parse error: expected 'be', got number 5 at 1:7"


def test_program_reads_stdin(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("Ada\n"))
    path = write_program(tmp_path, 'let n be input "who? "\nprint n\n')
    assert main([path]) == 0
    out, _ = capsys.readouterr()
    assert out == "who? Ada\n"


def test_program_from_stdin(capsys, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO('print "piped"\n'))
    assert main(["-"]) == 0
    out, _ = capsys.readouterr()
    assert out == "piped\n"


def test_strict_math_flag(tmp_path, capsys):
    path = write_program(tmp_path, "print 9223372036854775807 add 1\n")
    assert main(["--strict-math", path]) == 1
    _, err = capsys.readouterr()
    assert "IntegerOverflow" in err


def test_max_depth_flag(tmp_path, capsys):
    path = write_program(
        tmp_path,
        "let f be function n return call f n add 1 end end function\ncall f 0 end\n",
    )
    assert main(["--max-depth", "20", path]) == 1
    _, err = capsys.readouterr()
    assert "maximum call depth 20 exceeded" in err


def test_ast_flag_prints_canonical_source(tmp_path, capsys):
    path = write_program(tmp_path, "let x be list 1 2 end\nprint x greater than 1\n")
    assert main(["--ast", path]) == 0
    out, _ = capsys.readouterr()
    assert out == "let x be list(1, 2)\nprint x greater 1\n"


def test_tokens_flag(tmp_path, capsys):
    path = write_program(tmp_path, "print 1\n")
    assert main(["--tokens", path]) == 0
    out, _ = capsys.readouterr()
    assert out.split("\n")[:3] == [
        "1:1\tprint\t'print'",
        "1:7\tINT\t'1'",
        "2:1\tEOF\t''",
    ]


def test_verbose_enables_debug_logging(tmp_path, capsys, monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))
    path = write_program(tmp_path, "print 1\n")
    assert main(["--verbose", path]) == 0
    assert calls and calls[0]["level"] == logging.DEBUG


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.wl")]) == 1
    _, err = capsys.readouterr()
    assert "No such file or directory" in err


@pytest.mark.parametrize(
    "argv,message",
    [
        (["--bogus"], "unknown flag '--bogus'"),
        (["a.wl", "b.wl"], "unexpected argument 'b.wl'"),
        (["--max-depth"], "--max-depth requires a value"),
        (["--max-depth", "zero", "a.wl"], "invalid --max-depth 'zero'"),
        (["--ast"], "missing file argument"),
    ],
)
def test_usage_errors(argv, message, capsys):
    assert main(argv) == 2
    _, err = capsys.readouterr()
    assert message in err


def test_help(capsys):
    assert main(["--help"]) == 0
    out, _ = capsys.readouterr()
    assert out.startswith("wordlang [OPTIONS] [FILE]")


def test_repl_keeps_bindings(capsys, monkeypatch):
    session = "let x be 20\nprint x add 1\n:env\n:q\n"
    monkeypatch.setattr("sys.stdin", io.StringIO(session))
    assert main(["--repl"]) == 0
    out, _ = capsys.readouterr()
    assert ">> 20\n" in out
    assert ">> 21\n" in out
    assert "x = 20\n" in out


def test_repl_continues_multiline_input(capsys, monkeypatch):
    session = "if true then\nprint \"inside\"\nendif\n"
    monkeypatch.setattr("sys.stdin", io.StringIO(session))
    assert main(["--repl"]) == 0
    out, _ = capsys.readouterr()
    assert ".. .. inside\n" in out


def test_repl_reports_errors_and_continues(capsys, monkeypatch):
    session = "print missing\nlet 5\nprint \"still here\"\n"
    monkeypatch.setattr("sys.stdin", io.StringIO(session))
    assert main(["--repl"]) == 0
    out, _ = capsys.readouterr()
    assert "ERROR: UnknownIdentifier: identifier not found: missing\n" in out
    assert "parse error: expected identifier, got number 5 at 1:5\n" in out
    assert "still here\n" in out


def test_repl_exit_statement(capsys, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("exit 5\nprint 1\n"))
    assert main(["--repl"]) == 5


def test_deeply_nested_program_is_a_parse_error(tmp_path, capsys):
    path = write_program(tmp_path, "print " + "not " * 5000 + "true\n")
    assert main([path]) == 1
    _, err = capsys.readouterr()
    assert "wordlang: parse error: expression nested too deeply" in err
