"""Reader for the `.tests` case files shared by the parser and runtime suites."""

from pathlib import Path


def read_cases(path: Path) -> list[tuple[str, str, str]]:
    """Split a .tests file into (name, input, expected) tuples.

    Each case is '=== name', input lines, '---', expected lines, '---'.
    """
    lines = path.read_text().split("\n")
    cases: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        if not lines[i].startswith("=== "):
            i += 1
            continue
        name = lines[i][4:].strip()
        i += 1
        sections: list[list[str]] = [[], []]
        for section in sections:
            while i < len(lines) and not lines[i].startswith("---"):
                section.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
        cases.append((name, "\n".join(sections[0]), "\n".join(sections[1]).strip()))
    return cases


def collect_cases(case_dir: Path) -> list[tuple[str, str, str]]:
    """Read every *.tests file in case_dir; ids are '<file stem>/<case name>'."""
    found = []
    for case_file in sorted(case_dir.glob("*.tests")):
        for name, source, expected in read_cases(case_file):
            found.append((f"{case_file.stem}/{name}", source, expected))
    return found
