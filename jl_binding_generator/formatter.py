"""
Post-formatting of generated files
"""

import re
import subprocess
from pathlib import Path


_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize(text: str) -> str:
    """House style: no trailing whitespace, at most one blank line in a row,
    exactly one newline at the end of the file"""
    lines = [line.rstrip() for line in text.splitlines()]
    text = "\n".join(lines).strip("\n")
    return _BLANK_RUNS.sub("\n\n", text) + "\n"


def format_file(path, command=()) -> None:
    """Format a generated file in place

    With a command (e.g. a JuliaFormatter invocation) the file path is
    appended to it and the command is run; a failing formatter raises
    CalledProcessError. Without one the built-in normalization is applied.
    """
    path = Path(path)
    if command:
        subprocess.run([*command, str(path)], check=True)
        return
    path.write_text(normalize(path.read_text()))
