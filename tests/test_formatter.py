"""
Tests for post-formatting of generated files
"""

import subprocess
import sys

import pytest

from jl_binding_generator.formatter import format_file, normalize


class TestFormatter:
    """Test the built-in normalization and external formatter hook"""

    def test_normalize(self):
        text = "\n\nconst A = 1   \n\n\n\nconst B = 2\n\n\n"

        assert normalize(text) == "const A = 1\n\nconst B = 2\n"

    def test_format_file_in_place(self, tmp_path):
        path = tmp_path / "out.jl"
        path.write_text("const A = 1  \n\n\n\n")

        format_file(path)

        assert path.read_text() == "const A = 1\n"

    def test_external_command(self, tmp_path):
        path = tmp_path / "out.jl"
        path.write_text("const A = 1\n")
        script = "import sys; p = sys.argv[1]; open(p, 'a').write('# formatted\\n')"

        format_file(path, (sys.executable, "-c", script))

        assert path.read_text() == "const A = 1\n# formatted\n"

    def test_failing_command_raises(self, tmp_path):
        path = tmp_path / "out.jl"
        path.write_text("const A = 1\n")

        with pytest.raises(subprocess.CalledProcessError):
            format_file(path, (sys.executable, "-c", "raise SystemExit(3)"))
