"""Tests for the command line interface."""

import re
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from e20sim.cli import build_parser, main


PROGRAMS_DIR = Path(__file__).parent.parent / "programs"


class TestCli:
    """Run main() against program images."""

    def test_runs_program(self, capsys):
        assert main([str(PROGRAMS_DIR / "sum_10.bin")]) == 0

        out = capsys.readouterr().out
        lines = out.splitlines()
        assert lines[0] == "Final state:"
        assert lines[1] == "\tpc=    6"
        assert lines[3] == "\t$1=   55"
        assert lines[10].startswith("210a 0510 297f c801 4001 a0a0 4006 0000")
        # mem[32] is the first cell of the fifth memory row
        assert lines[14].startswith("0037 ")

    def test_mem_quantity(self, capsys):
        main(["--mem-quantity", "8", str(PROGRAMS_DIR / "subroutine.bin")])
        out = capsys.readouterr().out
        lines = out.splitlines()
        assert len(lines) == 12
        assert lines[-1] == ""
        assert out.endswith(" \n\n")

    def test_trace_goes_to_stderr(self, capsys):
        main(["--trace", str(PROGRAMS_DIR / "subroutine.bin")])
        captured = capsys.readouterr()
        assert "jal 4" in captured.err
        assert "jr $7" in captured.err
        assert "jal" not in captured.out

    def test_missing_file(self, capsys, tmp_path):
        assert main([str(tmp_path / "nope.bin")]) == 1
        assert "Cannot open file" in capsys.readouterr().err

    def test_malformed_file(self, capsys, tmp_path):
        path = tmp_path / "bad.bin"
        path.write_text("ram[0] = 16'b0;\nram[5] = 16'b0;\n")
        assert main([str(path)]) == 1
        assert "out of sequence" in capsys.readouterr().err

    def test_max_cycles_exceeded(self, capsys, tmp_path):
        path = tmp_path / "spin.bin"
        path.write_text("ram[0] = 16'b0100000000000001;\nram[1] = 16'b0100000000000000;\n")
        assert main(["--max-cycles", "50", str(path)]) == 1
        assert "Max cycles (50) exceeded" in capsys.readouterr().err

    def test_bad_mem_quantity(self):
        with pytest.raises(SystemExit):
            main(["--mem-quantity", "9000", str(PROGRAMS_DIR / "sum_10.bin")])

    def test_requires_filename(self):
        with pytest.raises(SystemExit):
            main([])

    def test_help_examples_name_shipped_programs(self):
        """Every image path in the usage examples exists."""
        names = re.findall(r"programs/(\S+\.bin)", build_parser().epilog)
        assert names
        for name in names:
            assert (PROGRAMS_DIR / name).exists()
