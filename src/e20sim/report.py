"""Final-state reporting in the reference simulator's text format."""

import sys
from typing import List, Optional, TextIO

from .state import MachineState


def format_state(state: MachineState, mem_quantity: int = 128) -> str:
    """Render pc, registers and the first ``mem_quantity`` memory cells.

    Memory is printed as 4-digit lowercase hex, each cell followed by a
    space, eight cells per line. The output always ends with one extra
    newline, so a memory block that fills its last row is followed by a
    blank line.
    """
    lines: List[str] = ["Final state:", "\tpc=" + format(state.pc, "5d")]
    for reg, value in enumerate(state.registers):
        lines.append(f"\t${reg}=" + format(value, "5d"))

    row = ""
    for count in range(mem_quantity):
        row += format(state.memory[count], "04x") + " "
        if count % 8 == 7:
            lines.append(row)
            row = ""
    # Empty when the last row was full
    lines.append(row)

    return "\n".join(lines) + "\n"


def print_state(state: MachineState, mem_quantity: int = 128,
                stream: Optional[TextIO] = None) -> None:
    """Write ``format_state`` output to ``stream`` (stdout by default)."""
    (stream or sys.stdout).write(format_state(state, mem_quantity))
