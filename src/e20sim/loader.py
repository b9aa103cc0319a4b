"""Machine-code loader for E20 program images.

A program image is a text file with one memory cell per line::

    ram[0] = 16'b0010000010000101;    // addi $1, $0, 5
    ram[1] = 16'b0100000000000001;    // j 1

Addresses must start at zero and increase by one on every line. Anything
after the semicolon is ignored.
"""

import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .state import MEM_SIZE, WORD_MASK


MACHINE_CODE_RE = re.compile(r"^ram\[(\d+)\] = 16'b(\d+);.*$")


class MachineCodeError(ValueError):
    """Raised when a program image cannot be loaded.

    Attributes:
        line_number: 1-based line number of the offending line
    """

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


def load_machine_code(lines: Iterable[str], memory: Optional[List[int]] = None) -> List[int]:
    """Parse machine-code lines into a memory image.

    Args:
        lines: Lines of the program image (trailing newlines are fine)
        memory: Optional list to fill in place; a zeroed MEM_SIZE list is
            created when omitted

    Returns:
        The memory list

    Raises:
        MachineCodeError: On a malformed line, an out-of-sequence address,
            or a program that does not fit in memory
    """
    if memory is None:
        memory = [0] * MEM_SIZE

    expected_addr = 0
    for line_number, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        match = MACHINE_CODE_RE.match(line)
        if not match:
            raise MachineCodeError(f"Can't parse line: {line}", line_number)

        addr = int(match.group(1), 10)
        try:
            word = int(match.group(2), 2)
        except ValueError:
            raise MachineCodeError(f"Invalid binary literal: {match.group(2)}", line_number)

        if addr != expected_addr:
            raise MachineCodeError(f"Memory addresses encountered out of sequence: {addr}", line_number)
        if addr >= len(memory):
            raise MachineCodeError("Program too big for memory", line_number)
        if word > WORD_MASK:
            raise MachineCodeError(f"Word wider than 16 bits: {match.group(2)}", line_number)

        memory[addr] = word
        expected_addr += 1

    return memory


def load_machine_code_file(path: Union[str, Path]) -> List[int]:
    """Load a program image from a ``.bin`` file.

    Raises:
        OSError: If the file cannot be read
        MachineCodeError: If the contents are malformed
    """
    with open(path) as f:
        return load_machine_code(f)
