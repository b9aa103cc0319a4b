"""MachineState: Architectural state representation for the E20 simulator.

This module defines the core state structure for the simulator,
following functional programming principles for auditability and tracing.

State Components:
    - Registers: $0-$7 (8 unsigned 16-bit values, $0 hardwired to zero)
    - PC: Program counter (indexes memory modulo MEM_SIZE)
    - Memory: 8192 unsigned 16-bit cells holding code and data alike
    - Halted: Whether the last step hit the self-loop halt idiom
    - Cycle count: Total retired instructions

All state mutations return new state objects. Registers are copied on
every update; memory is shared between states until a store copies it.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Union


NUM_REGS = 8
MEM_SIZE = 1 << 13
REG_SIZE = 1 << 16

ADDR_MASK = MEM_SIZE - 1
WORD_MASK = REG_SIZE - 1


@dataclass
class MachineState:
    """Immutable E20 architectural state.

    Attributes:
        registers: List of 8 unsigned 16-bit register values
        pc: Program counter
        memory: List of MEM_SIZE unsigned 16-bit words
        halted: Whether the machine reached the halt idiom
        cycle_count: Number of instructions executed
    """
    registers: List[int] = field(default_factory=lambda: [0] * NUM_REGS)
    pc: int = 0
    memory: List[int] = field(default_factory=lambda: [0] * MEM_SIZE)
    halted: bool = False
    cycle_count: int = 0

    def snapshot(self) -> dict:
        """Create a snapshot of current state for tracing.

        Returns:
            Dictionary containing copies of registers, pc, halted and cycle count
        """
        return {
            "registers": list(self.registers),
            "pc": self.pc,
            "halted": self.halted,
            "cycle_count": self.cycle_count,
            # Memory excluded from snapshot; see MachineState.memory_prefix
        }

    def validate(self) -> bool:
        """Validate state integrity.

        Checks:
            - Exactly NUM_REGS registers, each an unsigned 16-bit int
            - $0 reads as zero
            - Memory holds MEM_SIZE unsigned 16-bit words
            - PC and cycle count are non-negative

        Returns:
            True if state is valid, False otherwise
        """
        if len(self.registers) != NUM_REGS:
            return False
        for value in self.registers:
            if not isinstance(value, int) or not 0 <= value <= WORD_MASK:
                return False
        if self.registers[0] != 0:
            return False

        if len(self.memory) != MEM_SIZE:
            return False
        for word in self.memory:
            if not isinstance(word, int) or not 0 <= word <= WORD_MASK:
                return False

        if self.pc < 0:
            return False
        if self.cycle_count < 0:
            return False

        return True

    def get_register(self, reg: int) -> int:
        """Get value of a register.

        Args:
            reg: Register index (0-7)

        Returns:
            Register value

        Raises:
            KeyError: If register doesn't exist
        """
        if not 0 <= reg < NUM_REGS:
            raise KeyError(f"Invalid register: ${reg}")
        return self.registers[reg]

    def set_register(self, reg: int, value: int) -> "MachineState":
        """Create new state with updated register value.

        The value is reduced modulo REG_SIZE. Writes to $0 are kept here and
        cleared by ``zero_register`` once the instruction has retired.

        Raises:
            KeyError: If register doesn't exist
        """
        if not 0 <= reg < NUM_REGS:
            raise KeyError(f"Invalid register: ${reg}")

        new_registers = list(self.registers)
        new_registers[reg] = value & WORD_MASK

        return MachineState(
            registers=new_registers,
            pc=self.pc,
            memory=self.memory,  # Shared reference
            halted=self.halted,
            cycle_count=self.cycle_count
        )

    def load_word(self, addr: int) -> int:
        """Read the memory cell at ``addr`` modulo MEM_SIZE."""
        return self.memory[addr & ADDR_MASK]

    def store_word(self, addr: int, value: int) -> "MachineState":
        """Create new state with one memory cell replaced.

        Args:
            addr: Target address (reduced modulo MEM_SIZE)
            value: Word to store (reduced modulo REG_SIZE)

        Returns:
            New MachineState with its own copy of memory
        """
        new_memory = list(self.memory)
        new_memory[addr & ADDR_MASK] = value & WORD_MASK

        return MachineState(
            registers=list(self.registers),
            pc=self.pc,
            memory=new_memory,
            halted=self.halted,
            cycle_count=self.cycle_count
        )

    def zero_register(self) -> "MachineState":
        """Create new state with $0 forced back to zero."""
        if self.registers[0] == 0:
            return self
        return self.set_register(0, 0)

    def set_pc(self, new_pc: int) -> "MachineState":
        """Create new state with new PC value.

        Args:
            new_pc: New program counter value

        Returns:
            New MachineState with updated PC
        """
        return MachineState(
            registers=list(self.registers),
            pc=new_pc,
            memory=self.memory,
            halted=self.halted,
            cycle_count=self.cycle_count
        )

    def set_halted(self, halted: bool = True) -> "MachineState":
        """Create new state with halted flag set.

        Args:
            halted: Halted state (default True)

        Returns:
            New MachineState with halted flag
        """
        return MachineState(
            registers=list(self.registers),
            pc=self.pc,
            memory=self.memory,
            halted=halted,
            cycle_count=self.cycle_count
        )

    def increment_cycle(self) -> "MachineState":
        """Create new state with cycle count incremented."""
        return MachineState(
            registers=list(self.registers),
            pc=self.pc,
            memory=self.memory,
            halted=self.halted,
            cycle_count=self.cycle_count + 1
        )

    def dump_registers(self) -> Dict[str, int]:
        """Get a copy of all register values keyed by name ($0-$7)."""
        return {f"${i}": value for i, value in enumerate(self.registers)}

    def memory_prefix(self, quantity: int) -> List[int]:
        """Return a copy of the first ``quantity`` memory cells."""
        return list(self.memory[:quantity])

    def __str__(self) -> str:
        """Human-readable state representation."""
        regs = " ".join(f"${i}={v}" for i, v in enumerate(self.registers))
        return f"[Cycle {self.cycle_count}] PC={self.pc} {regs} {'HALTED' if self.halted else ''}"


def create_initial_state(image: Union[Sequence[int], Mapping[int, int]]) -> MachineState:
    """Create initial machine state with a loaded memory image.

    Args:
        image: Either a sequence of words for addresses 0..K-1, or a mapping
            from address to word. Unlisted cells are zero.

    Returns:
        Fresh MachineState with the image in memory

    Raises:
        ValueError: If the image does not fit in memory
    """
    memory = [0] * MEM_SIZE

    if isinstance(image, Mapping):
        items = image.items()
    else:
        if len(image) > MEM_SIZE:
            raise ValueError("Program too big for memory")
        items = enumerate(image)

    for addr, word in items:
        if not 0 <= addr < MEM_SIZE:
            raise ValueError(f"Address out of range: {addr}")
        memory[addr] = word & WORD_MASK

    return MachineState(
        registers=[0] * NUM_REGS,
        pc=0,
        memory=memory,
        halted=False,
        cycle_count=0
    )
