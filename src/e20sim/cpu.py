"""E20CPU: Execution engine for the E20 simulator.

This module implements the fetch-decode-execute pipeline:
    MEMORY -> FETCH -> DECODE -> KEY -> REGISTRY -> EXECUTE -> STATE

``step`` and ``run`` are pure functions over ``MachineState``. ``E20CPU``
wraps them with loading helpers, accessors and an optional execution trace.

Halting follows the architecture's self-loop idiom: a step halts when its
next PC, reduced modulo the memory size, equals the PC it was fetched from.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Union

from .decoder import Decoder, DecodeResult
from .loader import load_machine_code
from .registry import Registry
from .state import MachineState, MEM_SIZE, ADDR_MASK, create_initial_state


logger = logging.getLogger(__name__)

_DEFAULT_DECODER = Decoder()
_DEFAULT_REGISTRY = Registry()


class StepResult(NamedTuple):
    """Outcome of a single step: the new state and whether it halted."""
    state: MachineState
    halted: bool
    decode_result: DecodeResult


def step(state: MachineState,
         registry: Optional[Registry] = None,
         decoder: Optional[Decoder] = None) -> StepResult:
    """Execute one instruction.

    Fetches ``memory[pc mod MEM_SIZE]``, decodes it, applies its semantics
    and forces $0 back to zero.

    Args:
        state: Current machine state
        registry: Primitive registry (default: shared frozen instance)
        decoder: Instruction decoder (default: shared instance)

    Returns:
        StepResult with the new state, its halted flag and the decode result
    """
    registry = registry or _DEFAULT_REGISTRY
    decoder = decoder or _DEFAULT_DECODER

    current_pc = state.pc
    word = state.load_word(current_pc)
    decode_result = decoder.decode(word)

    new_state = registry.execute(state, decode_result.key, decode_result.params)
    new_state = new_state.zero_register()

    halted = (new_state.pc % MEM_SIZE) == current_pc
    if halted:
        new_state = new_state.set_halted(True)

    logger.debug(
        "pc=%d word=%04x %s -> pc=%d",
        current_pc, word, decode_result.key, new_state.pc
    )
    return StepResult(new_state, halted, decode_result)


def run(state: MachineState, max_cycles: Optional[int] = None) -> MachineState:
    """Run until the halt idiom is reached.

    Args:
        state: Initial machine state
        max_cycles: Optional ceiling on executed instructions. None means
            no limit; a program that never self-loops then runs forever.

    Returns:
        Final machine state

    Raises:
        RuntimeError: If max_cycles is exceeded
    """
    executed = 0
    while not state.halted:
        if max_cycles is not None and executed >= max_cycles:
            raise RuntimeError(f"Max cycles ({max_cycles}) exceeded")
        state = step(state).state
        executed += 1

    logger.info("Halted at pc=%d after %d cycles", state.pc, state.cycle_count)
    return state


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Attributes:
        cycle: Cycle number (1-indexed, after execution)
        pc: Address the instruction was fetched from
        word: Raw instruction word
        decode_result: Result from the decoder
        pre_state: Snapshot before execution
        post_state: Snapshot after execution
    """
    cycle: int
    pc: int
    word: int
    decode_result: DecodeResult
    pre_state: dict
    post_state: dict

    @property
    def key(self) -> str:
        return self.decode_result.key

    @property
    def params(self) -> Dict:
        return self.decode_result.params


class E20CPU:
    """E20 simulator with an optional execution trace.

    Attributes:
        decoder: Decoder instance for instruction decode
        registry: Registry with verified primitives
        state: Current machine state
        trace: List of execution trace entries (when tracing is enabled)
        max_cycles: Maximum cycles before run() gives up (None = unbounded)
    """

    DEFAULT_MAX_CYCLES: Optional[int] = None
    DEFAULT_MEM_QUANTITY = 128

    def __init__(self, max_cycles: Optional[int] = DEFAULT_MAX_CYCLES, trace: bool = False):
        """Initialize the CPU.

        Args:
            max_cycles: Maximum cycles before run() raises
            trace: Record an ExecutionTraceEntry for every step
        """
        self.decoder = Decoder()
        self.registry = Registry()
        self.state: Optional[MachineState] = None
        self.trace: List[ExecutionTraceEntry] = []
        self.max_cycles = max_cycles
        self.tracing = trace

    def load_image(self, image: Union[Sequence[int], Mapping[int, int]]) -> None:
        """Load a memory image.

        Args:
            image: Words for addresses 0..K-1, or an address-to-word mapping
        """
        self.state = create_initial_state(image)
        self.trace = []

    def load_machine_code(self, lines: Union[str, Iterable[str]]) -> None:
        """Parse ``ram[N] = 16'b...;`` lines and load them.

        Raises:
            MachineCodeError: If the machine code is malformed
        """
        if isinstance(lines, str):
            lines = lines.splitlines()
        self.load_image(load_machine_code(lines))

    def step(self) -> StepResult:
        """Execute a single instruction.

        Returns:
            StepResult for the executed instruction

        Raises:
            RuntimeError: If no program loaded or CPU halted
        """
        if self.state is None:
            raise RuntimeError("No program loaded")

        if self.state.halted:
            raise RuntimeError("CPU is halted")

        pre_state = self.state
        result = step(pre_state, self.registry, self.decoder)
        self.state = result.state

        if self.tracing:
            self.trace.append(ExecutionTraceEntry(
                cycle=result.state.cycle_count,
                pc=pre_state.pc,
                word=result.decode_result.word,
                decode_result=result.decode_result,
                pre_state=pre_state.snapshot(),
                post_state=result.state.snapshot(),
            ))

        return result

    def run(self, max_cycles: Optional[int] = None) -> MachineState:
        """Run the CPU until it halts.

        Args:
            max_cycles: Override maximum cycles (uses instance default if None)

        Returns:
            Final machine state

        Raises:
            RuntimeError: If no program is loaded or max cycles exceeded
        """
        if self.state is None:
            raise RuntimeError("No program loaded")

        limit = max_cycles if max_cycles is not None else self.max_cycles
        start = self.state.cycle_count

        while not self.state.halted:
            if limit is not None and self.state.cycle_count - start >= limit:
                raise RuntimeError(f"Max cycles ({limit}) exceeded")
            self.step()

        logger.info("Halted at pc=%d after %d cycles", self.state.pc, self.state.cycle_count)
        return self.state

    def _require_state(self) -> MachineState:
        if self.state is None:
            raise RuntimeError("No program loaded")
        return self.state

    def get_register(self, reg: int) -> int:
        """Get value of a register ($0-$7 by index)."""
        return self._require_state().get_register(reg)

    def dump_registers(self) -> List[int]:
        """Get all register values in index order."""
        return list(self._require_state().registers)

    def get_pc(self) -> int:
        """Get current program counter."""
        return self._require_state().pc

    def get_memory(self, quantity: int = MEM_SIZE) -> List[int]:
        """Get the first ``quantity`` memory cells."""
        return self._require_state().memory_prefix(quantity)

    def read_memory(self, addr: int) -> int:
        """Read one memory cell (address reduced modulo the memory size)."""
        return self._require_state().load_word(addr & ADDR_MASK)

    def get_cycle_count(self) -> int:
        """Get number of executed cycles."""
        if self.state is None:
            return 0
        return self.state.cycle_count

    def is_halted(self) -> bool:
        """Check if CPU is halted."""
        if self.state is None:
            return True
        return self.state.halted

    def get_summary(self, mem_quantity: int = DEFAULT_MEM_QUANTITY) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "cycles": self.get_cycle_count(),
            "halted": self.is_halted(),
            "pc": self.state.pc if self.state else 0,
            "registers": self.dump_registers() if self.state else [],
            "memory": self.get_memory(mem_quantity) if self.state else [],
            "trace_length": len(self.trace),
        }
