"""E20Sim: Instruction-level simulator for the E20 teaching architecture.

The E20 is a 16-bit machine with eight registers ($0 hardwired to zero),
8192 words of uniform code/data memory and eight instruction families.
A program runs until it jumps to itself, which is the architecture's
halt idiom.

Architecture:
    MEMORY -> FETCH -> DECODE -> KEY -> REGISTRY -> EXECUTE -> STATE
               |         |        |        |           |
           [pc mod 8K] [fields] [OP_*] [Verified]  [Immutable]
                                       Primitives   Snapshots

Modules:
    state: MachineState dataclass and architectural constants
    decoder: Bit-field decoding into registry keys
    registry: Verified instruction primitives (OP_ADD, OP_LW, etc.)
    cpu: step/run engine and the E20CPU orchestrator
    loader: ram[N] = 16'b... program image parser
    report: Final-state text output
    cli: Command line entry point
"""

__version__ = "0.1.0"
__author__ = "E20Sim Project"

from .state import MachineState, create_initial_state
from .decoder import Decoder, DecodeResult, Opcode, AluFunc, extract_bits, sign_extend7
from .registry import Registry
from .cpu import E20CPU, StepResult, step, run
from .loader import MachineCodeError, load_machine_code, load_machine_code_file
from .report import format_state, print_state

__all__ = [
    "MachineState",
    "create_initial_state",
    "Decoder",
    "DecodeResult",
    "Opcode",
    "AluFunc",
    "extract_bits",
    "sign_extend7",
    "Registry",
    "E20CPU",
    "StepResult",
    "step",
    "run",
    "MachineCodeError",
    "load_machine_code",
    "load_machine_code_file",
    "format_state",
    "print_state",
]
