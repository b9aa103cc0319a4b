"""E20 simulator command line interface.

Usage:
    e20sim programs/sum_10.bin
    e20sim --trace --max-cycles 1000 programs/sum_10.bin
"""

import argparse
import logging
import sys
from typing import List, Optional

from .cpu import E20CPU
from .loader import MachineCodeError, load_machine_code_file
from .report import print_state
from .state import MEM_SIZE


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="e20sim",
        description="Simulates the execution of E20 machine code.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a program image and print the final state
    e20sim programs/sum_10.bin

    # Show every executed instruction on stderr
    e20sim --trace programs/sum_10.bin

    # Give up after 100000 instructions
    e20sim --max-cycles 100000 programs/sum_10.bin
        """
    )

    parser.add_argument(
        "filename",
        help="The file containing machine code, typically with .bin suffix"
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=E20CPU.DEFAULT_MAX_CYCLES,
        help="Stop with an error after this many instructions. Default: no limit"
    )
    parser.add_argument(
        "--mem-quantity",
        type=int,
        default=E20CPU.DEFAULT_MEM_QUANTITY,
        help=f"Number of memory cells to print. Default: {E20CPU.DEFAULT_MEM_QUANTITY}"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print each executed instruction to stderr"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.max_cycles is not None and args.max_cycles < 1:
        parser.error("--max-cycles must be positive")
    if not 0 <= args.mem_quantity <= MEM_SIZE:
        parser.error(f"--mem-quantity must be between 0 and {MEM_SIZE}")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        image = load_machine_code_file(args.filename)
    except OSError as e:
        print(f"Error: Cannot open file {args.filename}: {e.strerror}", file=sys.stderr)
        return 1
    except MachineCodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    cpu = E20CPU(max_cycles=args.max_cycles, trace=args.trace)
    cpu.load_image(image)
    logger.debug("Loaded %s", args.filename)

    try:
        cpu.run()
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if args.trace:
            for entry in cpu.trace:
                print(
                    f"[{entry.cycle:>6}] pc={entry.pc:>5} {entry.word:04x}  "
                    f"{entry.decode_result.mnemonic()}",
                    file=sys.stderr
                )

    print_state(cpu.state, args.mem_quantity)
    return 0


if __name__ == "__main__":
    sys.exit(main())
