"""chip8-vm command line interface.

Run a CHIP-8 program image in the terminal.

Usage:
    chip8-vm roms/ibm.ch8
    chip8-vm roms/ibm.ch8 --hz 500 --no-wait
    chip8-vm roms/test.ch8 --no-render --max-cycles 200 --trace
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import DEFAULT_HZ, Chip8Config
from .cpu import Chip8VM
from .errors import ExecutionFault
from .peripherals import NullRenderer, TerminalRenderer
from .rom import hexdump, read_rom


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8-vm",
        description="chip8-vm: CHIP-8 virtual machine interpreter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a ROM at the default 60 cycles per second
    chip8-vm roms/ibm.ch8

    # Run faster, with timers still ticking at 60 Hz
    chip8-vm roms/ibm.ch8 --hz 700 --timer-hz 60

    # Headless: execute 100 cycles and print the trace
    chip8-vm roms/ibm.ch8 --no-render --no-wait --max-cycles 100 --trace
        """
    )

    parser.add_argument(
        "rom",
        type=str,
        help="Path to the CHIP-8 program image"
    )
    parser.add_argument(
        "--hz",
        type=float,
        default=DEFAULT_HZ,
        help=f"Instruction cycles per second, 0 for unthrottled. Default: {DEFAULT_HZ}"
    )
    parser.add_argument(
        "--timer-hz",
        type=float,
        default=None,
        help="Clock the delay/sound timers independently at this rate. "
             "Default: tick once per instruction cycle"
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=None,
        help="Stop after this many cycles. Default: run until halted"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat unknown opcodes as fatal instead of no-ops"
    )
    parser.add_argument(
        "--hexdump",
        action="store_true",
        help="Print a hexdump of the program before running"
    )
    parser.add_argument(
        "--no-render",
        action="store_true",
        help="Do not draw the display in the terminal"
    )
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Start immediately instead of waiting for Enter"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print the execution trace when the run ends"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output (non-zero registers only)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=verbose,
        )],
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = Chip8Config(
            hz=args.hz,
            timer_hz=args.timer_hz,
            strict_decode=args.strict,
            max_cycles=args.max_cycles,
        ).validate()
    except ValueError as e:
        parser.error(str(e))

    rom_path = Path(args.rom)
    if not rom_path.is_file():
        print(f"Error: ROM file not found: {args.rom}")
        return 1

    program = read_rom(rom_path)
    if not args.quiet:
        print(f"rom size: {len(program)} bytes")
    if args.hexdump:
        print(hexdump(program))
        print()

    renderer = NullRenderer() if args.no_render else TerminalRenderer()
    vm = Chip8VM(config=config, renderer=renderer)
    vm.load_program(program)

    if not args.no_wait:
        input("Press Enter to start interpreting...")
    if not args.no_render:
        # Clear once; each frame then redraws from the home position
        sys.stdout.write("\x1b[2J")

    exit_code = 0
    try:
        vm.run()
    except ExecutionFault as e:
        print(f"Execution error: {e}")
        exit_code = 1
    except KeyboardInterrupt:
        vm.stop()
        print("\nInterrupted")

    if args.trace:
        vm.print_trace()
    elif not args.quiet:
        print()
        summary = vm.get_summary()
        print(f"Status: {summary['status']}")
        print(f"Cycles: {summary['cycles']}")
        print(f"PC: 0x{summary['pc']:03X}  I: 0x{summary['i']:03X}")
        print(f"Registers: {summary['registers']}")
        if summary['errors']:
            print(f"Errors: {summary['errors']}")
    else:
        regs = vm.dump_registers()
        for reg in sorted(regs.keys()):
            if regs[reg] != 0:
                print(f"{reg}={regs[reg]}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
