#!/usr/bin/env python3
"""chip8-vm Command Line Interface.

Run CHIP-8 program images with the chip8-vm interpreter.

Usage:
    python main.py roms/ibm.ch8
    python main.py roms/ibm.ch8 --hz 700 --timer-hz 60
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from chip8_vm.cli import main


if __name__ == "__main__":
    sys.exit(main())
