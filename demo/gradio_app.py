"""chip8-vm Interactive Demo.

A Gradio web interface for running and inspecting CHIP-8 programs.

Usage:
    cd /path/to/chip8-vm
    python demo/gradio_app.py

Features:
    - Upload a ROM or type a program as hex words
    - Run a fixed number of cycles unthrottled
    - Hold keys on the 16-key keypad
    - See the display, the register file and the execution trace
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
import numpy as np

from chip8_vm import Chip8Config, Chip8VM, ExecutionFault
from chip8_vm.peripherals import StaticKeypad
from chip8_vm.rom import hexdump


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Add registers": """00E0  ; CLS
600A  ; LD V0, 0x0A
6105  ; LD V1, 0x05
8014  ; ADD V0, V1 -> V0 = 15""",

    "Draw and erase": """00E0  ; CLS
A20C  ; LD I, 0x20C
6010  ; LD V0, 16
6108  ; LD V1, 8
D014  ; DRW V0, V1, 4
D014  ; DRW V0, V1, 4 -> erased, VF = 1
F0F0  ; sprite data
F0F0""",

    "BCD": """60FE  ; LD V0, 254
A300  ; LD I, 0x300
F033  ; LD B, V0
F265  ; LD V2, [I] -> V0=2 V1=5 V2=4""",

    "Wait for key": """F00A  ; LD V0, K
6101  ; LD V1, 1""",

    "Custom": ""
}

SCALE = 8


# =============================================================================
# Execution Functions
# =============================================================================

def parse_hex_program(source: str) -> bytes:
    """Turn whitespace-separated hex words into a program image.

    Everything after ';' or '#' on a line is a comment.
    """
    data = bytearray()
    for line in source.splitlines():
        line = line.split(";")[0].split("#")[0]
        for token in line.split():
            token = token.upper().removeprefix("0X")
            if len(token) % 2:
                raise ValueError(f"Odd-length hex token: {token}")
            data.extend(bytes.fromhex(token))
    return bytes(data)


def render_image(rows) -> np.ndarray:
    """Scale the display rows up into an RGB image array."""
    bits = np.array(
        [[(row >> (63 - x)) & 1 for x in range(64)] for row in rows],
        dtype=np.uint8,
    )
    pixels = np.kron(bits, np.ones((SCALE, SCALE), dtype=np.uint8)) * 255
    return np.stack([pixels] * 3, axis=-1)


def run_program(program: str, rom_file, held_keys, cycles: int) -> tuple:
    """Execute a program and return results.

    Args:
        program: Hex source (ignored when a ROM is uploaded)
        rom_file: Uploaded ROM path or None
        held_keys: Key labels ("0"-"F") held for the whole run
        cycles: Number of cycles to execute

    Returns:
        Tuple of (display_image, summary_text, trace_text, registers_text)
    """
    blank = render_image([0] * 32)
    try:
        if rom_file:
            image = Path(rom_file).read_bytes()
        else:
            image = parse_hex_program(program)
    except (OSError, ValueError) as e:
        return blank, f"Error: {e}", "", ""

    if not image:
        return blank, "Error: No program provided", "", ""

    keypad = StaticKeypad(int(k, 16) for k in held_keys or [])
    vm = Chip8VM(config=Chip8Config(hz=0, trace_limit=200), keypad=keypad)
    vm.load_program(image)

    error_msg = None
    try:
        vm.run(max_cycles=int(cycles))
    except ExecutionFault as e:
        error_msg = str(e)

    # Format summary
    summary = vm.get_summary()
    summary_lines = [
        "EXECUTION SUMMARY",
        "=" * 40,
        f"Program: {len(image)} bytes",
        f"Status: {summary['status']}",
        f"Cycles: {summary['cycles']}",
        f"Lit pixels: {summary['lit_pixels']}",
    ]
    if error_msg:
        summary_lines.append(f"\nRuntime: {error_msg}")
    summary_lines.append("\nHEXDUMP")
    summary_lines.append(hexdump(image))
    summary_text = "\n".join(summary_lines)

    # Format trace
    trace = vm.get_trace()
    trace_lines = [
        "EXECUTION TRACE",
        "=" * 60,
    ]
    for entry in trace[:100]:
        trace_lines.append(f"\n--- Cycle {entry.cycle} (PC=0x{entry.pc:03X}) ---")
        trace_lines.append(f"Instruction: {entry.mnemonic}")
        trace_lines.append(f"Decoded Key: {entry.key}")

        # Show register changes
        pre_regs = entry.pre_state['registers']
        post_regs = entry.post_state['registers']
        changes = []
        for reg in sorted(pre_regs.keys()):
            if pre_regs[reg] != post_regs[reg]:
                changes.append(f"{reg}: {pre_regs[reg]} -> {post_regs[reg]}")
        if changes:
            trace_lines.append(f"Changes:     {', '.join(changes)}")
        if entry.error:
            trace_lines.append(f"Error:       {entry.error}")

    if len(trace) > 100:
        trace_lines.append(f"\n... ({len(trace) - 100} more entries)")

    trace_text = "\n".join(trace_lines)

    # Format registers
    regs = vm.dump_registers()
    reg_lines = [
        "REGISTERS",
        "=" * 30,
    ]
    for reg in sorted(regs.keys()):
        marker = " *" if regs[reg] != 0 else ""
        reg_lines.append(f"  {reg}: 0x{regs[reg]:02X} ({regs[reg]:>3}){marker}")

    reg_lines.append("")
    reg_lines.append("SPECIAL")
    reg_lines.append("-" * 30)
    reg_lines.append(f"  I:  0x{summary['i']:03X}")
    reg_lines.append(f"  PC: 0x{summary['pc']:03X}")
    reg_lines.append(f"  DT: {summary['delay_timer']}")
    reg_lines.append(f"  ST: {summary['sound_timer']}")

    registers_text = "\n".join(reg_lines)

    return render_image(vm.get_display()), summary_text, trace_text, registers_text


def load_example(example_name: str) -> str:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="chip8-vm Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # chip8-vm: CHIP-8 Virtual Machine

        Load a program image, run it for a number of cycles and inspect the
        64x32 display, the register file and the per-cycle trace.

        **Pipeline**: `fetch -> decode -> key -> registry -> execute -> state`
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Add registers",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Add registers"],
                    label="Hex Words",
                    lines=12,
                    placeholder="00E0 600A ..."
                )

                rom_upload = gr.File(label="...or upload a ROM", type="filepath")

                gr.Markdown("### Settings")

                held_keys = gr.CheckboxGroup(
                    choices=[f"{k:X}" for k in range(16)],
                    label="Held keys"
                )
                cycles = gr.Slider(
                    minimum=1,
                    maximum=10000,
                    value=100,
                    step=1,
                    label="Cycles"
                )

                run_button = gr.Button("Run Program", variant="primary")

            with gr.Column(scale=3):
                display_output = gr.Image(label="Display", type="numpy")
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=10,
                        interactive=False
                    )
                    registers_output = gr.Textbox(
                        label="Registers",
                        lines=10,
                        interactive=False
                    )

                trace_output = gr.Textbox(
                    label="Execution Trace",
                    lines=20,
                    interactive=False
                )

        with gr.Accordion("Instruction Set", open=False):
            gr.Markdown("""
            | Opcode | Description |
            |--------|-------------|
            | `00E0` | Clear display |
            | `00EE` | Return from subroutine |
            | `1NNN` / `2NNN` / `BNNN` | Jump / call / jump to V0+NNN |
            | `3XNN` / `4XNN` / `5XY0` / `9XY0` | Skip if equal / not equal |
            | `6XNN` / `7XNN` | Load / add immediate |
            | `8XY0`-`8XYE` | Register ALU (VF = carry, borrow, shifted bit) |
            | `ANNN` | I := NNN |
            | `DXYN` | Draw N-row sprite at (VX, VY), VF = collision |
            | `EX9E` / `EXA1` | Skip if key VX held / released |
            | `FX07` `FX15` `FX18` | Delay timer read / write, sound timer write |
            | `FX0A` | Wait for key |
            | `FX1E` `FX33` `FX55` `FX65` | I += VX, BCD, register store / load |
            """)

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input]
        )

        run_button.click(
            fn=run_program,
            inputs=[program_input, rom_upload, held_keys, cycles],
            outputs=[display_output, summary_output, trace_output, registers_output]
        )

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
