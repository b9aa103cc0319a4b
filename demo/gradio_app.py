"""E20Sim Interactive Demo.

A Gradio web interface for running and inspecting E20 programs.

Usage:
    cd /path/to/e20sim
    python demo/gradio_app.py

Features:
    - Paste or pick an example ram[N] = 16'b...; program image
    - Run to the halt idiom with a cycle ceiling
    - See the step-by-step disassembled trace
    - Inspect final pc, registers and the first 128 memory cells
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from e20sim import E20CPU, MachineCodeError, format_state


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Sum 10..1": """ram[0] = 16'b0010000100001010;		// movi $2,10
ram[1] = 16'b0000010100010000;		// loop: add $1,$1,$2
ram[2] = 16'b0010100101111111;		// addi $2,$2,-1
ram[3] = 16'b1100100000000001;		// jeq $2,$0,done
ram[4] = 16'b0100000000000001;		// j loop
ram[5] = 16'b1010000010100000;		// done: sw $1,32($0)
ram[6] = 16'b0100000000000110;		// halt""",

    "Subroutine": """ram[0] = 16'b0010000010000011;		// movi $1,3
ram[1] = 16'b0110000000000100;		// jal double
ram[2] = 16'b1010000010010000;		// sw $1,16($0)
ram[3] = 16'b0100000000000011;		// halt
ram[4] = 16'b0000010010010000;		// double: add $1,$1,$1
ram[5] = 16'b0001110000001000;		// jr $7""",

    "Store/Load": """ram[0] = 16'b0010000010000111;		// movi $1,7
ram[1] = 16'b1010000010000000;		// sw $1,0($0)
ram[2] = 16'b1000000100000000;		// lw $2,0($0)
ram[3] = 16'b0100000000000011;		// halt""",

    "Custom": ""
}

TRACE_LIMIT = 200


# =============================================================================
# Execution Functions
# =============================================================================

def run_program(program: str, max_cycles: int) -> tuple:
    """Execute a program image and return results.

    Args:
        program: Machine code, one ram[N] = 16'b...; line per cell
        max_cycles: Maximum execution cycles

    Returns:
        Tuple of (summary_text, trace_text, state_text)
    """
    if not program.strip():
        return "Error: No program provided", "", ""

    cpu = E20CPU(max_cycles=int(max_cycles), trace=True)
    try:
        cpu.load_machine_code([line for line in program.splitlines() if line.strip()])
    except MachineCodeError as e:
        return f"Error: {e}", "", ""

    try:
        cpu.run()
    except RuntimeError as e:
        error_msg = str(e)
    else:
        error_msg = None

    # Format summary
    summary = cpu.get_summary()
    summary_lines = [
        "EXECUTION SUMMARY",
        "=" * 40,
        f"Cycles: {summary['cycles']}",
        f"Halted: {'Yes' if summary['halted'] else 'No'}",
        f"Final PC: {summary['pc']}",
    ]
    if error_msg:
        summary_lines.append(f"\nRuntime: {error_msg}")
    summary_text = "\n".join(summary_lines)

    # Format trace
    trace_lines = [
        "EXECUTION TRACE",
        "=" * 60,
    ]
    for entry in cpu.trace[:TRACE_LIMIT]:
        line = f"[{entry.cycle:>5}] pc={entry.pc:>5}  {entry.word:04x}  {entry.decode_result.mnemonic()}"

        pre_regs = entry.pre_state["registers"]
        post_regs = entry.post_state["registers"]
        changes = [
            f"${reg}: {pre_regs[reg]} -> {post_regs[reg]}"
            for reg in range(len(pre_regs))
            if pre_regs[reg] != post_regs[reg]
        ]
        if changes:
            line += f"    {', '.join(changes)}"
        trace_lines.append(line)

    if len(cpu.trace) > TRACE_LIMIT:
        trace_lines.append(f"\n... ({len(cpu.trace) - TRACE_LIMIT} more entries)")

    trace_text = "\n".join(trace_lines)

    return summary_text, trace_text, format_state(cpu.state)


def load_example(example_name: str) -> str:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="E20Sim Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # E20Sim: E20 Instruction-Level Simulator

        Runs an E20 program image until it jumps to itself, then shows the
        final architectural state.

        **Pipeline**: `fetch -> decode -> key -> registry -> state`
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program Image")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Sum 10..1",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Sum 10..1"],
                    label="Machine Code",
                    lines=15,
                    placeholder="ram[0] = 16'b0100000000000000;"
                )

                gr.Markdown("### Settings")

                max_cycles = gr.Slider(
                    minimum=100,
                    maximum=1000000,
                    value=100000,
                    step=100,
                    label="Max Cycles"
                )

                run_button = gr.Button("Run Program", variant="primary")

            with gr.Column(scale=3):
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=10,
                        interactive=False
                    )
                    state_output = gr.Textbox(
                        label="Final State",
                        lines=26,
                        interactive=False
                    )

                trace_output = gr.Textbox(
                    label="Execution Trace",
                    lines=20,
                    interactive=False
                )

        with gr.Accordion("ISA Reference", open=False):
            gr.Markdown("""
            | Opcode | Instruction | Effect |
            |--------|-------------|--------|
            | `000` | `add/sub/or/and/slt $d, $a, $b` | `$d = $a op $b` |
            | `000` | `jr $a` | `pc = $a` |
            | `001` | `addi $d, $a, imm` | `$d = $a + imm` |
            | `010` | `j imm` | `pc = imm` |
            | `011` | `jal imm` | `$7 = pc + 1; pc = imm` |
            | `100` | `lw $d, imm($a)` | `$d = mem[$a + imm]` |
            | `101` | `sw $b, imm($a)` | `mem[$a + imm] = $b` |
            | `110` | `jeq $a, $b, imm` | `if $a == $b: pc = pc + 1 + imm` |
            | `111` | `slti $d, $a, imm` | `$d = $a < imm` (unsigned) |

            **Registers**: $0-$7, 16-bit unsigned, $0 always zero
            **Memory**: 8192 words, addresses wrap
            **Halt**: any instruction that jumps to its own address
            """)

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input]
        )

        run_button.click(
            fn=run_program,
            inputs=[program_input, max_cycles],
            outputs=[summary_output, trace_output, state_output]
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
