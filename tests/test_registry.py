"""Tests for the E20 primitive registry."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from e20sim.decoder import Decoder
from e20sim.registry import Registry
from e20sim.state import MachineState


def with_registers(*values, pc=0):
    """Build a state with $0..$n set to ``values``."""
    registers = list(values) + [0] * (8 - len(values))
    return MachineState(registers=registers, pc=pc)


class TestRegistryLifecycle:
    """Test freezing and key management."""

    def test_registry_is_frozen(self):
        assert Registry().is_frozen() is True

    def test_register_after_freeze_fails(self):
        registry = Registry()
        with pytest.raises(RuntimeError, match="frozen"):
            registry.register("OP_NEW", lambda s, p: s)

    def test_keys_match_decoder(self):
        """Every key the decoder can emit has a primitive."""
        assert Registry().get_valid_keys() == Decoder.VALID_KEYS

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            Registry().execute(MachineState(), "OP_HALT", {})

    def test_execute_increments_cycle(self):
        state = Registry().execute(MachineState(), "OP_NOP", {"func": 5})
        assert state.cycle_count == 1
        assert state.pc == 1


class TestAluPrimitives:
    """Test the three-register group."""

    @pytest.fixture
    def registry(self):
        return Registry()

    def test_add_wraps(self, registry):
        """0xFFFF + 1 wraps to 0."""
        state = with_registers(0, 0xFFFF, 1)
        new_state = registry.execute(state, "OP_ADD", {"reg_a": 1, "reg_b": 2, "reg_dst": 2})
        assert new_state.registers[2] == 0
        assert new_state.pc == 1

    def test_sub_wraps(self, registry):
        state = with_registers(0, 1, 2)
        new_state = registry.execute(state, "OP_SUB", {"reg_a": 1, "reg_b": 2, "reg_dst": 3})
        assert new_state.registers[3] == 0xFFFF

    def test_or_and(self, registry):
        state = with_registers(0, 0b1100, 0b1010)
        params = {"reg_a": 1, "reg_b": 2, "reg_dst": 3}
        assert registry.execute(state, "OP_OR", params).registers[3] == 0b1110
        assert registry.execute(state, "OP_AND", params).registers[3] == 0b1000

    def test_slt_is_unsigned(self, registry):
        """0xFFFF is not less than 1 when compared unsigned."""
        state = with_registers(0, 0xFFFF, 1)
        params = {"reg_a": 1, "reg_b": 2, "reg_dst": 3}
        assert registry.execute(state, "OP_SLT", params).registers[3] == 0
        params = {"reg_a": 2, "reg_b": 1, "reg_dst": 3}
        assert registry.execute(state, "OP_SLT", params).registers[3] == 1

    def test_write_to_zero_skipped(self, registry):
        state = with_registers(0, 3, 4)
        new_state = registry.execute(state, "OP_ADD", {"reg_a": 1, "reg_b": 2, "reg_dst": 0})
        assert new_state.registers == state.registers

    def test_jr_masks_target(self, registry):
        """jr reduces the register value to a 13-bit address."""
        state = with_registers(0, 0x2005, pc=9)
        new_state = registry.execute(state, "OP_JR", {"reg_a": 1, "reg_b": 0, "reg_dst": 0})
        assert new_state.pc == 5


class TestImmediatePrimitives:
    """Test ADDI and SLTI."""

    @pytest.fixture
    def registry(self):
        return Registry()

    def test_addi(self, registry):
        new_state = registry.execute(MachineState(), "OP_ADDI", {"reg_a": 0, "reg_dst": 1, "imm": 5})
        assert new_state.registers[1] == 5

    def test_addi_negative_wraps(self, registry):
        state = with_registers(0, 0)
        new_state = registry.execute(state, "OP_ADDI", {"reg_a": 1, "reg_dst": 1, "imm": 0xFFFF})
        assert new_state.registers[1] == 0xFFFF

    def test_slti_compares_unsigned(self, registry):
        """A negative immediate is a large unsigned number."""
        state = with_registers(0, 100)
        new_state = registry.execute(state, "OP_SLTI", {"reg_a": 1, "reg_dst": 2, "imm": 0xFFC0})
        assert new_state.registers[2] == 1
        new_state = registry.execute(state, "OP_SLTI", {"reg_a": 1, "reg_dst": 2, "imm": 5})
        assert new_state.registers[2] == 0


class TestMemoryPrimitives:
    """Test LW and SW."""

    @pytest.fixture
    def registry(self):
        return Registry()

    def test_sw_then_lw(self, registry):
        state = with_registers(0, 0x1234, 10)
        state = registry.execute(state, "OP_SW", {"reg_a": 2, "reg_b": 1, "imm": 3})
        assert state.memory[13] == 0x1234
        state = registry.execute(state, "OP_LW", {"reg_a": 2, "reg_dst": 4, "imm": 3})
        assert state.registers[4] == 0x1234

    def test_effective_address_wraps(self, registry):
        """$0 - 1 addresses the last memory cell."""
        state = with_registers(0, 77)
        state = registry.execute(state, "OP_SW", {"reg_a": 0, "reg_b": 1, "imm": 0xFFFF})
        assert state.memory[8191] == 77

    def test_sw_from_zero_register(self, registry):
        state = MachineState().store_word(4, 0xAAAA)
        state = registry.execute(state, "OP_SW", {"reg_a": 0, "reg_b": 0, "imm": 4})
        assert state.memory[4] == 0

    def test_lw_to_zero_skipped(self, registry):
        state = MachineState().store_word(4, 0xAAAA)
        state = registry.execute(state, "OP_LW", {"reg_a": 0, "reg_dst": 0, "imm": 4})
        assert state.registers[0] == 0


class TestControlFlowPrimitives:
    """Test J, JAL and JEQ."""

    @pytest.fixture
    def registry(self):
        return Registry()

    def test_j(self, registry):
        assert registry.execute(MachineState(pc=3), "OP_J", {"imm": 42}).pc == 42

    def test_jal_links(self, registry):
        new_state = registry.execute(MachineState(pc=10), "OP_JAL", {"imm": 100})
        assert new_state.registers[7] == 11
        assert new_state.pc == 100

    def test_jeq_taken(self, registry):
        state = with_registers(0, 5, 5, pc=10)
        new_state = registry.execute(state, "OP_JEQ", {"reg_a": 1, "reg_b": 2, "imm": 4})
        assert new_state.pc == 15

    def test_jeq_not_taken(self, registry):
        state = with_registers(0, 5, 6, pc=10)
        new_state = registry.execute(state, "OP_JEQ", {"reg_a": 1, "reg_b": 2, "imm": 4})
        assert new_state.pc == 11

    def test_jeq_backward_not_masked(self, registry):
        """A negative offset leaves an unreduced PC congruent to the target."""
        state = with_registers(pc=10)
        new_state = registry.execute(state, "OP_JEQ", {"reg_a": 0, "reg_b": 0, "imm": 0xFFFE})
        assert new_state.pc == 10 + 1 + 0xFFFE
        assert new_state.pc % 8192 == 9

    @pytest.mark.parametrize("pc,link", [(65535, 0), (65540, 5), (2 * 65536 + 9, 10)])
    def test_jal_link_wraps_unreduced_pc(self, registry, pc, link):
        """After backward branches the return address is taken modulo 2^16."""
        new_state = registry.execute(MachineState(pc=pc), "OP_JAL", {"imm": 20})
        assert new_state.registers[7] == link
        assert new_state.pc == 20
