"""Registry: Verified E20 instruction primitives.

This module implements the registry pattern for instruction semantics,
where each operation is a frozen primitive that transforms state in a
predictable, auditable way.

Registry Keys:
    OP_ADD:  $dst = $a + $b
    OP_SUB:  $dst = $a - $b
    OP_OR:   $dst = $a | $b
    OP_AND:  $dst = $a & $b
    OP_SLT:  $dst = $a < $b
    OP_JR:   pc = $a
    OP_NOP:  Unrecognized ALU function code
    OP_ADDI: $dst = $a + imm
    OP_J:    pc = imm
    OP_JAL:  $7 = pc + 1; pc = imm
    OP_LW:   $dst = mem[$a + imm]
    OP_SW:   mem[$a + imm] = $b
    OP_JEQ:  if $a == $b: pc = pc + 1 + imm
    OP_SLTI: $dst = $a < imm

Each primitive is a pure function: (MachineState, params) -> MachineState.
The returned state carries the instruction's next_pc. Destination writes
to $0 are skipped; the caller still clears $0 after every instruction.
"""

from typing import Any, Callable, Dict

from .state import MachineState, ADDR_MASK, WORD_MASK


Primitive = Callable[[MachineState, Dict[str, Any]], MachineState]

LINK_REGISTER = 7


class Registry:
    """Verified registry of E20 primitives.

    The registry is frozen after initialization to ensure
    no runtime modifications can occur.

    Attributes:
        _primitives: Dictionary mapping operation keys to handler functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        """Initialize registry with all E20 primitives."""
        self._primitives: Dict[str, Primitive] = {}
        self._frozen = False
        self._register_all_primitives()
        self.freeze()

    def _register_all_primitives(self) -> None:
        """Register all E20 operation primitives."""
        # Three-register group
        self.register("OP_ADD", self._op_add)
        self.register("OP_SUB", self._op_sub)
        self.register("OP_OR", self._op_or)
        self.register("OP_AND", self._op_and)
        self.register("OP_SLT", self._op_slt)
        self.register("OP_JR", self._op_jr)
        self.register("OP_NOP", self._op_nop)

        # Immediate arithmetic
        self.register("OP_ADDI", self._op_addi)
        self.register("OP_SLTI", self._op_slti)

        # Memory
        self.register("OP_LW", self._op_lw)
        self.register("OP_SW", self._op_sw)

        # Control flow
        self.register("OP_J", self._op_j)
        self.register("OP_JAL", self._op_jal)
        self.register("OP_JEQ", self._op_jeq)

    def register(self, key: str, handler: Primitive) -> None:
        """Register a primitive operation.

        Args:
            key: Operation key (e.g., "OP_ADD")
            handler: Function that takes (state, params) and returns new state

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If key already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register primitives: registry is frozen")
        if key in self._primitives:
            raise ValueError(f"Primitive already registered: {key}")
        self._primitives[key] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if registry is frozen."""
        return self._frozen

    def get_valid_keys(self) -> set:
        """Get set of all valid operation keys."""
        return set(self._primitives.keys())

    def execute(self, state: MachineState, key: str, params: Dict[str, Any]) -> MachineState:
        """Execute a registered primitive.

        Args:
            state: Current machine state
            key: Operation key
            params: Operation parameters

        Returns:
            New machine state after execution, with pc set to next_pc

        Raises:
            KeyError: If key not in registry
        """
        if key not in self._primitives:
            raise KeyError(f"Unknown operation key: {key}")

        handler = self._primitives[key]
        new_state = handler(state, params)

        # Always increment cycle count after execution
        return new_state.increment_cycle()

    # =========================================================================
    # Three-Register Primitives
    # =========================================================================

    def _alu(self, state: MachineState, params: Dict[str, Any],
             fn: Callable[[int, int], int]) -> MachineState:
        """Apply ``fn`` to $a and $b and write $dst unless it is $0."""
        dst = params["reg_dst"]
        new_state = state
        if dst != 0:
            val_a = state.get_register(params["reg_a"])
            val_b = state.get_register(params["reg_b"])
            new_state = state.set_register(dst, fn(val_a, val_b) & WORD_MASK)
        return new_state.set_pc(state.pc + 1)

    def _op_add(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """add $dst, $a, $b - Sum modulo 2^16."""
        return self._alu(state, params, lambda a, b: a + b)

    def _op_sub(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """sub $dst, $a, $b - Difference modulo 2^16."""
        return self._alu(state, params, lambda a, b: a - b)

    def _op_or(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """or $dst, $a, $b - Bitwise OR."""
        return self._alu(state, params, lambda a, b: a | b)

    def _op_and(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """and $dst, $a, $b - Bitwise AND."""
        return self._alu(state, params, lambda a, b: a & b)

    def _op_slt(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """slt $dst, $a, $b - Unsigned less-than, 1 or 0."""
        return self._alu(state, params, lambda a, b: 1 if a < b else 0)

    def _op_jr(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """jr $a - Jump to the address held in $a.

        Params:
            reg_a: Register holding the target

        Returns:
            New state with PC set to $a modulo the memory size
        """
        target = state.get_register(params["reg_a"]) & ADDR_MASK
        return state.set_pc(target)

    def _op_nop(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """Unrecognized function code: only PC advances."""
        return state.set_pc(state.pc + 1)

    # =========================================================================
    # Immediate Primitives
    # =========================================================================

    def _op_addi(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """addi $dst, $a, imm - Add sign-extended immediate.

        Params:
            reg_a: Source register
            reg_dst: Destination register (write skipped for $0)
            imm: Sign-extended 16-bit immediate

        Returns:
            New state with result in $dst
        """
        dst = params["reg_dst"]
        new_state = state
        if dst != 0:
            value = state.get_register(params["reg_a"]) + params["imm"]
            new_state = state.set_register(dst, value & WORD_MASK)
        return new_state.set_pc(state.pc + 1)

    def _op_slti(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """slti $dst, $a, imm - Unsigned compare against sign-extended immediate."""
        dst = params["reg_dst"]
        new_state = state
        if dst != 0:
            value = 1 if state.get_register(params["reg_a"]) < params["imm"] else 0
            new_state = state.set_register(dst, value)
        return new_state.set_pc(state.pc + 1)

    # =========================================================================
    # Memory Primitives
    # =========================================================================

    def _effective_address(self, state: MachineState, params: Dict[str, Any]) -> int:
        return (state.get_register(params["reg_a"]) + params["imm"]) & ADDR_MASK

    def _op_lw(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """lw $dst, imm($a) - Load word from memory.

        Params:
            reg_a: Base register
            reg_dst: Destination register (write skipped for $0)
            imm: Sign-extended offset

        Returns:
            New state with loaded word in $dst
        """
        dst = params["reg_dst"]
        new_state = state
        if dst != 0:
            addr = self._effective_address(state, params)
            new_state = state.set_register(dst, state.load_word(addr))
        return new_state.set_pc(state.pc + 1)

    def _op_sw(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """sw $b, imm($a) - Store word to memory.

        The store always happens, including from $0.
        """
        addr = self._effective_address(state, params)
        new_state = state.store_word(addr, state.get_register(params["reg_b"]))
        return new_state.set_pc(state.pc + 1)

    # =========================================================================
    # Control Flow Primitives
    # =========================================================================

    def _op_j(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """j imm - Unconditional jump to a 13-bit address."""
        return state.set_pc(params["imm"])

    def _op_jal(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """jal imm - Jump and link.

        $7 receives the return address unconditionally.

        Params:
            imm: 13-bit target address

        Returns:
            New state with $7 = pc + 1 and PC set to target
        """
        new_state = state.set_register(LINK_REGISTER, (state.pc + 1) & WORD_MASK)
        return new_state.set_pc(params["imm"])

    def _op_jeq(self, state: MachineState, params: Dict[str, Any]) -> MachineState:
        """jeq $a, $b, imm - Branch relative to pc + 1 when $a == $b.

        The target is not masked here; the next fetch reduces it modulo
        the memory size.
        """
        val_a = state.get_register(params["reg_a"])
        val_b = state.get_register(params["reg_b"])
        if val_a == val_b:
            return state.set_pc(state.pc + 1 + params["imm"])
        return state.set_pc(state.pc + 1)
