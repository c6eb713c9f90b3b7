"""ISA: opcodes, instruction tuple and the source byte table."""

from __future__ import annotations

from collections.abc import Iterable
from enum import IntEnum
from typing import NamedTuple


class OpCode(IntEnum):
    """Keeps opcodes from all operations."""

    NOP = 0

    MOVE_RIGHT = 10  # DP = (DP + 1) mod N
    MOVE_LEFT = 11  # DP = (DP - 1) mod N

    INC = 20  # TAPE[DP] += 1 (mod 256)
    DEC = 21  # TAPE[DP] -= 1 (mod 256)

    OUTPUT = 30  # write TAPE[DP]
    INPUT = 31  # TAPE[DP] = read one byte

    JUMP_IF_ZERO = 40  # if TAPE[DP] == 0: IP = arg
    JUMP_IF_NONZERO = 41  # if TAPE[DP] != 0: IP = arg


JUMP_OPCODES = (OpCode.JUMP_IF_ZERO, OpCode.JUMP_IF_NONZERO)


class Instruction(NamedTuple):
    """One translated instruction. `arg` is only meaningful for jumps."""

    opcode: OpCode
    arg: int = 0


BYTE_OPCODES: dict[int, OpCode] = {
    ord(">"): OpCode.MOVE_RIGHT,
    ord("<"): OpCode.MOVE_LEFT,
    ord("+"): OpCode.INC,
    ord("-"): OpCode.DEC,
    ord("."): OpCode.OUTPUT,
    ord(","): OpCode.INPUT,
    ord("["): OpCode.JUMP_IF_ZERO,
    ord("]"): OpCode.JUMP_IF_NONZERO,
}


def decode_byte(byte: int) -> OpCode:
    """Map a single source byte to its opcode, NOP for anything else."""
    return BYTE_OPCODES.get(byte, OpCode.NOP)


def mnemonic(opcode: OpCode, arg: int) -> str:
    """Get operation mnemonic."""
    if opcode in JUMP_OPCODES:
        return f"{opcode.name} {arg}"
    return opcode.name


def format_listing(instructions: Iterable[Instruction]) -> str:
    """Render `<index> - <mnemonic>` lines for an instruction sequence."""
    return "\n".join(f"{i} - {mnemonic(op, arg)}" for i, (op, arg) in enumerate(instructions))
