"""Module: translate raw program bytes into an instruction sequence.

This module contains:
- translate(src) -> list of Instruction with resolved jump targets
- load_source(path) -> raw program bytes
- translate_file(path) -> translate(load_source(path))
"""

from __future__ import annotations

import logging
from pathlib import Path

from isa import Instruction, OpCode, decode_byte


class MalformedProgramError(SyntaxError):
    """Raised when brackets in the program source do not pair up."""

    def __init__(self, msg: str, position: int) -> None:
        super().__init__(msg)
        self.position = position


class SourceReadError(OSError):
    """Raised when the program file cannot be read."""

    pass


def _pair_brackets(instructions: list[Instruction]) -> list[tuple[int, int]]:
    """Match bracket instructions and return (open, close) index pairs.

    Raises MalformedProgramError on an unmatched bracket of either kind.
    """
    stack: list[int] = []
    pairs: list[tuple[int, int]] = []
    for index, (opcode, _) in enumerate(instructions):
        if opcode == OpCode.JUMP_IF_ZERO:
            stack.append(index)
        elif opcode == OpCode.JUMP_IF_NONZERO:
            if not stack:
                err = f"unmatched closing bracket at position {index}"
                raise MalformedProgramError(err, index)
            pairs.append((stack.pop(), index))

    if stack:
        # report the innermost opener that never closed
        index = stack[-1]
        err = f"unmatched opening bracket at position {index}"
        raise MalformedProgramError(err, index)
    return pairs


def translate(src: bytes) -> list[Instruction]:
    """Translate program bytes into instructions, one per source byte.

    Jump instructions carry the index of their partner bracket. Bytes that
    are not operators become NOPs, so positions match source offsets.
    """
    instructions = [Instruction(decode_byte(b)) for b in src]
    pairs = _pair_brackets(instructions)

    for left, right in pairs:
        instructions[left] = Instruction(OpCode.JUMP_IF_ZERO, right)
        instructions[right] = Instruction(OpCode.JUMP_IF_NONZERO, left)

    logging.debug("Translator: %d instructions, %d bracket pairs", len(instructions), len(pairs))
    return instructions


def load_source(path: str | Path) -> bytes:
    """Read the whole program file as raw bytes."""
    p = Path(path)
    try:
        src = p.read_bytes()
    except OSError as e:
        err = f"cannot read program {path}: {e.strerror or e}"
        raise SourceReadError(err) from e
    logging.debug("Translator: read %d bytes from %s", len(src), p)
    return src


def translate_file(path: str | Path) -> list[Instruction]:
    """Load a program file and translate it."""
    return translate(load_source(path))
