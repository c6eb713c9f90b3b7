from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from isa import Instruction, OpCode
from translator import MalformedProgramError, SourceReadError, load_source, translate, translate_file

HELLO = b"++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]>>.>---.+++++++..+++."


def _pairs(instructions: list[Instruction]) -> dict[int, int]:
    """Recompute bracket partners from the source-order nesting."""
    stack: list[int] = []
    pairs: dict[int, int] = {}
    for i, (op, _) in enumerate(instructions):
        if op == OpCode.JUMP_IF_ZERO:
            stack.append(i)
        elif op == OpCode.JUMP_IF_NONZERO:
            j = stack.pop()
            pairs[i] = j
            pairs[j] = i
    return pairs


def test_byte_table() -> None:
    got = [op for op, _ in translate(b"><+-.,[]")]
    assert got == [
        OpCode.MOVE_RIGHT,
        OpCode.MOVE_LEFT,
        OpCode.INC,
        OpCode.DEC,
        OpCode.OUTPUT,
        OpCode.INPUT,
        OpCode.JUMP_IF_ZERO,
        OpCode.JUMP_IF_NONZERO,
    ]


def test_other_bytes_are_nops() -> None:
    instructions = translate(b"hello \x00\xff\n")
    assert all(instr == Instruction(OpCode.NOP, 0) for instr in instructions)


NO_BRACKETS = bytes(b for b in range(256) if b not in b"[]")


@pytest.mark.parametrize("src", [b"", b"+", b"abc", HELLO, b"[[]][]x", NO_BRACKETS])
def test_length_preserved(src: bytes) -> None:
    assert len(translate(src)) == len(src)


@pytest.mark.parametrize("src", [b"[]", b"[[]]", b"[][]", b"+[->[-]<]", HELLO])
def test_jump_targets_pair_up(src: bytes) -> None:
    instructions = translate(src)
    expected = _pairs(instructions)
    assert expected
    for i, (op, arg) in enumerate(instructions):
        if op in (OpCode.JUMP_IF_ZERO, OpCode.JUMP_IF_NONZERO):
            assert arg == expected[i]
            # partner points back, with the opposite opcode
            partner_op, partner_arg = instructions[arg]
            assert partner_arg == i
            assert partner_op != op


def test_nested_targets() -> None:
    instructions = translate(b"[[][]]")
    assert [arg for _, arg in instructions] == [5, 2, 1, 4, 3, 0]


def test_non_jump_args_are_zero() -> None:
    assert all(arg == 0 for _, arg in translate(b"><+-.,x"))


@pytest.mark.parametrize(
    ("src", "position"),
    [(b"]", 0), (b"+]", 1), (b"[]]", 2), (b"ab]c[", 2)],
)
def test_unmatched_closing_bracket(src: bytes, position: int) -> None:
    with pytest.raises(MalformedProgramError, match=f"unmatched closing bracket at position {position}") as ei:
        translate(src)
    assert ei.value.position == position


@pytest.mark.parametrize(
    ("src", "position"),
    [(b"[", 0), (b"+[", 1), (b"[[]", 0), (b"[+[", 2)],
)
def test_unmatched_opening_bracket(src: bytes, position: int) -> None:
    with pytest.raises(MalformedProgramError, match=f"unmatched opening bracket at position {position}") as ei:
        translate(src)
    assert ei.value.position == position


def test_malformed_program_is_syntax_error() -> None:
    with pytest.raises(SyntaxError):
        translate(b"]")


def test_translate_does_not_mutate_input() -> None:
    src = bytearray(b"+[-]")
    translate(src)
    assert src == bytearray(b"+[-]")


def test_load_source_reads_raw_bytes(program_file: Any) -> None:
    p = program_file(b"+\x00\xff.")
    assert load_source(p) == b"+\x00\xff."
    assert load_source(str(p)) == b"+\x00\xff."


def test_load_source_missing_file(tmp_path: Path) -> None:
    missing = tmp_path / "nope.bf"
    with pytest.raises(SourceReadError, match="cannot read program") as ei:
        load_source(missing)
    assert isinstance(ei.value.__cause__, FileNotFoundError)


def test_load_source_directory(tmp_path: Path) -> None:
    with pytest.raises(SourceReadError):
        load_source(tmp_path)


def test_translate_file(program_file: Any) -> None:
    p = program_file("+[-]")
    assert translate_file(p) == [
        Instruction(OpCode.INC),
        Instruction(OpCode.JUMP_IF_ZERO, 3),
        Instruction(OpCode.DEC),
        Instruction(OpCode.JUMP_IF_NONZERO, 1),
    ]
