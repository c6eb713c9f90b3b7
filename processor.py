"""Processor (Datapath + ControlUnit) and CLI wrapper.

Provides tape execution of translated programs, logging initialization
and the command line entry point.
"""

from __future__ import annotations

import argparse
import io
import logging
import sys
from collections.abc import Sequence
from typing import Any, BinaryIO

from config import ConfigError, load_config
from isa import Instruction, OpCode
from translator import MalformedProgramError, SourceReadError, translate, translate_file

LOGFILE = "tapevm.log"


class InputExhaustedError(EOFError):
    """Raised when an INPUT instruction finds the input stream empty."""

    pass


def init_logging(logfile: str = LOGFILE, debug: bool = False, console: bool = False) -> None:
    """Configure root logger to write to `logfile`.

    The log file is only created when debug=True (DEBUG level); otherwise the
    root logger stays at CRITICAL with no handlers. If console=True also echo
    logs to stderr (stdout is reserved for program output).
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    lvl = logging.DEBUG if debug else logging.CRITICAL
    root.setLevel(lvl)

    if not debug:
        return

    file_fmt = "%(levelname)s %(name)s:%(filename)s:%(lineno)d %(message)s"
    fh = logging.FileHandler(logfile, mode="w", encoding="utf-8")
    fh.setLevel(lvl)
    fh.setFormatter(logging.Formatter(file_fmt))
    root.addHandler(fh)

    if console:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(lvl)
        ch.setFormatter(logging.Formatter("%(levelname)5s %(message)s"))
        root.addHandler(ch)


def new_tape(size: int) -> bytearray:
    """Allocate a zeroed tape of `size` cells."""
    size = int(size)
    if size <= 0:
        err = f"tape size must be positive, got {size}"
        raise ValueError(err)
    return bytearray(size)


class Datapath:
    """Datapath (tape + data pointer + IO streams) for the VM."""

    tape: bytearray
    tape_size: int
    stdin: BinaryIO
    stdout: BinaryIO

    IP: int
    DP: int
    tick: int

    def __init__(self, tape: bytearray, stdin: BinaryIO | None = None, stdout: BinaryIO | None = None) -> None:
        """Initialize registers and bind the tape and IO streams."""
        if len(tape) == 0:
            err = "tape must have at least one cell"
            raise ValueError(err)
        self.tape = tape
        self.tape_size = len(tape)
        self.stdin = stdin if stdin is not None else sys.stdin.buffer
        self.stdout = stdout if stdout is not None else sys.stdout.buffer

        # registers/state
        self.IP = 0
        self.DP = 0
        self.tick = 0
        logging.debug("Datapath: tape of %d cells", self.tape_size)

    @property
    def cell(self) -> int:
        return self.tape[self.DP]

    def move_right(self) -> None:
        self.DP = (self.DP + 1) % self.tape_size

    def move_left(self) -> None:
        self.DP = (self.DP - 1) % self.tape_size

    def increment(self) -> None:
        self.tape[self.DP] = (self.tape[self.DP] + 1) & 0xFF

    def decrement(self) -> None:
        self.tape[self.DP] = (self.tape[self.DP] - 1) & 0xFF

    def write_output(self) -> None:
        self.stdout.write(bytes((self.tape[self.DP],)))

    def read_input(self) -> None:
        """Block for one byte of input and store it in the current cell."""
        # pending output (e.g. a prompt) must be visible before blocking
        self.stdout.flush()
        b = self.stdin.read(1)
        if not b:
            err = "no input available"
            raise InputExhaustedError(err)
        self.tape[self.DP] = b[0]


class ControlUnit:
    """Control unit implementing the FETCH-EXEC loop over the instruction list."""

    instructions: Sequence[Instruction]
    dp: Datapath

    def __init__(self, instructions: Sequence[Instruction], dp: Datapath) -> None:
        """Create a ControlUnit running `instructions` on `dp`."""
        self.instructions = instructions
        self.dp = dp

    def run(self) -> int:
        """Execute until the instruction pointer runs off the end; return ticks."""
        dp = self.dp
        instructions = self.instructions
        end = len(instructions)
        while dp.IP < end:
            self.exec(instructions[dp.IP])
            # jump targets point at the partner bracket; the advance lands past it
            dp.IP += 1
            dp.tick += 1

        logging.debug("IP %d past end of program -> HALT after %d ticks", dp.IP, dp.tick)
        return dp.tick

    def exec(self, instr: Instruction) -> None:  # noqa: C901
        """Execute one instruction against the datapath."""
        dp = self.dp
        opcode, arg = instr

        if opcode == OpCode.MOVE_RIGHT:
            dp.move_right()
            return

        if opcode == OpCode.MOVE_LEFT:
            dp.move_left()
            return

        if opcode == OpCode.INC:
            dp.increment()
            return

        if opcode == OpCode.DEC:
            dp.decrement()
            return

        if opcode == OpCode.OUTPUT:
            dp.write_output()
            return

        if opcode == OpCode.INPUT:
            dp.read_input()
            return

        if opcode == OpCode.JUMP_IF_ZERO:
            if dp.cell == 0:
                dp.IP = arg
            return

        if opcode == OpCode.JUMP_IF_NONZERO:
            if dp.cell != 0:
                dp.IP = arg
            return

        # NOP


# ---------- Public API ----------
def execute(
    instructions: Sequence[Instruction],
    tape: bytearray,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> None:
    """Run `instructions` on `tape` (mutated in place) until completion."""
    dp = Datapath(tape, stdin=stdin, stdout=stdout)
    ControlUnit(instructions, dp).run()


def run_bytes(src: bytes, config: dict[str, Any] | None = None, stdin_bytes: bytes = b"") -> tuple[bytes, int]:
    """Translate and run `src` with in-memory IO and return (stdout, ticks)."""
    cfg = load_config(config)
    instructions = translate(src)
    out = io.BytesIO()
    dp = Datapath(new_tape(cfg["tape_size"]), stdin=io.BytesIO(stdin_bytes), stdout=out)
    ticks = ControlUnit(instructions, dp).run()
    return out.getvalue(), ticks


# ---------- CLI ----------
def main(argv: Sequence[str] | None = None) -> int:
    """Command line entry point; returns the process exit status."""
    ap = argparse.ArgumentParser(description="Run a tape-machine program (> < + - . , [ ]) from a source file.")
    ap.add_argument("program", help="program source file (e.g. hello-world.bf)")
    ap.add_argument("--config", help="path to yaml config", default=None)
    ap.add_argument("--tape-size", type=int, default=None, help="number of tape cells (overrides config)")

    help_debug = "enable debug logging to logfile."
    help_logfile = "path to processor log"
    help_console = "also echo logs to stderr (only when --debug)"
    ap.add_argument("--debug", action="store_true", help=help_debug)
    ap.add_argument("--logfile", default=LOGFILE, help=help_logfile)
    ap.add_argument("--console", action="store_true", help=help_console)
    args = ap.parse_args(argv)

    init_logging(logfile=args.logfile, debug=args.debug, console=args.console)

    try:
        cfg = load_config(args.config)
        if args.tape_size is not None:
            cfg = load_config({**cfg, "tape_size": args.tape_size})
    except ConfigError as e:
        print("Bad config:", e, file=sys.stderr)
        return 2

    stdout = sys.stdout.buffer
    try:
        try:
            execute(translate_file(args.program), new_tape(cfg["tape_size"]), stdin=sys.stdin.buffer, stdout=stdout)
        finally:
            stdout.flush()
    except BrokenPipeError:
        # reader went away (e.g. `| head`); nothing more can be written
        logging.debug("CLI: stdout closed by reader")
        return 1
    except SourceReadError as e:
        logging.debug("CLI: source read failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except MalformedProgramError as e:
        logging.debug("CLI: malformed program: %s", e)
        print(f"Malformed program: {e}", file=sys.stderr)
        return 1
    except InputExhaustedError as e:
        logging.debug("CLI: input exhausted: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
