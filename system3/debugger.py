"""Breakpoints, stepping and stack traces for the script interpreter."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence

from .debug_info import DebugInfo

BREAKPOINT_INSTRUCTION = 0x0F
INTERNAL_BREAKPOINT_NO = -1

_OP_CALL = ord("%")
_OP_LABEL_CALL = ord("\\")


class IllegalBreakpointError(RuntimeError):
    """A breakpoint instruction was met where no breakpoint is known."""


class State(enum.Enum):
    RUNNING = enum.auto()
    STOPPED_ENTRY = enum.auto()
    STOPPED_STEP = enum.auto()
    STOPPED_NEXT = enum.auto()
    STOPPED_BREAKPOINT = enum.auto()
    STOPPED_INTERRUPT = enum.auto()
    STOPPED_EXCEPTION = enum.auto()


@dataclass(frozen=True)
class StackFrame:
    page: int
    addr: int
    src: str | None
    line: int | None


@dataclass(frozen=True)
class CallFrame:
    """A return point on the interpreter's call stack."""

    page: int
    addr: int


@dataclass
class Breakpoint:
    page: int
    addr: int
    no: int
    restore_op: int


class Machine(Protocol):
    """What the debugger needs from the script interpreter."""

    def page(self) -> int: ...
    def cmd_addr(self) -> int: ...
    def current_addr(self) -> int: ...
    def jump_to(self, addr: int) -> None: ...
    def getd(self) -> int: ...
    def getw(self) -> int: ...
    def cali(self) -> int: ...

    def write_instruction(self, page: int, addr: int, op: int) -> int | None:
        """Replace one opcode; return the old one, or None for a bad address."""
        ...

    def call_stack(self) -> Sequence[CallFrame]: ...
    def get_var(self, index: int) -> int: ...
    def set_var(self, index: int, value: int) -> None: ...
    def get_string(self, index: int) -> bytes: ...
    def set_string(self, index: int, value: bytes) -> None: ...
    def quit(self, code: int) -> None: ...


class Frontend(ABC):
    """User interface of the debugger."""

    def __init__(self, backend: Debugger, symbols: DebugInfo):
        self.backend = backend
        self.symbols = symbols

    @abstractmethod
    def init(self) -> None: ...

    @abstractmethod
    def repl(self, bp_no: int) -> None: ...

    @abstractmethod
    def on_command(self, data: Any) -> None: ...

    @abstractmethod
    def on_sleep(self) -> None: ...

    @abstractmethod
    def on_palette_change(self) -> None: ...

    @abstractmethod
    def console_output(self, text: str) -> bool:
        """Show interpreter output; return True if it was consumed."""


FrontendFactory = Callable[["Debugger", DebugInfo], Frontend]


class Debugger:
    """Debugger back end driving a Machine and reporting to a Frontend."""

    def __init__(self, machine: Machine, symbols: DebugInfo,
                 frontend_factory: FrontendFactory):
        self.machine = machine
        self.symbols = symbols
        self.state = State.RUNNING
        self._breakpoints: dict[tuple[int, int], Breakpoint] = {}
        self._next_breakpoint_no = 1
        self._step_page = 0
        self._step_line: int | None = None
        self.frontend = frontend_factory(self, symbols)

    @property
    def breakpoints(self) -> list[Breakpoint]:
        return [self._breakpoints[k] for k in sorted(self._breakpoints)]

    def init(self) -> None:
        self.frontend.init()

    def trapped(self) -> bool:
        return self.state != State.RUNNING

    def repl(self, bp_no: int) -> None:
        self.delete_breakpoint(INTERNAL_BREAKPOINT_NO)
        if self.state == State.STOPPED_STEP and self._should_continue_step():
            return
        if self.state == State.STOPPED_NEXT and self._should_continue_step():
            self._do_next()
            return
        self.frontend.repl(bp_no)

    def on_sleep(self) -> None:
        self.frontend.on_sleep()

    def on_palette_change(self) -> None:
        self.frontend.on_palette_change()

    def handle_breakpoint(self, page: int, addr: int) -> int:
        """Stop at a breakpoint; return the opcode it replaced."""
        bp = self._breakpoints.get((page, addr))
        if bp is None:
            raise IllegalBreakpointError(f"Illegal BREAKPOINT instruction at {page}:{addr:#x}")
        restore_op = bp.restore_op
        self.state = (State.STOPPED_NEXT if bp.no == INTERNAL_BREAKPOINT_NO
                      else State.STOPPED_BREAKPOINT)
        self.repl(bp.no)
        return restore_op

    def console_output(self, text: str) -> bool:
        return self.frontend.console_output(text)

    def post_command(self, data: Any) -> None:
        self.frontend.on_command(data)

    def set_breakpoint(self, page: int, addr: int, is_internal: bool = False) -> int:
        """Set a breakpoint and return its number; ValueError for a bad address."""
        restore_op = self.machine.write_instruction(page, addr, BREAKPOINT_INSTRUCTION)
        if restore_op is None:
            raise ValueError(f"invalid address {page}:{addr:#x}")
        if restore_op == BREAKPOINT_INSTRUCTION:
            existing = self._breakpoints.get((page, addr))
            if existing is None:
                raise IllegalBreakpointError(f"Illegal BREAKPOINT instruction at {page}:{addr:#x}")
            return existing.no
        if is_internal:
            no = INTERNAL_BREAKPOINT_NO
        else:
            no = self._next_breakpoint_no
            self._next_breakpoint_no += 1
        self._breakpoints[(page, addr)] = Breakpoint(page, addr, no, restore_op)
        return no

    def _restore(self, bp: Breakpoint) -> None:
        self.machine.write_instruction(bp.page, bp.addr, bp.restore_op)

    def delete_breakpoint(self, no: int) -> bool:
        for key, bp in self._breakpoints.items():
            if bp.no == no:
                self._restore(bp)
                del self._breakpoints[key]
                return True
        return False

    def delete_breakpoints_in_page(self, page: int) -> None:
        for key in [k for k in self._breakpoints if k[0] == page]:
            self._restore(self._breakpoints.pop(key))

    def _remember_step_position(self) -> None:
        self._step_page = self.machine.page()
        self._step_line = self.symbols.addr2line(self._step_page, self.machine.cmd_addr())

    def _should_continue_step(self) -> bool:
        if self._step_line is None:
            return False
        return (self._step_page == self.machine.page()
                and self._step_line == self.symbols.addr2line(
                    self._step_page, self.machine.cmd_addr()))

    def stepin(self) -> None:
        self._remember_step_position()
        self.state = State.STOPPED_STEP

    def stepout(self) -> None:
        frames = self.machine.call_stack()
        if not frames:
            return
        frame = frames[-1]
        self.set_breakpoint(frame.page, frame.addr, True)

    def next(self) -> None:
        self._remember_step_position()
        self.state = State.STOPPED_NEXT
        self._do_next()

    def _do_next(self) -> None:
        retaddr = self._retaddr_if_funcall()
        if retaddr is not None:
            self.set_breakpoint(self._step_page, retaddr, True)
            self.state = State.RUNNING

    def _retaddr_if_funcall(self) -> int | None:
        m = self.machine
        orig_addr = m.current_addr()
        retaddr = None
        m.jump_to(m.cmd_addr())
        try:
            op = m.getd()
            if op == BREAKPOINT_INSTRUCTION:
                bp = self._breakpoints.get((m.page(), m.cmd_addr()))
                if bp is None:
                    raise IllegalBreakpointError("Illegal BREAKPOINT instruction")
                op = bp.restore_op
            if op == _OP_CALL:
                if m.cali() != 0:
                    retaddr = m.current_addr()
            elif op == _OP_LABEL_CALL:
                if m.getw() != 0:
                    retaddr = m.current_addr()
        finally:
            m.jump_to(orig_addr)
        return retaddr

    def stack_trace(self) -> list[StackFrame]:
        m = self.machine
        page, addr = m.page(), m.cmd_addr()
        frames = [StackFrame(page, addr, self.symbols.page2src(page),
                             self.symbols.addr2line(page, addr))]
        for frame in reversed(m.call_stack()):
            # The return address points at the command after the call.
            frames.append(StackFrame(frame.page, frame.addr,
                                     self.symbols.page2src(frame.page),
                                     self.symbols.addr2line(frame.page, frame.addr - 1)))
        return frames