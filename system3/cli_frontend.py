"""Interactive command-line front end for the script debugger."""

from __future__ import annotations

import enum
import re
import signal
import sys
from dataclasses import dataclass
from typing import TextIO

from .debug_info import DebugInfo
from .debugger import Debugger, Frontend, State
from .encoding import Encoding, SjisEncoding


class CommandResult(enum.Enum):
    CONTINUE_REPL = enum.auto()
    EXIT_REPL = enum.auto()


@dataclass(frozen=True)
class Command:
    """A debugger command: its names, documentation and handler method."""

    name: str
    alias: str | None
    description: str
    help: str | None
    handler: str


_INT = r"[+-]?(?:0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)"
_INT_RE = re.compile(_INT)
_PAGE_ADDR_RE = re.compile(rf"({_INT}):({_INT})")
_FILE_LINE_RE = re.compile(rf"([^:]+):({_INT})")
_ATOI_RE = re.compile(r"\s*[+-]?[0-9]+")


def _c_int(text: str) -> int:
    """Value of an integer written with an optional 0x or 0 prefix."""
    sign = -1 if text.startswith("-") else 1
    body = text.lstrip("+-")
    if body[:2].lower() == "0x":
        return sign * int(body[2:], 16)
    if len(body) > 1 and body.startswith("0"):
        return sign * int(body, 8)
    return sign * int(body, 10)


def _full_int(text: str) -> int | None:
    """The whole of ``text`` as an integer, or None if anything else follows."""
    if not _INT_RE.fullmatch(text):
        return None
    return _c_int(text)


def _atoi(text: str) -> int:
    match = _ATOI_RE.match(text)
    return int(match.group()) if match else 0


_HELP_BREAK = ("Syntax: break <filename>:<linenum> [if <condition>]\n"
               "        break <linenum> [if <condition>]\n"
               "        break <page>:<address> [if <condition>]")
_HELP_DELETE = "Syntax: delete <breakpoint_no>..."
_HELP_LIST = ("Syntax: list\n"
              "        list <linenum>\n"
              "        list <filename>:<linenum>\n"
              "\n"
              "With no argument, lists ten lines around current location.")
_HELP_PRINT = "Syntax: print <variable>"
_HELP_STRING = "Syntax: string <index>"

COMMANDS: tuple[Command, ...] = (
    Command("backtrace", "bt", "Print backtrace of stack frames.", None, "_cmd_backtrace"),
    Command("break", "b", "Set breakpoint at specified location.", _HELP_BREAK, "_cmd_break"),
    Command("continue", "c", "Continue program execution.", None, "_cmd_continue"),
    Command("delete", "d", "Delete breakpoints.", _HELP_DELETE, "_cmd_delete"),
    Command("help", "h", "Print list of commands.", None, "_cmd_help"),
    Command("list", "l", "List specified line.", _HELP_LIST, "_cmd_list"),
    Command("step", "s", "Step program until it reaches a different source line.",
            None, "_cmd_step"),
    Command("finish", None, "Execute until current function returns.", None, "_cmd_finish"),
    Command("next", "n", "Step program, proceeding through subroutine calls.",
            None, "_cmd_next"),
    Command("print", "p", "Print value of variable.", _HELP_PRINT, "_cmd_print"),
    Command("quit", "q", "Exit system3-sdl2.", None, "_cmd_quit"),
    Command("string", "str", "Print value of string variable.", _HELP_STRING, "_cmd_string"),
)


class CliFrontend(Frontend):
    """A gdb-like prompt reading commands from a text stream."""

    commands = COMMANDS

    def __init__(self, backend: Debugger, symbols: DebugInfo,
                 encoding: Encoding | None = None,
                 stdin: TextIO | None = None, stdout: TextIO | None = None,
                 handle_sigint: bool = True):
        super().__init__(backend, symbols)
        self.encoding = encoding if encoding is not None else SjisEncoding()
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.default_command = ""
        backend.state = State.STOPPED_ENTRY
        if handle_sigint:
            signal.signal(signal.SIGINT, self._on_sigint)

    def _on_sigint(self, signum, frame) -> None:
        self.backend.state = State.STOPPED_INTERRUPT

    @property
    def machine(self):
        return self.backend.machine

    def _print(self, text: str = "") -> None:
        print(text, file=self.stdout)

    def init(self) -> None:
        pass

    def repl(self, bp_no: int) -> None:
        if self.backend.state == State.STOPPED_BREAKPOINT and bp_no:
            self._print(f"Breakpoint {bp_no}")
        m = self.machine
        self._print(f"Stopped at {self.format_address(m.page(), m.cmd_addr())}")
        self.backend.state = State.RUNNING
        while True:
            self.stdout.write("dbg> ")
            self.stdout.flush()
            line = self.stdin.readline()
            if not line:
                return
            if self.execute(line) is CommandResult.EXIT_REPL:
                return

    def execute(self, line: str) -> CommandResult:
        """Run one input line; an empty line repeats the previous command."""
        if line == "" or line.startswith("\n"):
            line = self.default_command
        else:
            self.default_command = line
        tokens = line.split()
        if not tokens:
            return CommandResult.CONTINUE_REPL
        cmd = self.find_command(tokens[0])
        if cmd is None:
            return CommandResult.CONTINUE_REPL
        return getattr(self, cmd.handler)(tokens[1:])

    def find_command(self, name: str) -> Command | None:
        for cmd in self.commands:
            if name == cmd.name or (cmd.alias and name == cmd.alias):
                return cmd
        self._print(f'Unknown command "{name}". Try "help".')
        return None

    def format_address(self, page: int, addr: int) -> str:
        src = self.symbols.page2src(page)
        line = self.symbols.addr2line(page, addr)
        if src and line is not None and line > 0:
            return f"{src}:{line}"
        return f"{page}:0x{addr:x}"

    def parse_address(self, text: str) -> tuple[int, int] | None:
        """Parse <page>:<addr>, <file>:<line> or <line> into (page, addr)."""
        match = _PAGE_ADDR_RE.match(text)
        if match:
            return _c_int(match.group(1)), _c_int(match.group(2))

        match = _FILE_LINE_RE.match(text)
        if match:
            filename = match.group(1)
            line_no = _c_int(match.group(2))
            page = self.symbols.src2page(filename)
            if page is None:
                self._print(f"No source file named {filename}.")
                return None
            addr = self.symbols.line2addr(page, line_no)
            if addr is None:
                self._print(f"No line {line_no} in file {filename}.")
                return None
            return page, addr

        page = self.machine.page()
        line_no = _full_int(text)
        if line_no is not None:
            addr = self.symbols.line2addr(page, line_no)
            if addr is None:
                self._print(f"No line {line_no} in current file.")
                return None
            return page, addr
        return None

    def on_command(self, data) -> None:
        pass

    def on_sleep(self) -> None:
        if self.backend.state == State.STOPPED_INTERRUPT:
            self.backend.repl(0)

    def on_palette_change(self) -> None:
        pass

    def console_output(self, text: str) -> bool:
        return False

    def _print_help(self, cmd: Command) -> None:
        if cmd.alias:
            self._print(f"{cmd.name}, {cmd.alias} -- {cmd.description}")
        else:
            self._print(f"{cmd.name} -- {cmd.description}")

    def _cmd_backtrace(self, args: list[str]) -> CommandResult:
        for frame in self.backend.stack_trace():
            if frame.src and frame.line is not None and frame.line > 0:
                self._print(f"\t{frame.src}:{frame.line}")
            else:
                self._print(f"\t{frame.page}:{frame.addr:04x}")
        return CommandResult.CONTINUE_REPL

    def _cmd_break(self, args: list[str]) -> CommandResult:
        location = self.parse_address(args[0]) if args else None
        if location is None:
            self._print(_HELP_BREAK)
            return CommandResult.CONTINUE_REPL
        page, addr = location
        try:
            bp_no = self.backend.set_breakpoint(page, addr, False)
        except ValueError:
            self._print(f"Failed to set breakpoint at {page}:{addr:04x}: invalid address")
            return CommandResult.CONTINUE_REPL
        self._print(f"Breakpoint {bp_no} at {self.format_address(page, addr)}")
        return CommandResult.CONTINUE_REPL

    def _cmd_continue(self, args: list[str]) -> CommandResult:
        return CommandResult.EXIT_REPL

    def _cmd_delete(self, args: list[str]) -> CommandResult:
        if not args:
            self._print(_HELP_DELETE)
            return CommandResult.CONTINUE_REPL
        for arg in args:
            bp_no = _full_int(arg)
            if bp_no is None:
                self._print(f"Bad breakpoint number {arg}")
            elif not self.backend.delete_breakpoint(bp_no):
                self._print(f"No breakpoint number {bp_no}.")
        return CommandResult.CONTINUE_REPL

    def _cmd_help(self, args: list[str]) -> CommandResult:
        if not args:
            self._print("List of commands:")
            self._print()
            for cmd in self.commands:
                self._print_help(cmd)
            self._print()
            self._print('Type "help" followed by command name for full documentation.')
            return CommandResult.CONTINUE_REPL
        cmd = self.find_command(args[0])
        if cmd:
            self._print_help(cmd)
            if cmd.help:
                self._print()
                self._print(cmd.help)
        return CommandResult.CONTINUE_REPL

    def _cmd_list(self, args: list[str]) -> CommandResult:
        if args:
            location = self.parse_address(args[0])
            if location is None:
                self._print(_HELP_LIST)
                return CommandResult.CONTINUE_REPL
            page, addr = location
        else:
            page, addr = self.machine.page(), self.machine.cmd_addr()

        line_no = self.symbols.addr2line(page, addr)
        if line_no is None or line_no <= 0:
            self._print(f"Cannot determine source location for {page:x}:{addr:x}")
            return CommandResult.CONTINUE_REPL

        line_no = max(line_no - 5, 1)
        src = self.symbols.page2src(page)
        for i in range(10):
            text = self.symbols.source_line(page, line_no + i)
            if text is None:
                if i == 0:
                    self._print(f"No source text for {src}:{line_no}")
                break
            self._print(f"{line_no + i}\t{text}")

        # An empty input line then lists the next ten lines.
        self.default_command = f"l {src}:{line_no + 15}"
        return CommandResult.CONTINUE_REPL

    def _cmd_step(self, args: list[str]) -> CommandResult:
        self.backend.stepin()
        return CommandResult.EXIT_REPL

    def _cmd_finish(self, args: list[str]) -> CommandResult:
        self.backend.stepout()
        return CommandResult.EXIT_REPL

    def _cmd_next(self, args: list[str]) -> CommandResult:
        self.backend.next()
        return CommandResult.EXIT_REPL

    def _cmd_print(self, args: list[str]) -> CommandResult:
        if not args:
            self._print(_HELP_PRINT)
            return CommandResult.CONTINUE_REPL
        name = args[0]
        var = self.symbols.lookup_variable(name)
        if var is None:
            self._print(f'Unrecognized variable name "{name}".')
            return CommandResult.CONTINUE_REPL
        self._print(f"{name} = {self.machine.get_var(var)}")
        return CommandResult.CONTINUE_REPL

    def _cmd_quit(self, args: list[str]) -> CommandResult:
        self.machine.quit(0)
        return CommandResult.EXIT_REPL

    def _cmd_string(self, args: list[str]) -> CommandResult:
        if not args:
            self._print(_HELP_STRING)
            return CommandResult.CONTINUE_REPL
        for arg in args:
            no = _atoi(arg)
            value = None
            if no >= 1:
                try:
                    value = self.machine.get_string(no - 1)
                except IndexError:
                    value = None
            if value is None:
                self._print(f"Bad string index {arg}")
            else:
                self._print(f'string[{no}] = "{self.encoding.to_utf8(value)}"')
        return CommandResult.CONTINUE_REPL