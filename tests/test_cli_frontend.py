import io

from system3.cli_frontend import CliFrontend, CommandResult
from system3.debug_info import DebugInfo, Mapping, SrcInfo
from system3.debugger import BREAKPOINT_INSTRUCTION, CallFrame, Debugger, State


class FakeMachine:
    def __init__(self):
        self.code = {0: bytearray(16), 1: bytearray(16)}
        self.cur_page = 0
        self.cur_addr = 5
        self.pos = 5
        self.frames = []
        self.vars = [7, 42]
        self.strings = [b"abc", "日本".encode("cp932")]
        self.quit_code = None

    def page(self):
        return self.cur_page

    def cmd_addr(self):
        return self.cur_addr

    def current_addr(self):
        return self.pos

    def jump_to(self, addr):
        self.pos = addr

    def getd(self):
        value = self.code[self.cur_page][self.pos]
        self.pos += 1
        return value

    def getw(self):
        return self.getd() | self.getd() << 8

    def cali(self):
        return 0

    def write_instruction(self, page, addr, op):
        code = self.code.get(page)
        if code is None or not 0 <= addr < len(code):
            return None
        old = code[addr]
        code[addr] = op
        return old

    def call_stack(self):
        return self.frames

    def get_var(self, index):
        return self.vars[index]

    def set_var(self, index, value):
        self.vars[index] = value

    def get_string(self, index):
        return self.strings[index]

    def set_string(self, index, value):
        self.strings[index] = value

    def quit(self, code):
        self.quit_code = code


def make_symbols():
    symbols = DebugInfo()
    symbols.srcs = [SrcInfo("main.adv", [f"line {i}" for i in range(1, 21)],
                            [Mapping(1, 0), Mapping(2, 4), Mapping(3, 8)])]
    symbols.variables = ["x", "y"]
    return symbols


def make(stdin_text=""):
    out = io.StringIO()
    machine = FakeMachine()
    dbg = Debugger(machine, make_symbols(),
                   lambda b, s: CliFrontend(b, s, stdin=io.StringIO(stdin_text),
                                            stdout=out, handle_sigint=False))
    return dbg, dbg.frontend, machine, out


def test_constructor_stops_at_entry():
    dbg, _, _, _ = make()
    assert dbg.state == State.STOPPED_ENTRY


def test_format_address():
    _, fe, _, _ = make()
    assert fe.format_address(0, 5) == "main.adv:2"
    assert fe.format_address(3, 0x1A) == "3:0x1a"


def test_parse_address_forms():
    _, fe, _, _ = make()
    assert fe.parse_address("0x1:0x10") == (1, 16)
    assert fe.parse_address("010:4") == (8, 4)
    assert fe.parse_address("main.adv:3") == (0, 8)
    assert fe.parse_address("MAIN.ADV:2") == (0, 4)
    assert fe.parse_address("2") == (0, 4)
    assert fe.parse_address("bogus") is None


def test_parse_address_errors():
    _, fe, _, out = make()
    assert fe.parse_address("nofile.adv:1") is None
    assert fe.parse_address("main.adv:99") is None
    assert fe.parse_address("99") is None
    text = out.getvalue()
    assert "No source file named nofile.adv." in text
    assert "No line 99 in file main.adv." in text
    assert "No line 99 in current file." in text


def test_break_sets_breakpoint():
    dbg, fe, machine, out = make()
    assert fe.execute("break main.adv:3\n") is CommandResult.CONTINUE_REPL
    assert "Breakpoint 1 at main.adv:3" in out.getvalue()
    assert machine.code[0][8] == BREAKPOINT_INSTRUCTION
    assert [bp.no for bp in dbg.breakpoints] == [1]


def test_break_invalid_and_missing():
    _, fe, _, out = make()
    fe.execute("b 0:100\n")
    fe.execute("b\n")
    text = out.getvalue()
    assert "Failed to set breakpoint at 0:0064: invalid address" in text
    assert "Syntax: break <filename>:<linenum> [if <condition>]" in text


def test_delete():
    dbg, fe, machine, out = make()
    fe.execute("b 2\n")
    fe.execute("delete 1 5 x\n")
    assert machine.code[0][4] == 0
    assert dbg.breakpoints == []
    text = out.getvalue()
    assert "No breakpoint number 5." in text
    assert "Bad breakpoint number x" in text


def test_unknown_command():
    _, fe, _, out = make()
    assert fe.execute("frobnicate\n") is CommandResult.CONTINUE_REPL
    assert 'Unknown command "frobnicate". Try "help".' in out.getvalue()
    assert fe.find_command("bt").name == "backtrace"


def test_print_variable():
    _, fe, _, out = make()
    fe.execute("p y\n")
    fe.execute("print zz\n")
    text = out.getvalue()
    assert "y = 42" in text
    assert 'Unrecognized variable name "zz".' in text


def test_string_command():
    _, fe, _, out = make()
    fe.execute("str 2 0 3\n")
    text = out.getvalue()
    assert 'string[2] = "日本"' in text
    assert "Bad string index 0" in text
    assert "Bad string index 3" in text


def test_list_without_symbols():
    _, fe, machine, out = make()
    machine.cur_page = 1
    fe.execute("list\n")
    assert "Cannot determine source location for 1:5" in out.getvalue()


def test_step_next_quit():
    dbg, fe, machine, _ = make()
    assert fe.execute("s\n") is CommandResult.EXIT_REPL
    assert dbg.state == State.STOPPED_STEP
    assert fe.execute("n\n") is CommandResult.EXIT_REPL
    assert dbg.state == State.STOPPED_NEXT
    assert fe.execute("q\n") is CommandResult.EXIT_REPL
    assert machine.quit_code == 0


def test_backtrace():
    _, fe, machine, out = make()
    machine.frames = [CallFrame(0, 9)]
    fe.execute("bt\n")
    assert out.getvalue() == "\tmain.adv:2\n\tmain.adv:3\n"


def test_repl_runs_until_continue():
    dbg, fe, _, out = make("p x\nc\np y\n")
    dbg.state = State.STOPPED_BREAKPOINT
    fe.repl(3)
    text = out.getvalue()
    assert text.startswith("Breakpoint 3\nStopped at main.adv:2\n")
    assert "x = 7" in text
    assert "y = 42" not in text
    assert dbg.state == State.RUNNING


def test_repl_returns_at_end_of_input():
    dbg, fe, _, out = make("")
    fe.repl(0)
    assert out.getvalue() == "Stopped at main.adv:2\ndbg> "
    assert dbg.state == State.RUNNING


def test_on_sleep_enters_repl_on_interrupt():
    dbg, fe, _, out = make("c\n")
    dbg.state = State.STOPPED_INTERRUPT
    fe.on_sleep()
    assert "Stopped at main.adv:2" in out.getvalue()
    assert dbg.state == State.RUNNING


def test_help():
    _, fe, _, out = make()
    fe.execute("help\n")
    fe.execute("help list\n")
    text = out.getvalue()
    assert "break, b -- Set breakpoint at specified location." in text
    assert "finish -- Execute until current function returns." in text
    assert "With no argument, lists ten lines around current location." in text


def test_console_output_not_consumed():
    _, fe, _, _ = make()
    assert fe.console_output("hello") is False