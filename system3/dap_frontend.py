"""Debug Adapter Protocol front end for the script debugger."""

from __future__ import annotations

import enum
import json
import logging
import queue
import re
import sys
import threading
from typing import Any, BinaryIO, Callable, Iterator, Sequence

from .debug_info import DebugInfo
from .debugger import Debugger, Frontend, State
from .encoding import Encoding, SjisEncoding

_log = logging.getLogger(__name__)

_CONTENT_LENGTH_RE = re.compile(rb"Content-Length:\s*([+-]?\d+)")
_SCAN_INT_RE = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")
_STRING_INDEX_RE = re.compile(r"\[\s*([+-]?\d+)")

_STOP_REASONS = {
    State.STOPPED_ENTRY: "entry",
    State.STOPPED_STEP: "step",
    State.STOPPED_NEXT: "step",
    State.STOPPED_BREAKPOINT: "breakpoint",
    State.STOPPED_INTERRUPT: "pause",
    State.STOPPED_EXCEPTION: "exception",
}


class VariablesReference(enum.IntEnum):
    GLOBALS = 1
    STRINGS = 2


def read_messages(stream: BinaryIO) -> Iterator[bytes]:
    """Yield message bodies framed by Content-Length headers."""
    content_length: int | None = None
    for header in iter(stream.readline, b""):
        match = _CONTENT_LENGTH_RE.match(header)
        if match:
            content_length = int(match.group(1))
            continue
        if header.startswith(b"\r\n") or header.startswith(b"\n"):
            if content_length is None or content_length < 0:
                _log.error("Debug Adapter Protocol error: no Content-Length header")
                continue
            yield stream.read(content_length)
            content_length = None
        else:
            _log.error("Unknown Debug Adapter Protocol header: %r", header)


def _scan_int(text: str) -> int | None:
    """Leading integer in ``text`` with optional 0x or 0 prefix, or None."""
    match = _SCAN_INT_RE.match(text)
    if not match:
        return None
    sign, body = match.groups()
    if body[:2].lower() == "0x":
        value = int(body[2:], 16)
    elif len(body) > 1:
        value = int(body, 8)
    else:
        value = int(body, 10)
    return -value if sign == "-" else value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class DapFrontend(Frontend):
    """Talks to a debugging client over the Debug Adapter Protocol."""

    def __init__(self, backend: Debugger, symbols: DebugInfo, *,
                 string_count: int,
                 encoding: Encoding | None = None,
                 output: BinaryIO | None = None,
                 input_stream: BinaryIO | None = None,
                 pump: Callable[[], None] | None = None,
                 is_terminating: Callable[[], bool] | None = None,
                 screen_palette: Callable[[], Sequence[int]] | None = None):
        super().__init__(backend, symbols)
        self.string_count = string_count
        self.encoding = encoding if encoding is not None else SjisEncoding()
        self.output = output if output is not None else sys.stdout.buffer
        self._pump = pump
        self._is_terminating = is_terminating or (lambda: False)
        self._screen_palette = screen_palette or (lambda: [])
        self._queue: queue.Queue[Any] = queue.Queue()
        self._held: list[Any] = []
        self.initialized = False
        self.seq = 0
        self.src_dir = ""
        self.palette_version = 0
        self._write_lock = threading.Lock()
        if input_stream is not None:
            reader = threading.Thread(target=self._read_commands,
                                      args=(input_stream,), name="Debugger",
                                      daemon=True)
            reader.start()

    @property
    def machine(self):
        return self.backend.machine

    def _read_commands(self, stream: BinaryIO) -> None:
        for message in read_messages(stream):
            self.on_command(message)
        self.on_command(None)  # end of messages

    def _wait_for_event(self) -> None:
        if self._pump is not None:
            self._pump()
            return
        if self._held:
            return
        try:
            self._held.append(self._queue.get(timeout=0.1))
        except queue.Empty:
            pass

    def _drain(self) -> Iterator[Any]:
        while self._held:
            yield self._held.pop(0)
        while True:
            try:
                yield self._queue.get_nowait()
            except queue.Empty:
                return

    def init(self) -> None:
        while not self.initialized and not self._is_terminating():
            self._wait_for_event()
            for message in self._drain():
                if message is None:
                    return
                self.handle_message(message)

    def repl(self, bp_no: int) -> None:
        self.emit_stopped_event()
        self.backend.state = State.RUNNING
        continue_repl = True
        while continue_repl and not self._is_terminating():
            self._wait_for_event()
            for message in self._drain():
                if message is None:
                    return
                continue_repl = self.handle_message(message)

    def on_command(self, data: Any) -> None:
        self._queue.put(data)

    def on_sleep(self) -> None:
        for message in self._drain():
            if message is None:
                return
            self.handle_message(message)
        if self.backend.state in (State.STOPPED_INTERRUPT, State.STOPPED_EXCEPTION):
            self.backend.repl(0)

    def on_palette_change(self) -> None:
        self.palette_version += 1
        self.send_json({
            "type": "event",
            "event": "xsystem35.paletteChanged",
            "body": {"version": self.palette_version},
        })

    def console_output(self, text: str) -> bool:
        body: dict[str, Any] = {"output": text}
        page = self.machine.page()
        src = self.symbols.page2src(page)
        if src:
            body["source"] = self._create_source(src)
        line = self.symbols.addr2line(page, self.machine.cmd_addr())
        if line is not None and line >= 0:
            body["line"] = line
        self.send_json({"type": "event", "event": "output", "body": body})
        return True

    def _create_source(self, name: str | None) -> dict[str, Any]:
        source: dict[str, Any] = {"name": name}
        if self.src_dir and name:
            source["path"] = f"{self.src_dir}/{name}"
        source["sourceReference"] = 0
        return source

    def _format_string_value(self, value: bytes) -> str:
        return '"' + self.encoding.to_utf8(value) + '"'

    def send_json(self, message: dict[str, Any]) -> None:
        """Number the message and write it with its Content-Length header."""
        self.seq += 1
        message["seq"] = self.seq
        body = json.dumps(message, ensure_ascii=False, sort_keys=True,
                          separators=(",", ":")).encode("utf-8")
        with self._write_lock:
            self.output.write(b"Content-Length: %d\r\n\r\n" % len(body))
            self.output.write(body)
            self.output.flush()

    def _emit_initialized_event(self) -> None:
        self.send_json({"type": "event", "event": "initialized"})

    def emit_stopped_event(self) -> None:
        reason = _STOP_REASONS.get(self.backend.state, "unknown")
        self.send_json({
            "type": "event",
            "event": "stopped",
            "body": {"reason": reason, "allThreadsStopped": True},
        })

    def handle_message(self, message: str | bytes | dict) -> bool:
        """Handle one message; return False when the REPL should end."""
        data = json.loads(message) if isinstance(message, (str, bytes, bytearray)) else message
        if data["type"] == "request":
            return self.handle_request(data)
        return True

    def handle_request(self, request: dict[str, Any]) -> bool:
        resp: dict[str, Any] = {
            "type": "response",
            "request_seq": request.get("seq"),
            "command": request.get("command"),
        }
        command = request["command"]
        args = request.get("arguments") or {}
        entry = self._handlers.get(command)
        continue_repl = True
        if entry is None:
            _log.error("Unknown command '%s'", command)
            resp["success"] = False
            resp["message"] = "Unknown command " + command
        else:
            handler_name, continues = entry
            getattr(self, handler_name)(args, resp)
            continue_repl = continues
        self.send_json(resp)
        return continue_repl

    _handlers: dict[str, tuple[str, bool]] = {
        "initialize": ("_cmd_initialize", True),
        "disconnect": ("_cmd_disconnect", False),
        "launch": ("_cmd_launch", True),
        "configurationDone": ("_cmd_configuration_done", True),
        "threads": ("_cmd_threads", True),
        "scopes": ("_cmd_scopes", True),
        "variables": ("_cmd_variables", True),
        "setVariable": ("_cmd_set_variable", True),
        "stackTrace": ("_cmd_stack_trace", True),
        "evaluate": ("_cmd_evaluate", True),
        "setBreakpoints": ("_cmd_set_breakpoints", True),
        "continue": ("_cmd_continue", False),
        "pause": ("_cmd_pause", True),
        "stepIn": ("_cmd_step_in", False),
        "stepOut": ("_cmd_step_out", False),
        "next": ("_cmd_next", False),
        "xsystem35.palette": ("_cmd_palette", True),
    }

    def _cmd_initialize(self, args: dict, resp: dict) -> None:
        resp["success"] = True
        resp["body"] = {
            "supportsConfigurationDoneRequest": True,
            "supportsEvaluateForHovers": True,
            "supportsSetVariable": True,
        }

    def _cmd_disconnect(self, args: dict, resp: dict) -> None:
        resp["success"] = True
        self.machine.quit(0)

    def _cmd_launch(self, args: dict, resp: dict) -> None:
        if args.get("noDebug") is True:
            resp["success"] = True
            self.initialized = True
            return
        if not self.symbols.loaded:
            resp["success"] = False
            resp["message"] = "system3: Cannot load debug symbols"
            return
        if isinstance(args.get("srcDir"), str):
            self.src_dir = args["srcDir"]
        if args.get("stopOnEntry") is True:
            self.backend.state = State.STOPPED_ENTRY
        resp["success"] = True
        self._emit_initialized_event()

    def _cmd_configuration_done(self, args: dict, resp: dict) -> None:
        self.initialized = True
        resp["success"] = True

    def _cmd_threads(self, args: dict, resp: dict) -> None:
        resp["success"] = True
        resp["body"] = {"threads": [{"id": 1, "name": "main thread"}]}

    def _cmd_scopes(self, args: dict, resp: dict) -> None:
        resp["success"] = True
        resp["body"] = {"scopes": [
            {
                "name": "All Variables",
                "variablesReference": int(VariablesReference.GLOBALS),
                "namedVariables": self.symbols.num_variables(),
                "expensive": False,
            },
            {
                "name": "Strings",
                "variablesReference": int(VariablesReference.STRINGS),
                "indexedVariables": self.string_count,
                "expensive": False,
            },
        ]}

    def _cmd_variables(self, args: dict, resp: dict) -> None:
        start = int(args["start"]) if _is_number(args.get("start")) else 0
        count = int(args["count"]) if _is_number(args.get("count")) else None
        ref = args["variablesReference"]
        if ref == VariablesReference.GLOBALS:
            total = self.symbols.num_variables()
            end = total if count is None else min(start + count, total)
            resp["success"] = True
            resp["body"] = {"variables": [
                {"name": self.symbols.variable_name(i),
                 "value": str(self.machine.get_var(i)),
                 "variablesReference": 0}
                for i in range(start, end)
            ]}
        elif ref == VariablesReference.STRINGS:
            total = self.string_count
            end = total if count is None else min(start + count, total)
            resp["success"] = True
            resp["body"] = {"variables": [
                {"name": f"[{i + 1}]",
                 "value": self._format_string_value(self.machine.get_string(i)),
                 "variablesReference": 0}
                for i in range(start, end)
            ]}
        else:
            resp["success"] = False
            resp["message"] = "Invalid variables reference"

    def _cmd_set_variable(self, args: dict, resp: dict) -> None:
        ref = args["variablesReference"]
        if ref == VariablesReference.GLOBALS:
            var = self.symbols.lookup_variable(args["name"])
            if var is None:
                resp["success"] = False
                resp["message"] = "Invalid variable name"
                return
            value = _scan_int(args["value"])
            if value is None:
                resp["success"] = False
                resp["message"] = "Syntax error"
                return
            self.machine.set_var(var, value)
            resp["success"] = True
            resp["body"] = {"value": str(self.machine.get_var(var))}
        elif ref == VariablesReference.STRINGS:
            match = _STRING_INDEX_RE.match(args["name"])
            index = int(match.group(1)) if match else 0
            if not 1 <= index <= self.string_count:
                resp["success"] = False
                resp["message"] = "Invalid string index"
                return
            index -= 1
            value = args["value"]
            if len(value) < 2 or not value.startswith('"') or not value.endswith('"'):
                resp["success"] = False
                resp["message"] = "Syntax error"
                return
            self.machine.set_string(index, self.encoding.from_utf8(value[1:-1]))
            resp["success"] = True
            resp["body"] = {
                "value": self._format_string_value(self.machine.get_string(index)),
            }
        else:
            resp["success"] = False
            resp["message"] = "Invalid variables reference"

    def _cmd_stack_trace(self, args: dict, resp: dict) -> None:
        frames = []
        for i, frame in enumerate(self.backend.stack_trace(), 1):
            frames.append({
                "id": i,
                "name": frame.src,
                "source": self._create_source(frame.src),
                "line": frame.line,
                "column": 0,
            })
        resp["success"] = True
        resp["body"] = {"stackFrames": frames, "totalFrames": len(frames)}

    def _cmd_evaluate(self, args: dict, resp: dict) -> None:
        var = self.symbols.lookup_variable(args["expression"])
        if var is None:
            resp["success"] = False
            resp["message"] = "Invalid expression"
            return
        resp["success"] = True
        resp["body"] = {"result": str(self.machine.get_var(var)),
                        "variablesReference": 0}

    def _cmd_set_breakpoints(self, args: dict, resp: dict) -> None:
        filename = args["source"]["name"]
        page = self.symbols.src2page(filename)
        if page is not None:
            self.backend.delete_breakpoints_in_page(page)

        out = []
        for srcbp in args.get("breakpoints") or []:
            item: dict[str, Any] = {}
            out.append(item)
            line = srcbp["line"]
            if page is None:
                item["verified"] = False
                item["message"] = "no source file named " + filename
                continue
            addr = self.symbols.line2addr(page, line)
            if addr is None:
                item["verified"] = False
                item["message"] = f"no line {line} in file {filename}"
                continue
            try:
                bp_no = self.backend.set_breakpoint(page, addr, False)
            except ValueError:
                item["verified"] = False
                item["message"] = f"failed to set breakpoint at {page}:0x{addr:x}"
                continue
            item["id"] = bp_no
            item["verified"] = True
            item["source"] = self._create_source(filename)
            item["line"] = self.symbols.addr2line(page, addr)
        resp["success"] = True
        resp["body"] = {"breakpoints": out}

    def _cmd_continue(self, args: dict, resp: dict) -> None:
        resp["success"] = True

    def _cmd_pause(self, args: dict, resp: dict) -> None:
        self.backend.state = State.STOPPED_INTERRUPT
        resp["success"] = True

    def _cmd_step_in(self, args: dict, resp: dict) -> None:
        self.backend.stepin()
        resp["success"] = True

    def _cmd_step_out(self, args: dict, resp: dict) -> None:
        self.backend.stepout()
        resp["success"] = True

    def _cmd_next(self, args: dict, resp: dict) -> None:
        self.backend.next()
        resp["success"] = True

    def _cmd_palette(self, args: dict, resp: dict) -> None:
        resp["success"] = True
        resp["body"] = {"version": self.palette_version,
                        "palette": list(self._screen_palette())}