"""Debug symbols: source files, line/address mappings and variable names."""

from __future__ import annotations

import logging
import os
import struct
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field

SIGNATURE = b"DSYM"
SUPPORTED_VERSION = 0

_log = logging.getLogger(__name__)


class DebugInfoError(ValueError):
    """Debug information that cannot be read."""


@dataclass(frozen=True)
class Mapping:
    """A source line and the address of its first command."""

    line: int
    addr: int


@dataclass
class SrcInfo:
    """One source file: its name, text lines and line/address mappings."""

    filename: str = ""
    lines: list[str] = field(default_factory=list)
    mappings: list[Mapping] = field(default_factory=list)

    def line2addr(self, line: int) -> int | None:
        """Address of the first mapping whose line is at least ``line``."""
        i = bisect_left(self.mappings, line, key=lambda m: m.line)
        return self.mappings[i].addr if i < len(self.mappings) else None

    def addr2line(self, addr: int) -> int | None:
        """Line of the last mapping whose address is at most ``addr``."""
        i = bisect_right(self.mappings, addr, key=lambda m: m.addr)
        return self.mappings[i - 1].line if i else None


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _cstrings(buf: bytes, count: int) -> list[bytes]:
    """The first ``count`` NUL-terminated strings after the 4-byte count."""
    if count == 0:
        return []
    parts = buf[4:].split(b"\0")
    if len(parts) <= count:
        raise DebugInfoError("malformed debug information")
    return parts[:count]


def _split_lines(text: str) -> list[str]:
    pieces = text.split("\n")
    lines = [p[:-1] if p.endswith("\r") else p for p in pieces[:-1]]
    lines.append(pieces[-1])
    return lines


class DebugInfo:
    """Symbols that map script pages and addresses to source locations."""

    def __init__(self) -> None:
        self.loaded = False
        self.srcs: list[SrcInfo] = []
        self.variables: list[str] = []

    def load(self, path: str | os.PathLike) -> None:
        """Read a symbols file."""
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise DebugInfoError(f"Cannot open {os.fspath(path)}: {e.strerror}") from e
        self.loads(data)

    def loads(self, data: bytes) -> None:
        """Parse symbols from bytes."""
        data = bytes(data)
        if data[:4] != SIGNATURE:
            raise DebugInfoError("wrong signature")
        try:
            version, nr_sections = struct.unpack_from("<II", data, 4)
        except struct.error:
            raise DebugInfoError("truncated header") from None
        if version != SUPPORTED_VERSION:
            raise DebugInfoError("unsupported debug info version")

        srcs: list[SrcInfo] = []
        variables: list[str] = []
        pos = 12
        for _ in range(nr_sections):
            if pos + 8 > len(data):
                raise DebugInfoError("truncated section header")
            tag = data[pos:pos + 4]
            (size,) = struct.unpack_from("<I", data, pos + 4)
            if size < 8 or pos + size > len(data):
                raise DebugInfoError("truncated section")
            content = data[pos + 8:pos + size]
            pos += size
            try:
                if tag == b"SRCS":
                    self._load_srcs(srcs, content)
                elif tag == b"SCNT":
                    self._load_scnt(srcs, content)
                elif tag == b"LINE":
                    self._load_line(srcs, content)
                elif tag == b"VARI":
                    variables.extend(_decode(n) for n in _cstrings(
                        content, struct.unpack_from("<I", content, 0)[0]))
                else:
                    _log.warning("unrecognized section %s",
                                 tag.decode("ascii", errors="replace"))
            except struct.error:
                raise DebugInfoError("malformed debug information") from None
        if pos != len(data):
            raise DebugInfoError("broken debug information structure")

        self.srcs = srcs
        self.variables = variables
        self.loaded = bool(srcs) and bool(variables)

    @staticmethod
    def _ensure_srcs(srcs: list[SrcInfo], count: int) -> None:
        if not srcs:
            srcs.extend(SrcInfo() for _ in range(count))
        elif count != len(srcs):
            raise DebugInfoError("malformed debug information")

    def _load_srcs(self, srcs: list[SrcInfo], buf: bytes) -> None:
        (count,) = struct.unpack_from("<I", buf, 0)
        self._ensure_srcs(srcs, count)
        for info, name in zip(srcs, _cstrings(buf, count)):
            info.filename = _decode(name)

    def _load_scnt(self, srcs: list[SrcInfo], buf: bytes) -> None:
        (count,) = struct.unpack_from("<I", buf, 0)
        self._ensure_srcs(srcs, count)
        for info, text in zip(srcs, _cstrings(buf, count)):
            info.lines = _split_lines(_decode(text))

    def _load_line(self, srcs: list[SrcInfo], buf: bytes) -> None:
        (count,) = struct.unpack_from("<I", buf, 0)
        self._ensure_srcs(srcs, count)
        ofs = 4
        for info in srcs:
            (nr_mappings,) = struct.unpack_from("<I", buf, ofs)
            ofs += 4
            info.mappings = [
                Mapping(*struct.unpack_from("<II", buf, ofs + 8 * i))
                for i in range(nr_mappings)
            ]
            ofs += 8 * nr_mappings

    def _src(self, page: int) -> SrcInfo | None:
        return self.srcs[page] if 0 <= page < len(self.srcs) else None

    def src2page(self, fname: str) -> int | None:
        """Page of the source file named ``fname``, ignoring case."""
        target = fname.lower()
        for page, info in enumerate(self.srcs):
            if info.filename.lower() == target:
                return page
        return None

    def page2src(self, page: int) -> str | None:
        info = self._src(page)
        return info.filename if info else None

    def line2addr(self, page: int, line: int) -> int | None:
        info = self._src(page)
        return info.line2addr(line) if info else None

    def addr2line(self, page: int, addr: int) -> int | None:
        info = self._src(page)
        return info.addr2line(addr) if info else None

    def source_line(self, page: int, line: int) -> str | None:
        """Text of a 1-based source line, or None."""
        info = self._src(page)
        if info is None or not 1 <= line <= len(info.lines):
            return None
        return info.lines[line - 1]

    def variable_name(self, index: int) -> str | None:
        if 0 <= index < len(self.variables):
            return self.variables[index]
        return None

    def lookup_variable(self, name: str) -> int | None:
        try:
            return self.variables.index(name)
        except ValueError:
            return None

    def num_variables(self) -> int:
        return len(self.variables)