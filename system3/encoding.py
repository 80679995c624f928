"""Character encodings used by game scripts: Shift_JIS and UTF-8."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

# Gaiji characters are mapped to the Unicode Private Use Area U+E000-U+E0BB.
GAIJI_FIRST = 0xE000
GAIJI_LAST = 0xE0BB

_log = logging.getLogger(__name__)


def _terminated(data: bytes) -> bytes:
    """Return the part of ``data`` before the first NUL byte."""
    return bytes(data).split(b"\0", 1)[0]


class Encoding(ABC):
    """A multibyte character encoding."""

    @abstractmethod
    def mblen(self, first_byte: int) -> int:
        """Byte length of a character, judged from its first byte."""

    @abstractmethod
    def next_codepoint(self, data: bytes, pos: int = 0) -> tuple[int, int]:
        """Decode the character at ``pos``; return (codepoint, next position)."""

    def mbslen(self, data: bytes) -> int:
        """Number of characters in ``data`` up to the first NUL byte."""
        data = _terminated(data)
        count = 0
        pos = 0
        while pos < len(data):
            pos += self.mblen(data[pos])
            count += 1
        return count

    @abstractmethod
    def from_utf8(self, text: str) -> bytes:
        """Encode Unicode text into this encoding."""

    @abstractmethod
    def to_utf8(self, data: bytes) -> str:
        """Decode bytes in this encoding into Unicode text."""


def _sjis_table_lookup(code: int) -> int:
    """Unicode codepoint of a two-byte Shift_JIS code, or 0 if unmapped."""
    try:
        text = code.to_bytes(2, "big").decode("cp932")
    except (UnicodeDecodeError, OverflowError):
        return 0
    return ord(text) if len(text) == 1 else 0


def _unicode_to_sjis(u: int) -> int:
    """Two-byte Shift_JIS code for a codepoint, or 0 if there is none."""
    if u > 0xFFFF or 0xD800 <= u <= 0xDFFF or 0xE000 <= u <= 0xF8FF:
        return 0
    try:
        encoded = chr(u).encode("cp932")
    except UnicodeEncodeError:
        return 0
    return int.from_bytes(encoded, "big") if len(encoded) == 2 else 0


def _sjis_to_unicode(code: int) -> int:
    if code < 0x80:
        return code
    if 0xA0 <= code <= 0xDF:
        return 0xFF60 + code - 0xA0
    if 0xEB9F <= code <= 0xEBFC:
        return code - 0xEB9F + GAIJI_FIRST
    if 0xEC40 <= code <= 0xEC9E:
        return code - 0xEC40 + 94 + GAIJI_FIRST
    return _sjis_table_lookup(code)


class SjisEncoding(Encoding):
    """Shift_JIS with half-width kana and the engine's gaiji area."""

    @staticmethod
    def _is_2byte(c: int) -> bool:
        return 0x81 <= c <= 0x9F or c >= 0xE0

    def mblen(self, first_byte: int) -> int:
        return 2 if self._is_2byte(first_byte) else 1

    def next_codepoint(self, data: bytes, pos: int = 0) -> tuple[int, int]:
        code = data[pos]
        pos += 1
        if self._is_2byte(code):
            second = data[pos] if pos < len(data) else 0
            if pos < len(data):
                pos += 1
            code = (code << 8) | second
        return _sjis_to_unicode(code), pos

    def from_utf8(self, text: str) -> bytes:
        out = bytearray()
        for ch in text.split("\0", 1)[0]:
            u = ord(ch)
            if u <= 0x7F:
                out.append(u)
            elif 0xFF60 < u <= 0xFF9F:
                out.append(u - 0xFF60 + 0xA0)
            else:
                code = _unicode_to_sjis(u)
                out += code.to_bytes(2, "big") if code else b"?"
        return bytes(out)

    def to_utf8(self, data: bytes) -> str:
        data = _terminated(data)
        chars = []
        pos = 0
        while pos < len(data):
            b = data[pos]
            if b <= 0x7F:
                chars.append(chr(b))
                pos += 1
                continue
            if 0xA0 <= b <= 0xDF:
                code = 0xFF60 + b - 0xA0
                pos += 1
            else:
                if pos + 1 >= len(data):
                    break
                code = _sjis_table_lookup(b << 8 | data[pos + 1])
                pos += 2
            chars.append(chr(code))
        return "".join(chars)


class Utf8Encoding(Encoding):
    """UTF-8, tolerant of malformed sequences."""

    def mblen(self, first_byte: int) -> int:
        if first_byte <= 0xBF:
            return 1
        if first_byte <= 0xDF:
            return 2
        if first_byte <= 0xEF:
            return 3
        return 4

    def next_codepoint(self, data: bytes, pos: int = 0) -> tuple[int, int]:
        size = len(data)

        def at(offset: int) -> int:
            i = pos + offset
            return data[i] if i < size else 0

        b0 = data[pos]
        if b0 <= 0x7F:
            return b0, pos + 1
        if b0 <= 0xBF:
            return ord("?"), pos + 1
        if b0 <= 0xDF:
            code = (b0 & 0x1F) << 6 | (at(1) & 0x3F)
            return code, min(pos + 2, size)
        if b0 <= 0xEF:
            code = (b0 & 0x0F) << 12 | (at(1) & 0x3F) << 6 | (at(2) & 0x3F)
            return code, min(pos + 3, size)
        if b0 <= 0xF7:
            code = ((b0 & 0x07) << 18 | (at(1) & 0x3F) << 12
                    | (at(2) & 0x3F) << 6 | (at(3) & 0x3F))
            return code, min(pos + 4, size)
        pos += 1
        while pos < size and 0x80 <= data[pos] <= 0xBF:
            pos += 1
        return 0xFFFD, pos

    def from_utf8(self, text: str) -> bytes:
        return text.split("\0", 1)[0].encode("utf-8")

    def to_utf8(self, data: bytes) -> str:
        return _terminated(data).decode("utf-8", errors="replace")


_SJIS_NAMES = {"shift_jis", "shift-jis", "sjis", "cp932"}
_UTF8_NAMES = {"utf-8", "utf8"}


def create_encoding(name: str) -> Encoding:
    """Return the encoding called ``name``; unknown names fall back to Shift_JIS."""
    lowered = name.lower()
    if lowered in _SJIS_NAMES:
        return SjisEncoding()
    if lowered in _UTF8_NAMES:
        return Utf8Encoding()
    _log.warning('Unrecognized encoding: "%s"', name)
    return SjisEncoding()