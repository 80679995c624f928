"""Engine configuration from system3.ini and the command line."""

from __future__ import annotations

import enum
import logging
import os
import re
import sys
from dataclasses import dataclass, field, fields
from typing import Callable, Iterator

from .encoding import Encoding

INI_FILENAME = "system3.ini"

_log = logging.getLogger(__name__)


class ConfigError(ValueError):
    """An invalid value in the ini file or on the command line."""


class TexthookMode(enum.Enum):
    NONE = "none"
    PRINT = "print"
    COPY = "copy"


class DebuggerMode(enum.Enum):
    DISABLED = "none"
    CLI = "cli"
    DAP = "dap"


def _where(lineno: int | None) -> str:
    if lineno is None:
        return "Command line:"
    return f"{INI_FILENAME}:{lineno}"


def parse_bool(text: str, lineno: int | None = None) -> bool:
    """Parse yes/true/on/1 or no/false/off/0, ignoring case."""
    lowered = text.lower()
    if lowered in ("yes", "true", "on", "1"):
        return True
    if lowered in ("no", "false", "off", "0"):
        return False
    raise ConfigError(f"{_where(lineno)} Invalid boolean value '{text}'")


_INT_RE = re.compile(r"[ \t\n\r\f\v]*[+-]?[0-9]+")


def parse_int(text: str, lineno: int | None = None) -> int:
    """Parse a decimal integer; an empty string reads as 0."""
    if text == "":
        return 0
    if not _INT_RE.fullmatch(text):
        raise ConfigError(f"{_where(lineno)} Invalid integer value '{text}'")
    return int(text)


def _parse_texthook_mode(text: str, lineno: int | None = None) -> TexthookMode:
    try:
        return TexthookMode(text.lower())
    except ValueError:
        raise ConfigError(f"{_where(lineno)} Invalid texthook mode '{text}'") from None


def _parse_debugger_mode(text: str, lineno: int | None = None) -> DebuggerMode:
    try:
        return DebuggerMode(text.lower())
    except ValueError:
        raise ConfigError(f"{_where(lineno)} Invalid debugger mode '{text}'") from None


def _normalize_path(text: str, lineno: int | None = None) -> str:
    return text.replace("\\", "/")


def _as_is(text: str, lineno: int | None = None) -> str:
    return text


@dataclass
class Strings:
    """User-visible strings that games may override."""

    back: str | bytes = ""
    next_page: str | bytes = ""
    dps_custom: str | bytes = ""
    dps_linus: str | bytes = ""
    dps_katsumi: str | bytes = ""
    dps_yumiko: str | bytes = ""
    dps_itsumi: str | bytes = ""
    dps_hitomi: str | bytes = ""
    dps_mariko: str | bytes = ""


# field name -> (Japanese default, English default or None)
_STRING_DEFAULTS = {
    "back": ("戻る", "Back"),
    "next_page": ("次のページ", "Next Page"),
    "dps_custom": ("カスタム", None),
    "dps_linus": ("リーナス", None),
    "dps_katsumi": ("かつみ", None),
    "dps_yumiko": ("由美子", None),
    "dps_itsumi": ("いつみ", None),
    "dps_hitomi": ("ひとみ", None),
    "dps_mariko": ("真理子", None),
}

_Converter = Callable[[str, "int | None"], object]

_INI_KEYS: dict[str, tuple[str, _Converter]] = {
    "noantialias": ("no_antialias", parse_bool),
    "savedir": ("save_dir", _normalize_path),
    "fontfile": ("font_file", _normalize_path),
    "playlist": ("playlist", _normalize_path),
    "fm": ("use_fm", parse_bool),
    "mididevice": ("midi_device", parse_int),
    "game": ("game_id", _as_is),
    "encoding": ("encoding", _as_is),
    "title": ("title", _as_is),
    "scanline": ("scanline", parse_bool),
    "debugger": ("debugger_mode", _parse_debugger_mode),
    "trace": ("trace", parse_bool),
    "texthook": ("texthook_mode", _parse_texthook_mode),
    "texthook_suppress": ("texthook_suppressions", _as_is),
}

_FLAGS = {
    "-version": "print_version",
    "-noantialias": "no_antialias",
    "-fm": "use_fm",
    "-scanline": "scanline",
    "-trace": "trace",
}

_OPTIONS: dict[str, tuple[str, _Converter]] = {
    "-savedir": ("save_dir", _as_is),
    "-fontfile": ("font_file", _as_is),
    "-playlist": ("playlist", _as_is),
    "-mididevice": ("midi_device", parse_int),
    "-game": ("game_id", _as_is),
    "-encoding": ("encoding", _as_is),
    "-title": ("title", _as_is),
    "-debugger": ("debugger_mode", _parse_debugger_mode),
    "-texthook": ("texthook_mode", _parse_texthook_mode),
    "-texthook_suppress": ("texthook_suppressions", _as_is),
}

_SECTION_RE = re.compile(r"\[([^\]]+)")


def _next_value(args: Iterator[str], option: str) -> str:
    try:
        return next(args)
    except StopIteration:
        raise ConfigError(f"Command line: Missing value for '{option}'") from None


@dataclass
class Config:
    """Settings that control how a game is run."""

    font_file: str = ""
    game_id: str = ""
    encoding: str = ""
    save_dir: str = ""
    playlist: str = ""
    title: str = ""
    midi_device: int = -1
    print_version: bool = False
    trace: bool = False
    use_fm: bool = False
    no_antialias: bool = False
    scanline: bool = False
    texthook_mode: TexthookMode = TexthookMode.NONE
    debugger_mode: DebuggerMode = DebuggerMode.DISABLED
    texthook_suppressions: str = ""
    game_dir: str = "."
    strings: Strings = field(default_factory=Strings)

    def load_ini(self, path: str | os.PathLike) -> None:
        """Read settings from an ini file; a missing file is ignored."""
        try:
            handle = open(path, encoding="utf-8", errors="surrogateescape")
        except OSError:
            return
        section = None
        with handle:
            for lineno, line in enumerate(handle, 1):
                if line.startswith(";") or not line.strip():
                    continue
                match = _SECTION_RE.match(line)
                if match:
                    name = match.group(1)
                    if name.lower() in ("config", "string"):
                        section = name.lower()
                    else:
                        _log.warning('%s:%d Unknown section "%s"',
                                     INI_FILENAME, lineno, name)
                    continue
                if section is None:
                    _log.warning("%s:%d parse error", INI_FILENAME, lineno)
                    continue
                key, sep, value = line.partition("=")
                if not sep:
                    _log.warning("%s:%d parse error", INI_FILENAME, lineno)
                    continue
                key, value = key.strip(), value.strip()
                if section == "config":
                    self._set_ini_key(key, value, lineno)
                else:
                    self._set_string_key(key, value, lineno)

    def _set_ini_key(self, key: str, value: str, lineno: int) -> None:
        entry = _INI_KEYS.get(key.lower())
        if entry is None:
            _log.warning("%s:%d unknown key '%s'", INI_FILENAME, lineno, key)
            return
        name, convert = entry
        setattr(self, name, convert(value, lineno))

    def _set_string_key(self, key: str, value: str, lineno: int) -> None:
        name = key.lower()
        if name not in _STRING_DEFAULTS:
            _log.warning("%s:%d unknown key '%s'", INI_FILENAME, lineno, key)
            return
        setattr(self.strings, name, value)

    def apply_args(self, argv: list[str]) -> None:
        """Apply command-line options (without the program name)."""
        args = iter(argv)
        for arg in args:
            if arg == "-gamedir":
                _next_value(args, arg)
            elif arg in _FLAGS:
                setattr(self, _FLAGS[arg], True)
            elif arg in _OPTIONS:
                name, convert = _OPTIONS[arg]
                setattr(self, name, convert(_next_value(args, arg), None))

    def get_strings(self, encoding: Encoding, english: bool) -> Strings:
        """Return the UI strings encoded for the game, with defaults filled in."""
        values = {}
        for f in fields(Strings):
            japanese, english_text = _STRING_DEFAULTS[f.name]
            default = english_text if english and english_text else japanese
            text = getattr(self.strings, f.name) or default
            values[f.name] = encoding.from_utf8(text)
        return Strings(**values)


def load_config(argv: list[str] | None = None,
                directory: str | os.PathLike | None = None) -> Config:
    """Build a Config from the game directory's ini file and the command line."""
    args = list(sys.argv[1:] if argv is None else argv)
    game_dir = os.fspath(directory) if directory is not None else "."
    it = iter(args)
    for arg in it:
        if arg == "-gamedir":
            game_dir = os.path.join(game_dir, _next_value(it, arg))
    config = Config(game_dir=game_dir)
    config.load_ini(os.path.join(game_dir, INI_FILENAME))
    config.apply_args(args)
    return config