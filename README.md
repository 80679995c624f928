# system3

Building blocks of an engine for System 3 adventure games: the parts that
need no window, sound card or font renderer. Pure Python, no dependencies.

## Modules

| Module | What it offers |
| --- | --- |
| `system3.encoding` | `create_encoding`, `SjisEncoding`, `Utf8Encoding`. Shift_JIS with half-width kana and gaiji mapped to U+E000–U+E0BB; tolerant UTF-8. Unknown names fall back to Shift_JIS with a logged warning. |
| `system3.config` | `load_config`, `Config`, `Strings`, `TexthookMode`, `DebuggerMode`, `ConfigError`, `parse_bool`, `parse_int`. Reads `system3.ini` (`[config]` and `[string]` sections) and command-line options such as `-gamedir`, `-savedir`, `-fm`, `-encoding`, `-texthook`, `-debugger`. |
| `system3.fileio` | `find_file` (case-insensitive lookup), `FileStore` (game and save directories), `FileIO` (little-endian `getw`/`getdw`/`putw`, `gets`), `OpenMode`. |
| `system3.debug_info` | `DebugInfo` reads `DSYM` symbol files (sources, line/address mappings, variable names); `SrcInfo`, `Mapping`, `DebugInfoError`. |
| `system3.debugger` | `Debugger` with breakpoints, step/next/finish and stack traces; `Machine` is the protocol an interpreter implements; `Frontend` is the base of user interfaces; `State`, `StackFrame`, `CallFrame`, `Breakpoint`, `IllegalBreakpointError`. |
| `system3.cli_frontend` | `CliFrontend`, a gdb-like prompt (`break`, `delete`, `list`, `step`, `next`, `finish`, `print`, `string`, `backtrace`, `help`, `quit`, `continue`). |
| `system3.dap_frontend` | `DapFrontend` speaking the Debug Adapter Protocol; `read_messages` splits a `Content-Length` framed byte stream. |
| `system3.makofm` | `MakoFM`, the MAKO music sequencer; it produces OPNA register writes. |
| `system3.palette` | `setpalette16`, `setpalette256`, `pal_r`/`pal_g`/`pal_b`, and the `Box` and `TextWindow` records. |
| `system3.cursor` | `cursor_pattern` and `cursor_masks` build 32x32 AND/XOR cursor bitmaps (`CursorMasks`) from a cursor sheet. |
| `system3.ags` | `Screen`: three 640x480 planes of indexed video memory, palette conversion to a colour `display` buffer, `copy`, `gcopy`, `paint` (flood fill), `box_fill`, `box_line`, `draw_box`, `draw_mesh`; `default_palette`. |

## Examples

Text conversion:

```python
from system3.encoding import create_encoding

sjis = create_encoding("Shift_JIS")
raw = sjis.from_utf8("戻る")
assert sjis.to_utf8(raw) == "戻る"
print(sjis.mbslen(raw))  # 2
```

Settings from `system3.ini` in the game directory, then the command line:

```python
from system3.config import load_config

config = load_config(["-fm", "-savedir", "saves"], "path/to/game")
print(config.use_fm, config.save_dir)
```

Source locations from a symbol file (`load` raises `DebugInfoError` if the
file cannot be read or is malformed; lookups return `None` when nothing
matches):

```python
from system3.debug_info import DebugInfo

symbols = DebugInfo()
symbols.load("ADISK.DAT.symbols")
page = symbols.src2page("main.adv")
if page is not None:
    print(symbols.line2addr(page, 10))
```

A debugger needs an object implementing `system3.debugger.Machine` and a
factory for its front end:

```python
from system3.cli_frontend import CliFrontend
from system3.debugger import Debugger

debugger = Debugger(machine, symbols,
                    lambda dbg, syms: CliFrontend(dbg, syms, handle_sigint=False))
debugger.set_breakpoint(0, 0x20)
```

Music: pass a callback, or subclass and override `set_reg`, then call
`main_loop` once per tick. `time_ms`, `looped` and `mark` report progress.

```python
from system3.makofm import MakoFM

writes = []
fm = MakoFM(music_data, on_write=lambda reg_type, addr, val: writes.append((addr, val)))
fm.main_loop()
```

## What is not included

- No command to run a game; nothing here opens a window, draws text, loads
  CG images or plays sound.
- No script interpreter: the debugger drives whatever `Machine` you supply.
- `MakoFM` only sequences music into register writes; there is no OPNA
  chip emulation or audio output. Music that uses the hardware LFO raises
  `UnsupportedFeatureError`.
- `Screen` keeps pixels and colours in memory; showing them is up to you.

## Tests

The tests use pytest, installed with the `test` extra:

```
pip install .[test]
pytest
```