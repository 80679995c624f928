import logging

import pytest

from system3.config import (
    INI_FILENAME,
    Config,
    ConfigError,
    DebuggerMode,
    TexthookMode,
    load_config,
    parse_bool,
    parse_int,
)
from system3.encoding import SjisEncoding, Utf8Encoding


def write_ini(directory, text):
    path = directory / INI_FILENAME
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.parametrize("text", ["yes", "TRUE", "On", "1"])
def test_parse_bool_true(text):
    assert parse_bool(text, 1) is True


@pytest.mark.parametrize("text", ["no", "False", "OFF", "0"])
def test_parse_bool_false(text):
    assert parse_bool(text, 1) is False


def test_parse_bool_invalid():
    with pytest.raises(ConfigError, match="system3.ini:7 Invalid boolean value 'maybe'"):
        parse_bool("maybe", 7)


def test_parse_int():
    assert parse_int("42", 1) == 42
    assert parse_int("-7", 1) == -7
    assert parse_int("", 1) == 0


def test_parse_int_invalid():
    with pytest.raises(ConfigError, match="Command line: Invalid integer value '12x'"):
        parse_int("12x")
    with pytest.raises(ConfigError, match="system3.ini:3"):
        parse_int("abc", 3)


def test_load_ini_sections(tmp_path):
    path = write_ini(tmp_path, (
        "; a comment\n"
        "\n"
        "[config]\n"
        "fm = yes\n"
        "mididevice = 3\n"
        "savedir = saves\\game1\n"
        "game = rance\n"
        "Texthook = print\n"
        "debugger = dap\n"
        "[String]\n"
        "back = Return\n"
    ))
    config = Config()
    config.load_ini(path)
    assert config.use_fm is True
    assert config.midi_device == 3
    assert config.save_dir == "saves/game1"
    assert config.game_id == "rance"
    assert config.texthook_mode is TexthookMode.PRINT
    assert config.debugger_mode is DebuggerMode.DAP
    assert config.strings.back == "Return"


def test_load_ini_missing_file_keeps_defaults(tmp_path):
    config = Config()
    config.load_ini(tmp_path / "absent.ini")
    assert config == Config()


def test_load_ini_warnings(tmp_path, caplog):
    path = write_ini(tmp_path, (
        "orphan = 1\n"
        "[unknown]\n"
        "[config]\n"
        "bogus = 1\n"
        "no equals sign\n"
    ))
    config = Config()
    with caplog.at_level(logging.WARNING):
        config.load_ini(path)
    assert "system3.ini:1 parse error" in caplog.text
    assert 'Unknown section "unknown"' in caplog.text
    assert "unknown key 'bogus'" in caplog.text
    assert "system3.ini:5 parse error" in caplog.text


def test_load_ini_invalid_value_raises(tmp_path):
    path = write_ini(tmp_path, "[config]\ntrace = sometimes\n")
    with pytest.raises(ConfigError, match="system3.ini:2"):
        Config().load_ini(path)


def test_apply_args():
    config = Config()
    config.apply_args([
        "-fm", "-scanline", "-mididevice", "2", "-game", "dps",
        "-texthook", "copy", "-debugger", "cli", "-savedir", "a\\b",
        "-texthook_suppress", "1,2", "-version",
    ])
    assert config.use_fm and config.scanline and config.print_version
    assert config.midi_device == 2
    assert config.game_id == "dps"
    assert config.texthook_mode is TexthookMode.COPY
    assert config.debugger_mode is DebuggerMode.CLI
    assert config.save_dir == "a\\b"
    assert config.texthook_suppressions == "1,2"


def test_apply_args_missing_value():
    with pytest.raises(ConfigError):
        Config().apply_args(["-game"])


def test_apply_args_invalid_mode():
    with pytest.raises(ConfigError, match="Invalid texthook mode 'loud'"):
        Config().apply_args(["-texthook", "loud"])


def test_load_config_gamedir_and_override(tmp_path):
    game = tmp_path / "game"
    game.mkdir()
    write_ini(game, "[config]\ntitle = From ini\nencoding = utf-8\n")
    config = load_config(["-gamedir", str(game), "-title", "From args"])
    assert config.title == "From args"
    assert config.encoding == "utf-8"
    assert config.game_dir == str(game)


def test_load_config_directory(tmp_path):
    write_ini(tmp_path, "[config]\nnoantialias = on\n")
    config = load_config([], tmp_path)
    assert config.no_antialias is True


def test_get_strings_defaults():
    config = Config()
    english = config.get_strings(Utf8Encoding(), True)
    assert english.back == b"Back"
    assert english.next_page == b"Next Page"
    assert english.dps_mariko == "真理子".encode("utf-8")
    sjis = SjisEncoding()
    japanese = config.get_strings(sjis, False)
    assert sjis.to_utf8(japanese.back) == "戻る"


def test_get_strings_keeps_overrides(tmp_path):
    path = write_ini(tmp_path, "[string]\nnext_page = Onward\n")
    config = Config()
    config.load_ini(path)
    strings = config.get_strings(Utf8Encoding(), False)
    assert strings.next_page == b"Onward"
    assert config.strings.next_page == "Onward"