import pytest

from system3.fileio import FileStore, OpenMode, find_file


def test_find_file_case_insensitive(tmp_path):
    (tmp_path / "ADISK.DAT").write_bytes(b"x")
    assert find_file(tmp_path, "adisk.dat") == f"{tmp_path}/ADISK.DAT"


def test_find_file_missing_names_plain_path(tmp_path):
    assert find_file(tmp_path, "none.dat") == f"{tmp_path}/none.dat"
    missing = tmp_path / "nodir"
    assert find_file(missing, "a.dat") == f"{missing}/a.dat"


def test_word_round_trip(tmp_path):
    store = FileStore(tmp_path)
    with store.open("DATA.BIN", OpenMode.WRITE_BINARY) as f:
        f.putc(0x1FF)
        f.putw(0x1234)
        f.putw(0x0201)
        f.putw(0x0403)
    with store.open("data.bin", OpenMode.READ_BINARY) as f:
        assert f.getc() == 0xFF
        assert f.getw() == 0x1234
        assert f.getdw() == 0x04030201
        assert f.getc() is None


def test_gets_splits_lines(tmp_path):
    (tmp_path / "text.txt").write_bytes(b"line1\r\nline2\r\nlast")
    store = FileStore(tmp_path)
    with store.open("TEXT.TXT", OpenMode.READ_BINARY) as f:
        assert f.gets() == b"line1"
        assert f.gets() == b"line2"
        assert f.gets() == b"last"
        assert f.gets() == b""


def test_read_write_seek(tmp_path):
    store = FileStore(tmp_path)
    with store.open("blob", OpenMode.WRITE_BINARY) as f:
        f.write(b"abcdef")
    with store.open("blob", OpenMode.READ_BINARY) as f:
        assert f.seek(2) == 2
        assert f.read(3) == b"cde"
        with pytest.raises(EOFError):
            f.read(5)


def test_savedata_uses_savedir(tmp_path):
    game = tmp_path / "game"
    saves = tmp_path / "saves"
    game.mkdir()
    saves.mkdir()
    store = FileStore(game)
    store.set_savedir(f"{saves}///")
    assert store.savedir == str(saves)
    with store.open("ASLEEP_A.DAT", OpenMode.WRITE_BINARY | OpenMode.SAVEDATA) as f:
        f.write(b"save")
    assert (saves / "ASLEEP_A.DAT").read_bytes() == b"save"
    assert not (game / "ASLEEP_A.DAT").exists()
    assert store.stat_save("asleep_a.dat").st_size == len(b"save")


def test_stat_save_missing(tmp_path):
    store = FileStore(tmp_path, tmp_path)
    with pytest.raises(FileNotFoundError):
        store.stat_save("nothing.dat")


def test_open_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        FileStore(tmp_path).open("absent.dat", OpenMode.READ_BINARY)


def test_open_invalid_mode(tmp_path):
    store = FileStore(tmp_path)
    with pytest.raises(ValueError):
        store.open("x", OpenMode.READ_BINARY | OpenMode.WRITE_BINARY)
    with pytest.raises(ValueError):
        store.open("x", OpenMode.SAVEDATA)