"""Binary file access with case-insensitive lookup of game and save files."""

from __future__ import annotations

import enum
import os
from typing import BinaryIO


class OpenMode(enum.IntFlag):
    READ_BINARY = 1
    WRITE_BINARY = 2
    SAVEDATA = 4


def find_file(directory: str | os.PathLike, filename: str) -> str:
    """Path of ``filename`` in ``directory``, matching names case-insensitively."""
    directory = os.fspath(directory)
    path = f"{directory}/{filename}"
    try:
        entries = os.listdir(directory)
    except OSError:
        return path
    target = filename.lower()
    for name in entries:
        if name.lower() == target:
            path = f"{directory}/{name}"
    return path


class FileIO:
    """An open binary file with little-endian helpers."""

    def __init__(self, file: BinaryIO, mode: OpenMode):
        self._file = file
        self.mode = mode

    def __enter__(self) -> FileIO:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._file.close()

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._file.seek(offset, whence)

    def read(self, size: int) -> bytes:
        """Read exactly ``size`` bytes; raise EOFError if fewer remain."""
        data = self._file.read(size)
        if len(data) < size:
            raise EOFError(f"wanted {size} bytes, got {len(data)}")
        return data

    def write(self, data: bytes) -> None:
        self._file.write(data)

    def getc(self) -> int | None:
        """Next byte, or None at end of file."""
        data = self._file.read(1)
        return data[0] if data else None

    def getw(self) -> int:
        return int.from_bytes(self.read(2), "little")

    def getdw(self) -> int:
        return int.from_bytes(self.read(4), "little")

    def putc(self, c: int) -> None:
        self._file.write(bytes([c & 0xFF]))

    def putw(self, w: int) -> None:
        self._file.write((w & 0xFFFF).to_bytes(2, "little"))

    def gets(self) -> bytes:
        """Read a line ending at CR or end of file; LF bytes are dropped."""
        out = bytearray()
        while (c := self.getc()) is not None and c != 0x0D:
            if c != 0x0A:
                out.append(c)
        return bytes(out)


class FileStore:
    """Opens game files from the game directory and save files from the save directory."""

    def __init__(self, game_dir: str | os.PathLike = ".",
                 savedir: str | os.PathLike = "."):
        self.game_dir = os.fspath(game_dir)
        self.savedir = "."
        self.set_savedir(savedir)

    def set_savedir(self, directory: str | os.PathLike) -> None:
        self.savedir = os.fspath(directory).rstrip("/")

    def stat_save(self, filename: str) -> os.stat_result:
        return os.stat(find_file(self.savedir, filename))

    def open(self, filename: str, mode: int) -> FileIO:
        """Open a file; SAVEDATA in ``mode`` selects the save directory."""
        mode = int(mode)
        directory = self.savedir if mode & OpenMode.SAVEDATA else self.game_dir
        access = mode & ~int(OpenMode.SAVEDATA)
        if access == OpenMode.READ_BINARY:
            file_mode = "rb"
        elif access == OpenMode.WRITE_BINARY:
            file_mode = "wb"
        else:
            raise ValueError(f"invalid open mode {mode}")
        path = find_file(directory, filename)
        return FileIO(open(path, file_mode), OpenMode(access))