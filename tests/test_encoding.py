import logging

import pytest

from system3.encoding import (
    GAIJI_FIRST,
    SjisEncoding,
    Utf8Encoding,
    create_encoding,
)


@pytest.mark.parametrize("name", ["Shift_JIS", "shift-jis", "SJIS", "cp932"])
def test_create_sjis_names(name):
    enc = create_encoding(name)
    assert isinstance(enc, SjisEncoding)
    assert enc.mblen(0x81) == 2


@pytest.mark.parametrize("name", ["UTF-8", "utf8"])
def test_create_utf8_names(name):
    enc = create_encoding(name)
    assert isinstance(enc, Utf8Encoding)
    assert enc.from_utf8("é") == "é".encode("utf-8")


def test_unknown_encoding_falls_back_to_sjis(caplog):
    with caplog.at_level(logging.WARNING):
        enc = create_encoding("latin-9")
    assert isinstance(enc, SjisEncoding)
    assert "latin-9" in caplog.text


def test_sjis_ascii_round_trip():
    enc = SjisEncoding()
    assert enc.from_utf8("Hello, world") == b"Hello, world"
    assert enc.to_utf8(b"Hello, world") == "Hello, world"


@pytest.mark.parametrize("text", ["戻る", "次のページ", "真理子", "カスタム"])
def test_sjis_japanese_round_trip(text):
    enc = SjisEncoding()
    encoded = enc.from_utf8(text)
    assert len(encoded) == 2 * len(text)
    assert enc.to_utf8(encoded) == text
    assert enc.mbslen(encoded) == len(text)


def test_sjis_halfwidth_kana_are_single_bytes():
    enc = SjisEncoding()
    text = "ｱｲｳｴｵ"
    encoded = enc.from_utf8(text)
    assert len(encoded) == len(text)
    assert all(0xA0 <= b <= 0xDF for b in encoded)
    assert enc.to_utf8(encoded) == text


def test_sjis_unmappable_becomes_question_mark():
    enc = SjisEncoding()
    assert enc.from_utf8("a\U0001F600b") == b"a?b"


def test_sjis_next_codepoint_ascii_and_kanji():
    enc = SjisEncoding()
    data = enc.from_utf8("A漢")
    assert enc.next_codepoint(data, 0) == (ord("A"), 1)
    assert enc.next_codepoint(data, 1) == (ord("漢"), 3)


def test_sjis_gaiji_codepoints():
    enc = SjisEncoding()
    assert enc.next_codepoint(bytes([0xEB, 0x9F]), 0) == (GAIJI_FIRST, 2)
    assert enc.next_codepoint(bytes([0xEC, 0x40]), 0) == (GAIJI_FIRST + 94, 2)


def test_sjis_stops_at_nul():
    enc = SjisEncoding()
    assert enc.to_utf8(b"ab\x00cd") == "ab"
    assert enc.mbslen(b"ab\x00cd") == len("ab")


def test_sjis_mbslen_mixed():
    enc = SjisEncoding()
    text = "aあｱb"
    assert enc.mbslen(enc.from_utf8(text)) == len(text)


@pytest.mark.parametrize(
    "first_byte, length",
    [(0x41, 1), (0xBF, 1), (0xC3, 2), (0xDF, 2), (0xE3, 3), (0xEF, 3), (0xF0, 4)],
)
def test_utf8_mblen(first_byte, length):
    assert Utf8Encoding().mblen(first_byte) == length


def test_utf8_next_codepoint_walks_text():
    enc = Utf8Encoding()
    text = "aé漢\U0001F600"
    data = text.encode("utf-8")
    codepoints = []
    pos = 0
    while pos < len(data):
        code, pos = enc.next_codepoint(data, pos)
        codepoints.append(code)
    assert codepoints == [ord(c) for c in text]
    assert pos == len(data)


def test_utf8_invalid_lead_bytes():
    enc = Utf8Encoding()
    assert enc.next_codepoint(b"\x80A", 0) == (ord("?"), 1)
    assert enc.next_codepoint(b"\xf8\x80\x80A", 0) == (0xFFFD, 3)


def test_utf8_round_trip_and_nul():
    enc = Utf8Encoding()
    text = "テキスト"
    assert enc.to_utf8(enc.from_utf8(text)) == text
    assert enc.to_utf8(b"abc\x00def") == "abc"
    assert enc.mbslen("aé漢".encode("utf-8")) == len("aé漢")