import struct

import pytest

from system3.makofm import (
    MAKO_MAXCH,
    PART_DISABLED,
    PRESET_FM_TONE,
    MakoFM,
    RegType,
    UnsupportedFeatureError,
)

HEADER_SIZE = 4 + MAKO_MAXCH * 4


def build_song(parts, tones=b"", ver=0x0200):
    """Song data with one looping block per channel given in ``parts``."""
    header = bytearray(HEADER_SIZE)
    body = bytearray()
    for ch, seq in parts.items():
        table_off = HEADER_SIZE + len(body)
        body += struct.pack("<HH", table_off + 4, 0xFF00) + bytes(seq)
        header[4 + ch * 4:6 + ch * 4] = struct.pack("<H", table_off)
    tone_offset = HEADER_SIZE + len(body)
    body += bytes(tones)
    header[0:4] = struct.pack("<HH", tone_offset, ver)
    return bytes(header + body)


def make(data):
    writes = []
    fm = MakoFM(data, on_write=lambda t, a, v: writes.append((t, a, v)))
    return fm, writes


def test_init_opna_writes_come_first():
    fm, writes = make(build_song({}))
    fm.main_loop()
    M = RegType.OPNA_MASTER
    assert writes[:9] == [
        (M, 0x00, 0x57), (M, 0x00, 0x41), (M, 0x00, 0x4F), (M, 0x27, 0x30),
        (M, 0x07, 0xBF), (M, 0x90, 0x00), (M, 0x91, 0x00), (M, 0x92, 0x00),
        (M, 0x29, 0x83),
    ]


def test_all_channels_disabled_is_looped():
    fm, _ = make(build_song({}))
    fm.main_loop()
    assert fm.looped
    assert all(w.part_enable == PART_DISABLED for w in fm.work)


def test_time_advances_evenly():
    fm, _ = make(build_song({}))
    fm.main_loop()
    t1 = fm.time_ms
    fm.main_loop()
    assert t1 > 0
    assert fm.time_ms == pytest.approx(2 * t1)


def test_tempo_command_changes_tick_length():
    normal, _ = make(build_song({0: [0x01, 0x10, 0xFF]}))
    slow, _ = make(build_song({0: [0xF4, 60, 0x01, 0x10, 0xFF]}))
    normal.main_loop()
    slow.main_loop()
    assert slow.tempo == 60
    assert slow.time_ms == pytest.approx(2 * normal.time_ms)


def test_default_pan_goes_to_master_and_slave():
    fm, writes = make(build_song({}))
    fm.main_loop()
    assert (RegType.OPNA_MASTER, 0xB4, 0xC0) in writes
    assert (RegType.OPNA_SLAVE, 0xB4, 0xC0) in writes


def test_pan_command_left():
    fm, writes = make(build_song({0: [0xEB, 0x10, 0x01, 0x10, 0xFF]}))
    fm.main_loop()
    assert fm.work[0].panpot == 0x10
    assert (RegType.OPNA_MASTER, 0xB4, 0x80) in writes


def test_preset_tone_sets_algorithm():
    fm, writes = make(build_song({}))
    fm.main_loop()
    assert (RegType.OPNA_MASTER, 0xB0, PRESET_FM_TONE[0]) in writes
    assert fm.work[0].alg == PRESET_FM_TONE[0] & 7


def test_fm_note_on_writes_frequency_and_keyon():
    fm, writes = make(build_song({0: [0x01, 0x10, 0xFF]}))
    fm.main_loop()
    M = RegType.OPNA_MASTER
    assert (M, 0xA4, 0x22) in writes
    assert (M, 0xA0, 0x69) in writes
    assert (M, 0x28, 0xF0) in writes
    assert fm.work[0].rest == 0


def test_mark_command():
    fm, _ = make(build_song({0: [0xE0, 5, 0x01, 0x10, 0xFF]}))
    fm.main_loop()
    assert fm.mark == 5


@pytest.mark.parametrize("seq_prefix,length", [
    ([], 16), ([], 2), ([], 1), ([], 9),
    ([0xF2, 7], 16), ([0xF2, 3], 24),
    ([0xEA, 3], 16), ([0xEA, 20], 16),
])
def test_on_and_off_lengths_add_up(seq_prefix, length):
    fm, _ = make(build_song({0: seq_prefix + [0x01, length, 0xFF]}))
    fm.main_loop()
    w = fm.work[0]
    assert w.length == length
    assert w.on_length + w.off_length == length


def test_long_note_length_word():
    fm, _ = make(build_song({0: [13 + 1, 0x00, 0x01, 0xFF]}))
    fm.main_loop()
    assert fm.work[0].note == 1
    assert fm.work[0].length == 0x100


def test_default_length_command():
    fm, _ = make(build_song({0: [0xF3, 0x81, 0x00, 0x81, 0xFF]}))
    fm.main_loop()
    w = fm.work[0]
    assert w.default_length == w.length
    assert w.length == 256
    assert w.note == 1


def test_jump_marks_channel_looped():
    fm, _ = make(build_song({0: [0x01, 0x02, 0xFF]}))
    fm.main_loop()
    assert not fm.looped
    for _ in range(5):
        fm.main_loop()
    assert fm.looped


def test_note_keeps_channel_not_looped():
    fm, _ = make(build_song({0: [0x01, 0x40, 0xFF]}))
    fm.main_loop()
    fm.main_loop()
    assert not fm.looped


def test_unknown_command_disables_part():
    fm, _ = make(build_song({0: [0xE3, 0x00, 0x10, 0xFF]}))
    fm.main_loop()
    assert fm.work[0].part_enable == PART_DISABLED
    assert fm.looped


def test_unknown_note_disables_part():
    fm, _ = make(build_song({0: [0x50, 0x00, 0x10, 0xFF]}))
    fm.main_loop()
    assert fm.work[0].part_enable == PART_DISABLED
    assert fm.looped


def test_block0_end_marker_disables_part():
    data = bytearray(build_song({0: [0x01, 0x10, 0xFF]}))
    table = struct.unpack_from("<H", data, 4)[0]
    data[table:table + 2] = struct.pack("<H", 0xFF00)
    fm, _ = make(bytes(data))
    fm.main_loop()
    assert fm.work[0].part_enable == PART_DISABLED


def test_hardware_lfo_is_unsupported():
    fm, _ = make(build_song({0: [0xE4, 1, 2, 3, 0x01, 0x10, 0xFF]}))
    with pytest.raises(UnsupportedFeatureError):
        fm.main_loop()


def test_absolute_volume_is_clamped():
    fm, _ = make(build_song({0: [0xF9, 200, 0x01, 0x10, 0xFF]}))
    fm.main_loop()
    assert fm.work[0].vol == 127
    assert fm.work[0].tl4_vol == 127


def test_detune_is_signed():
    fm, _ = make(build_song({0: [0xFC, 0xFF, 0x01, 0x10, 0xFF]}))
    fm.main_loop()
    assert fm.work[0].detune == -1


def test_octave_commands():
    fm, _ = make(build_song({0: [0xF0, 5, 0xEE, 0x01, 0x10, 0xFF]}))
    fm.main_loop()
    assert fm.work[0].octave == 6
    assert fm.work[0].octave_temp == 6


def test_temporary_octave_applies_to_one_note():
    fm, _ = make(build_song({0: [0xF8, 0x01, 0x10, 0x01, 0x10, 0xFF]}))
    fm.main_loop()
    assert fm.work[0].octave_temp == fm.work[0].octave + 1
    assert fm.work[0].use_temp_octave == 0


def test_tone_set_command():
    tone = bytearray(PRESET_FM_TONE)
    tone[0] = 0x05
    fm, writes = make(build_song({0: [0xF5, 0, 0x01, 0x10, 0xFF]}, tones=tone))
    fm.main_loop()
    assert fm.work[0].alg == 5
    assert (RegType.OPNA_MASTER, 0xB0, 0x05) in writes


def test_newer_version_skips_carrier_total_level():
    old, old_writes = make(build_song({}, ver=0x0200))
    new, new_writes = make(build_song({}, ver=0x0300))
    old.main_loop()
    new.main_loop()
    removed = set(old_writes) - set(new_writes)
    assert set(new_writes) < set(old_writes)
    assert removed
    assert all(0x40 <= addr <= 0x4F for _, addr, _ in removed)


def test_psg_note_enables_tone_in_mixer():
    fm, writes = make(build_song({3: [0x01, 0x10, 0xFF]}))
    fm.main_loop()
    mixer_writes = [v for t, a, v in writes if a == 7]
    assert mixer_writes[-1] & 1 == 0
    assert fm.mixer == mixer_writes[-1]


def test_register_values_stay_in_byte_range():
    song = build_song({
        0: [0xE7, 0, 0, 0, 0, 1, 0, 4, 0, 0x01, 0x08, 0x03, 0x04, 0xFF],
        3: [0xE6, 2, 0, 1, 0, 1, 0, 0, 0, 0x05, 0x06, 0xFF],
        6: [0xFC, 0xFE, 0x82, 0x00, 0x04, 0xFF],
    })
    fm, writes = make(song)
    for _ in range(60):
        fm.main_loop()
    assert writes
    assert all(0 <= a <= 0xFF and 0 <= v <= 0xFF for _, a, v in writes)
    assert all(isinstance(t, RegType) for t, _, _ in writes)


def test_slave_registers_used_for_upper_fm_channels():
    fm, writes = make(build_song({6: [0x01, 0x10, 0xFF]}))
    fm.main_loop()
    slave_addrs = {a for t, a, _ in writes if t == RegType.OPNA_SLAVE}
    assert slave_addrs
    assert all(a >= 0x30 for a in slave_addrs)