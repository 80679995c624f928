"""Emulation of the PC-98 MAKO music driver that drives an OPNA sound chip."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

MAKO_MAXCH = 9
PART_DISABLED = 2
TONE_DATA_SIZE = 43

_log = logging.getLogger(__name__)

# Channel flags.
ALT_Q_FORMAT = 1 << 0
SKIP_KEYOFF = 1 << 1
LFO_FLAG = 1 << 2
SW_FRQLFO_ENABLED = 1 << 4
SW_VOLLFO_ENABLED = 1 << 5
USE_HW_LFO = 1 << 6
FRQLFO_DIRECTION = 1 << 7
VOLLFO_DIRECTION = 1 << 8
HW_LFO_WRITE_REQUEST = 1 << 9

FM_FREQ_TABLE = (
    0x0269, 0x028E, 0x02B4, 0x02DE, 0x0309, 0x0338,
    0x0369, 0x039C, 0x03D3, 0x040E, 0x044B, 0x048D,
)
PSG_FREQ_TABLE = (
    0x0EED, 0x0E17, 0x0D4C, 0x0C8D, 0x0BD9, 0x0B2F,
    0x0A8E, 0x09F6, 0x0967, 0x08E0, 0x0860, 0x07E8,
)

PRESET_FM_TONE = bytes([
    # alg, keyon, reserved*5
    0x03, 0x0F, 0x00, 0x00, 0x00, 0x00, 0x00,
    # DT/ML, TL, KS/AR, DR, SR, SL/RR, reserved*3
    0x02, 0x0F, 0x1F, 0x00, 0x00, 0x0F, 0x00, 0x00, 0x00,
    0x06, 0x28, 0x1F, 0x00, 0x00, 0x0F, 0x00, 0x00, 0x00,
    0x04, 0x28, 0x1F, 0x00, 0x00, 0x0F, 0x00, 0x00, 0x00,
    0x02, 0x00, 0x1F, 0x00, 0x00, 0x0F, 0x00, 0x00, 0x00,
])

_OPERATOR_REGS = (0x30, 0x38, 0x34, 0x3C)

# Register offsets of the carrier operators for each algorithm.
_CARRIER_OFFSETS = {
    0: (0x0C,), 1: (0x0C,), 2: (0x0C,), 3: (0x0C,),
    4: (0x08, 0x0C),
    5: (0x04, 0x08, 0x0C), 6: (0x04, 0x08, 0x0C),
    7: (0x00, 0x04, 0x08, 0x0C),
}


def _u8(v: int) -> int:
    return v & 0xFF


def _u16(v: int) -> int:
    return v & 0xFFFF


def _s16(v: int) -> int:
    v &= 0xFFFF
    return v - 0x10000 if v & 0x8000 else v


def _s8(v: int) -> int:
    v &= 0xFF
    return v - 0x100 if v & 0x80 else v


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


class UnsupportedFeatureError(NotImplementedError):
    """The music data uses a driver feature that is not emulated."""


class RegType(enum.IntEnum):
    OPNA_MASTER = 0
    OPNA_SLAVE = 1


@dataclass
class LfoParams:
    delay: int = 0
    counter: int = 0
    value: int = 0
    max: int = 0


@dataclass
class Work:
    """Per-channel state of the driver."""

    part_offset: int = 0
    jump_ptr: int = 0
    seq_ptr: int = 0
    Q: int = 7
    flags: int = 0
    tone_num: int = 0
    vol: int = 120
    tl1: int = 0
    tl2: int = 0
    tl3: int = 0
    tl4_vol: int = 0
    use_temp_octave: int = 0
    octave: int = 4
    octave_temp: int = 4
    note: int = 0  # 0 = rest, 1-12 = scale
    blk_fnum: int = 0
    default_length: int = 64
    length: int = 0
    on_length: int = 0
    off_length: int = 0
    length_counter: int = 0
    rest: int = 0
    keyon: int = 0
    detune: int = 0
    alg: int = 0
    panpot: int = 0x40
    part_enable: int = 0  # 2 = disabled, 1 or 0xff = enabled
    flfo: LfoParams = field(default_factory=LfoParams)
    flq_lfo_counter: int = 0
    flq_lfo_result: int = 0
    vlfo: LfoParams = field(default_factory=LfoParams)
    fm_delay: int = 0
    sw_lfo_val: int = 0
    vlfo_val: int = 0
    vlfo_counter: int = 0
    vlfo_mode: int = 0
    ams_param: int = 0
    pms_param: int = 0


RegisterWriter = Callable[[RegType, int, int], None]


class MakoFM:
    """Sequencer for MAKO music data; emits OPNA register writes."""

    def __init__(self, data: bytes, on_write: RegisterWriter | None = None):
        self._data = bytes(data)
        self._on_write = on_write
        self.tone_offset = self._get_word(0)
        self.ver = self._get_word(2)
        self.work = [Work() for _ in range(MAKO_MAXCH)]
        self.mixer = 0xBF
        self.hwlfo = 0
        self.tempo = 120
        self._cmd_ff = 0
        self._part_looped = 0
        self._time_ms = 0.0
        self._current_mark = 0

    @property
    def time_ms(self) -> float:
        return self._time_ms

    @property
    def looped(self) -> bool:
        """True once every channel has ended or looped."""
        return self._part_looped == (1 << MAKO_MAXCH) - 1

    @property
    def mark(self) -> int:
        return self._current_mark

    def set_reg(self, reg_type: RegType, addr: int, val: int) -> None:
        """Deliver one register write to the sound chip."""
        if self._on_write is not None:
            self._on_write(reg_type, addr, val)

    def main_loop(self) -> None:
        """Advance the sequence by one tick."""
        if self._time_ms == 0.0:
            self._init_opna()
            for ch in reversed(range(MAKO_MAXCH)):
                self._init_channel(ch)
                self._exec_pan(ch)
                self._set_fm_tone(ch, PRESET_FM_TONE, 0)
                if self.work[ch].part_enable == PART_DISABLED:
                    continue
                self._exec_pan(ch)
                self._exec_sequence(ch, True)
        else:
            for ch in reversed(range(MAKO_MAXCH)):
                self._exec_sequence(ch, False)
                self._exec_flfo(ch)
                self._exec_vlfo(ch)
        self._time_ms += 545455.0 / (480.0 * self.tempo)

    # Register access

    def _get_word(self, offset: int) -> int:
        return self._data[offset] | self._data[offset + 1] << 8

    @staticmethod
    def _is_fm_channel(ch: int) -> bool:
        return ch < 3 or 6 <= ch

    def _write_fm(self, ch: int, addr: int, val: int) -> None:
        addr = _u8(addr)
        reg_type = RegType.OPNA_MASTER if (addr < 0x30 or ch < 6) else RegType.OPNA_SLAVE
        self.set_reg(reg_type, addr, _u8(val))

    def _write_psg(self, addr: int, val: int) -> None:
        self.set_reg(RegType.OPNA_MASTER, _u8(addr), _u8(val))

    def _disable_part(self, ch: int) -> None:
        self.work[ch].part_enable = PART_DISABLED
        self._part_looped |= 1 << ch

    # Initialisation

    def _init_opna(self) -> None:
        self._write_psg(0x00, 0x57)
        self._write_psg(0x00, 0x41)
        self._write_psg(0x00, 0x4F)
        self._write_fm(0, 0x27, 0x30)
        self._write_psg(0x07, 0xBF)
        self._write_fm(0, 0x90, 0x00)
        self._write_fm(0, 0x91, 0x00)
        self._write_fm(0, 0x92, 0x00)
        self._write_fm(0, 0x29, 0x83)

    def _init_channel(self, ch: int) -> None:
        w = self.work[ch]
        w.part_offset = self._get_word(4 + ch * 4)
        if not w.part_offset:
            self._disable_part(ch)
            return
        block0 = self._get_word(w.part_offset)
        if block0 >= 0xFF00:
            self._disable_part(ch)
            return
        w.jump_ptr = _u16(w.part_offset + 2)
        w.seq_ptr = block0

    # Sequencing

    def _exec_sequence(self, ch: int, execcmd: bool) -> None:
        w = self.work[ch]
        exec_next = True
        if not execcmd:
            if w.part_enable != 1:
                return
            if w.length_counter > 1:
                w.length_counter -= 1
                return
            exec_next = bool(w.rest)

        while True:
            if exec_next:
                self._cmd_ff = 0
                w.seq_ptr = _u16(self._exec_cmd(ch, w.seq_ptr))
                if self._cmd_ff:
                    block_addr = self._get_word(w.jump_ptr)
                    w.jump_ptr = _u16(w.jump_ptr + 2)
                    if block_addr >> 8 == 0xFF:
                        self._part_looped |= 1 << ch
                        if w.part_enable == PART_DISABLED:
                            return
                        if w.part_enable == 0:
                            w.part_enable = 0xFF
                            self._cmd_ff = 0
                            return
                        w.jump_ptr = _u16(w.part_offset + (block_addr & 0xFF) * 2)
                        block_addr = self._get_word(w.jump_ptr)
                        w.jump_ptr = _u16(w.jump_ptr + 2)
                    w.seq_ptr = block_addr
                    self._cmd_ff = 0
                    continue

                if w.rest:
                    if w.off_length:
                        w.length_counter = w.off_length
                        return
                    self._key_off(ch)
                    continue

                if w.on_length:
                    w.length_counter = w.on_length
                    break

            # Start the key-off part of the note.
            w.rest = 1
            if w.off_length == 0:
                self._key_off(ch)
                exec_next = True
                continue
            w.length_counter = w.off_length
            break

        if w.rest:
            self._key_off(ch)
            return

        if self._is_fm_channel(ch):
            reg = 0xA4 + ch % 6
            freq = _u16(w.blk_fnum + w.detune)
            self._write_fm(ch, reg, freq >> 8)
            self._write_fm(ch, reg - 4, freq & 0xFF)
            if w.flags & LFO_FLAG:
                w.flags &= ~LFO_FLAG
                return
            self._set_flfo(ch, False)
            self._set_vlfo(ch, False)
            if w.flags & USE_HW_LFO:
                w.flags |= HW_LFO_WRITE_REQUEST
                self._exec_pan(ch)
            self._write_fm(ch, 0x28, w.keyon + (ch if ch < 6 else ch - 2))
        else:
            freq = _u16(w.blk_fnum - _trunc_div(w.detune, 4))
            self._write_psg((ch - 3) * 2 + 1, freq >> 8)
            self._write_psg((ch - 3) * 2, freq & 0xFF)
            if w.flags & LFO_FLAG:
                w.flags &= ~LFO_FLAG
                return
            self._set_flfo(ch, False)
            self._set_vlfo(ch, False)
            self.mixer = _u8(self.mixer & ((4 if ch - 2 == 3 else ch - 2) ^ 0xFF))
            self.mixer |= 0xB8
            self._write_psg(7, self.mixer)

    def _read_lfo(self, pos: int) -> LfoParams:
        d = self._data
        return LfoParams(
            delay=d[pos] | d[pos + 1] << 8,
            counter=d[pos + 2] | d[pos + 3] << 8,
            value=d[pos + 4] | d[pos + 5] << 8,
            max=d[pos + 6] | d[pos + 7] << 8,
        )

    def _exec_cmd(self, ch: int, pos: int) -> int:
        """Run commands from ``pos`` up to the next note; return the new position."""
        w = self.work[ch]
        d = self._data
        while True:
            if d[pos] < 0xE0:
                return self._exec_note(ch, pos)
            a = d[pos]
            pos += 1
            if a == 0xEC:  # part end
                self._disable_part(ch)
                return pos
            if a == 0xFF:  # jump
                self._cmd_ff = 0xFF
                return pos
            if a == 0xEB:  # pan
                w.panpot = d[pos]
                pos += 1
                self._exec_pan(ch)
            elif a == 0xEE:
                w.octave = _u8(w.octave + 1)
            elif a == 0xEF:
                w.octave = _u8(w.octave - 1)
            elif a == 0xF0:
                w.octave = d[pos]
                pos += 1
            elif a == 0xF1:
                w.octave_temp = d[pos]
                pos += 1
            elif a == 0xF2:  # Q (1-8)
                w.flags &= ~ALT_Q_FORMAT
                w.Q = d[pos] + 1
                pos += 1
            elif a == 0xEA:  # Q (alternative form)
                w.flags |= ALT_Q_FORMAT
                w.Q = d[pos]
                pos += 1
            elif a == 0xE9:  # tie
                w.flags |= SKIP_KEYOFF
            elif a == 0xE7:  # frequency LFO
                w.flfo = self._read_lfo(pos)
                pos += 8
                w.flags |= SW_FRQLFO_ENABLED
                w.flags &= ~FRQLFO_DIRECTION
                self._set_flfo(ch, False)
            elif a == 0xE6:  # volume LFO (PSG)
                w.vlfo = self._read_lfo(pos)
                pos += 8
                w.fm_delay = w.vlfo.delay
                w.sw_lfo_val = 0
                w.flags |= SW_VOLLFO_ENABLED
                w.flags &= ~VOLLFO_DIRECTION
                self._set_vlfo(ch, False)
            elif a == 0xF3:  # default length
                b = d[pos]
                pos += 1
                if b < 0x80:
                    w.default_length = b
                else:
                    w.default_length = _u16((b - 0x80) << 8 | d[pos])
                    pos += 1
            elif a == 0xE5:  # LFO flags
                w.flags &= ~0x70
                w.flags |= (d[pos] & 7) << 4
                pos += 1
            elif a == 0xE8:  # volume LFO (FM)
                w.vlfo = self._read_lfo(pos)
                w.fm_delay = d[pos + 8] | d[pos + 9] << 8
                pos += 10
                w.flags |= SW_VOLLFO_ENABLED
            elif a == 0xF4:
                self.tempo = d[pos]
                pos += 1
            elif a == 0xF5:  # FM tone
                w.tone_num = d[pos]
                pos += 1
                self._set_fm_tone(ch, self._data,
                                  self.tone_offset + TONE_DATA_SIZE * w.tone_num)
                self._exec_hwlfo(ch)
            elif a == 0xF7:
                w.octave_temp = _u8(w.octave - 1)
                w.use_temp_octave = 1
            elif a == 0xF8:
                w.octave_temp = _u8(w.octave + 1)
                w.use_temp_octave = 1
            elif a == 0xF9:  # absolute volume
                w.vol = w.tl4_vol = min(d[pos], 127)
                pos += 1
                self._set_vol(ch)
            elif a == 0xE1:  # relative volume
                w.vol = w.tl4_vol = min(_u8(w.vol + d[pos]), 127)
                pos += 1
                self._set_vol(ch)
            elif a == 0xE4:  # hardware LFO
                self.hwlfo = d[pos] | 8
                w.pms_param = d[pos + 1]
                w.ams_param = d[pos + 2]
                pos += 3
                w.flags |= USE_HW_LFO
                self._exec_hwlfo(ch)
            elif a == 0xFC:  # detune
                w.detune = _s8(d[pos])
                pos += 1
            elif a == 0xFE:
                pos += 3
            elif a == 0xF6:
                pos += 2
            elif a in (0xFA, 0xFD):
                pos += 1
            elif a == 0xE0:
                self._current_mark = d[pos]
                pos += 1
            else:
                _log.warning("MakoFM: unknown command 0x%02x", a)
                self._disable_part(ch)
                return pos

    def _exec_note(self, ch: int, pos: int) -> int:
        w = self.work[ch]
        d = self._data
        note = d[pos]
        pos += 1
        if note < 13:
            w.note = note
            w.length = d[pos]
            pos += 1
        elif note < 26:
            w.note = note - 13
            w.length = d[pos] | d[pos + 1] << 8
            pos += 2
        elif 0x80 <= note < 0x80 + 13:
            w.note = note - 0x80
            w.length = w.default_length
        else:
            _log.warning("MakoFM: unknown command: 0x%02x", note)
            self._disable_part(ch)
            return pos

        if not w.use_temp_octave:
            w.octave_temp = w.octave
        w.use_temp_octave = 0

        freq = 0
        if w.note:
            if self._is_fm_channel(ch):
                freq = FM_FREQ_TABLE[w.note - 1] | w.octave_temp << 11
            else:
                freq = PSG_FREQ_TABLE[w.note - 1] >> w.octave_temp
        w.blk_fnum = _u16(freq)
        if w.part_enable != PART_DISABLED:
            w.part_enable = 1

        if not w.note:
            w.on_length = 0
            w.off_length = w.length
            w.rest = 1
            return pos

        length = w.length
        if length <= 1:
            on_length, off_length = length, 0
        elif w.flags & ALT_Q_FORMAT:
            if length >= w.Q:
                on_length, off_length = length - w.Q, w.Q
            else:
                on_length, off_length = 1, length - 1
        elif w.Q == 8:
            on_length, off_length = length - 1, 1
        else:
            on_length = _u16(length // 8 * w.Q) or 1
            off_length = _u16(length - on_length)
            if off_length == 0:
                on_length -= 1
                off_length += 1
        w.rest = 0
        w.on_length = _u16(on_length)
        w.off_length = _u16(off_length)
        return pos

    def _key_off(self, ch: int) -> None:
        w = self.work[ch]
        if w.flags & SKIP_KEYOFF:
            w.flags &= ~SKIP_KEYOFF
            w.flags |= LFO_FLAG
            return
        if self._is_fm_channel(ch):
            if w.flags & USE_HW_LFO:
                w.flags &= ~HW_LFO_WRITE_REQUEST
                self._exec_pan(ch)
            self._write_fm(ch, 0x28, ch if ch < 3 else ch - 2)
        else:
            if (w.flags & SW_VOLLFO_ENABLED and w.vlfo_mode & 0x0F
                    and (w.vlfo_mode & 8) == 0):
                w.vlfo_val = w.vlfo.max
                w.vlfo_mode = 8
                return
            self.mixer = _u8(self.mixer | (4 if ch == 5 else ch - 2) | 0xB8)
            self._write_psg(7, self.mixer)

    def _set_vol(self, ch: int) -> None:
        w = self.work[ch]
        w.vol = w.tl4_vol
        if self._is_fm_channel(ch):
            reg = 0x40 + ch % 6
            val = 127 - w.vol
            for offset in _CARRIER_OFFSETS.get(w.alg, ()):
                self._write_fm(ch, reg + offset, val)
        else:
            if w.flags & SW_VOLLFO_ENABLED:
                return
            self._write_psg(ch + 5, w.vol >> 3)

    def _exec_pan(self, ch: int) -> None:
        if not self._is_fm_channel(ch):
            return
        w = self.work[ch]
        reg = 0xB4 + ch % 6
        panpot = w.panpot
        if panpot in (0, 0x40):
            val = 0xC0  # both
        elif panpot < 0x40:
            val = 0x80  # left
        else:
            val = 0x40  # right
        if w.flags & USE_HW_LFO and w.flags & HW_LFO_WRITE_REQUEST:
            val |= w.ams_param << 4 | w.pms_param
        self._write_fm(ch, reg, val)

    def _set_fm_tone(self, ch: int, tone: Sequence[int], pos: int) -> None:
        if not self._is_fm_channel(ch):
            return
        w = self.work[ch]
        alg = tone[pos]
        w.alg = alg & 7
        self._write_fm(ch, 0xB0 + ch % 6, alg)

        w.keyon = _u8(tone[pos + 1] * 16)
        pos += 7

        w.tl1 = tone[pos + 1]
        w.tl2 = tone[pos + 9 + 1]
        w.tl3 = tone[pos + 18 + 1]
        w.tl4_vol = tone[pos + 27 + 1]

        for op, regtop in enumerate(_OPERATOR_REGS):
            reg = regtop + ch % 6
            # Six parameters: DT/ML, TL, KS/AR, DR, SR, SL/RR.
            for i in range(6):
                val = tone[pos]
                pos += 1
                # From version 0x300 on, TL is written to modulators only.
                if self.ver >= 0x300 and i == 1:
                    if w.alg <= 3:
                        write = op < 3
                    elif w.alg == 4:
                        write = op in (0, 2)
                    elif w.alg in (5, 6):
                        write = op == 0
                    else:
                        write = False
                    if write:
                        self._write_fm(ch, reg, val)
                else:
                    self._write_fm(ch, reg, val)
                reg += 0x10
            pos += 3

    # LFOs

    def _exec_flfo(self, ch: int) -> None:
        w = self.work[ch]
        if not w.flags & SW_FRQLFO_ENABLED:
            return
        if not w.flags & (SKIP_KEYOFF | LFO_FLAG):
            if w.part_enable == PART_DISABLED:
                return
            if w.rest or w.note == 0:
                return
        old_counter = w.flq_lfo_counter
        w.flq_lfo_counter = _u16(old_counter - 1)
        if old_counter > 0:
            return
        w.flq_lfo_counter = w.flfo.counter
        w.flq_lfo_result = _u16(w.flq_lfo_result + w.flfo.value)
        if w.flfo.value & 0x8000:
            if _s16(w.flfo.max) >= _s16(w.flq_lfo_result):
                w.flq_lfo_result = w.flfo.max
                self._set_flfo(ch, True)
                w.flags &= ~FRQLFO_DIRECTION
        else:
            if _s16(w.flq_lfo_result) >= _s16(w.flfo.max):
                w.flq_lfo_result = w.flfo.max
                self._set_flfo(ch, True)
                w.flags |= FRQLFO_DIRECTION

        result = _u16(w.flq_lfo_result + w.detune)
        if self._is_fm_channel(ch):
            result = _u16(result + w.blk_fnum)
            reg = 0xA4 + ch % 6
            self._write_fm(ch, reg, result >> 8)
            self._write_fm(ch, reg - 4, result & 0xFF)
        else:
            reg = (ch - 3) * 2 + 1
            s_result = _s16(-result) >> 2
            result = _u16(_s16(s_result + w.blk_fnum))
            self._write_psg(reg, (result >> 8) & 0x0F)
            self._write_psg(reg - 1, result & 0xFF)

    def _exec_vlfo(self, ch: int) -> None:
        w = self.work[ch]
        if not w.flags & SW_VOLLFO_ENABLED:
            return
        if w.part_enable == PART_DISABLED:
            return
        w.vol = w.tl4_vol
        if not self._is_fm_channel(ch):
            self._exec_vlfo_psg(ch)
            return
        if w.fm_delay:
            w.fm_delay -= 1
            return
        w.fm_delay = w.vlfo.counter
        w.sw_lfo_val = w.vlfo.value
        if w.vlfo.max >= w.sw_lfo_val:
            w.sw_lfo_val = w.vlfo.max
            self._set_vlfo(ch, True)
            w.flags |= VOLLFO_DIRECTION
        val = (127 - w.vol - (w.sw_lfo_val & 0xFF)) & 0x7F
        reg = 0x40 + ch % 6
        for offset in _CARRIER_OFFSETS.get(w.alg, ()):
            self._write_fm(ch, reg + offset, val)

    def _exec_vlfo_psg(self, ch: int) -> None:
        w = self.work[ch]
        mode = w.vlfo_mode
        if mode & 1:
            if w.sw_lfo_val < 0x3FFF:
                w.sw_lfo_val = _u16(w.sw_lfo_val + w.vlfo_val)
            else:
                w.sw_lfo_val = 0x4000
                w.vlfo_counter = w.vlfo.counter
                w.vlfo_val = w.fm_delay
                w.vlfo_mode = 2
        elif mode & (2 | 4 | 8):
            if w.sw_lfo_val < w.vlfo_val:
                w.vlfo_mode = 0
                w.sw_lfo_val = 0
                self._key_off(ch)
                return
            w.sw_lfo_val -= w.vlfo_val
            if mode & 2:
                old_counter = w.vlfo_counter
                w.vlfo_counter = _u16(old_counter - 1)
                if old_counter:
                    w.vlfo_val = w.vlfo.value
                    w.vlfo_mode = 4
        else:
            return
        val = _u8(((w.sw_lfo_val >> 6) * w.vol) >> 8)
        self._write_psg(ch + 5, (val & 0x78) >> 3)

    def _set_flfo(self, ch: int, neg: bool) -> None:
        w = self.work[ch]
        if not neg:
            if not w.flags & SW_FRQLFO_ENABLED:
                return
            w.flq_lfo_counter = w.flfo.delay
            w.flq_lfo_result = 0
            if not w.flags & FRQLFO_DIRECTION:
                return
            w.flags &= ~FRQLFO_DIRECTION
        w.flfo.value = _u16(-w.flfo.value)
        w.flfo.max = _u16(-w.flfo.max)

    def _set_vlfo(self, ch: int, neg: bool) -> None:
        w = self.work[ch]
        if not neg:
            if not w.flags & SW_VOLLFO_ENABLED:
                return
            if not self._is_fm_channel(ch):
                w.vlfo_mode = 1
                w.vlfo_val = w.vlfo.delay
                w.sw_lfo_val = w.vlfo.delay
                return
            w.fm_delay = w.vlfo.delay
            w.sw_lfo_val = 0
            if not w.flags & VOLLFO_DIRECTION:
                return
            w.flags &= ~VOLLFO_DIRECTION
        w.vlfo.value = _u16(-w.vlfo.value)
        w.vlfo.max = _u16(-w.vlfo.max)

    def _exec_hwlfo(self, ch: int) -> None:
        if self.work[ch].flags & USE_HW_LFO:
            raise UnsupportedFeatureError("hardware LFO is not supported")