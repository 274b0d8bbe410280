"""CHIP-8 disassembler.

Mnemonics follow the classic Cowgod reference (``LD``, ``SE``, ``DRW``...).
Words that are not assigned instructions render as ``DW 0xNNNN``.
"""

from typing import Iterator, List, Optional, Tuple

from chipvm.constants import PROGRAM_START
from chipvm.decode import decode
from chipvm.state import Quirks


def _system(d):
    if d.raw == 0x00E0:
        return "CLS"
    if d.raw == 0x00EE:
        return "RET"
    return None


def _alu(d):
    vx, vy = f"V{d.x:X}", f"V{d.y:X}"
    return {
        0x0: f"LD {vx}, {vy}",
        0x1: f"OR {vx}, {vy}",
        0x2: f"AND {vx}, {vy}",
        0x3: f"XOR {vx}, {vy}",
        0x4: f"ADD {vx}, {vy}",
        0x5: f"SUB {vx}, {vy}",
        0x6: f"SHR {vx}",
        0x7: f"SUBN {vx}, {vy}",
        0xE: f"SHL {vx}",
    }.get(d.n)


def _keys(d):
    return {0x9E: f"SKP V{d.x:X}", 0xA1: f"SKNP V{d.x:X}"}.get(d.nn)


def _misc(d):
    vx = f"V{d.x:X}"
    return {
        0x07: f"LD {vx}, DT",
        0x0A: f"LD {vx}, K",
        0x15: f"LD DT, {vx}",
        0x18: f"LD ST, {vx}",
        0x1E: f"ADD I, {vx}",
        0x29: f"LD F, {vx}",
        0x33: f"LD B, {vx}",
        0x55: f"LD [I], {vx}",
        0x65: f"LD {vx}, [I]",
    }.get(d.nn)


_FAMILIES = {
    0x0: _system,
    0x1: lambda d: f"JP 0x{d.nnn:03X}",
    0x2: lambda d: f"CALL 0x{d.nnn:03X}",
    0x3: lambda d: f"SE V{d.x:X}, 0x{d.nn:02X}",
    0x4: lambda d: f"SNE V{d.x:X}, 0x{d.nn:02X}",
    0x5: lambda d: f"SE V{d.x:X}, V{d.y:X}" if d.n == 0 else None,
    0x6: lambda d: f"LD V{d.x:X}, 0x{d.nn:02X}",
    0x7: lambda d: f"ADD V{d.x:X}, 0x{d.nn:02X}",
    0x8: _alu,
    0x9: lambda d: f"SNE V{d.x:X}, V{d.y:X}" if d.n == 0 else None,
    0xA: lambda d: f"LD I, 0x{d.nnn:03X}",
    0xB: lambda d: f"JP V0, 0x{d.nnn:03X}",
    0xC: lambda d: f"RND V{d.x:X}, 0x{d.nn:02X}",
    0xD: lambda d: f"DRW V{d.x:X}, V{d.y:X}, {d.n}",
    0xE: _keys,
    0xF: _misc,
}


def disassemble(opcode: int, quirks: Optional[Quirks] = None) -> str:
    """Mnemonic for a single 16-bit instruction word.

    With ``quirks.jump_uses_vx`` set, BXNN renders as ``JP VX, 0xXNN``.
    """
    opcode = int(opcode) & 0xFFFF
    decoded = decode(opcode)
    if decoded.family == 0xB and quirks is not None and quirks.jump_uses_vx:
        return f"JP V{decoded.x:X}, 0x{decoded.nnn:03X}"
    mnemonic = _FAMILIES[decoded.family](decoded)
    return mnemonic if mnemonic is not None else f"DW 0x{opcode:04X}"


def iter_program(
    data: bytes, origin: int = PROGRAM_START, quirks: Optional[Quirks] = None
) -> Iterator[Tuple[int, int, str]]:
    """Yield ``(address, word, mnemonic)`` for each big-endian word of ``data``.

    A trailing odd byte is reported as ``DB``.
    """
    for offset in range(0, len(data) - 1, 2):
        word = (data[offset] << 8) | data[offset + 1]
        yield origin + offset, word, disassemble(word, quirks)
    if len(data) % 2:
        last = data[-1]
        yield origin + len(data) - 1, last, f"DB 0x{last:02X}"


def disassemble_program(
    data: bytes, origin: int = PROGRAM_START, quirks: Optional[Quirks] = None
) -> List[Tuple[int, int, str]]:
    return list(iter_program(data, origin, quirks))


def format_listing(data: bytes, origin: int = PROGRAM_START, quirks: Optional[Quirks] = None) -> str:
    """Human readable listing, one instruction per line."""
    lines = []
    for address, word, mnemonic in iter_program(data, origin, quirks):
        width = 2 if mnemonic.startswith("DB") else 4
        lines.append(f"{address:03X}: {word:0{width}X}  {mnemonic}")
    return "\n".join(lines)
