"""Instruction word decoding.

Fields are named after the nibble layout used in opcode tables
(``8XY4``, ``DXYN``, ``ANNN``).
"""

from chex import dataclass

from chipvm.constants import ADDRESS_MASK


@dataclass(frozen=True)
class DecodedInstruction:
    """Operand fields of one 16-bit instruction word.

    Fields are Python ints when decoding a literal word and traced integers
    inside jitted code.
    """
    raw: int     # Whole instruction word
    family: int  # Top nibble, selects the handler
    x: int       # Second nibble (VX register)
    y: int       # Third nibble (VY register)
    n: int       # Low nibble: sprite height or sub-selector
    nn: int      # Low byte
    nnn: int     # Low 12 bits (address)


def _nibble(word, shift: int):
    return (word >> shift) & 0xF


def decode(instruction: int) -> DecodedInstruction:
    """Split an instruction word into its operand fields."""
    return DecodedInstruction(
        raw=instruction,
        family=_nibble(instruction, 12),
        x=_nibble(instruction, 8),
        y=_nibble(instruction, 4),
        n=_nibble(instruction, 0),
        nn=instruction & 0xFF,
        nnn=instruction & ADDRESS_MASK,
    )
