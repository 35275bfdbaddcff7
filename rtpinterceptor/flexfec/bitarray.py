"""A 128-bit mask for FEC coverage bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass

_MASK64 = 0xFFFFFFFFFFFFFFFF


@dataclass
class BitArray:
    """128 bits held as two 64-bit words; bit 0 is the leftmost bit of ``lo``."""

    lo: int = 0
    hi: int = 0

    def set_bit(self, bit_index: int) -> None:
        """Set the bit at ``bit_index`` to one."""
        if bit_index < 64:
            self.lo = (self.lo | (1 << (63 - bit_index))) & _MASK64
        else:
            self.hi = (self.hi | (1 << (63 - (bit_index - 64)))) & _MASK64

    def reset(self) -> None:
        """Clear every bit."""
        self.lo = 0
        self.hi = 0

    def get_bit(self, bit_index: int) -> int:
        """Return the bit at ``bit_index`` as 0 or 1."""
        if bit_index < 64:
            return 1 if self.lo & (1 << (63 - bit_index)) else 0
        return 1 if self.hi & (1 << (63 - (bit_index - 64))) else 0