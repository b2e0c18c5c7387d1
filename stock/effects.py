"""
Stock — Ledger Effects

What a single ledger write does to a quantity: shift it by a signed
amount, or pin it to an absolute target. Resolution never clamps; the
ledger rejects negative results.

@file stock/effects.py
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Delta:
    """Signed change: add / remove / in / out / return."""

    amount: int

    def resolve(self, current: int) -> int:
        return current + self.amount


@dataclass(frozen=True)
class Absolute:
    """Absolute target: ``set`` adjustments and bulk stock takes."""

    target: int

    def resolve(self, current: int) -> int:
        return self.target


MovementEffect = Delta | Absolute
