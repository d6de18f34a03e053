"""
Display helpers for stakes and party identifiers.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation

LAMPORTS_PER_SOL = 1_000_000_000


def format_stake(lamports: int) -> str:
    """Render a lamport amount as SOL with four decimals."""
    return f"{Decimal(lamports) / LAMPORTS_PER_SOL:.4f}"


def parse_stake(sol: str) -> int:
    """Parse a SOL amount into whole lamports, truncating fractions."""
    try:
        amount = Decimal(sol.strip())
    except InvalidOperation:
        raise ValueError(f"Invalid stake amount: {sol!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Invalid stake amount: {sol!r}")
    return int((amount * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_DOWN))


def shorten_party(party: str) -> str:
    """Abbreviate a long party identifier to its first and last four characters."""
    if len(party) <= 11:
        return party
    return f"{party[:4]}...{party[-4:]}"
