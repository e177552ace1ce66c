"""
Base / quote classification of a new pool's mints.
"""
from dataclasses import dataclass

from clmm.decoder import PoolAccounts


@dataclass(frozen=True)
class ClassifiedPool:
    """
    A pool oriented for pricing.

    inverted=False: quote_vault holds the quote asset, base_vault the token.
    inverted=True:  the opposite (base_vault holds the quote asset).
    base_slot is the positional slot (0 or 1) the token occupied.
    """

    base_mint: str
    quote_mint: str
    base_vault: str
    quote_vault: str
    inverted: bool = False
    base_slot: int = 0


def classify_pool(accounts: PoolAccounts, quote_mints) -> ClassifiedPool | None:
    """
    Return the pool oriented as (token, quote asset), or None when the pair
    has no quote asset (exotic) or two of them (quote/quote).
    """
    q0 = accounts.mint0 in quote_mints
    q1 = accounts.mint1 in quote_mints

    if q0 == q1:
        return None

    if q0:
        return ClassifiedPool(
            base_mint=accounts.mint1,
            quote_mint=accounts.mint0,
            base_vault=accounts.vault1,
            quote_vault=accounts.vault0,
            base_slot=1,
        )
    return ClassifiedPool(
        base_mint=accounts.mint0,
        quote_mint=accounts.mint1,
        base_vault=accounts.vault0,
        quote_vault=accounts.vault1,
        base_slot=0,
    )
