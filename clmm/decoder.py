"""
Positional decoding of pool-creation instructions.

The creation instruction carries no account roles, only positions. Each
on-chain layout is described by a named PoolLayout; a program upgrade that
moves accounts around gets a new layout entry rather than new magic indices.
"""
from dataclasses import dataclass

from clmm.constants import (
    CLMM_IX_MINT_0,
    CLMM_IX_MINT_1,
    CLMM_IX_VAULT_0,
    CLMM_IX_VAULT_1,
    CLMM_IX_MIN_ACCOUNTS,
    CPMM_IX_MINT_0,
    CPMM_IX_MINT_1,
    CPMM_IX_VAULT_0,
    CPMM_IX_VAULT_1,
    CPMM_IX_MIN_ACCOUNTS,
)


class DecodeError(Exception):
    """Transaction does not yield pool accounts."""


class MalformedInstruction(DecodeError):
    """Instruction account list does not fit the layout."""


class UnresolvedAccount(MalformedInstruction):
    """A layout position points outside the account table."""


@dataclass(frozen=True)
class PoolLayout:
    name: str
    mint0: int
    mint1: int
    vault0: int
    vault1: int
    min_accounts: int


@dataclass(frozen=True)
class PoolAccounts:
    mint0: str
    mint1: str
    vault0: str
    vault1: str


CLMM_CREATE_POOL_V1 = PoolLayout(
    name="clmm-create-pool-v1",
    mint0=CLMM_IX_MINT_0,
    mint1=CLMM_IX_MINT_1,
    vault0=CLMM_IX_VAULT_0,
    vault1=CLMM_IX_VAULT_1,
    min_accounts=CLMM_IX_MIN_ACCOUNTS,
)

CPMM_INITIALIZE_V1 = PoolLayout(
    name="cpmm-initialize-v1",
    mint0=CPMM_IX_MINT_0,
    mint1=CPMM_IX_MINT_1,
    vault0=CPMM_IX_VAULT_0,
    vault1=CPMM_IX_VAULT_1,
    min_accounts=CPMM_IX_MIN_ACCOUNTS,
)

LAYOUTS: dict[str, PoolLayout] = {
    layout.name: layout for layout in (CLMM_CREATE_POOL_V1, CPMM_INITIALIZE_V1)
}


def get_layout(name: str) -> PoolLayout:
    try:
        return LAYOUTS[name]
    except KeyError:
        raise ValueError(
            f"Unknown pool layout {name!r} (known: {', '.join(sorted(LAYOUTS))})"
        ) from None


def decode_pool_accounts(instruction, table, layout: PoolLayout = CLMM_CREATE_POOL_V1) -> PoolAccounts:
    """
    Pull mint0/mint1/vault0/vault1 out of a creation instruction.

    `instruction` is a ResolvedInstruction, `table` its AccountTable.
    Raises MalformedInstruction if the account list is too short and
    UnresolvedAccount if a position maps to no address.
    """
    indexes = instruction.account_indexes
    if len(indexes) < layout.min_accounts:
        raise MalformedInstruction(
            f"{layout.name}: expected >= {layout.min_accounts} accounts, got {len(indexes)}"
        )

    resolved = {}
    for role in ("mint0", "mint1", "vault0", "vault1"):
        position = getattr(layout, role)
        address = table.get(indexes[position])
        if address is None:
            raise UnresolvedAccount(
                f"{layout.name}: {role} index {indexes[position]} "
                f"outside account table of {len(table)}"
            )
        resolved[role] = address

    return PoolAccounts(**resolved)
