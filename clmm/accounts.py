"""
Account resolution for raw (json-encoded) Solana transactions.

A compiled instruction references accounts by index into the transaction's
global key list. For legacy transactions that list is just
message.accountKeys. For v0 transactions it continues with the addresses
loaded through address lookup tables, as recorded by the validator in
meta.loadedAddresses (all writable first, then all readonly).

Skipping the loaded addresses shifts every index past the static keys, so a
v0 transaction that declares lookups but arrives without loaded addresses is
rejected instead of resolved.
"""
import logging
from dataclasses import dataclass

from clmm.decoder import DecodeError

logger = logging.getLogger("accounts")


class LookupTableUnavailable(DecodeError):
    """v0 transaction uses lookup tables but the loaded addresses are missing."""


@dataclass(frozen=True)
class AccountTable:
    """Ordered global account keys of one transaction."""

    keys: tuple[str, ...]
    static_count: int = 0

    def get(self, index: int) -> str | None:
        if not isinstance(index, int) or index < 0 or index >= len(self.keys):
            return None
        return self.keys[index]

    def __len__(self) -> int:
        return len(self.keys)


@dataclass(frozen=True)
class ResolvedInstruction:
    program_index: int
    account_indexes: tuple[int, ...]
    inner: bool = False  # found via meta.innerInstructions (CPI)


def _normalize_key(key) -> str | None:
    # jsonParsed encodes keys as {"pubkey": ...}; json encodes plain strings
    if isinstance(key, dict):
        key = key.get("pubkey")
    if isinstance(key, str) and key:
        return key
    return None


def is_versioned(tx: dict) -> bool:
    """True for v0 transactions ("legacy" or missing version = legacy)."""
    version = tx.get("version")
    return version is not None and version != "legacy"


def build_account_table(tx: dict) -> AccountTable:
    """
    Concatenate static keys with lookup-table loaded addresses.

    Raises LookupTableUnavailable when a v0 message declares
    addressTableLookups and meta.loadedAddresses is missing or does not
    account for every declared lookup index.
    """
    message = (tx.get("transaction") or {}).get("message") or {}
    meta = tx.get("meta") or {}

    static_keys = [_normalize_key(k) for k in message.get("accountKeys", [])]
    keys = list(static_keys)

    if is_versioned(tx):
        lookups = message.get("addressTableLookups") or []
        expected = sum(
            len(lut.get("writableIndexes", [])) + len(lut.get("readonlyIndexes", []))
            for lut in lookups
        )
        loaded = meta.get("loadedAddresses")
        if loaded is None:
            if expected:
                raise LookupTableUnavailable(
                    f"{len(lookups)} lookup table(s) declared, no loaded addresses"
                )
            loaded = {}

        writable = [_normalize_key(k) for k in loaded.get("writable", [])]
        readonly = [_normalize_key(k) for k in loaded.get("readonly", [])]
        if len(writable) + len(readonly) != expected:
            raise LookupTableUnavailable(
                f"lookup tables declare {expected} address(es), "
                f"meta loaded {len(writable) + len(readonly)}"
            )
        keys.extend(writable)
        keys.extend(readonly)

    return AccountTable(keys=tuple(keys), static_count=len(static_keys))


def _match(ix: dict, table: AccountTable, program_id: str, inner: bool) -> ResolvedInstruction | None:
    program_index = ix.get("programIdIndex")
    if table.get(program_index) != program_id:
        return None
    return ResolvedInstruction(
        program_index=program_index,
        account_indexes=tuple(ix.get("accounts", [])),
        inner=inner,
    )


def find_program_instruction(
    tx: dict, table: AccountTable, program_id: str
) -> ResolvedInstruction | None:
    """
    Locate the first instruction invoking program_id.

    Top-level instructions are searched first, then inner (CPI) instructions.
    Returns None when the program is never invoked.
    """
    message = (tx.get("transaction") or {}).get("message") or {}
    for ix in message.get("instructions", []):
        found = _match(ix, table, program_id, inner=False)
        if found is not None:
            return found

    # Fallback: pool created through another program (router, launchpad)
    meta = tx.get("meta") or {}
    for group in meta.get("innerInstructions") or []:
        for ix in group.get("instructions", []):
            found = _match(ix, table, program_id, inner=True)
            if found is not None:
                return found
    return None


def resolve_instruction(
    tx: dict, program_id: str
) -> tuple[AccountTable, ResolvedInstruction] | None:
    """Build the account table and locate the target program's instruction."""
    table = build_account_table(tx)
    instruction = find_program_instruction(tx, table, program_id)
    if instruction is None:
        return None
    return table, instruction
