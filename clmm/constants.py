"""
Solana program IDs, quote mints and instruction markers for pool detection.

Primary: Raydium CLMM (concentrated liquidity) create_pool.
Also:    Raydium CPMM (constant product) initialize.
"""

# ═══════════════════════════════════════════════════════════════
#  SOLANA TOKEN ADDRESSES
# ═══════════════════════════════════════════════════════════════

# Wrapped SOL (SPL token)
WSOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

# Assets used to price the other side of a pool
DEFAULT_QUOTE_MINTS = frozenset({WSOL, USDC, USDT})

# ═══════════════════════════════════════════════════════════════
#  DEX PROGRAM IDS
# ═══════════════════════════════════════════════════════════════

# Raydium CLMM — default target
RAYDIUM_CLMM = "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK"

# Raydium Constant Product (newer)
RAYDIUM_CPMM = "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C"

# Raydium pool creation fee receiver
RAYDIUM_FEE_ACCOUNT = "7YttLkHDoNj9wyDur5pM1ejNaAvT9X4eqaYcHQqtj2G5"

# ═══════════════════════════════════════════════════════════════
#  CREATION LOG MARKERS
#
#  Anchor programs log "Program log: Instruction: <Name>". The name
#  is usually PascalCase but some builds emit the snake_case ix name,
#  so both spellings are matched. Markers are whole log lines: the
#  SPL Token program logs "Instruction: InitializeAccount3" inside
#  ordinary swaps.
# ═══════════════════════════════════════════════════════════════

CLMM_CREATE_MARKERS = (
    "Program log: Instruction: CreatePool",
    "Program log: Instruction: create_pool",
)

CPMM_CREATE_MARKERS = (
    "Program log: Instruction: Initialize",
    "Program log: Instruction: initialize",
)

# ═══════════════════════════════════════════════════════════════
#  CREATION INSTRUCTION — ACCOUNT POSITIONS
#
#  CLMM create_pool accounts:
#    0 pool_creator   1 amm_config     2 pool_state
#    3 token_mint_0   4 token_mint_1   5 token_vault_0
#    6 token_vault_1  7 observation    8 tick_array_bitmap ...
#
#  CPMM initialize accounts:
#    0 creator        1 amm_config     2 authority      3 pool_state
#    4 token_0_mint   5 token_1_mint   6 lp_mint        7 creator_token_0
#    8 creator_token_1 9 creator_lp    10 token_0_vault 11 token_1_vault ...
# ═══════════════════════════════════════════════════════════════

CLMM_IX_MINT_0 = 3
CLMM_IX_MINT_1 = 4
CLMM_IX_VAULT_0 = 5
CLMM_IX_VAULT_1 = 6
CLMM_IX_MIN_ACCOUNTS = 7

CPMM_IX_MINT_0 = 4
CPMM_IX_MINT_1 = 5
CPMM_IX_VAULT_0 = 10
CPMM_IX_VAULT_1 = 11
CPMM_IX_MIN_ACCOUNTS = 12
