from solders.pubkey import Pubkey

# ============================================
# PROGRAM IDS
# ============================================
SYSTEM_PROGRAM = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_PROGRAM = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
TOKEN_2022_PROGRAM = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")
ASSOC_TOKEN_ACC_PROG = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
COMPUTE_BUDGET_PROGRAM = Pubkey.from_string("ComputeBudget111111111111111111111111111111")
METADATA_PROGRAM = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")
WSOL_MINT = Pubkey.from_string("So11111111111111111111111111111111111111112")

SYSTEM_PROGRAM_LABEL = "System Program"

# Infrastructure programs never count as the trading protocol
INFRA_PROGRAMS = {
    str(SYSTEM_PROGRAM),
    str(TOKEN_PROGRAM),
    str(TOKEN_2022_PROGRAM),
    str(ASSOC_TOKEN_ACC_PROG),
    str(COMPUTE_BUDGET_PROGRAM),
}

# Program ID to protocol label
KNOWN_PROGRAMS = {
    "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P": "Pump.fun",
    "pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA": "PumpSwap",
    "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8": "Raydium AMM",
    "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK": "Raydium CLMM",
    "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C": "Raydium CPMM",
    "LanMV9sAd7wArD4vJFi2qDdfnVhFxYSUg6eADduJ3uj": "Raydium LaunchLab",
    "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4": "Jupiter",
    "JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB": "Jupiter v4",
    "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc": "Orca Whirlpool",
    "LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo": "Meteora DLMM",
    "Eo7WjKq67rjJQSZxS6z3YkapzY3eMj6Xy8n5EQVn5UaB": "Meteora DAMM",
    "cpamdpZCGKUy5JxQXB4dcpGPiikHawvSWAd6mEn1sGG": "Meteora DAMM v2",
}

# ============================================
# UNITS
# ============================================
LAMPORTS_PER_SOL = 1_000_000_000
DEFAULT_TOKEN_DECIMALS = 6
SOL_BALANCE_PRECISION = 6

# Rough per-signature network fee, reported when SOL moved
BASE_FEE_SOL = 0.000005

# ============================================
# ON-CHAIN LAYOUTS
# ============================================
# SPL mint: COption<Pubkey> mint_authority (4 + 32), u64 supply, u8 decimals,
# bool is_initialized, COption<Pubkey> freeze_authority (4 + 32)
MINT_ACCOUNT_SIZE = 82
MINT_AUTHORITY_OFFSET = 0
MINT_SUPPLY_OFFSET = 36
MINT_DECIMALS_OFFSET = 44
MINT_INITIALIZED_OFFSET = 45
MINT_FREEZE_AUTHORITY_OFFSET = 46

# Metaplex metadata: key (1) + update_authority (32) + mint (32), then
# length-prefixed name, symbol, uri
METADATA_HEADER_SIZE = 1 + 32 + 32

# ============================================
# API ENDPOINTS
# ============================================
JUPITER_PRICE_API = "https://lite-api.jup.ag/price/v3"

# ============================================
# PIPELINE LIMITS
# ============================================
MIN_SIGNATURE_LENGTH = 50
PRICE_CACHE_TTL_SECONDS = 300  # 5 minutes
