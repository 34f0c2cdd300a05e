"""SPL Single-Validator Stake Pool Constants."""

from typing import Tuple

from solders.pubkey import Pubkey

from stake.constants import LAMPORTS_PER_SOL, STAKE_PROGRAM_ID

SINGLE_POOL_PROGRAM_ID = Pubkey.from_string("SVSPxpvHdN29nkVg9rPapPNDddN5DipNLRUFhyjFThE")
"""Public key that identifies the SPL Single-Validator Stake Pool program."""

POOL_PREFIX = b"pool"
"""Seed used to derive the pool account from its vote account."""
POOL_STAKE_PREFIX = b"stake"
"""Seed used to derive the pool stake account."""
POOL_ONRAMP_PREFIX = b"onramp"
"""Seed used to derive the pool onramp stake account."""
POOL_MINT_PREFIX = b"mint"
"""Seed used to derive the pool token mint."""
POOL_MINT_AUTHORITY_PREFIX = b"mint_authority"
"""Seed used to derive the authority that mints and burns pool tokens."""
POOL_STAKE_AUTHORITY_PREFIX = b"stake_authority"
"""Seed used to derive the staker and withdrawer of the pool stake accounts."""
POOL_MPL_AUTHORITY_PREFIX = b"mpl_authority"
"""Seed used to derive the update authority of the pool token metadata."""

DEFAULT_DEPOSIT_SEED_PREFIX = "svsp"
"""Prefix of the seed of a user's default deposit stake account."""

MINT_DECIMALS: int = 9
"""Decimals of every pool token mint, matching SOL."""

POOL_LEN: int = 41
"""Size of a pool account."""


def minimum_pool_balance(minimum_delegation: int) -> int:
    """Stake kept in the pool stake account forever; it backs no tokens."""
    return max(minimum_delegation, LAMPORTS_PER_SOL)


def find_pool_address(program_id: Pubkey, vote_account_address: Pubkey) -> Tuple[Pubkey, int]:
    """Generates the pool address for a vote account"""
    return Pubkey.find_program_address([POOL_PREFIX, bytes(vote_account_address)], program_id)


def _find_pool_sibling_address(program_id: Pubkey, pool_address: Pubkey, prefix: bytes) -> Tuple[Pubkey, int]:
    return Pubkey.find_program_address([prefix, bytes(pool_address)], program_id)


def find_pool_stake_address(program_id: Pubkey, pool_address: Pubkey) -> Tuple[Pubkey, int]:
    """Generates the pool stake account address"""
    return _find_pool_sibling_address(program_id, pool_address, POOL_STAKE_PREFIX)


def find_pool_onramp_address(program_id: Pubkey, pool_address: Pubkey) -> Tuple[Pubkey, int]:
    """Generates the pool onramp stake account address"""
    return _find_pool_sibling_address(program_id, pool_address, POOL_ONRAMP_PREFIX)


def find_pool_mint_address(program_id: Pubkey, pool_address: Pubkey) -> Tuple[Pubkey, int]:
    """Generates the pool token mint address"""
    return _find_pool_sibling_address(program_id, pool_address, POOL_MINT_PREFIX)


def find_pool_stake_authority_address(program_id: Pubkey, pool_address: Pubkey) -> Tuple[Pubkey, int]:
    """Generates the pool stake authority address"""
    return _find_pool_sibling_address(program_id, pool_address, POOL_STAKE_AUTHORITY_PREFIX)


def find_pool_mint_authority_address(program_id: Pubkey, pool_address: Pubkey) -> Tuple[Pubkey, int]:
    """Generates the pool mint authority address"""
    return _find_pool_sibling_address(program_id, pool_address, POOL_MINT_AUTHORITY_PREFIX)


def find_pool_mpl_authority_address(program_id: Pubkey, pool_address: Pubkey) -> Tuple[Pubkey, int]:
    """Generates the pool metadata update authority address"""
    return _find_pool_sibling_address(program_id, pool_address, POOL_MPL_AUTHORITY_PREFIX)


def find_default_deposit_account_address(pool_address: Pubkey, user_wallet_address: Pubkey) -> Tuple[Pubkey, str]:
    """Generates the address and seed of a wallet's default deposit stake account for a pool."""
    seed = DEFAULT_DEPOSIT_SEED_PREFIX + str(pool_address)[:28]
    return Pubkey.create_with_seed(user_wallet_address, seed, STAKE_PROGRAM_ID), seed
