from solders.keypair import Keypair
from solders.pubkey import Pubkey

from single_pool.constants import (
    SINGLE_POOL_PROGRAM_ID,
    find_default_deposit_account_address,
    find_pool_address,
    find_pool_mint_address,
    find_pool_mint_authority_address,
    find_pool_mpl_authority_address,
    find_pool_onramp_address,
    find_pool_stake_address,
    find_pool_stake_authority_address,
)
from stake.constants import STAKE_PROGRAM_ID


def test_pool_addresses_are_deterministic():
    vote_account = Keypair().pubkey()
    (pool, bump) = find_pool_address(SINGLE_POOL_PROGRAM_ID, vote_account)
    assert (pool, bump) == find_pool_address(SINGLE_POOL_PROGRAM_ID, vote_account)
    assert pool == Pubkey.create_program_address(
        [b"pool", bytes(vote_account), bytes([bump])], SINGLE_POOL_PROGRAM_ID)
    assert not pool.is_on_curve()


def test_pool_siblings_are_distinct():
    (pool, _) = find_pool_address(SINGLE_POOL_PROGRAM_ID, Keypair().pubkey())
    addresses = [
        find(SINGLE_POOL_PROGRAM_ID, pool)[0]
        for find in (
            find_pool_stake_address,
            find_pool_onramp_address,
            find_pool_mint_address,
            find_pool_stake_authority_address,
            find_pool_mint_authority_address,
            find_pool_mpl_authority_address,
        )
    ]
    assert len(set(addresses)) == len(addresses)
    assert pool not in addresses


def test_pool_sibling_seeds():
    (pool, _) = find_pool_address(SINGLE_POOL_PROGRAM_ID, Keypair().pubkey())
    (onramp, bump) = find_pool_onramp_address(SINGLE_POOL_PROGRAM_ID, pool)
    assert onramp == Pubkey.create_program_address([b"onramp", bytes(pool), bytes([bump])], SINGLE_POOL_PROGRAM_ID)
    (mint_authority, bump) = find_pool_mint_authority_address(SINGLE_POOL_PROGRAM_ID, pool)
    assert mint_authority == Pubkey.create_program_address(
        [b"mint_authority", bytes(pool), bytes([bump])], SINGLE_POOL_PROGRAM_ID)


def test_different_programs_derive_different_pools():
    vote_account = Keypair().pubkey()
    other_program = Keypair().pubkey()
    assert find_pool_address(SINGLE_POOL_PROGRAM_ID, vote_account)[0] != \
        find_pool_address(other_program, vote_account)[0]


def test_default_deposit_account_address():
    (pool, _) = find_pool_address(SINGLE_POOL_PROGRAM_ID, Keypair().pubkey())
    wallet = Keypair().pubkey()
    (address, seed) = find_default_deposit_account_address(pool, wallet)
    assert seed == "svsp" + str(pool)[:28]
    assert len(seed) == 32
    assert address == Pubkey.create_with_seed(wallet, seed, STAKE_PROGRAM_ID)
    assert address != find_default_deposit_account_address(pool, Keypair().pubkey())[0]
