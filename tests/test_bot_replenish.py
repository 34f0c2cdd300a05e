import pytest
from solders.keypair import Keypair

from bot.replenish import pool_needs_replenish, replenish_pools
from single_pool.actions import get_pool_stake, initialize
from single_pool.constants import (
    SINGLE_POOL_PROGRAM_ID,
    find_pool_onramp_address,
    find_pool_stake_address,
    minimum_pool_balance,
)
from stake.actions import get_stake_state
from stake.constants import LAMPORTS_PER_SOL, MINIMUM_DELEGATION
from stake.state import StakeStateType
from system.actions import transfer


@pytest.mark.asyncio
async def test_replenish_pools(async_client, payer, validators, waiter):
    pools = [await initialize(async_client, payer, validator) for validator in validators]
    await waiter.wait_for_next_epoch(async_client)

    # Case 1: nothing to do anywhere
    for validator in validators:
        assert not await pool_needs_replenish(async_client, validator, 1)
    assert await replenish_pools(async_client, payer, validators) == 0

    # Case 2: only the tipped pool is replenished
    tip = 2 * LAMPORTS_PER_SOL
    (pool_stake, _) = find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pools[0])
    await transfer(async_client, payer, pool_stake, tip)
    assert await pool_needs_replenish(async_client, validators[0], 1)
    assert await replenish_pools(async_client, payer, validators) == 1
    (onramp, _) = find_pool_onramp_address(SINGLE_POOL_PROGRAM_ID, pools[0])
    assert (await get_stake_state(async_client, onramp)).state_type == StakeStateType.STAKE

    # Case 3: next epoch the active onramp is folded into the pool
    await waiter.wait_for_next_epoch(async_client)
    assert await pool_needs_replenish(async_client, validators[0], 2)
    assert await replenish_pools(async_client, payer, validators) == 1
    assert (await get_stake_state(async_client, onramp)).state_type == StakeStateType.INITIALIZED
    assert await get_pool_stake(async_client, pools[0]) == minimum_pool_balance(MINIMUM_DELEGATION) + tip

    # Case 4: forcing sends a replenish for every pool
    assert await replenish_pools(async_client, payer, validators, force=True) == len(validators)


@pytest.mark.asyncio
async def test_replenish_skips_missing_pool(async_client, payer):
    vote_account = Keypair().pubkey()
    assert not await pool_needs_replenish(async_client, vote_account, 0)
    assert await replenish_pools(async_client, payer, [vote_account]) == 0


@pytest.mark.asyncio
async def test_replenish_sweeps_tip_paid_to_onramp(async_client, payer, validators, waiter):
    pool = await initialize(async_client, payer, validators[0])
    await waiter.wait_for_next_epoch(async_client)
    (onramp, _) = find_pool_onramp_address(SINGLE_POOL_PROGRAM_ID, pool)

    # a tip paid straight into the idle onramp gets delegated
    tip = 3 * LAMPORTS_PER_SOL
    await transfer(async_client, payer, onramp, tip)
    assert await pool_needs_replenish(async_client, validators[0], 1)
    assert await replenish_pools(async_client, payer, validators[:1]) == 1
    onramp_state = await get_stake_state(async_client, onramp)
    assert onramp_state.state_type == StakeStateType.STAKE
    assert onramp_state.stake.delegation.stake == tip

    # a second tip while the onramp is still activating tops it up
    await transfer(async_client, payer, onramp, tip)
    assert await pool_needs_replenish(async_client, validators[0], 1)
    assert await replenish_pools(async_client, payer, validators[:1]) == 1
    onramp_state = await get_stake_state(async_client, onramp)
    assert onramp_state.stake.delegation.stake == 2 * tip
    assert not await pool_needs_replenish(async_client, validators[0], 1)


@pytest.mark.asyncio
async def test_replenish_leaves_small_onramp_tip(async_client, payer, validators, waiter):
    pool = await initialize(async_client, payer, validators[0])
    await waiter.wait_for_next_epoch(async_client)
    (onramp, _) = find_pool_onramp_address(SINGLE_POOL_PROGRAM_ID, pool)

    await transfer(async_client, payer, onramp, MINIMUM_DELEGATION - 1)
    assert not await pool_needs_replenish(async_client, validators[0], 1)
    assert await replenish_pools(async_client, payer, validators[:1]) == 0
