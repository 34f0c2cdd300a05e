import pytest
from solders.keypair import Keypair
from solders.transaction import Transaction
from solana.rpc.commitment import Confirmed

from bank.error import ProgramError, TransactionError
from bank.sysvar import Rent
from single_pool.actions import (
    create_and_delegate_user_stake,
    deposit,
    deposit_default,
    get_pool_stake,
    initialize,
    replenish,
)
from single_pool.constants import (
    SINGLE_POOL_PROGRAM_ID,
    find_pool_mint_address,
    find_pool_stake_address,
    minimum_pool_balance,
)
from single_pool.error import SinglePoolError
from single_pool.instructions import deposit_stake_with_pool
from spl_token.actions import create_associated_token_account, get_token_balance, get_token_supply
from stake.actions import create_stake, deactivate, delegate_stake
from stake.constants import MINIMUM_DELEGATION, STAKE_LEN
from system.actions import airdrop, transfer

from conftest import AIRDROP_LAMPORTS, USER_STAKE_LAMPORTS


@pytest.mark.asyncio
async def test_deposit_default_account(async_client, payer, pool_addresses, user, active_user_stake):
    (vote_account, pool_address, pool_mint) = pool_addresses
    (user_wallet, token_account) = user
    stake_rent = Rent().minimum_balance(STAKE_LEN)
    resp = await async_client.get_balance(user_wallet.pubkey(), commitment=Confirmed)
    wallet_lamports = resp.value

    await deposit_default(async_client, payer, vote_account, user_wallet, token_account)

    # first deposit mints one token per lamport of stake
    assert await get_token_balance(async_client, token_account) == USER_STAKE_LAMPORTS
    assert await get_token_supply(async_client, pool_mint) == USER_STAKE_LAMPORTS
    assert await get_pool_stake(async_client, pool_address) == \
        minimum_pool_balance(MINIMUM_DELEGATION) + USER_STAKE_LAMPORTS

    # the deposit account is gone, its rent reserve went back to the wallet
    resp = await async_client.get_account_info(active_user_stake, commitment=Confirmed)
    assert resp.value is None
    resp = await async_client.get_balance(user_wallet.pubkey(), commitment=Confirmed)
    assert resp.value == wallet_lamports + stake_rent

    # the pool stake account holds no undelegated lamports
    (pool_stake, _) = find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    resp = await async_client.get_balance(pool_stake, commitment=Confirmed)
    assert resp.value == stake_rent + minimum_pool_balance(MINIMUM_DELEGATION) + USER_STAKE_LAMPORTS


@pytest.mark.asyncio
async def test_second_deposit_is_not_diluted(async_client, payer, pool_addresses, user, active_user_stake, waiter):
    (vote_account, pool_address, pool_mint) = pool_addresses
    (user_wallet, token_account) = user
    await deposit_default(async_client, payer, vote_account, user_wallet, token_account)

    other_wallet = Keypair()
    await airdrop(async_client, other_wallet.pubkey(), AIRDROP_LAMPORTS)
    other_token_account = await create_associated_token_account(
        async_client, other_wallet, other_wallet.pubkey(), pool_mint)
    other_amount = USER_STAKE_LAMPORTS // 4
    await create_and_delegate_user_stake(async_client, other_wallet, vote_account, other_amount)
    await waiter.wait_for_next_epoch(async_client)
    await deposit_default(async_client, payer, vote_account, other_wallet, other_token_account)

    # at parity the second depositor gets the same price as the first
    assert await get_token_balance(async_client, other_token_account) == other_amount
    assert await get_token_balance(async_client, token_account) == USER_STAKE_LAMPORTS
    assert await get_token_supply(async_client, pool_mint) == USER_STAKE_LAMPORTS + other_amount


@pytest.mark.asyncio
async def test_deposit_after_tip_gets_fewer_tokens(
    async_client, payer, pool_addresses, user, active_user_stake, waiter
):
    (vote_account, pool_address, pool_mint) = pool_addresses
    (user_wallet, token_account) = user
    await deposit_default(async_client, payer, vote_account, user_wallet, token_account)

    # a tip swept into the onramp counts toward the pool value right away
    (pool_stake, _) = find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    tip = USER_STAKE_LAMPORTS
    await transfer(async_client, payer, pool_stake, tip)
    await replenish(async_client, payer, vote_account)
    assert await get_pool_stake(async_client, pool_address) == \
        minimum_pool_balance(MINIMUM_DELEGATION) + USER_STAKE_LAMPORTS + tip

    other_wallet = Keypair()
    await airdrop(async_client, other_wallet.pubkey(), AIRDROP_LAMPORTS)
    other_token_account = await create_associated_token_account(
        async_client, other_wallet, other_wallet.pubkey(), pool_mint)
    await create_and_delegate_user_stake(async_client, other_wallet, vote_account, USER_STAKE_LAMPORTS)
    await waiter.wait_for_next_epoch(async_client)
    await deposit_default(async_client, payer, vote_account, other_wallet, other_token_account)

    # pool value doubled with no new tokens, so the same stake buys half as many
    assert await get_token_balance(async_client, other_token_account) == USER_STAKE_LAMPORTS // 2


@pytest.mark.asyncio
async def test_deposit_keypair_stake(async_client, payer, pool_addresses, user, waiter):
    (vote_account, pool_address, _) = pool_addresses
    (user_wallet, token_account) = user
    stake = Keypair()
    amount = 2 * MINIMUM_DELEGATION
    await create_stake(async_client, user_wallet, stake, user_wallet.pubkey(), amount)
    await delegate_stake(async_client, user_wallet, user_wallet, stake.pubkey(), vote_account)
    await waiter.wait_for_next_epoch(async_client)

    lamport_receiver = Keypair().pubkey()
    await deposit(async_client, payer, pool_address, stake.pubkey(), token_account, user_wallet, lamport_receiver)
    assert await get_token_balance(async_client, token_account) == amount
    resp = await async_client.get_balance(lamport_receiver, commitment=Confirmed)
    assert resp.value == Rent().minimum_balance(STAKE_LEN)


@pytest.mark.asyncio
async def test_deposit_wrong_validator_fails(async_client, payer, validators, pool_addresses, user, waiter):
    (_, pool_address, _) = pool_addresses
    (user_wallet, token_account) = user
    stake = Keypair()
    await create_stake(async_client, user_wallet, stake, user_wallet.pubkey(), MINIMUM_DELEGATION)
    await delegate_stake(async_client, user_wallet, user_wallet, stake.pubkey(), validators[1])
    await waiter.wait_for_next_epoch(async_client)

    with pytest.raises(TransactionError) as e:
        await deposit(async_client, payer, pool_address, stake.pubkey(), token_account, user_wallet)
    assert e.value.instruction_index == 2
    assert e.value.error == ProgramError.custom(SinglePoolError.WRONG_VALIDATOR)
    assert await get_token_balance(async_client, token_account) == 0


@pytest.mark.asyncio
async def test_deposit_activating_stake_fails(async_client, payer, pool_addresses, user):
    (vote_account, pool_address, _) = pool_addresses
    (user_wallet, token_account) = user
    stake = await create_and_delegate_user_stake(async_client, user_wallet, vote_account, USER_STAKE_LAMPORTS)

    with pytest.raises(TransactionError) as e:
        await deposit(async_client, payer, pool_address, stake, token_account, user_wallet)
    assert e.value.error == ProgramError.custom(SinglePoolError.STAKE_NOT_FULLY_ACTIVE)


@pytest.mark.asyncio
async def test_deposit_deactivating_stake_fails(async_client, payer, pool_addresses, user, active_user_stake):
    (vote_account, _, _) = pool_addresses
    (user_wallet, token_account) = user
    await deactivate(async_client, user_wallet, user_wallet, active_user_stake)

    with pytest.raises(TransactionError) as e:
        await deposit_default(async_client, payer, vote_account, user_wallet, token_account)
    assert e.value.error == ProgramError.custom(SinglePoolError.STAKE_NOT_FULLY_ACTIVE)
    assert await get_token_balance(async_client, token_account) == 0


@pytest.mark.asyncio
async def test_deposit_before_pool_is_active_fails(async_client, payer, validators, waiter):
    vote_account = validators[1]
    user_wallet = Keypair()
    await airdrop(async_client, user_wallet.pubkey(), AIRDROP_LAMPORTS)
    stake = Keypair()
    await create_stake(async_client, user_wallet, stake, user_wallet.pubkey(), MINIMUM_DELEGATION)
    await delegate_stake(async_client, user_wallet, user_wallet, stake.pubkey(), vote_account)
    await waiter.wait_for_next_epoch(async_client)

    pool_address = await initialize(async_client, payer, vote_account)
    (pool_mint, _) = find_pool_mint_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    token_account = await create_associated_token_account(async_client, user_wallet, user_wallet.pubkey(), pool_mint)

    with pytest.raises(TransactionError) as e:
        await deposit(async_client, payer, pool_address, stake.pubkey(), token_account, user_wallet)
    assert e.value.error == ProgramError.custom(SinglePoolError.WRONG_STAKE_STAKE)


@pytest.mark.asyncio
async def test_deposit_pool_stake_fails(async_client, payer, pool_addresses, user):
    (_, pool_address, _) = pool_addresses
    (user_wallet, token_account) = user
    (pool_stake, _) = find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    ix = deposit_stake_with_pool(SINGLE_POOL_PROGRAM_ID, pool_address, pool_stake, token_account,
                                 user_wallet.pubkey())
    recent_blockhash = (await async_client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer([ix], payer.pubkey(), [payer], recent_blockhash)
    with pytest.raises(TransactionError) as e:
        await async_client.send_transaction(txn)
    assert e.value.error == ProgramError.custom(SinglePoolError.INVALID_POOL_STAKE_ACCOUNT_USAGE)
