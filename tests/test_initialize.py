import pytest
from solders.keypair import Keypair
from solders.transaction import Transaction
import solders.system_program as sys
from solana.rpc.commitment import Confirmed

from bank.error import ProgramError, TransactionError
from bank.sysvar import Rent
from single_pool.actions import get_pool, initialize
from single_pool.constants import (
    MINT_DECIMALS,
    POOL_LEN,
    SINGLE_POOL_PROGRAM_ID,
    find_pool_address,
    find_pool_mint_address,
    find_pool_mint_authority_address,
    find_pool_onramp_address,
    find_pool_stake_address,
    find_pool_stake_authority_address,
    minimum_pool_balance,
)
from single_pool.error import SinglePoolError
import single_pool.instructions as sp
from single_pool.state import AccountType
from spl_token.state import Mint
from stake.actions import get_stake_state
from stake.constants import MINIMUM_DELEGATION, STAKE_LEN
from stake.state import StakeStateType, StakeStatus
from system.actions import airdrop


async def send(async_client, instructions, payer):
    recent_blockhash = (await async_client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer(instructions, payer.pubkey(), [payer], recent_blockhash)
    await async_client.send_transaction(txn)


@pytest.mark.asyncio
async def test_initialize_pool(async_client, payer, validators):
    vote_account = validators[0]
    pool_address = await initialize(async_client, payer, vote_account)

    resp = await async_client.get_account_info(pool_address, commitment=Confirmed)
    assert resp.value.owner == SINGLE_POOL_PROGRAM_ID
    assert len(resp.value.data) == POOL_LEN
    pool = await get_pool(async_client, pool_address)
    assert pool.account_type == AccountType.POOL
    assert pool.vote_account_address == vote_account
    assert pool.stake_bump_seed == find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pool_address)[1]
    assert pool.mint_authority_bump_seed == find_pool_mint_authority_address(SINGLE_POOL_PROGRAM_ID, pool_address)[1]
    assert pool.has_metadata

    (stake_authority, _) = find_pool_stake_authority_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    (pool_stake, _) = find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    stake_rent = Rent().minimum_balance(STAKE_LEN)
    resp = await async_client.get_account_info(pool_stake, commitment=Confirmed)
    assert resp.value.lamports == stake_rent + minimum_pool_balance(MINIMUM_DELEGATION)
    stake_state = await get_stake_state(async_client, pool_stake)
    assert stake_state.state_type == StakeStateType.STAKE
    assert stake_state.meta.authorized.staker == stake_authority
    assert stake_state.meta.authorized.withdrawer == stake_authority
    assert stake_state.stake.delegation.voter_pubkey == vote_account
    assert stake_state.stake.delegation.stake == minimum_pool_balance(MINIMUM_DELEGATION)
    assert stake_state.status(0) == StakeStatus.ACTIVATING

    (pool_onramp, _) = find_pool_onramp_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    onramp_state = await get_stake_state(async_client, pool_onramp)
    assert onramp_state.state_type == StakeStateType.INITIALIZED
    assert onramp_state.meta.authorized.staker == stake_authority

    (pool_mint, _) = find_pool_mint_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    resp = await async_client.get_account_info(pool_mint, commitment=Confirmed)
    mint = Mint.decode(resp.value.data)
    assert mint.mint_authority == find_pool_mint_authority_address(SINGLE_POOL_PROGRAM_ID, pool_address)[0]
    assert mint.freeze_authority is None
    assert mint.decimals == MINT_DECIMALS
    assert mint.supply == 0


@pytest.mark.asyncio
async def test_initialize_twice_fails(async_client, payer, validators):
    vote_account = validators[0]
    pool_address = await initialize(async_client, payer, vote_account)
    (pool_stake, _) = find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    resp = await async_client.get_balance(pool_stake)
    stake_lamports = resp.value
    resp = await async_client.get_balance(payer.pubkey())
    payer_lamports = resp.value

    with pytest.raises(TransactionError) as e:
        await initialize(async_client, payer, vote_account)
    assert e.value.instruction_index == 4
    assert e.value.error == ProgramError.custom(SinglePoolError.ALREADY_INITIALIZED)

    # the prefunding transfers were rolled back with the failed instruction
    assert (await async_client.get_balance(pool_stake)).value == stake_lamports
    assert (await async_client.get_balance(payer.pubkey())).value == payer_lamports


@pytest.mark.asyncio
async def test_initialize_second_validator(async_client, payer, validators):
    first = await initialize(async_client, payer, validators[0])
    second = await initialize(async_client, payer, validators[1])
    assert first != second
    assert (await get_pool(async_client, second)).vote_account_address == validators[1]


@pytest.mark.asyncio
async def test_initialize_not_a_vote_account_fails(async_client, payer):
    not_vote = Keypair()
    await airdrop(async_client, not_vote.pubkey(), 1_000_000_000)
    with pytest.raises(TransactionError) as e:
        await initialize(async_client, payer, not_vote.pubkey())
    assert e.value.error == ProgramError.custom(SinglePoolError.INVALID_VALIDATOR)


@pytest.mark.asyncio
async def test_initialize_underfunded_stake_fails(async_client, payer, validators):
    vote_account = validators[0]
    rent = Rent()
    instructions = sp.initialize(SINGLE_POOL_PROGRAM_ID, vote_account, payer.pubkey(), rent, MINIMUM_DELEGATION)
    (pool_address, _) = find_pool_address(SINGLE_POOL_PROGRAM_ID, vote_account)
    (pool_stake, _) = find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    instructions[1] = sys.transfer(sys.TransferParams(
        from_pubkey=payer.pubkey(),
        to_pubkey=pool_stake,
        lamports=rent.minimum_balance(STAKE_LEN) + minimum_pool_balance(MINIMUM_DELEGATION) - 1,
    ))
    with pytest.raises(TransactionError) as e:
        await send(async_client, instructions, payer)
    assert e.value.instruction_index == 4
    assert e.value.error == ProgramError.custom(SinglePoolError.WRONG_RENT_AMOUNT)
    resp = await async_client.get_account_info(pool_address)
    assert resp.value is None
