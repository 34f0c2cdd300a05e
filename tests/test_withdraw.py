import pytest
from solders.keypair import Keypair
from solders.transaction import Transaction
import solders.system_program as sys
from solana.rpc.commitment import Confirmed

from bank.error import ProgramError, TransactionError
from bank.sysvar import Rent
from single_pool.actions import deposit_default, get_pool_stake, replenish, withdraw
from single_pool.constants import SINGLE_POOL_PROGRAM_ID, find_pool_stake_address, minimum_pool_balance
from single_pool.error import SinglePoolError
import single_pool.instructions as sp
from spl_token.actions import get_token_balance, get_token_supply
from stake.actions import get_stake_state
from stake.constants import LAMPORTS_PER_SOL, MINIMUM_DELEGATION, STAKE_LEN, STAKE_PROGRAM_ID
from stake.state import StakeStateType, StakeStatus
from system.actions import transfer

from conftest import USER_STAKE_LAMPORTS


async def deposit_and_tip(async_client, payer, pool_addresses, user, tip):
    """Deposits the user's stake, then tips the pool and sweeps the tip into the onramp."""
    (vote_account, pool_address, _) = pool_addresses
    (user_wallet, token_account) = user
    await deposit_default(async_client, payer, vote_account, user_wallet, token_account)
    (pool_stake, _) = find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    await transfer(async_client, payer, pool_stake, tip)
    await replenish(async_client, payer, vote_account)


@pytest.mark.asyncio
async def test_withdraw_everything(async_client, payer, pool_addresses, user, active_user_stake):
    (vote_account, pool_address, pool_mint) = pool_addresses
    (user_wallet, token_account) = user
    await deposit_default(async_client, payer, vote_account, user_wallet, token_account)

    destination = Keypair()
    await withdraw(async_client, payer, pool_address, destination, user_wallet.pubkey(), token_account, user_wallet,
                   USER_STAKE_LAMPORTS)

    assert await get_token_balance(async_client, token_account) == 0
    assert await get_token_supply(async_client, pool_mint) == 0
    stake_rent = Rent().minimum_balance(STAKE_LEN)
    resp = await async_client.get_balance(destination.pubkey(), commitment=Confirmed)
    assert resp.value == stake_rent + USER_STAKE_LAMPORTS
    stake_state = await get_stake_state(async_client, destination.pubkey())
    assert stake_state.state_type == StakeStateType.STAKE
    assert stake_state.stake.delegation.voter_pubkey == vote_account
    assert stake_state.stake.delegation.stake == USER_STAKE_LAMPORTS
    assert stake_state.meta.authorized.staker == user_wallet.pubkey()
    assert stake_state.meta.authorized.withdrawer == user_wallet.pubkey()
    assert stake_state.status(2) == StakeStatus.ACTIVE

    # only the minimum pool balance is left behind
    assert await get_pool_stake(async_client, pool_address) == minimum_pool_balance(MINIMUM_DELEGATION)


@pytest.mark.asyncio
async def test_withdraw_to_other_authority(async_client, payer, pool_addresses, user, active_user_stake):
    (vote_account, pool_address, _) = pool_addresses
    (user_wallet, token_account) = user
    await deposit_default(async_client, payer, vote_account, user_wallet, token_account)

    destination = Keypair()
    new_authority = Keypair().pubkey()
    amount = USER_STAKE_LAMPORTS // 2
    await withdraw(async_client, payer, pool_address, destination, new_authority, token_account, user_wallet, amount)
    assert await get_token_balance(async_client, token_account) == USER_STAKE_LAMPORTS - amount
    stake_state = await get_stake_state(async_client, destination.pubkey())
    assert stake_state.meta.authorized.staker == new_authority
    assert stake_state.meta.authorized.withdrawer == new_authority
    assert stake_state.stake.delegation.stake == amount


@pytest.mark.asyncio
async def test_withdraw_after_tip_keeps_price(async_client, payer, pool_addresses, user, active_user_stake, waiter):
    (vote_account, pool_address, pool_mint) = pool_addresses
    (user_wallet, token_account) = user
    tip = USER_STAKE_LAMPORTS
    await deposit_and_tip(async_client, payer, pool_addresses, user, tip)
    await waiter.wait_for_next_epoch(async_client)
    await replenish(async_client, payer, vote_account)

    # every token is now worth two lamports
    destination = Keypair()
    await withdraw(async_client, payer, pool_address, destination, user_wallet.pubkey(), token_account, user_wallet,
                   USER_STAKE_LAMPORTS // 2)
    stake_state = await get_stake_state(async_client, destination.pubkey())
    assert stake_state.stake.delegation.stake == USER_STAKE_LAMPORTS
    assert await get_token_supply(async_client, pool_mint) == USER_STAKE_LAMPORTS // 2
    assert await get_pool_stake(async_client, pool_address) == \
        minimum_pool_balance(MINIMUM_DELEGATION) + USER_STAKE_LAMPORTS + tip - USER_STAKE_LAMPORTS


@pytest.mark.asyncio
async def test_withdraw_too_large(async_client, payer, pool_addresses, user, active_user_stake):
    (_, pool_address, _) = pool_addresses
    (user_wallet, token_account) = user
    # the tip is still activating in the onramp, out of reach of withdrawals
    await deposit_and_tip(async_client, payer, pool_addresses, user, USER_STAKE_LAMPORTS)

    with pytest.raises(TransactionError) as e:
        await withdraw(async_client, payer, pool_address, Keypair(), user_wallet.pubkey(), token_account,
                       user_wallet, USER_STAKE_LAMPORTS)
    assert e.value.instruction_index == 2
    assert e.value.error == ProgramError.custom(SinglePoolError.WITHDRAWAL_TOO_LARGE)


@pytest.mark.asyncio
async def test_withdraw_undersized_fails_atomically(async_client, payer, pool_addresses, user, active_user_stake):
    (_, pool_address, pool_mint) = pool_addresses
    (user_wallet, token_account) = user
    await deposit_and_tip(async_client, payer, pool_addresses, user, USER_STAKE_LAMPORTS)

    # worth the whole deposit plus half a SOL, more than the main stake account can spare
    destination = Keypair()
    token_amount = USER_STAKE_LAMPORTS // 2 + LAMPORTS_PER_SOL // 4
    with pytest.raises(TransactionError) as e:
        await withdraw(async_client, payer, pool_address, destination, user_wallet.pubkey(), token_account,
                       user_wallet, token_amount)
    assert e.value.error == ProgramError.custom(SinglePoolError.POOL_WOULD_BE_UNDERSIZED)

    assert await get_token_balance(async_client, token_account) == USER_STAKE_LAMPORTS
    assert await get_token_supply(async_client, pool_mint) == USER_STAKE_LAMPORTS
    resp = await async_client.get_account_info(destination.pubkey(), commitment=Confirmed)
    assert resp.value is None


@pytest.mark.asyncio
async def test_withdraw_too_small(async_client, payer, pool_addresses, user, active_user_stake):
    (vote_account, pool_address, _) = pool_addresses
    (user_wallet, token_account) = user
    await deposit_default(async_client, payer, vote_account, user_wallet, token_account)

    with pytest.raises(TransactionError) as e:
        await withdraw(async_client, payer, pool_address, Keypair(), user_wallet.pubkey(), token_account,
                       user_wallet, 0)
    assert e.value.error == ProgramError.custom(SinglePoolError.WITHDRAWAL_TOO_SMALL)


@pytest.mark.asyncio
async def test_withdraw_below_minimum_delegation_fails(async_client, payer, pool_addresses, user, active_user_stake):
    (vote_account, pool_address, _) = pool_addresses
    (user_wallet, token_account) = user
    await deposit_default(async_client, payer, vote_account, user_wallet, token_account)

    # the stake program refuses to split off less than the minimum delegation
    with pytest.raises(TransactionError) as e:
        await withdraw(async_client, payer, pool_address, Keypair(), user_wallet.pubkey(), token_account,
                       user_wallet, MINIMUM_DELEGATION - 1)
    assert e.value.instruction_index == 2
    assert await get_token_balance(async_client, token_account) == USER_STAKE_LAMPORTS


@pytest.mark.asyncio
async def test_withdraw_into_unfunded_account_fails(async_client, payer, pool_addresses, user, active_user_stake):
    (vote_account, pool_address, _) = pool_addresses
    (user_wallet, token_account) = user
    await deposit_default(async_client, payer, vote_account, user_wallet, token_account)

    destination = Keypair()
    instructions = [
        sys.create_account(
            sys.CreateAccountParams(
                from_pubkey=payer.pubkey(),
                to_pubkey=destination.pubkey(),
                lamports=0,
                space=STAKE_LEN,
                owner=STAKE_PROGRAM_ID,
            )
        ),
    ]
    instructions.extend(sp.withdraw(SINGLE_POOL_PROGRAM_ID, pool_address, destination.pubkey(),
                                    user_wallet.pubkey(), token_account, user_wallet.pubkey(), 1_000))
    recent_blockhash = (await async_client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer(instructions, payer.pubkey(), [payer, destination, user_wallet],
                                            recent_blockhash)
    with pytest.raises(TransactionError) as e:
        await async_client.send_transaction(txn)
    assert e.value.error == ProgramError.custom(SinglePoolError.INSUFFICIENT_WITHDRAW_AMOUNT)
