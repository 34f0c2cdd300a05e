from typing import List, Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction
import solders.system_program as sys
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts

from bank.sysvar import Rent
from single_pool.constants import (
    SINGLE_POOL_PROGRAM_ID,
    find_default_deposit_account_address,
    find_pool_address,
    find_pool_mint_address,
    find_pool_onramp_address,
    find_pool_stake_address,
)
from single_pool.state import SinglePool
import single_pool.instructions as sp
from stake.constants import MINIMUM_DELEGATION, STAKE_LEN, STAKE_PROGRAM_ID
from stake.state import StakeState, StakeStateType
from token_metadata.constants import find_metadata_account
from token_metadata.state import Metadata


OPTS = TxOpts(skip_confirmation=False, preflight_commitment=Confirmed)


def _signers(payer: Keypair, *others: Keypair) -> List[Keypair]:
    signers = [payer]
    for keypair in others:
        if all(keypair.pubkey() != signer.pubkey() for signer in signers):
            signers.append(keypair)
    return signers


async def _send(client: AsyncClient, instructions, payer: Keypair, *others: Keypair):
    recent_blockhash = (await client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer(instructions, payer.pubkey(), _signers(payer, *others), recent_blockhash)
    await client.send_transaction(txn, opts=OPTS)


async def initialize(
    client: AsyncClient, payer: Keypair, vote_account: Pubkey,
    rent: Rent = Rent(), minimum_delegation: int = MINIMUM_DELEGATION,
) -> Pubkey:
    """Creates the pool for ``vote_account`` with its token metadata, in one transaction."""
    (pool_address, _) = find_pool_address(SINGLE_POOL_PROGRAM_ID, vote_account)
    print(f"Creating pool {pool_address} for vote account {vote_account}")
    instructions = sp.initialize(SINGLE_POOL_PROGRAM_ID, vote_account, payer.pubkey(), rent, minimum_delegation)
    await _send(client, instructions, payer)
    return pool_address


async def replenish(client: AsyncClient, payer: Keypair, vote_account: Pubkey):
    print(f"Replenishing pool for vote account {vote_account}")
    await _send(client, [sp.replenish_pool_with_vote(SINGLE_POOL_PROGRAM_ID, vote_account)], payer)


async def deposit(
    client: AsyncClient, payer: Keypair, pool_address: Pubkey, user_stake: Pubkey,
    user_token_account: Pubkey, withdraw_authority: Keypair, user_lamport_account: Optional[Pubkey] = None,
):
    """Deposits ``user_stake``; its rent reserve goes back to ``user_lamport_account``, the authority by default."""
    print(f"Depositing stake {user_stake} into pool {pool_address}")
    if user_lamport_account is None:
        user_lamport_account = withdraw_authority.pubkey()
    instructions = sp.deposit(
        SINGLE_POOL_PROGRAM_ID,
        pool_address,
        user_stake,
        user_token_account,
        user_lamport_account,
        withdraw_authority.pubkey(),
    )
    await _send(client, instructions, payer, withdraw_authority)


async def create_and_delegate_user_stake(
    client: AsyncClient, user_wallet: Keypair, vote_account: Pubkey, stake_amount: int, rent: Rent = Rent(),
) -> Pubkey:
    """Creates and delegates the wallet's default deposit account for the pool of ``vote_account``."""
    (pool_address, _) = find_pool_address(SINGLE_POOL_PROGRAM_ID, vote_account)
    (deposit_address, _) = find_default_deposit_account_address(pool_address, user_wallet.pubkey())
    print(f"Creating default deposit account {deposit_address} with {stake_amount} lamports of stake")
    instructions = sp.create_and_delegate_user_stake(
        SINGLE_POOL_PROGRAM_ID, vote_account, user_wallet.pubkey(), rent, stake_amount)
    await _send(client, instructions, user_wallet)
    return deposit_address


async def deposit_default(
    client: AsyncClient, payer: Keypair, vote_account: Pubkey, user_wallet: Keypair, user_token_account: Pubkey,
):
    """Deposits the wallet's default deposit account into the pool of ``vote_account``."""
    (pool_address, _) = find_pool_address(SINGLE_POOL_PROGRAM_ID, vote_account)
    (deposit_address, _) = find_default_deposit_account_address(pool_address, user_wallet.pubkey())
    await deposit(client, payer, pool_address, deposit_address, user_token_account, user_wallet)


async def withdraw(
    client: AsyncClient, payer: Keypair, pool_address: Pubkey, user_stake: Keypair, user_stake_authority: Pubkey,
    user_token_account: Pubkey, token_authority: Keypair, token_amount: int,
):
    """Burns ``token_amount`` pool tokens for a new stake account at ``user_stake``."""
    print(f"Withdrawing {token_amount} pool tokens from pool {pool_address} into {user_stake.pubkey()}")
    resp = await client.get_minimum_balance_for_rent_exemption(STAKE_LEN)
    instructions = [
        sys.create_account(
            sys.CreateAccountParams(
                from_pubkey=payer.pubkey(),
                to_pubkey=user_stake.pubkey(),
                lamports=resp.value,
                space=STAKE_LEN,
                owner=STAKE_PROGRAM_ID,
            )
        ),
    ]
    instructions.extend(
        sp.withdraw(
            SINGLE_POOL_PROGRAM_ID,
            pool_address,
            user_stake.pubkey(),
            user_stake_authority,
            user_token_account,
            token_authority.pubkey(),
            token_amount,
        )
    )
    await _send(client, instructions, payer, user_stake, token_authority)


async def create_token_metadata(client: AsyncClient, payer: Keypair, pool_address: Pubkey):
    print(f"Creating token metadata for pool {pool_address}")
    await _send(client, [sp.create_token_metadata_with_pool(SINGLE_POOL_PROGRAM_ID, pool_address, payer.pubkey())],
                payer)


async def update_token_metadata(
    client: AsyncClient, payer: Keypair, vote_account: Pubkey, authorized_withdrawer: Keypair,
    name: str, symbol: str, uri: str,
):
    print(f"Updating token metadata for vote account {vote_account}: {name} ({symbol})")
    ix = sp.update_token_metadata_with_vote(
        SINGLE_POOL_PROGRAM_ID, vote_account, authorized_withdrawer.pubkey(), name, symbol, uri)
    await _send(client, [ix], payer, authorized_withdrawer)


async def get_pool(client: AsyncClient, pool_address: Pubkey) -> SinglePool:
    resp = await client.get_account_info(pool_address, commitment=Confirmed)
    if resp.value is None:
        raise ValueError(f"Pool {pool_address} does not exist")
    return SinglePool.decode(resp.value.data)


async def get_pool_stake(client: AsyncClient, pool_address: Pubkey) -> int:
    """Stake delegated from the pool stake account and its onramp."""
    total = 0
    for (address, _) in (
        find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pool_address),
        find_pool_onramp_address(SINGLE_POOL_PROGRAM_ID, pool_address),
    ):
        resp = await client.get_account_info(address, commitment=Confirmed)
        if resp.value is None:
            continue
        state = StakeState.decode(resp.value.data)
        if state.state_type == StakeStateType.STAKE:
            total += state.stake.delegation.stake
    return total


async def get_token_metadata(client: AsyncClient, pool_address: Pubkey) -> Metadata:
    (pool_mint, _) = find_pool_mint_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    (metadata_address, _) = find_metadata_account(pool_mint)
    resp = await client.get_account_info(metadata_address, commitment=Confirmed)
    if resp.value is None:
        raise ValueError(f"Pool {pool_address} has no token metadata")
    return Metadata.decode(resp.value.data)
