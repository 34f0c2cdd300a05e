import pytest
import pytest_asyncio
from typing import AsyncIterator, List, Tuple

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from bank.client import BanksClient
from bank.program_test import ProgramTest
from single_pool.actions import create_and_delegate_user_stake, initialize
from single_pool.constants import SINGLE_POOL_PROGRAM_ID, find_pool_mint_address
from spl_token.actions import create_associated_token_account
from system.actions import airdrop
from vote.actions import create_vote

NUM_SLOTS_PER_EPOCH: int = 32
AIRDROP_LAMPORTS: int = 30_000_000_000
USER_STAKE_LAMPORTS: int = 10_000_000_000


@pytest_asyncio.fixture
async def async_client() -> AsyncIterator[BanksClient]:
    async_client = ProgramTest(slots_per_epoch=NUM_SLOTS_PER_EPOCH).start()
    yield async_client
    await async_client.close()


@pytest_asyncio.fixture
async def payer(async_client) -> Keypair:
    payer = Keypair()
    await airdrop(async_client, payer.pubkey(), AIRDROP_LAMPORTS)
    return payer


@pytest_asyncio.fixture
async def validators(async_client, payer) -> List[Pubkey]:
    num_validators = 2
    validators = []
    for i in range(num_validators):
        vote = Keypair()
        node = Keypair()
        await create_vote(async_client, payer, vote, node, payer.pubkey(), payer.pubkey(), 10)
        validators.append(vote.pubkey())
    return validators


@pytest_asyncio.fixture
async def pool_addresses(async_client, payer, validators, waiter) -> Tuple[Pubkey, Pubkey, Pubkey]:
    """Initializes a pool on the first validator and waits for its stake to activate."""
    vote_account = validators[0]
    pool_address = await initialize(async_client, payer, vote_account)
    (pool_mint, _) = find_pool_mint_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    await waiter.wait_for_next_epoch(async_client)
    return (vote_account, pool_address, pool_mint)


@pytest_asyncio.fixture
async def user(async_client, pool_addresses) -> Tuple[Keypair, Pubkey]:
    """A funded wallet holding an associated token account for the pool mint."""
    (_, _, pool_mint) = pool_addresses
    user = Keypair()
    await airdrop(async_client, user.pubkey(), AIRDROP_LAMPORTS)
    token_account = await create_associated_token_account(async_client, user, user.pubkey(), pool_mint)
    return (user, token_account)


@pytest_asyncio.fixture
async def active_user_stake(async_client, pool_addresses, user, waiter) -> Pubkey:
    """The user's default deposit account, delegated to the pool validator and fully active."""
    (vote_account, _, _) = pool_addresses
    (user_wallet, _) = user
    stake = await create_and_delegate_user_stake(async_client, user_wallet, vote_account, USER_STAKE_LAMPORTS)
    await waiter.wait_for_next_epoch(async_client)
    return stake


class Waiter:
    @staticmethod
    async def wait_for_next_epoch(async_client: BanksClient):
        resp = await async_client.get_epoch_info()
        current_epoch = resp.value.epoch
        await async_client.warp_to_next_epoch()
        resp = await async_client.get_epoch_info()
        assert resp.value.epoch == current_epoch + 1

    @staticmethod
    async def wait_for_epochs(async_client: BanksClient, num_epochs: int):
        for _ in range(num_epochs):
            await Waiter.wait_for_next_epoch(async_client)


@pytest.fixture
def waiter() -> Waiter:
    return Waiter()
