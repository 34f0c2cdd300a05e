import argparse
import asyncio
import json
from typing import List

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed

from single_pool.actions import replenish
from single_pool.constants import (
    SINGLE_POOL_PROGRAM_ID,
    find_pool_address,
    find_pool_onramp_address,
    find_pool_stake_address,
)
from stake.constants import MINIMUM_DELEGATION
from stake.state import StakeState, StakeStatus


async def get_client(endpoint: str) -> AsyncClient:
    print(f'Connecting to network at {endpoint}')
    async_client = AsyncClient(endpoint=endpoint, commitment=Confirmed)
    total_attempts = 10
    current_attempt = 0
    while not await async_client.is_connected():
        if current_attempt == total_attempts:
            raise Exception("Could not connect to test validator")
        else:
            current_attempt += 1
        await asyncio.sleep(1)
    return async_client


async def pool_needs_replenish(async_client: AsyncClient, vote_account: Pubkey, epoch: int,
                               minimum_delegation: int = MINIMUM_DELEGATION) -> bool:
    """Whether a replenish of the pool for ``vote_account`` would move anything this epoch."""
    (pool_address, _) = find_pool_address(SINGLE_POOL_PROGRAM_ID, vote_account)
    resp = await async_client.get_account_info(pool_address, commitment=Confirmed)
    if resp.value is None:
        print(f'No pool for vote account {vote_account}, skipping')
        return False

    (stake_address, _) = find_pool_stake_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    resp = await async_client.get_account_info(stake_address, commitment=Confirmed)
    stake_lamports = resp.value.lamports
    pool_stake = StakeState.decode(resp.value.data)
    status = pool_stake.status(epoch)
    if status in (StakeStatus.DEACTIVATING, StakeStatus.INACTIVE):
        print(f'Pool stake for {vote_account} is {status.name.lower()}, needs delegating')
        return True
    if status != StakeStatus.ACTIVE:
        return False
    excess = stake_lamports - pool_stake.stake.delegation.stake - pool_stake.meta.rent_exempt_reserve
    if excess > 0:
        print(f'Pool for {vote_account} holds {excess} undelegated lamports')
        return True

    (onramp_address, _) = find_pool_onramp_address(SINGLE_POOL_PROGRAM_ID, pool_address)
    resp = await async_client.get_account_info(onramp_address, commitment=Confirmed)
    if resp.value is None:
        return False
    onramp_stake = StakeState.decode(resp.value.data)
    onramp_status = onramp_stake.status(epoch)
    free_lamports = resp.value.lamports - onramp_stake.meta.rent_exempt_reserve
    if onramp_status == StakeStatus.ACTIVE:
        print(f'Onramp for {vote_account} holds {onramp_stake.stake.delegation.stake} active stake')
        return True
    if onramp_status == StakeStatus.INACTIVE and free_lamports >= minimum_delegation:
        print(f'Onramp for {vote_account} holds {free_lamports} lamports ready to delegate')
        return True
    undelegated = free_lamports - onramp_stake.stake.delegation.stake if onramp_stake.stake else 0
    if onramp_status == StakeStatus.ACTIVATING and undelegated > 0:
        print(f'Onramp for {vote_account} holds {undelegated} undelegated lamports')
        return True
    return False


async def replenish_pools(async_client: AsyncClient, payer: Keypair, vote_accounts: List[Pubkey],
                          force: bool = False, minimum_delegation: int = MINIMUM_DELEGATION) -> int:
    """Replenishes every pool that has something to move, or all of them with ``force``."""
    resp = await async_client.get_epoch_info(commitment=Confirmed)
    epoch = resp.value.epoch
    print(f'Current epoch {epoch}')

    replenished = 0
    for vote_account in vote_accounts:
        if not force and not await pool_needs_replenish(async_client, vote_account, epoch, minimum_delegation):
            print(f'{vote_account}: nothing to replenish')
            continue
        await replenish(async_client, payer, vote_account)
        replenished += 1
    print(f'Replenished {replenished} of {len(vote_accounts)} pools')
    return replenished


async def run(endpoint: str, payer: Keypair, vote_accounts: List[Pubkey], force: bool):
    async_client = await get_client(endpoint)
    await replenish_pools(async_client, payer, vote_accounts, force)
    print('Done')
    await async_client.close()


def keypair_from_file(keyfile_name: str) -> Keypair:
    with open(keyfile_name, 'r') as keyfile:
        data = keyfile.read()
    int_list = json.loads(data)
    return Keypair.from_bytes(bytes(int_list))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description='Replenish single-validator stake pools, moving tips and \
onramp stake back into delegation.')
    parser.add_argument('vote_accounts', metavar='VOTE_ACCOUNT_ADDRESS', type=str, nargs='+',
                        help='Vote account of a pool to replenish, given by a public key in base-58,\
                         e.g. Zg5YBPAk8RqBR9kaLLSoN5C8Uv7nErBz1WC63HTsCPR')
    parser.add_argument('--payer', metavar='PAYER_KEYPAIR', type=str, required=True,
                        help='Fee payer for the replenish transactions, given by a keypair file, e.g. payer.json')
    parser.add_argument('--endpoint', metavar='ENDPOINT_URL', type=str,
                        default='https://api.mainnet-beta.solana.com',
                        help='RPC endpoint to use, e.g. https://api.mainnet-beta.solana.com')
    parser.add_argument('--force', action='store_true',
                        help='Replenish every pool, even those with nothing to move')

    args = parser.parse_args()
    vote_accounts = [Pubkey.from_string(vote_account) for vote_account in args.vote_accounts]
    payer = keypair_from_file(args.payer)
    print(f'Replenishing {len(vote_accounts)} pools')
    print(f'Payer public key: {payer.pubkey()}')
    asyncio.run(run(args.endpoint, payer, vote_accounts, args.force))
