import pytest
from solders.keypair import Keypair

from spl_token.actions import create_mint, create_associated_token_account, get_token_balance, get_token_supply


@pytest.mark.asyncio
async def test_create_mint(async_client, payer):
    pool_mint = Keypair()
    await create_mint(async_client, payer, pool_mint, payer.pubkey())
    token_account = await create_associated_token_account(
        async_client,
        payer,
        payer.pubkey(),
        pool_mint.pubkey(),
    )
    assert await get_token_balance(async_client, token_account) == 0
    assert await get_token_supply(async_client, pool_mint.pubkey()) == 0
