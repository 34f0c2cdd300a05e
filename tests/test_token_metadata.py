import pytest
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.transaction import Transaction
from solana.rpc.commitment import Confirmed

from bank.error import ProgramError, TransactionError
from single_pool.actions import create_token_metadata, get_pool, get_token_metadata, update_token_metadata
from single_pool.constants import (
    SINGLE_POOL_PROGRAM_ID,
    find_pool_mint_address,
    find_pool_mint_authority_address,
    find_pool_mpl_authority_address,
)
from single_pool.error import SinglePoolError
import single_pool.instructions as sp
from token_metadata.constants import METADATA_PROGRAM_ID, find_metadata_account
from vote.actions import authorize_withdrawer


@pytest.mark.asyncio
async def test_create_metadata_on_initialize(async_client, pool_addresses):
    (vote_account, pool_address, pool_mint) = pool_addresses
    pool = await get_pool(async_client, pool_address)
    assert pool.has_metadata

    (metadata_address, _) = find_metadata_account(pool_mint)
    resp = await async_client.get_account_info(metadata_address, commitment=Confirmed)
    assert resp.value.owner == METADATA_PROGRAM_ID

    metadata = await get_token_metadata(async_client, pool_address)
    assert metadata.name == "SPL Single Pool " + str(vote_account)[:15]
    assert metadata.symbol == "st" + str(vote_account)[:7]
    assert metadata.uri == ""
    assert metadata.mint == pool_mint
    assert metadata.update_authority == find_pool_mpl_authority_address(SINGLE_POOL_PROGRAM_ID, pool_address)[0]


@pytest.mark.asyncio
async def test_create_metadata_twice_fails(async_client, payer, pool_addresses):
    (_, pool_address, _) = pool_addresses
    with pytest.raises(TransactionError):
        await create_token_metadata(async_client, payer, pool_address)


@pytest.mark.asyncio
async def test_create_metadata_wrong_account_fails(async_client, payer, pool_addresses):
    (_, pool_address, _) = pool_addresses
    ix = sp.create_token_metadata(
        sp.CreateTokenMetadataParams(
            program_id=SINGLE_POOL_PROGRAM_ID,
            pool=pool_address,
            pool_mint=find_pool_mint_address(SINGLE_POOL_PROGRAM_ID, pool_address)[0],
            pool_mint_authority=find_pool_mint_authority_address(SINGLE_POOL_PROGRAM_ID, pool_address)[0],
            pool_mpl_authority=find_pool_mpl_authority_address(SINGLE_POOL_PROGRAM_ID, pool_address)[0],
            payer=payer.pubkey(),
            token_metadata=Keypair().pubkey(),
        )
    )
    recent_blockhash = (await async_client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer([ix], payer.pubkey(), [payer], recent_blockhash)
    with pytest.raises(TransactionError) as e:
        await async_client.send_transaction(txn)
    assert e.value.error == ProgramError.custom(SinglePoolError.INVALID_METADATA_ACCOUNT)


@pytest.mark.asyncio
async def test_update_metadata(async_client, payer, pool_addresses):
    (vote_account, pool_address, _) = pool_addresses
    name = "updated_name"
    symbol = "USM"
    uri = "https://example.com/updated.json"
    # the vote account fixture makes the payer its authorized withdrawer
    await update_token_metadata(async_client, payer, vote_account, payer, name, symbol, uri)

    metadata = await get_token_metadata(async_client, pool_address)
    assert metadata.name == name
    assert metadata.symbol == symbol
    assert metadata.uri == uri


@pytest.mark.asyncio
async def test_update_metadata_follows_withdrawer(async_client, payer, pool_addresses):
    (vote_account, pool_address, _) = pool_addresses
    new_withdrawer = Keypair()
    await authorize_withdrawer(async_client, payer, vote_account, payer, new_withdrawer.pubkey())

    with pytest.raises(TransactionError) as e:
        await update_token_metadata(async_client, payer, vote_account, payer, "name", "SYM", "")
    assert e.value.error == ProgramError.custom(SinglePoolError.INVALID_METADATA_SIGNER)

    await update_token_metadata(async_client, payer, vote_account, new_withdrawer, "name", "SYM", "")
    metadata = await get_token_metadata(async_client, pool_address)
    assert metadata.name == "name"


@pytest.mark.asyncio
async def test_update_metadata_wrong_signer_fails(async_client, payer, pool_addresses):
    (vote_account, _, _) = pool_addresses
    with pytest.raises(TransactionError) as e:
        await update_token_metadata(async_client, payer, vote_account, Keypair(), "name", "SYM", "")
    assert e.value.error == ProgramError.custom(SinglePoolError.INVALID_METADATA_SIGNER)


@pytest.mark.asyncio
async def test_update_metadata_unsigned_fails(async_client, payer, pool_addresses):
    (vote_account, _, _) = pool_addresses
    withdrawer = Keypair()
    await authorize_withdrawer(async_client, payer, vote_account, payer, withdrawer.pubkey())

    ix = sp.update_token_metadata_with_vote(SINGLE_POOL_PROGRAM_ID, vote_account, withdrawer.pubkey(),
                                            "name", "SYM", "")
    accounts = [
        account if account.pubkey != withdrawer.pubkey() else
        AccountMeta(pubkey=account.pubkey, is_signer=False, is_writable=account.is_writable)
        for account in ix.accounts
    ]
    ix = Instruction(program_id=ix.program_id, data=bytes(ix.data), accounts=accounts)
    recent_blockhash = (await async_client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer([ix], payer.pubkey(), [payer], recent_blockhash)
    with pytest.raises(TransactionError) as e:
        await async_client.send_transaction(txn)
    assert e.value.error == ProgramError.custom(SinglePoolError.SIGNATURE_MISSING)


@pytest.mark.asyncio
async def test_update_metadata_too_long_fails(async_client, payer, pool_addresses):
    (vote_account, _, _) = pool_addresses
    with pytest.raises(TransactionError):
        await update_token_metadata(async_client, payer, vote_account, payer, "n" * 40, "SYM", "")
