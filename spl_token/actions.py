from solders.pubkey import Pubkey
from solders.keypair import Keypair
from solders.transaction import Transaction
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
import solders.system_program as sys

from spl.token.constants import TOKEN_PROGRAM_ID
import spl.token.instructions as spl_token

from spl_token.state import MINT_LEN, Mint, TokenAccount


OPTS = TxOpts(skip_confirmation=False, preflight_commitment=Confirmed)


async def create_associated_token_account(
    client: AsyncClient,
    payer: Keypair,
    owner: Pubkey,
    mint: Pubkey
) -> Pubkey:
    create_ix = spl_token.create_associated_token_account(
        payer=payer.pubkey(), owner=owner, mint=mint
    )
    recent_blockhash = (await client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer([create_ix], payer.pubkey(), [payer], recent_blockhash)
    await client.send_transaction(txn, opts=OPTS)
    return create_ix.accounts[1].pubkey


async def create_mint(client: AsyncClient, payer: Keypair, mint: Keypair, mint_authority: Pubkey):
    mint_balance = (await client.get_minimum_balance_for_rent_exemption(MINT_LEN)).value
    print(f"Creating token mint {mint.pubkey()}")
    instructions = [
        sys.create_account(
            sys.CreateAccountParams(
                from_pubkey=payer.pubkey(),
                to_pubkey=mint.pubkey(),
                lamports=mint_balance,
                space=MINT_LEN,
                owner=TOKEN_PROGRAM_ID,
            )
        ),
        spl_token.initialize_mint(
            spl_token.InitializeMintParams(
                program_id=TOKEN_PROGRAM_ID,
                mint=mint.pubkey(),
                decimals=9,
                mint_authority=mint_authority,
                freeze_authority=None,
            )
        ),
    ]
    recent_blockhash = (await client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer(instructions, payer.pubkey(), [payer, mint], recent_blockhash)
    await client.send_transaction(txn, opts=OPTS)


async def get_token_balance(client: AsyncClient, token_account: Pubkey) -> int:
    resp = await client.get_account_info(token_account)
    if resp.value is None:
        return 0
    return TokenAccount.decode(resp.value.data).amount


async def get_token_supply(client: AsyncClient, mint: Pubkey) -> int:
    resp = await client.get_account_info(mint)
    return Mint.decode(resp.value.data).supply
