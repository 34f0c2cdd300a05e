from solders.pubkey import Pubkey
from solders.keypair import Keypair
from solders.transaction import Transaction
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
import solders.system_program as sys

from vote.constants import VOTE_PROGRAM_ID, VOTE_STATE_LEN
from vote.instructions import AuthorizeParams, InitializeParams, VoteAuthorize, authorize, initialize

OPTS = TxOpts(skip_confirmation=False, preflight_commitment=Confirmed)


async def create_vote(
        client: AsyncClient, payer: Keypair, vote: Keypair, node: Keypair,
        voter: Pubkey, withdrawer: Pubkey, commission: int):
    print(f"Creating vote account {vote.pubkey()}")
    resp = await client.get_minimum_balance_for_rent_exemption(VOTE_STATE_LEN)
    instructions = [
        sys.create_account(
            sys.CreateAccountParams(
                from_pubkey=payer.pubkey(),
                to_pubkey=vote.pubkey(),
                lamports=resp.value,
                space=VOTE_STATE_LEN,
                owner=VOTE_PROGRAM_ID,
            )
        ),
        initialize(
            InitializeParams(
                vote=vote.pubkey(),
                node=node.pubkey(),
                authorized_voter=voter,
                authorized_withdrawer=withdrawer,
                commission=commission,
            )
        ),
    ]
    recent_blockhash = (await client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer(instructions, payer.pubkey(), [payer, vote, node], recent_blockhash)
    await client.send_transaction(txn, opts=OPTS)


async def authorize_withdrawer(
        client: AsyncClient, payer: Keypair, vote: Pubkey, withdrawer: Keypair, new_withdrawer: Pubkey):
    print(f"Setting withdrawer of vote account {vote} to {new_withdrawer}")
    ix = authorize(
        AuthorizeParams(
            vote=vote,
            authority=withdrawer.pubkey(),
            new_authority=new_withdrawer,
            vote_authorize=VoteAuthorize.WITHDRAWER,
        )
    )
    signers = [payer, withdrawer] if payer.pubkey() != withdrawer.pubkey() else [payer]
    recent_blockhash = (await client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer([ix], payer.pubkey(), signers, recent_blockhash)
    await client.send_transaction(txn, opts=OPTS)
