from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction
import solders.system_program as sys
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts


OPTS = TxOpts(skip_confirmation=False, preflight_commitment=Confirmed)


async def airdrop(client: AsyncClient, receiver: Pubkey, lamports: int):
    print(f"Airdropping {lamports} lamports to {receiver}...")
    resp = await client.request_airdrop(receiver, lamports)
    await client.confirm_transaction(resp.value)


async def transfer(client: AsyncClient, payer: Keypair, receiver: Pubkey, lamports: int):
    print(f"Transferring {lamports} lamports to {receiver}")
    ix = sys.transfer(sys.TransferParams(from_pubkey=payer.pubkey(), to_pubkey=receiver, lamports=lamports))
    recent_blockhash = (await client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer([ix], payer.pubkey(), [payer], recent_blockhash)
    await client.send_transaction(txn, opts=OPTS)
