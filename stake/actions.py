from solders.pubkey import Pubkey
from solders.keypair import Keypair
from solders.transaction import Transaction
import solders.system_program as sys
from solana.constants import SYSTEM_PROGRAM_ID
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts

from stake.constants import STAKE_LEN, STAKE_PROGRAM_ID
from stake.state import Authorized, Lockup, StakeAuthorize, StakeState
import stake.instructions as st


OPTS = TxOpts(skip_confirmation=False, preflight_commitment=Confirmed)


async def create_stake(client: AsyncClient, payer: Keypair, stake: Keypair, authority: Pubkey, lamports: int):
    print(f"Creating stake {stake.pubkey()}")
    resp = await client.get_minimum_balance_for_rent_exemption(STAKE_LEN)
    instructions = [
        sys.create_account(
            sys.CreateAccountParams(
                from_pubkey=payer.pubkey(),
                to_pubkey=stake.pubkey(),
                lamports=resp.value + lamports,
                space=STAKE_LEN,
                owner=STAKE_PROGRAM_ID,
            )
        ),
        st.initialize(
            st.InitializeParams(
                stake=stake.pubkey(),
                authorized=Authorized(
                    staker=authority,
                    withdrawer=authority,
                ),
                lockup=Lockup(
                    unix_timestamp=0,
                    epoch=0,
                    custodian=SYSTEM_PROGRAM_ID,
                )
            )
        ),
    ]
    recent_blockhash = (await client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer(instructions, payer.pubkey(), [payer, stake], recent_blockhash)
    await client.send_transaction(txn, opts=OPTS)


async def delegate_stake(client: AsyncClient, payer: Keypair, staker: Keypair, stake: Pubkey, vote: Pubkey):
    ix = st.delegate_stake(
        st.DelegateStakeParams(
            stake=stake,
            vote=vote,
            staker=staker.pubkey(),
        )
    )
    signers = [payer, staker] if payer.pubkey() != staker.pubkey() else [payer]
    recent_blockhash = (await client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer([ix], payer.pubkey(), signers, recent_blockhash)
    await client.send_transaction(txn, opts=OPTS)


async def deactivate(client: AsyncClient, payer: Keypair, staker: Keypair, stake: Pubkey):
    ix = st.deactivate(st.DeactivateParams(stake=stake, staker=staker.pubkey()))
    signers = [payer, staker] if payer.pubkey() != staker.pubkey() else [payer]
    recent_blockhash = (await client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer([ix], payer.pubkey(), signers, recent_blockhash)
    await client.send_transaction(txn, opts=OPTS)


async def authorize(
    client: AsyncClient, payer: Keypair, authority: Keypair, stake: Pubkey,
    new_authority: Pubkey, stake_authorize: StakeAuthorize
):
    ix = st.authorize(
        st.AuthorizeParams(
            stake=stake,
            authority=authority.pubkey(),
            new_authority=new_authority,
            stake_authorize=stake_authorize,
        )
    )
    signers = [payer, authority] if payer.pubkey() != authority.pubkey() else [payer]
    recent_blockhash = (await client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer([ix], payer.pubkey(), signers, recent_blockhash)
    await client.send_transaction(txn, opts=OPTS)


async def get_stake_state(client: AsyncClient, stake: Pubkey) -> StakeState:
    resp = await client.get_account_info(stake)
    if resp.value is None:
        raise ValueError(f"Stake account {stake} does not exist")
    return StakeState.decode(resp.value.data)
