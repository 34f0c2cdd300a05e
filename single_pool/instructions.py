"""SPL Single-Validator Stake Pool Instructions."""

from enum import IntEnum
from typing import List, NamedTuple

from construct import Bytes, GreedyString, Pass, Prefixed, Struct, Switch, Int8ul, Int32ul, Int64ul  # type: ignore

from solana.constants import SYSTEM_PROGRAM_ID
from solders.pubkey import Pubkey
from solders.instruction import AccountMeta, Instruction
from solders.sysvar import CLOCK, RENT, STAKE_HISTORY
import solders.system_program as sys
from spl.token.constants import TOKEN_PROGRAM_ID
import spl.token.instructions as spl_token

from bank.sysvar import Rent
from single_pool.constants import (
    POOL_LEN,
    find_default_deposit_account_address,
    find_pool_address,
    find_pool_mint_address,
    find_pool_mint_authority_address,
    find_pool_mpl_authority_address,
    find_pool_onramp_address,
    find_pool_stake_address,
    find_pool_stake_authority_address,
    minimum_pool_balance,
)
from spl_token.state import MINT_LEN
from stake.constants import STAKE_LEN, STAKE_PROGRAM_ID, SYSVAR_STAKE_CONFIG_ID
from stake.state import Authorized, Lockup, StakeAuthorize
import stake.instructions as st
from token_metadata.constants import METADATA_PROGRAM_ID, find_metadata_account

PUBLIC_KEY_LAYOUT = Bytes(32)


class InitializePoolParams(NamedTuple):
    """Creates a pool, its stake and onramp accounts and its token mint for a vote account."""

    # Accounts
    program_id: Pubkey
    """SPL Single-Validator Stake Pool program account."""
    vote_account: Pubkey
    """`[]` Validator vote account."""
    pool: Pubkey
    """`[w]` Pool account, prefunded with its rent-exempt minimum."""
    pool_stake: Pubkey
    """`[w]` Pool stake account, prefunded with rent and the minimum pool balance."""
    pool_onramp: Pubkey
    """`[w]` Pool onramp account, prefunded with its rent-exempt minimum."""
    pool_mint: Pubkey
    """`[w]` Pool token mint, prefunded with its rent-exempt minimum."""
    pool_stake_authority: Pubkey
    """`[]` Pool stake authority."""
    pool_mint_authority: Pubkey
    """`[]` Pool mint authority."""
    rent_sysvar: Pubkey = RENT
    """`[]` Rent sysvar."""
    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""
    stake_history_sysvar: Pubkey = STAKE_HISTORY
    """`[]` Stake history sysvar."""
    stake_config_sysvar: Pubkey = SYSVAR_STAKE_CONFIG_ID
    """`[]` Stake config sysvar."""
    system_program_id: Pubkey = SYSTEM_PROGRAM_ID
    """`[]` System program id."""
    token_program_id: Pubkey = TOKEN_PROGRAM_ID
    """`[]` Token program id."""
    stake_program_id: Pubkey = STAKE_PROGRAM_ID
    """`[]` Stake program id."""


class ReplenishPoolParams(NamedTuple):
    """Sweeps stray lamports into active stake, through the onramp."""

    # Accounts
    program_id: Pubkey
    """SPL Single-Validator Stake Pool program account."""
    vote_account: Pubkey
    """`[]` Validator vote account."""
    pool: Pubkey
    """`[]` Pool account."""
    pool_stake: Pubkey
    """`[w]` Pool stake account."""
    pool_onramp: Pubkey
    """`[w]` Pool onramp account."""
    pool_stake_authority: Pubkey
    """`[]` Pool stake authority."""
    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""
    stake_history_sysvar: Pubkey = STAKE_HISTORY
    """`[]` Stake history sysvar."""
    stake_config_sysvar: Pubkey = SYSVAR_STAKE_CONFIG_ID
    """`[]` Stake config sysvar."""
    stake_program_id: Pubkey = STAKE_PROGRAM_ID
    """`[]` Stake program id."""


class DepositStakeParams(NamedTuple):
    """Merges an active user stake account into the pool in exchange for pool tokens."""

    # Accounts
    program_id: Pubkey
    """SPL Single-Validator Stake Pool program account."""
    pool: Pubkey
    """`[]` Pool account."""
    pool_stake: Pubkey
    """`[w]` Pool stake account."""
    pool_onramp: Pubkey
    """`[]` Pool onramp account."""
    pool_mint: Pubkey
    """`[w]` Pool token mint."""
    pool_stake_authority: Pubkey
    """`[]` Pool stake authority."""
    pool_mint_authority: Pubkey
    """`[]` Pool mint authority."""
    user_stake: Pubkey
    """`[w]` User stake account, with the pool stake authority as staker and withdrawer."""
    user_token_account: Pubkey
    """`[w]` User account to receive pool tokens."""
    user_lamport_account: Pubkey
    """`[w]` User account to receive the lamports that did not become stake."""
    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""
    stake_history_sysvar: Pubkey = STAKE_HISTORY
    """`[]` Stake history sysvar."""
    token_program_id: Pubkey = TOKEN_PROGRAM_ID
    """`[]` Token program id."""
    stake_program_id: Pubkey = STAKE_PROGRAM_ID
    """`[]` Stake program id."""


class WithdrawStakeParams(NamedTuple):
    """Burns pool tokens and splits the stake they are worth into a user stake account."""

    # Accounts
    program_id: Pubkey
    """SPL Single-Validator Stake Pool program account."""
    pool: Pubkey
    """`[]` Pool account."""
    pool_stake: Pubkey
    """`[w]` Pool stake account."""
    pool_onramp: Pubkey
    """`[]` Pool onramp account."""
    pool_mint: Pubkey
    """`[w]` Pool token mint."""
    pool_stake_authority: Pubkey
    """`[]` Pool stake authority."""
    pool_mint_authority: Pubkey
    """`[]` Pool mint authority, approved as delegate of the user token account."""
    user_stake: Pubkey
    """`[w]` Uninitialized stake account to receive the withdrawal."""
    user_token_account: Pubkey
    """`[w]` User account to burn pool tokens from."""

    # Params
    user_stake_authority: Pubkey
    """Staker and withdrawer of the new user stake account."""
    token_amount: int
    """Amount of pool tokens to burn."""

    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""
    token_program_id: Pubkey = TOKEN_PROGRAM_ID
    """`[]` Token program id."""
    stake_program_id: Pubkey = STAKE_PROGRAM_ID
    """`[]` Stake program id."""


class CreateTokenMetadataParams(NamedTuple):
    """Creates the default metadata of the pool token. Permissionless."""

    # Accounts
    program_id: Pubkey
    """SPL Single-Validator Stake Pool program account."""
    pool: Pubkey
    """`[w]` Pool account."""
    pool_mint: Pubkey
    """`[]` Pool token mint."""
    pool_mint_authority: Pubkey
    """`[]` Pool mint authority."""
    pool_mpl_authority: Pubkey
    """`[]` Pool metadata update authority."""
    payer: Pubkey
    """`[s, w]` Payer for creation of the metadata account."""
    token_metadata: Pubkey
    """`[w]` Metadata account of the pool mint."""
    metadata_program_id: Pubkey = METADATA_PROGRAM_ID
    """`[]` Metadata program id."""
    system_program_id: Pubkey = SYSTEM_PROGRAM_ID
    """`[]` System program id."""


class UpdateTokenMetadataParams(NamedTuple):
    """Updates the metadata of the pool token; only the validator's authorized withdrawer may."""

    # Accounts
    program_id: Pubkey
    """SPL Single-Validator Stake Pool program account."""
    vote_account: Pubkey
    """`[]` Validator vote account."""
    pool: Pubkey
    """`[]` Pool account."""
    pool_mpl_authority: Pubkey
    """`[]` Pool metadata update authority."""
    authorized_withdrawer: Pubkey
    """`[s]` Authorized withdrawer of the vote account."""
    token_metadata: Pubkey
    """`[w]` Metadata account of the pool mint."""

    # Params
    name: str
    """Token name."""
    symbol: str
    """Token symbol."""
    uri: str
    """URI of the token's off-chain metadata."""

    metadata_program_id: Pubkey = METADATA_PROGRAM_ID
    """`[]` Metadata program id."""


class InstructionType(IntEnum):
    """Single-Validator Stake Pool Instruction Types."""

    INITIALIZE_POOL = 0
    REPLENISH_POOL = 1
    DEPOSIT_STAKE = 2
    WITHDRAW_STAKE = 3
    CREATE_TOKEN_METADATA = 4
    UPDATE_TOKEN_METADATA = 5


WITHDRAW_STAKE_LAYOUT = Struct(
    "user_stake_authority" / PUBLIC_KEY_LAYOUT,
    "token_amount" / Int64ul,
)

TOKEN_METADATA_LAYOUT = Struct(
    "name" / Prefixed(Int32ul, GreedyString("utf8")),
    "symbol" / Prefixed(Int32ul, GreedyString("utf8")),
    "uri" / Prefixed(Int32ul, GreedyString("utf8"))
)

INSTRUCTIONS_LAYOUT = Struct(
    "instruction_type" / Int8ul,
    "args"
    / Switch(
        lambda this: this.instruction_type,
        {
            InstructionType.INITIALIZE_POOL: Pass,
            InstructionType.REPLENISH_POOL: Pass,
            InstructionType.DEPOSIT_STAKE: Pass,
            InstructionType.WITHDRAW_STAKE: WITHDRAW_STAKE_LAYOUT,
            InstructionType.CREATE_TOKEN_METADATA: Pass,
            InstructionType.UPDATE_TOKEN_METADATA: TOKEN_METADATA_LAYOUT,
        },
    ),
)


def initialize_pool(params: InitializePoolParams) -> Instruction:
    """Creates a transaction instruction to initialize a new pool."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.vote_account, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_onramp, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_mint, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_stake_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_mint_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.rent_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_history_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_config_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.system_program_id, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.token_program_id, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_program_id, is_signer=False, is_writable=False),
        ],
        program_id=params.program_id,
        data=INSTRUCTIONS_LAYOUT.build(
            dict(
                instruction_type=InstructionType.INITIALIZE_POOL,
                args=None,
            )
        )
    )


def replenish_pool(params: ReplenishPoolParams) -> Instruction:
    """Creates a transaction instruction to replenish a pool."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.vote_account, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_onramp, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_stake_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_history_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_config_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_program_id, is_signer=False, is_writable=False),
        ],
        program_id=params.program_id,
        data=INSTRUCTIONS_LAYOUT.build(
            dict(
                instruction_type=InstructionType.REPLENISH_POOL,
                args=None,
            )
        )
    )


def deposit_stake(params: DepositStakeParams) -> Instruction:
    """Creates a transaction instruction to deposit a stake account into a pool."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.pool, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_onramp, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_mint, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_stake_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_mint_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.user_stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.user_token_account, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.user_lamport_account, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_history_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.token_program_id, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_program_id, is_signer=False, is_writable=False),
        ],
        program_id=params.program_id,
        data=INSTRUCTIONS_LAYOUT.build(
            dict(
                instruction_type=InstructionType.DEPOSIT_STAKE,
                args=None,
            )
        )
    )


def withdraw_stake(params: WithdrawStakeParams) -> Instruction:
    """Creates a transaction instruction to withdraw stake from a pool."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.pool, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_onramp, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_mint, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_stake_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_mint_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.user_stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.user_token_account, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.token_program_id, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_program_id, is_signer=False, is_writable=False),
        ],
        program_id=params.program_id,
        data=INSTRUCTIONS_LAYOUT.build(
            dict(
                instruction_type=InstructionType.WITHDRAW_STAKE,
                args={
                    'user_stake_authority': bytes(params.user_stake_authority),
                    'token_amount': params.token_amount,
                }
            )
        )
    )


def create_token_metadata(params: CreateTokenMetadataParams) -> Instruction:
    """Creates an instruction to create the default metadata of the pool token."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.pool, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.pool_mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_mint_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_mpl_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.payer, is_signer=True, is_writable=True),
            AccountMeta(pubkey=params.token_metadata, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.metadata_program_id, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.system_program_id, is_signer=False, is_writable=False),
        ],
        program_id=params.program_id,
        data=INSTRUCTIONS_LAYOUT.build(
            dict(
                instruction_type=InstructionType.CREATE_TOKEN_METADATA,
                args=None,
            )
        )
    )


def update_token_metadata(params: UpdateTokenMetadataParams) -> Instruction:
    """Creates an instruction to update the metadata of the pool token."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.vote_account, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.pool_mpl_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.authorized_withdrawer, is_signer=True, is_writable=False),
            AccountMeta(pubkey=params.token_metadata, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.metadata_program_id, is_signer=False, is_writable=False),
        ],
        program_id=params.program_id,
        data=INSTRUCTIONS_LAYOUT.build(
            dict(
                instruction_type=InstructionType.UPDATE_TOKEN_METADATA,
                args={
                    "name": params.name,
                    "symbol": params.symbol,
                    "uri": params.uri
                }
            )
        )
    )


def initialize_pool_with_vote(program_id: Pubkey, vote_account: Pubkey) -> Instruction:
    """Creates an InitializePool instruction, deriving every pool address from the vote account."""
    pool, _ = find_pool_address(program_id, vote_account)
    return initialize_pool(
        InitializePoolParams(
            program_id=program_id,
            vote_account=vote_account,
            pool=pool,
            pool_stake=find_pool_stake_address(program_id, pool)[0],
            pool_onramp=find_pool_onramp_address(program_id, pool)[0],
            pool_mint=find_pool_mint_address(program_id, pool)[0],
            pool_stake_authority=find_pool_stake_authority_address(program_id, pool)[0],
            pool_mint_authority=find_pool_mint_authority_address(program_id, pool)[0],
        )
    )


def replenish_pool_with_vote(program_id: Pubkey, vote_account: Pubkey) -> Instruction:
    """Creates a ReplenishPool instruction, deriving every pool address from the vote account."""
    pool, _ = find_pool_address(program_id, vote_account)
    return replenish_pool(
        ReplenishPoolParams(
            program_id=program_id,
            vote_account=vote_account,
            pool=pool,
            pool_stake=find_pool_stake_address(program_id, pool)[0],
            pool_onramp=find_pool_onramp_address(program_id, pool)[0],
            pool_stake_authority=find_pool_stake_authority_address(program_id, pool)[0],
        )
    )


def deposit_stake_with_pool(
    program_id: Pubkey,
    pool: Pubkey,
    user_stake: Pubkey,
    user_token_account: Pubkey,
    user_lamport_account: Pubkey,
) -> Instruction:
    return deposit_stake(
        DepositStakeParams(
            program_id=program_id,
            pool=pool,
            pool_stake=find_pool_stake_address(program_id, pool)[0],
            pool_onramp=find_pool_onramp_address(program_id, pool)[0],
            pool_mint=find_pool_mint_address(program_id, pool)[0],
            pool_stake_authority=find_pool_stake_authority_address(program_id, pool)[0],
            pool_mint_authority=find_pool_mint_authority_address(program_id, pool)[0],
            user_stake=user_stake,
            user_token_account=user_token_account,
            user_lamport_account=user_lamport_account,
        )
    )


def withdraw_stake_with_pool(
    program_id: Pubkey,
    pool: Pubkey,
    user_stake: Pubkey,
    user_stake_authority: Pubkey,
    user_token_account: Pubkey,
    token_amount: int,
) -> Instruction:
    return withdraw_stake(
        WithdrawStakeParams(
            program_id=program_id,
            pool=pool,
            pool_stake=find_pool_stake_address(program_id, pool)[0],
            pool_onramp=find_pool_onramp_address(program_id, pool)[0],
            pool_mint=find_pool_mint_address(program_id, pool)[0],
            pool_stake_authority=find_pool_stake_authority_address(program_id, pool)[0],
            pool_mint_authority=find_pool_mint_authority_address(program_id, pool)[0],
            user_stake=user_stake,
            user_token_account=user_token_account,
            user_stake_authority=user_stake_authority,
            token_amount=token_amount,
        )
    )


def create_token_metadata_with_pool(program_id: Pubkey, pool: Pubkey, payer: Pubkey) -> Instruction:
    pool_mint, _ = find_pool_mint_address(program_id, pool)
    return create_token_metadata(
        CreateTokenMetadataParams(
            program_id=program_id,
            pool=pool,
            pool_mint=pool_mint,
            pool_mint_authority=find_pool_mint_authority_address(program_id, pool)[0],
            pool_mpl_authority=find_pool_mpl_authority_address(program_id, pool)[0],
            payer=payer,
            token_metadata=find_metadata_account(pool_mint)[0],
        )
    )


def update_token_metadata_with_vote(
    program_id: Pubkey,
    vote_account: Pubkey,
    authorized_withdrawer: Pubkey,
    name: str,
    symbol: str,
    uri: str,
) -> Instruction:
    pool, _ = find_pool_address(program_id, vote_account)
    pool_mint, _ = find_pool_mint_address(program_id, pool)
    return update_token_metadata(
        UpdateTokenMetadataParams(
            program_id=program_id,
            vote_account=vote_account,
            pool=pool,
            pool_mpl_authority=find_pool_mpl_authority_address(program_id, pool)[0],
            authorized_withdrawer=authorized_withdrawer,
            token_metadata=find_metadata_account(pool_mint)[0],
            name=name,
            symbol=symbol,
            uri=uri,
        )
    )


def initialize(
    program_id: Pubkey,
    vote_account: Pubkey,
    payer: Pubkey,
    rent: Rent,
    minimum_delegation: int,
) -> List[Instruction]:
    """Creates every instruction needed to fund and initialize a pool and its token metadata."""
    pool, _ = find_pool_address(program_id, vote_account)
    stake_rent = rent.minimum_balance(STAKE_LEN)
    prefunds = [
        (pool, rent.minimum_balance(POOL_LEN)),
        (find_pool_stake_address(program_id, pool)[0], stake_rent + minimum_pool_balance(minimum_delegation)),
        (find_pool_onramp_address(program_id, pool)[0], stake_rent),
        (find_pool_mint_address(program_id, pool)[0], rent.minimum_balance(MINT_LEN)),
    ]
    instructions = [
        sys.transfer(sys.TransferParams(from_pubkey=payer, to_pubkey=address, lamports=lamports))
        for address, lamports in prefunds
    ]
    instructions.append(initialize_pool_with_vote(program_id, vote_account))
    instructions.append(create_token_metadata_with_pool(program_id, pool, payer))
    return instructions


def deposit(
    program_id: Pubkey,
    pool: Pubkey,
    user_stake: Pubkey,
    user_token_account: Pubkey,
    user_lamport_account: Pubkey,
    user_withdraw_authority: Pubkey,
) -> List[Instruction]:
    """Creates every instruction needed to deposit a stake account.

    The user's withdraw authority hands both stake authorities to the pool
    before the deposit merges the account away.
    """
    pool_stake_authority, _ = find_pool_stake_authority_address(program_id, pool)
    return [
        st.authorize(
            st.AuthorizeParams(
                stake=user_stake,
                authority=user_withdraw_authority,
                new_authority=pool_stake_authority,
                stake_authorize=StakeAuthorize.STAKER,
            )
        ),
        st.authorize(
            st.AuthorizeParams(
                stake=user_stake,
                authority=user_withdraw_authority,
                new_authority=pool_stake_authority,
                stake_authorize=StakeAuthorize.WITHDRAWER,
            )
        ),
        deposit_stake_with_pool(program_id, pool, user_stake, user_token_account, user_lamport_account),
    ]


def withdraw(
    program_id: Pubkey,
    pool: Pubkey,
    user_stake: Pubkey,
    user_stake_authority: Pubkey,
    user_token_account: Pubkey,
    user_token_authority: Pubkey,
    token_amount: int,
) -> List[Instruction]:
    """Creates every instruction needed to withdraw stake into ``user_stake``.

    ``user_stake`` must already exist: a rent-exempt, uninitialized account of
    stake account size owned by the stake program.
    """
    return [
        spl_token.approve(
            spl_token.ApproveParams(
                program_id=TOKEN_PROGRAM_ID,
                source=user_token_account,
                delegate=find_pool_mint_authority_address(program_id, pool)[0],
                owner=user_token_authority,
                amount=token_amount,
            )
        ),
        withdraw_stake_with_pool(
            program_id, pool, user_stake, user_stake_authority, user_token_account, token_amount),
    ]


def create_and_delegate_user_stake(
    program_id: Pubkey,
    vote_account: Pubkey,
    user_wallet: Pubkey,
    rent: Rent,
    stake_amount: int,
) -> List[Instruction]:
    """Creates the wallet's default deposit stake account for a pool and delegates it to the validator."""
    pool, _ = find_pool_address(program_id, vote_account)
    deposit_address, deposit_seed = find_default_deposit_account_address(pool, user_wallet)
    return [
        sys.create_account_with_seed(
            sys.CreateAccountWithSeedParams(
                from_pubkey=user_wallet,
                to_pubkey=deposit_address,
                base=user_wallet,
                seed=deposit_seed,
                lamports=rent.minimum_balance(STAKE_LEN) + stake_amount,
                space=STAKE_LEN,
                owner=STAKE_PROGRAM_ID,
            )
        ),
        st.initialize(
            st.InitializeParams(
                stake=deposit_address,
                authorized=Authorized(staker=user_wallet, withdrawer=user_wallet),
                lockup=Lockup(unix_timestamp=0, epoch=0, custodian=SYSTEM_PROGRAM_ID),
            )
        ),
        st.delegate_stake(
            st.DelegateStakeParams(
                stake=deposit_address,
                vote=vote_account,
                staker=user_wallet,
            )
        ),
    ]
