"""SPL Single-Validator Stake Pool instruction processor.

Every account a pool touches lives at an address derived from the pool, and
the pool lives at an address derived from its vote account; each handler
re-derives and checks all of them before moving anything. Stake and tokens
only ever change through the stake and token programs, invoked with the
signatures of the pool's derived authorities.
"""

from typing import Iterator, List, Sequence, Tuple

from construct import Int64ul  # type: ignore
from solana.constants import SYSTEM_PROGRAM_ID
from solders.instruction import Instruction
from solders.pubkey import Pubkey
import solders.system_program as sys
from spl.token.constants import TOKEN_PROGRAM_ID
import spl.token.instructions as spl_token

from bank.account_info import AccountInfo
from bank.error import ErrorKind, ProgramError
from bank.program import get_return_data, invoke, invoke_signed, msg, next_account_info
from bank.sysvar import Clock, Rent
from single_pool.constants import (
    MINT_DECIMALS,
    POOL_LEN,
    POOL_MINT_AUTHORITY_PREFIX,
    POOL_MINT_PREFIX,
    POOL_MPL_AUTHORITY_PREFIX,
    POOL_ONRAMP_PREFIX,
    POOL_PREFIX,
    POOL_STAKE_AUTHORITY_PREFIX,
    POOL_STAKE_PREFIX,
    find_pool_address,
    find_pool_mint_address,
    find_pool_mint_authority_address,
    find_pool_mpl_authority_address,
    find_pool_onramp_address,
    find_pool_stake_address,
    find_pool_stake_authority_address,
    minimum_pool_balance,
)
from single_pool.conversion import calculate_deposit_amount, calculate_withdraw_amount, pool_net_asset_value
from single_pool.error import SinglePoolError, SinglePoolException
from single_pool.instructions import INSTRUCTIONS_LAYOUT, InstructionType
from single_pool.state import AccountType, SinglePool
from spl_token.state import MINT_LEN, Mint
from stake.constants import STAKE_LEN, STAKE_PROGRAM_ID
from stake.state import Authorized, Lockup, StakeAuthorize, StakeState, StakeStateType, StakeStatus
import stake.instructions as st
from token_metadata.constants import METADATA_PROGRAM_ID, find_metadata_account
from token_metadata.instructions import (
    CreateMetadataAccountV3Params,
    DataV2,
    UpdateMetadataAccountV2Params,
    create_metadata_accounts_v3,
    update_metadata_accounts_v2,
)
from vote.constants import VOTE_PROGRAM_ID
from vote.state import VoteState, VoteStateVersion


def _signer_seeds(prefix: bytes, address: Pubkey, bump: int) -> List[bytes]:
    return [prefix, bytes(address), bytes([bump])]


def _check_address(expected: Tuple[Pubkey, int], account_info: AccountInfo, error: SinglePoolError) -> int:
    address, bump = expected
    if address != account_info.key:
        msg(f"Incorrect address {account_info.key}, expected {address}")
        raise SinglePoolException(error)
    return bump


def _check_program(account_info: AccountInfo, program_id: Pubkey):
    if account_info.key != program_id:
        msg(f"Expected program {program_id}, received {account_info.key}")
        raise ProgramError(ErrorKind.INCORRECT_PROGRAM_ID)


def _load_pool(program_id: Pubkey, pool_info: AccountInfo) -> SinglePool:
    if pool_info.owner != program_id or pool_info.data_len() != POOL_LEN:
        raise SinglePoolException(SinglePoolError.INVALID_POOL_ACCOUNT)
    pool = SinglePool.decode(bytes(pool_info.data))
    if pool.account_type != AccountType.POOL:
        raise SinglePoolException(SinglePoolError.INVALID_POOL_ACCOUNT)
    _check_address(find_pool_address(program_id, pool.vote_account_address), pool_info,
                   SinglePoolError.INVALID_POOL_ACCOUNT)
    return pool


def _load_vote_state(vote_info: AccountInfo) -> VoteState:
    if vote_info.owner != VOTE_PROGRAM_ID:
        raise SinglePoolException(SinglePoolError.INVALID_VALIDATOR)
    try:
        vote_state = VoteState.decode(bytes(vote_info.data))
    except Exception:
        raise SinglePoolException(SinglePoolError.UNPARSEABLE_VOTE_ACCOUNT) from None
    if vote_state.version == VoteStateVersion.V0_23_5:
        raise SinglePoolException(SinglePoolError.LEGACY_VOTE_ACCOUNT)
    return vote_state


def _load_stake_state(stake_info: AccountInfo) -> StakeState:
    if stake_info.owner != STAKE_PROGRAM_ID:
        raise ProgramError(ErrorKind.INCORRECT_PROGRAM_ID)
    try:
        return StakeState.decode(bytes(stake_info.data))
    except Exception:
        raise SinglePoolException(SinglePoolError.WRONG_STAKE_STAKE) from None


def _load_delegated_stake(stake_info: AccountInfo) -> StakeState:
    state = _load_stake_state(stake_info)
    if state.state_type != StakeStateType.STAKE:
        raise SinglePoolException(SinglePoolError.WRONG_STAKE_STAKE)
    return state


def _onramp_stake(onramp_info: AccountInfo) -> int:
    """Stake delegated from the onramp, activating or active."""
    if onramp_info.owner != STAKE_PROGRAM_ID:
        raise SinglePoolException(SinglePoolError.ONRAMP_DOESNT_EXIST)
    state = _load_stake_state(onramp_info)
    if state.state_type == StakeStateType.STAKE:
        return state.stake.delegation.stake
    return 0


def _minimum_delegation() -> int:
    invoke(st.get_minimum_delegation(), [])
    return_data = get_return_data()
    if return_data is None or return_data[0] != STAKE_PROGRAM_ID or len(return_data[1]) != 8:
        raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA)
    return Int64ul.parse(return_data[1])


class _PoolAccounts:
    """The derived accounts shared by deposit and withdraw, checked against a pool."""

    def __init__(self, program_id: Pubkey, account_info_iter: Iterator[AccountInfo]):
        self.pool_info = next_account_info(account_info_iter)
        self.pool_stake_info = next_account_info(account_info_iter)
        self.pool_onramp_info = next_account_info(account_info_iter)
        self.pool_mint_info = next_account_info(account_info_iter)
        self.stake_authority_info = next_account_info(account_info_iter)
        self.mint_authority_info = next_account_info(account_info_iter)

        self.pool = _load_pool(program_id, self.pool_info)
        pool_address = self.pool_info.key
        _check_address(find_pool_stake_address(program_id, pool_address), self.pool_stake_info,
                       SinglePoolError.INVALID_POOL_STAKE_ACCOUNT)
        _check_address(find_pool_onramp_address(program_id, pool_address), self.pool_onramp_info,
                       SinglePoolError.INVALID_POOL_ONRAMP_ACCOUNT)
        _check_address(find_pool_mint_address(program_id, pool_address), self.pool_mint_info,
                       SinglePoolError.INVALID_POOL_MINT)
        _check_address(find_pool_stake_authority_address(program_id, pool_address), self.stake_authority_info,
                       SinglePoolError.INVALID_POOL_STAKE_AUTHORITY)
        _check_address(find_pool_mint_authority_address(program_id, pool_address), self.mint_authority_info,
                       SinglePoolError.INVALID_POOL_MINT_AUTHORITY)

    @property
    def stake_authority_seeds(self) -> List[bytes]:
        return _signer_seeds(POOL_STAKE_AUTHORITY_PREFIX, self.pool_info.key, self.pool.stake_authority_bump_seed)

    @property
    def mint_authority_seeds(self) -> List[bytes]:
        return _signer_seeds(POOL_MINT_AUTHORITY_PREFIX, self.pool_info.key, self.pool.mint_authority_bump_seed)

    def check_user_stake(self, user_stake_info: AccountInfo):
        if user_stake_info.key in (self.pool_stake_info.key, self.pool_onramp_info.key):
            raise SinglePoolException(SinglePoolError.INVALID_POOL_STAKE_ACCOUNT_USAGE)

    def net_asset_value(self, pool_state: StakeState, minimum_delegation: int) -> int:
        return pool_net_asset_value(
            pool_state.stake.delegation.stake,
            _onramp_stake(self.pool_onramp_info),
            minimum_pool_balance(minimum_delegation),
        )

    def token_supply(self) -> int:
        return Mint.decode(bytes(self.pool_mint_info.data)).supply


def _create_pda_account(
    account_info: AccountInfo,
    space: int,
    owner: Pubkey,
    system_program_info: AccountInfo,
    signer_seeds: Sequence[bytes],
):
    """Allocates and assigns a prefunded account at a derived address."""
    invoke_signed(
        sys.allocate(sys.AllocateParams(pubkey=account_info.key, space=space)),
        [account_info, system_program_info],
        [signer_seeds],
    )
    invoke_signed(
        sys.assign(sys.AssignParams(pubkey=account_info.key, owner=owner)),
        [account_info, system_program_info],
        [signer_seeds],
    )


def _stake_invoke(instruction: Instruction, account_infos: Sequence[AccountInfo], seeds: List[bytes]):
    invoke_signed(instruction, account_infos, [seeds])


def process_initialize_pool(program_id: Pubkey, accounts: List[AccountInfo]):
    account_info_iter = iter(accounts)
    vote_info = next_account_info(account_info_iter)
    pool_info = next_account_info(account_info_iter)
    pool_stake_info = next_account_info(account_info_iter)
    pool_onramp_info = next_account_info(account_info_iter)
    pool_mint_info = next_account_info(account_info_iter)
    stake_authority_info = next_account_info(account_info_iter)
    mint_authority_info = next_account_info(account_info_iter)
    rent_info = next_account_info(account_info_iter)
    clock_info = next_account_info(account_info_iter)
    stake_history_info = next_account_info(account_info_iter)
    stake_config_info = next_account_info(account_info_iter)
    system_program_info = next_account_info(account_info_iter)
    token_program_info = next_account_info(account_info_iter)
    stake_program_info = next_account_info(account_info_iter)

    rent = Rent.from_account_info(rent_info)
    _load_vote_state(vote_info)
    pool_bump = _check_address(find_pool_address(program_id, vote_info.key), pool_info,
                               SinglePoolError.INVALID_POOL_ACCOUNT)
    pool_address = pool_info.key
    stake_bump = _check_address(find_pool_stake_address(program_id, pool_address), pool_stake_info,
                                SinglePoolError.INVALID_POOL_STAKE_ACCOUNT)
    onramp_bump = _check_address(find_pool_onramp_address(program_id, pool_address), pool_onramp_info,
                                 SinglePoolError.INVALID_POOL_ONRAMP_ACCOUNT)
    mint_bump = _check_address(find_pool_mint_address(program_id, pool_address), pool_mint_info,
                               SinglePoolError.INVALID_POOL_MINT)
    stake_authority_bump = _check_address(find_pool_stake_authority_address(program_id, pool_address),
                                          stake_authority_info, SinglePoolError.INVALID_POOL_STAKE_AUTHORITY)
    mint_authority_bump = _check_address(find_pool_mint_authority_address(program_id, pool_address),
                                         mint_authority_info, SinglePoolError.INVALID_POOL_MINT_AUTHORITY)
    _, mpl_authority_bump = find_pool_mpl_authority_address(program_id, pool_address)
    _check_program(system_program_info, SYSTEM_PROGRAM_ID)
    _check_program(token_program_info, TOKEN_PROGRAM_ID)
    _check_program(stake_program_info, STAKE_PROGRAM_ID)

    if not pool_info.data_is_empty() or pool_info.owner == program_id:
        msg("Pool already initialized")
        raise SinglePoolException(SinglePoolError.ALREADY_INITIALIZED)

    minimum_delegation = _minimum_delegation()
    stake_rent = rent.minimum_balance(STAKE_LEN)
    required = [
        (pool_info, rent.minimum_balance(POOL_LEN)),
        (pool_stake_info, stake_rent + minimum_pool_balance(minimum_delegation)),
        (pool_onramp_info, stake_rent),
        (pool_mint_info, rent.minimum_balance(MINT_LEN)),
    ]
    for account_info, lamports in required:
        if account_info.lamports < lamports:
            msg(f"Account {account_info.key} holds {account_info.lamports} lamports, needs {lamports}")
            raise SinglePoolException(SinglePoolError.WRONG_RENT_AMOUNT)

    # pool
    _create_pda_account(pool_info, POOL_LEN, program_id, system_program_info,
                        _signer_seeds(POOL_PREFIX, vote_info.key, pool_bump))
    pool_info.data = SinglePool(
        account_type=AccountType.POOL,
        vote_account_address=vote_info.key,
        stake_bump_seed=stake_bump,
        mint_bump_seed=mint_bump,
        onramp_bump_seed=onramp_bump,
        stake_authority_bump_seed=stake_authority_bump,
        mint_authority_bump_seed=mint_authority_bump,
        mpl_authority_bump_seed=mpl_authority_bump,
        has_metadata=False,
    ).serialize()

    # mint
    _create_pda_account(pool_mint_info, MINT_LEN, TOKEN_PROGRAM_ID, system_program_info,
                        _signer_seeds(POOL_MINT_PREFIX, pool_address, mint_bump))
    invoke(
        spl_token.initialize_mint(
            spl_token.InitializeMintParams(
                program_id=TOKEN_PROGRAM_ID,
                mint=pool_mint_info.key,
                decimals=MINT_DECIMALS,
                mint_authority=mint_authority_info.key,
                freeze_authority=None,
            )
        ),
        [pool_mint_info, rent_info, token_program_info],
    )

    # stake accounts
    authorized = Authorized(staker=stake_authority_info.key, withdrawer=stake_authority_info.key)
    lockup = Lockup(unix_timestamp=0, epoch=0, custodian=SYSTEM_PROGRAM_ID)
    for stake_info, prefix, bump in (
        (pool_stake_info, POOL_STAKE_PREFIX, stake_bump),
        (pool_onramp_info, POOL_ONRAMP_PREFIX, onramp_bump),
    ):
        _create_pda_account(stake_info, STAKE_LEN, STAKE_PROGRAM_ID, system_program_info,
                            _signer_seeds(prefix, pool_address, bump))
        invoke(
            st.initialize(st.InitializeParams(stake=stake_info.key, authorized=authorized, lockup=lockup)),
            [stake_info, rent_info, stake_program_info],
        )

    _stake_invoke(
        st.delegate_stake(
            st.DelegateStakeParams(
                stake=pool_stake_info.key,
                vote=vote_info.key,
                staker=stake_authority_info.key,
                clock_sysvar=clock_info.key,
                stake_history_sysvar=stake_history_info.key,
                stake_config_id=stake_config_info.key,
            )
        ),
        [pool_stake_info, vote_info, clock_info, stake_history_info, stake_config_info, stake_authority_info],
        _signer_seeds(POOL_STAKE_AUTHORITY_PREFIX, pool_address, stake_authority_bump),
    )


def process_replenish_pool(program_id: Pubkey, accounts: List[AccountInfo]):
    account_info_iter = iter(accounts)
    vote_info = next_account_info(account_info_iter)
    pool_info = next_account_info(account_info_iter)
    pool_stake_info = next_account_info(account_info_iter)
    pool_onramp_info = next_account_info(account_info_iter)
    stake_authority_info = next_account_info(account_info_iter)
    clock_info = next_account_info(account_info_iter)
    stake_history_info = next_account_info(account_info_iter)
    stake_config_info = next_account_info(account_info_iter)
    stake_program_info = next_account_info(account_info_iter)

    pool = _load_pool(program_id, pool_info)
    if pool.vote_account_address != vote_info.key:
        raise SinglePoolException(SinglePoolError.INVALID_POOL_ACCOUNT)
    pool_address = pool_info.key
    _check_address(find_pool_stake_address(program_id, pool_address), pool_stake_info,
                   SinglePoolError.INVALID_POOL_STAKE_ACCOUNT)
    _check_address(find_pool_onramp_address(program_id, pool_address), pool_onramp_info,
                   SinglePoolError.INVALID_POOL_ONRAMP_ACCOUNT)
    _check_address(find_pool_stake_authority_address(program_id, pool_address), stake_authority_info,
                   SinglePoolError.INVALID_POOL_STAKE_AUTHORITY)
    _check_program(stake_program_info, STAKE_PROGRAM_ID)
    if pool_onramp_info.owner != STAKE_PROGRAM_ID:
        raise SinglePoolException(SinglePoolError.ONRAMP_DOESNT_EXIST)

    epoch = Clock.from_account_info(clock_info).epoch
    minimum_delegation = _minimum_delegation()
    seeds = _signer_seeds(POOL_STAKE_AUTHORITY_PREFIX, pool_address, pool.stake_authority_bump_seed)

    def delegate(stake_info: AccountInfo):
        _stake_invoke(
            st.delegate_stake(
                st.DelegateStakeParams(
                    stake=stake_info.key,
                    vote=vote_info.key,
                    staker=stake_authority_info.key,
                    clock_sysvar=clock_info.key,
                    stake_history_sysvar=stake_history_info.key,
                    stake_config_id=stake_config_info.key,
                )
            ),
            [stake_info, vote_info, clock_info, stake_history_info, stake_config_info, stake_authority_info],
            seeds,
        )

    def move(instruction, source: AccountInfo, destination: AccountInfo, lamports: int):
        _stake_invoke(
            instruction(st.MoveParams(
                source=source.key, destination=destination.key, staker=stake_authority_info.key,
                lamports=lamports,
            )),
            [source, destination, stake_authority_info],
            seeds,
        )

    pool_state = _load_delegated_stake(pool_stake_info)
    onramp_state = _load_stake_state(pool_onramp_info)
    if onramp_state.meta is None:
        raise SinglePoolException(SinglePoolError.ONRAMP_DOESNT_EXIST)

    if pool_state.status(epoch) in (StakeStatus.DEACTIVATING, StakeStatus.INACTIVE):
        msg("Pool stake is not delegated, delegating it again")
        delegate(pool_stake_info)
        pool_state = _load_delegated_stake(pool_stake_info)
    if pool_state.status(epoch) != StakeStatus.ACTIVE:
        return

    if onramp_state.state_type == StakeStateType.STAKE and onramp_state.status(epoch) == StakeStatus.ACTIVE:
        move(st.move_stake, pool_onramp_info, pool_stake_info, onramp_state.stake.delegation.stake)
        pool_state = _load_delegated_stake(pool_stake_info)

    excess_lamports = pool_stake_info.lamports - pool_state.stake.delegation.stake \
        - pool_state.meta.rent_exempt_reserve
    if excess_lamports > 0:
        move(st.move_lamports, pool_stake_info, pool_onramp_info, excess_lamports)

    onramp_state = _load_stake_state(pool_onramp_info)
    free_lamports = pool_onramp_info.lamports - onramp_state.meta.rent_exempt_reserve
    onramp_status = onramp_state.status(epoch)
    if onramp_status == StakeStatus.INACTIVE:
        if free_lamports >= minimum_delegation:
            delegate(pool_onramp_info)
    elif onramp_status == StakeStatus.ACTIVATING:
        if free_lamports > onramp_state.stake.delegation.stake:
            delegate(pool_onramp_info)


def process_deposit_stake(program_id: Pubkey, accounts: List[AccountInfo]):
    account_info_iter = iter(accounts)
    pool_accounts = _PoolAccounts(program_id, account_info_iter)
    user_stake_info = next_account_info(account_info_iter)
    user_token_info = next_account_info(account_info_iter)
    user_lamport_info = next_account_info(account_info_iter)
    clock_info = next_account_info(account_info_iter)
    stake_history_info = next_account_info(account_info_iter)
    token_program_info = next_account_info(account_info_iter)
    stake_program_info = next_account_info(account_info_iter)

    pool_stake_info = pool_accounts.pool_stake_info
    pool_accounts.check_user_stake(user_stake_info)
    _check_program(token_program_info, TOKEN_PROGRAM_ID)
    _check_program(stake_program_info, STAKE_PROGRAM_ID)

    epoch = Clock.from_account_info(clock_info).epoch
    minimum_delegation = _minimum_delegation()

    pool_state = _load_delegated_stake(pool_stake_info)
    if pool_state.status(epoch) != StakeStatus.ACTIVE:
        msg("Pool stake is not fully active")
        raise SinglePoolException(SinglePoolError.WRONG_STAKE_STAKE)

    user_state = _load_delegated_stake(user_stake_info)
    if user_state.stake.delegation.voter_pubkey != pool_accounts.pool.vote_account_address:
        raise SinglePoolException(SinglePoolError.WRONG_VALIDATOR)
    if user_state.status(epoch) != StakeStatus.ACTIVE:
        raise SinglePoolException(SinglePoolError.STAKE_NOT_FULLY_ACTIVE)

    pre_pool_stake = pool_state.stake.delegation.stake
    pre_pool_lamports = pool_stake_info.lamports
    pre_pool_value = pool_accounts.net_asset_value(pool_state, minimum_delegation)
    pre_token_supply = pool_accounts.token_supply()

    _stake_invoke(
        st.merge(
            st.MergeParams(
                destination=pool_stake_info.key,
                source=user_stake_info.key,
                staker=pool_accounts.stake_authority_info.key,
                clock_sysvar=clock_info.key,
                stake_history_sysvar=stake_history_info.key,
            )
        ),
        [pool_stake_info, user_stake_info, clock_info, stake_history_info, pool_accounts.stake_authority_info],
        pool_accounts.stake_authority_seeds,
    )

    post_pool_stake = _load_delegated_stake(pool_stake_info).stake.delegation.stake
    stake_added = post_pool_stake - pre_pool_stake
    if stake_added < 0:
        raise SinglePoolException(SinglePoolError.ARITHMETIC_OVERFLOW)
    excess_lamports = pool_stake_info.lamports - pre_pool_lamports - stake_added
    if excess_lamports < 0:
        raise SinglePoolException(SinglePoolError.UNEXPECTED_MATH_ERROR)

    new_pool_tokens = calculate_deposit_amount(pre_token_supply, pre_pool_value, stake_added)
    if new_pool_tokens == 0:
        raise SinglePoolException(SinglePoolError.DEPOSIT_TOO_SMALL)

    invoke_signed(
        spl_token.mint_to(
            spl_token.MintToParams(
                program_id=TOKEN_PROGRAM_ID,
                mint=pool_accounts.pool_mint_info.key,
                dest=user_token_info.key,
                mint_authority=pool_accounts.mint_authority_info.key,
                amount=new_pool_tokens,
            )
        ),
        [pool_accounts.pool_mint_info, user_token_info, pool_accounts.mint_authority_info],
        [pool_accounts.mint_authority_seeds],
    )

    if excess_lamports > 0:
        _stake_invoke(
            st.withdraw(
                st.WithdrawParams(
                    stake=pool_stake_info.key,
                    to_pubkey=user_lamport_info.key,
                    withdrawer=pool_accounts.stake_authority_info.key,
                    lamports=excess_lamports,
                    clock_sysvar=clock_info.key,
                    stake_history_sysvar=stake_history_info.key,
                )
            ),
            [pool_stake_info, user_lamport_info, clock_info, stake_history_info, pool_accounts.stake_authority_info],
            pool_accounts.stake_authority_seeds,
        )


def process_withdraw_stake(program_id: Pubkey, accounts: List[AccountInfo], user_stake_authority: Pubkey,
                           token_amount: int):
    account_info_iter = iter(accounts)
    pool_accounts = _PoolAccounts(program_id, account_info_iter)
    user_stake_info = next_account_info(account_info_iter)
    user_token_info = next_account_info(account_info_iter)
    clock_info = next_account_info(account_info_iter)
    token_program_info = next_account_info(account_info_iter)
    stake_program_info = next_account_info(account_info_iter)

    pool_stake_info = pool_accounts.pool_stake_info
    pool_accounts.check_user_stake(user_stake_info)
    _check_program(token_program_info, TOKEN_PROGRAM_ID)
    _check_program(stake_program_info, STAKE_PROGRAM_ID)

    epoch = Clock.from_account_info(clock_info).epoch
    minimum_delegation = _minimum_delegation()

    pool_state = _load_delegated_stake(pool_stake_info)
    if pool_state.status(epoch) not in (StakeStatus.ACTIVE, StakeStatus.ACTIVATING):
        msg("Pool stake is deactivating or inactive")
        raise SinglePoolException(SinglePoolError.WRONG_STAKE_STAKE)

    pre_pool_value = pool_accounts.net_asset_value(pool_state, minimum_delegation)
    pre_token_supply = pool_accounts.token_supply()
    withdraw_stake = calculate_withdraw_amount(pre_token_supply, pre_pool_value, token_amount)
    if withdraw_stake == 0:
        raise SinglePoolException(SinglePoolError.WITHDRAWAL_TOO_SMALL)

    pool_stake = pool_state.stake.delegation.stake
    if withdraw_stake > pool_stake:
        raise SinglePoolException(SinglePoolError.WITHDRAWAL_TOO_LARGE)
    if pool_stake - withdraw_stake < minimum_pool_balance(minimum_delegation):
        msg(f"Withdrawing {withdraw_stake} would leave {pool_stake - withdraw_stake} in the pool stake account")
        raise SinglePoolException(SinglePoolError.POOL_WOULD_BE_UNDERSIZED)
    if user_stake_info.lamports + withdraw_stake < Rent.get().minimum_balance(STAKE_LEN):
        raise SinglePoolException(SinglePoolError.INSUFFICIENT_WITHDRAW_AMOUNT)

    invoke_signed(
        spl_token.burn(
            spl_token.BurnParams(
                program_id=TOKEN_PROGRAM_ID,
                account=user_token_info.key,
                mint=pool_accounts.pool_mint_info.key,
                owner=pool_accounts.mint_authority_info.key,
                amount=token_amount,
            )
        ),
        [user_token_info, pool_accounts.pool_mint_info, pool_accounts.mint_authority_info],
        [pool_accounts.mint_authority_seeds],
    )

    stake_authority_info = pool_accounts.stake_authority_info
    _stake_invoke(
        st.split(
            st.SplitParams(
                stake=pool_stake_info.key,
                split_stake=user_stake_info.key,
                staker=stake_authority_info.key,
                lamports=withdraw_stake,
            )
        ),
        [pool_stake_info, user_stake_info, stake_authority_info],
        pool_accounts.stake_authority_seeds,
    )

    for stake_authorize in (StakeAuthorize.STAKER, StakeAuthorize.WITHDRAWER):
        _stake_invoke(
            st.authorize(
                st.AuthorizeParams(
                    stake=user_stake_info.key,
                    authority=stake_authority_info.key,
                    new_authority=user_stake_authority,
                    stake_authorize=stake_authorize,
                    clock_sysvar=clock_info.key,
                )
            ),
            [user_stake_info, clock_info, stake_authority_info],
            pool_accounts.stake_authority_seeds,
        )


def process_create_pool_token_metadata(program_id: Pubkey, accounts: List[AccountInfo]):
    account_info_iter = iter(accounts)
    pool_info = next_account_info(account_info_iter)
    pool_mint_info = next_account_info(account_info_iter)
    mint_authority_info = next_account_info(account_info_iter)
    mpl_authority_info = next_account_info(account_info_iter)
    payer_info = next_account_info(account_info_iter)
    metadata_info = next_account_info(account_info_iter)
    metadata_program_info = next_account_info(account_info_iter)
    system_program_info = next_account_info(account_info_iter)

    pool = _load_pool(program_id, pool_info)
    pool_address = pool_info.key
    _check_address(find_pool_mint_address(program_id, pool_address), pool_mint_info,
                   SinglePoolError.INVALID_POOL_MINT)
    _check_address(find_pool_mint_authority_address(program_id, pool_address), mint_authority_info,
                   SinglePoolError.INVALID_POOL_MINT_AUTHORITY)
    _check_address(find_pool_mpl_authority_address(program_id, pool_address), mpl_authority_info,
                   SinglePoolError.INVALID_POOL_MPL_AUTHORITY)
    _check_address(find_metadata_account(pool_mint_info.key), metadata_info,
                   SinglePoolError.INVALID_METADATA_ACCOUNT)
    _check_program(metadata_program_info, METADATA_PROGRAM_ID)
    _check_program(system_program_info, SYSTEM_PROGRAM_ID)
    if not payer_info.is_signer:
        msg("Payer did not sign metadata creation")
        raise SinglePoolException(SinglePoolError.SIGNATURE_MISSING)

    vote_address_str = str(pool.vote_account_address)
    data = DataV2(
        name="SPL Single Pool " + vote_address_str[:15],
        symbol="st" + vote_address_str[:7],
        uri="",
    )
    invoke_signed(
        create_metadata_accounts_v3(
            CreateMetadataAccountV3Params(
                metadata=metadata_info.key,
                mint=pool_mint_info.key,
                mint_authority=mint_authority_info.key,
                payer=payer_info.key,
                update_authority=mpl_authority_info.key,
                data=data,
            )
        ),
        [metadata_info, pool_mint_info, mint_authority_info, payer_info, mpl_authority_info, system_program_info],
        [_signer_seeds(POOL_MINT_AUTHORITY_PREFIX, pool_address, pool.mint_authority_bump_seed)],
    )
    pool_info.data = pool._replace(has_metadata=True).serialize()


def process_update_pool_token_metadata(program_id: Pubkey, accounts: List[AccountInfo], name: str, symbol: str,
                                       uri: str):
    account_info_iter = iter(accounts)
    vote_info = next_account_info(account_info_iter)
    pool_info = next_account_info(account_info_iter)
    mpl_authority_info = next_account_info(account_info_iter)
    authorized_withdrawer_info = next_account_info(account_info_iter)
    metadata_info = next_account_info(account_info_iter)
    metadata_program_info = next_account_info(account_info_iter)

    pool = _load_pool(program_id, pool_info)
    if pool.vote_account_address != vote_info.key:
        raise SinglePoolException(SinglePoolError.INVALID_POOL_ACCOUNT)
    pool_address = pool_info.key
    _check_address(find_pool_mpl_authority_address(program_id, pool_address), mpl_authority_info,
                   SinglePoolError.INVALID_POOL_MPL_AUTHORITY)
    pool_mint_address, _ = find_pool_mint_address(program_id, pool_address)
    _check_address(find_metadata_account(pool_mint_address), metadata_info,
                   SinglePoolError.INVALID_METADATA_ACCOUNT)
    _check_program(metadata_program_info, METADATA_PROGRAM_ID)

    vote_state = _load_vote_state(vote_info)
    if authorized_withdrawer_info.key != vote_state.authorized_withdrawer:
        raise SinglePoolException(SinglePoolError.INVALID_METADATA_SIGNER)
    if not authorized_withdrawer_info.is_signer:
        raise SinglePoolException(SinglePoolError.SIGNATURE_MISSING)

    invoke_signed(
        update_metadata_accounts_v2(
            UpdateMetadataAccountV2Params(
                metadata=metadata_info.key,
                update_authority=mpl_authority_info.key,
                data=DataV2(name=name, symbol=symbol, uri=uri),
            )
        ),
        [metadata_info, mpl_authority_info],
        [_signer_seeds(POOL_MPL_AUTHORITY_PREFIX, pool_address, pool.mpl_authority_bump_seed)],
    )


def process(program_id: Pubkey, accounts: List[AccountInfo], data: bytes):
    """Decodes a pool instruction and runs its handler."""
    try:
        parsed = INSTRUCTIONS_LAYOUT.parse(data)
    except Exception:
        raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA) from None
    instruction_type = parsed['instruction_type']
    args = parsed['args']

    if instruction_type == InstructionType.INITIALIZE_POOL:
        msg("Instruction: InitializePool")
        process_initialize_pool(program_id, accounts)
    elif instruction_type == InstructionType.REPLENISH_POOL:
        msg("Instruction: ReplenishPool")
        process_replenish_pool(program_id, accounts)
    elif instruction_type == InstructionType.DEPOSIT_STAKE:
        msg("Instruction: DepositStake")
        process_deposit_stake(program_id, accounts)
    elif instruction_type == InstructionType.WITHDRAW_STAKE:
        msg(f"Instruction: WithdrawStake, amount {args['token_amount']}")
        process_withdraw_stake(program_id, accounts, Pubkey(args['user_stake_authority']), args['token_amount'])
    elif instruction_type == InstructionType.CREATE_TOKEN_METADATA:
        msg("Instruction: CreateTokenMetadata")
        process_create_pool_token_metadata(program_id, accounts)
    elif instruction_type == InstructionType.UPDATE_TOKEN_METADATA:
        msg("Instruction: UpdateTokenMetadata")
        process_update_pool_token_metadata(program_id, accounts, args['name'], args['symbol'], args['uri'])
    else:
        raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA)
