"""Stake Program.

Models the native stake program closely enough for pools and their users to
delegate, split, merge and move stake. Activation and deactivation take full
effect at the next epoch boundary; there is no warmup or cooldown rate.
"""

from enum import Enum, IntEnum
from typing import List, NamedTuple, Optional, Set

from construct import Int64ul  # type: ignore
from solders.pubkey import Pubkey

from bank.account_info import AccountInfo
from bank.error import ErrorKind, ProgramError
from bank.program import msg, set_return_data
from bank.sysvar import Clock, Rent
from stake.constants import EPOCH_MAX, MINIMUM_DELEGATION, STAKE_LEN, STAKE_PROGRAM_ID
from stake.instructions import INSTRUCTIONS_LAYOUT, InstructionType
from stake.state import Delegation, Lockup, Meta, Stake, StakeAuthorize, StakeState, StakeStateType, StakeStatus
from vote.constants import VOTE_PROGRAM_ID


class StakeError(IntEnum):
    """Stake program custom errors."""
    NO_CREDITS_TO_REDEEM = 0
    LOCKUP_IN_FORCE = 1
    ALREADY_DEACTIVATED = 2
    TOO_SOON_TO_REDELEGATE = 3
    INSUFFICIENT_STAKE = 4
    MERGE_TRANSIENT_STAKE = 5
    MERGE_MISMATCH = 6
    CUSTODIAN_MISSING = 7
    CUSTODIAN_SIGNATURE_MISSING = 8
    INSUFFICIENT_REFERENCE_VOTES = 9
    VOTE_ADDRESS_MISMATCH = 10
    MINIMUM_DELINQUENT_EPOCHS_FOR_DEACTIVATION_NOT_MET = 11
    INSUFFICIENT_DELEGATION = 12


class MergeKind(Enum):
    INACTIVE = "inactive"
    ACTIVATION_EPOCH = "activation_epoch"
    FULLY_ACTIVE = "fully_active"


class Classified(NamedTuple):
    """A stake account's state, classified for merging and moving."""
    kind: MergeKind
    meta: Meta
    stake: Optional[Stake]


def get_stake_state(account: AccountInfo) -> StakeState:
    if account.owner != STAKE_PROGRAM_ID:
        raise ProgramError(ErrorKind.INVALID_ACCOUNT_OWNER)
    if account.data_len() != STAKE_LEN:
        raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
    try:
        return StakeState.decode(bytes(account.data))
    except Exception:
        raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA) from None


def set_stake_state(account: AccountInfo, state: StakeState):
    account.data = state.serialize()


def _lockup_in_force(lockup: Lockup, clock: Clock, custodian: Optional[Pubkey]) -> bool:
    if custodian == lockup.custodian:
        return False
    return lockup.unix_timestamp > clock.unix_timestamp or lockup.epoch > clock.epoch


def _classify(state: StakeState, epoch: int) -> Classified:
    if state.state_type == StakeStateType.INITIALIZED:
        return Classified(MergeKind.INACTIVE, state.meta, None)
    if state.state_type != StakeStateType.STAKE:
        raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
    status = state.status(epoch)
    if status == StakeStatus.INACTIVE:
        return Classified(MergeKind.INACTIVE, state.meta, state.stake)
    if status == StakeStatus.ACTIVATING:
        return Classified(MergeKind.ACTIVATION_EPOCH, state.meta, state.stake)
    if status == StakeStatus.ACTIVE:
        return Classified(MergeKind.FULLY_ACTIVE, state.meta, state.stake)
    msg("stake account with transient stake cannot be merged")
    raise ProgramError.custom(StakeError.MERGE_TRANSIENT_STAKE)


def _metas_can_merge(destination: Meta, source: Meta, clock: Clock):
    lockups_match = destination.lockup == source.lockup or (
        not _lockup_in_force(destination.lockup, clock, None)
        and not _lockup_in_force(source.lockup, clock, None)
    )
    if destination.authorized != source.authorized or not lockups_match:
        msg("Unable to merge due to metadata mismatch")
        raise ProgramError.custom(StakeError.MERGE_MISMATCH)


def _voters_match(destination: Stake, source: Stake):
    if destination.delegation.voter_pubkey != source.delegation.voter_pubkey:
        msg("Unable to merge due to voter mismatch")
        raise ProgramError.custom(StakeError.MERGE_MISMATCH)


class StakeProgram:
    """Processes stake program instructions for one bank.

    ``minimum_delegation`` is the floor returned by ``GetMinimumDelegation`` and
    enforced on every new, split or moved delegation.
    """

    def __init__(self, minimum_delegation: int = MINIMUM_DELEGATION):
        self.minimum_delegation = minimum_delegation

    def process_instruction(self, program_id: Pubkey, accounts: List[AccountInfo], data: bytes):
        try:
            parsed = INSTRUCTIONS_LAYOUT.parse(data)
        except Exception:
            raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA) from None
        instruction_type = parsed['instruction_type']
        args = parsed['args']
        signers = {account.key for account in accounts if account.is_signer}

        if instruction_type == InstructionType.INITIALIZE:
            self._initialize(accounts, args)
        elif instruction_type == InstructionType.AUTHORIZE:
            self._authorize(accounts, args, signers)
        elif instruction_type == InstructionType.DELEGATE_STAKE:
            self._delegate(accounts, signers)
        elif instruction_type == InstructionType.SPLIT:
            self._split(accounts, args['lamports'], signers)
        elif instruction_type == InstructionType.WITHDRAW:
            self._withdraw(accounts, args['lamports'], signers)
        elif instruction_type == InstructionType.DEACTIVATE:
            self._deactivate(accounts, signers)
        elif instruction_type == InstructionType.MERGE:
            self._merge(accounts, signers)
        elif instruction_type == InstructionType.GET_MINIMUM_DELEGATION:
            set_return_data(Int64ul.build(self.minimum_delegation))
        elif instruction_type == InstructionType.MOVE_STAKE:
            self._move_stake(accounts, args['lamports'], signers)
        elif instruction_type == InstructionType.MOVE_LAMPORTS:
            self._move_lamports(accounts, args['lamports'], signers)
        else:
            raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA)

    @staticmethod
    def _accounts(accounts: List[AccountInfo], count: int) -> List[AccountInfo]:
        if len(accounts) < count:
            raise ProgramError(ErrorKind.NOT_ENOUGH_ACCOUNT_KEYS)
        return accounts

    @staticmethod
    def _check_staker(meta: Meta, signers: Set[Pubkey]):
        if meta.authorized.staker not in signers:
            raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)

    def _validate_delegated_amount(self, account: AccountInfo, meta: Meta) -> int:
        stake_amount = account.lamports - meta.rent_exempt_reserve
        if stake_amount < self.minimum_delegation:
            msg(f"Delegation of {stake_amount} is below the minimum of {self.minimum_delegation}")
            raise ProgramError.custom(StakeError.INSUFFICIENT_DELEGATION)
        return stake_amount

    def _initialize(self, accounts: List[AccountInfo], args):
        stake_account = self._accounts(accounts, 1)[0]
        state = get_stake_state(stake_account)
        if state.state_type != StakeStateType.UNINITIALIZED:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
        rent_exempt_reserve = Rent.get().minimum_balance(stake_account.data_len())
        if stake_account.lamports < rent_exempt_reserve:
            raise ProgramError(ErrorKind.INSUFFICIENT_FUNDS)
        meta = Meta.decode_container(dict(
            rent_exempt_reserve=rent_exempt_reserve,
            authorized=args['authorized'],
            lockup=args['lockup'],
        ))
        set_stake_state(stake_account, StakeState(StakeStateType.INITIALIZED, meta=meta))

    def _authorize(self, accounts: List[AccountInfo], args, signers: Set[Pubkey]):
        stake_account = self._accounts(accounts, 3)[0]
        custodian = accounts[3].key if len(accounts) > 3 and accounts[3].is_signer else None
        state = get_stake_state(stake_account)
        if state.state_type not in (StakeStateType.INITIALIZED, StakeStateType.STAKE):
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
        meta = state.meta
        new_authority = Pubkey(args['new_authority'])
        if args['stake_authorize'] == StakeAuthorize.STAKER:
            if meta.authorized.staker not in signers and meta.authorized.withdrawer not in signers:
                raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)
            authorized = meta.authorized._replace(staker=new_authority)
        elif args['stake_authorize'] == StakeAuthorize.WITHDRAWER:
            if _lockup_in_force(meta.lockup, Clock.get(), custodian):
                if custodian is None:
                    raise ProgramError.custom(StakeError.CUSTODIAN_MISSING)
                raise ProgramError.custom(StakeError.LOCKUP_IN_FORCE)
            if meta.authorized.withdrawer not in signers:
                raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)
            authorized = meta.authorized._replace(withdrawer=new_authority)
        else:
            raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA)
        set_stake_state(stake_account, state._replace(meta=meta._replace(authorized=authorized)))

    def _delegate(self, accounts: List[AccountInfo], signers: Set[Pubkey]):
        stake_account, vote_account = self._accounts(accounts, 6)[:2]
        if vote_account.owner != VOTE_PROGRAM_ID:
            raise ProgramError(ErrorKind.INCORRECT_PROGRAM_ID)
        epoch = Clock.get().epoch
        state = get_stake_state(stake_account)
        if state.state_type == StakeStateType.INITIALIZED:
            self._check_staker(state.meta, signers)
            stake_amount = self._validate_delegated_amount(stake_account, state.meta)
            stake = Stake(Delegation(vote_account.key, stake_amount, activation_epoch=epoch))
            set_stake_state(stake_account, StakeState(StakeStateType.STAKE, meta=state.meta, stake=stake))
        elif state.state_type == StakeStateType.STAKE:
            self._check_staker(state.meta, signers)
            stake_amount = self._validate_delegated_amount(stake_account, state.meta)
            delegation = state.stake.delegation
            if delegation.effective_stake(epoch) != 0:
                if delegation.voter_pubkey == vote_account.key and delegation.deactivation_epoch == epoch:
                    delegation = delegation._replace(deactivation_epoch=EPOCH_MAX)
                else:
                    raise ProgramError.custom(StakeError.TOO_SOON_TO_REDELEGATE)
            else:
                delegation = delegation._replace(
                    voter_pubkey=vote_account.key,
                    stake=stake_amount,
                    activation_epoch=epoch,
                    deactivation_epoch=EPOCH_MAX,
                )
            set_stake_state(stake_account, state._replace(stake=state.stake._replace(delegation=delegation)))
        else:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)

    def _split(self, accounts: List[AccountInfo], lamports: int, signers: Set[Pubkey]):
        stake_account, split_account = self._accounts(accounts, 2)[:2]
        if stake_account.key == split_account.key:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)
        split_state = get_stake_state(split_account)
        if split_state.state_type != StakeStateType.UNINITIALIZED:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
        if lamports == 0 or lamports > stake_account.lamports:
            raise ProgramError(ErrorKind.INSUFFICIENT_FUNDS)

        state = get_stake_state(stake_account)
        epoch = Clock.get().epoch
        destination_reserve = Rent.get().minimum_balance(split_account.data_len())
        remaining = stake_account.lamports - lamports

        if state.state_type == StakeStateType.STAKE:
            self._check_staker(state.meta, signers)
            is_active = state.stake.delegation.effective_stake(epoch) > 0
            additional = self.minimum_delegation if is_active else 0
            self._validate_split_amount(state.meta, remaining, split_account, lamports,
                                        destination_reserve, additional)
            delegation = state.stake.delegation
            if remaining == 0:
                remaining_stake_delta = max(0, lamports - state.meta.rent_exempt_reserve)
                split_stake_amount = remaining_stake_delta
            else:
                if delegation.stake - lamports < self.minimum_delegation:
                    msg("Split would leave the source below the minimum delegation")
                    raise ProgramError.custom(StakeError.INSUFFICIENT_DELEGATION)
                remaining_stake_delta = lamports
                split_stake_amount = lamports - max(0, destination_reserve - split_account.lamports)
            if split_stake_amount < self.minimum_delegation:
                raise ProgramError.custom(StakeError.INSUFFICIENT_DELEGATION)
            if remaining_stake_delta > delegation.stake:
                raise ProgramError.custom(StakeError.INSUFFICIENT_STAKE)
            source_stake = state.stake._replace(
                delegation=delegation._replace(stake=delegation.stake - remaining_stake_delta))
            split_stake = state.stake._replace(delegation=delegation._replace(stake=split_stake_amount))
            split_meta = state.meta._replace(rent_exempt_reserve=destination_reserve)
            set_stake_state(stake_account, state._replace(stake=source_stake))
            set_stake_state(split_account, StakeState(StakeStateType.STAKE, meta=split_meta, stake=split_stake,
                                                      stake_flags=state.stake_flags))
        elif state.state_type == StakeStateType.INITIALIZED:
            self._check_staker(state.meta, signers)
            self._validate_split_amount(state.meta, remaining, split_account, lamports, destination_reserve, 0)
            split_meta = state.meta._replace(rent_exempt_reserve=destination_reserve)
            set_stake_state(split_account, StakeState(StakeStateType.INITIALIZED, meta=split_meta))
        elif state.state_type == StakeStateType.UNINITIALIZED:
            if stake_account.key not in signers:
                raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)
        else:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)

        if remaining == 0:
            set_stake_state(stake_account, StakeState(StakeStateType.UNINITIALIZED))
        stake_account.lamports -= lamports
        split_account.lamports += lamports

    @staticmethod
    def _validate_split_amount(meta: Meta, remaining: int, split_account: AccountInfo, lamports: int,
                               destination_reserve: int, additional: int):
        if remaining != 0 and remaining < meta.rent_exempt_reserve + additional:
            msg("Split would leave the source below its minimum balance")
            raise ProgramError(ErrorKind.INSUFFICIENT_FUNDS)
        deficit = max(0, destination_reserve + additional - split_account.lamports)
        if lamports < deficit:
            msg("Split is too small to fund the destination's minimum balance")
            raise ProgramError(ErrorKind.INSUFFICIENT_FUNDS)

    def _withdraw(self, accounts: List[AccountInfo], lamports: int, signers: Set[Pubkey]):
        stake_account, to_account = self._accounts(accounts, 5)[:2]
        custodian = accounts[5].key if len(accounts) > 5 and accounts[5].is_signer else None
        clock = Clock.get()
        state = get_stake_state(stake_account)
        if state.state_type in (StakeStateType.STAKE, StakeStateType.INITIALIZED):
            if state.meta.authorized.withdrawer not in signers:
                raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)
            if _lockup_in_force(state.meta.lockup, clock, custodian):
                raise ProgramError.custom(StakeError.LOCKUP_IN_FORCE)
            staked = 0
            if state.state_type == StakeStateType.STAKE and state.status(clock.epoch) != StakeStatus.INACTIVE:
                staked = state.stake.delegation.stake
            reserve = staked + state.meta.rent_exempt_reserve
        elif state.state_type == StakeStateType.UNINITIALIZED:
            if stake_account.key not in signers:
                raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)
            staked = 0
            reserve = 0
        else:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)

        if lamports == stake_account.lamports:
            if staked != 0:
                raise ProgramError(ErrorKind.INSUFFICIENT_FUNDS)
            set_stake_state(stake_account, StakeState(StakeStateType.UNINITIALIZED))
        elif lamports + reserve > stake_account.lamports:
            msg(f"Withdraw of {lamports} would dip into the {reserve} reserved lamports")
            raise ProgramError(ErrorKind.INSUFFICIENT_FUNDS)
        stake_account.lamports -= lamports
        to_account.lamports += lamports

    def _deactivate(self, accounts: List[AccountInfo], signers: Set[Pubkey]):
        stake_account = self._accounts(accounts, 3)[0]
        state = get_stake_state(stake_account)
        if state.state_type != StakeStateType.STAKE:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
        self._check_staker(state.meta, signers)
        delegation = state.stake.delegation
        if delegation.deactivation_epoch != EPOCH_MAX:
            raise ProgramError.custom(StakeError.ALREADY_DEACTIVATED)
        delegation = delegation._replace(deactivation_epoch=Clock.get().epoch)
        set_stake_state(stake_account, state._replace(stake=state.stake._replace(delegation=delegation)))

    def _merge(self, accounts: List[AccountInfo], signers: Set[Pubkey]):
        destination, source = self._accounts(accounts, 5)[:2]
        if destination.key == source.key:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)
        clock = Clock.get()
        destination_state = get_stake_state(destination)
        source_state = get_stake_state(source)
        destination_kind = _classify(destination_state, clock.epoch)
        self._check_staker(destination_kind.meta, signers)
        source_kind = _classify(source_state, clock.epoch)
        _metas_can_merge(destination_kind.meta, source_kind.meta, clock)
        if destination_kind.stake and source_kind.stake and \
                MergeKind.INACTIVE not in (destination_kind.kind, source_kind.kind):
            _voters_match(destination_kind.stake, source_kind.stake)

        merged: Optional[Stake] = None
        kinds = (destination_kind.kind, source_kind.kind)
        if destination_kind.kind == MergeKind.INACTIVE and source_kind.kind in (MergeKind.INACTIVE,
                                                                                MergeKind.ACTIVATION_EPOCH):
            merged = None
        elif kinds == (MergeKind.ACTIVATION_EPOCH, MergeKind.INACTIVE):
            merged = self._add_stake(destination_kind.stake, source.lamports)
        elif kinds == (MergeKind.ACTIVATION_EPOCH, MergeKind.ACTIVATION_EPOCH):
            source_lamports = source_kind.meta.rent_exempt_reserve + source_kind.stake.delegation.stake
            merged = self._add_stake(destination_kind.stake, source_lamports)
        elif kinds == (MergeKind.FULLY_ACTIVE, MergeKind.FULLY_ACTIVE):
            merged = self._add_stake(destination_kind.stake, source_kind.stake.delegation.stake)
        else:
            msg("Only stake accounts in matching activation states can be merged")
            raise ProgramError.custom(StakeError.MERGE_MISMATCH)

        if merged is not None:
            set_stake_state(destination, StakeState(StakeStateType.STAKE, meta=destination_kind.meta,
                                                    stake=merged, stake_flags=destination_state.stake_flags))
        set_stake_state(source, StakeState(StakeStateType.UNINITIALIZED))
        destination.lamports += source.lamports
        source.lamports = 0

    @staticmethod
    def _add_stake(stake: Stake, lamports: int) -> Stake:
        delegation = stake.delegation
        return stake._replace(delegation=delegation._replace(stake=delegation.stake + lamports))

    def _move_checks(self, accounts: List[AccountInfo], lamports: int, signers: Set[Pubkey]):
        source, destination = self._accounts(accounts, 3)[:2]
        if source.key == destination.key:
            raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA)
        if lamports == 0:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)
        clock = Clock.get()
        source_kind = _classify(get_stake_state(source), clock.epoch)
        self._check_staker(source_kind.meta, signers)
        destination_kind = _classify(get_stake_state(destination), clock.epoch)
        _metas_can_merge(destination_kind.meta, source_kind.meta, clock)
        return source, destination, source_kind, destination_kind

    def _move_stake(self, accounts: List[AccountInfo], lamports: int, signers: Set[Pubkey]):
        source, destination, source_kind, destination_kind = self._move_checks(accounts, lamports, signers)
        if source_kind.kind != MergeKind.FULLY_ACTIVE:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
        source_delegation = source_kind.stake.delegation
        if lamports > source_delegation.stake:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)
        source_final_stake = source_delegation.stake - lamports
        if source_final_stake != 0 and source_final_stake < self.minimum_delegation:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)

        if destination_kind.kind == MergeKind.FULLY_ACTIVE:
            if destination_kind.stake.delegation.voter_pubkey != source_delegation.voter_pubkey:
                raise ProgramError.custom(StakeError.VOTE_ADDRESS_MISMATCH)
            destination_stake = self._add_stake(destination_kind.stake, lamports)
        elif destination_kind.kind == MergeKind.INACTIVE:
            if destination.lamports > destination_kind.meta.rent_exempt_reserve:
                msg("Inactive destination holds undelegated lamports")
                raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
            destination_stake = source_kind.stake._replace(delegation=source_delegation._replace(stake=lamports))
        else:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
        if destination_stake.delegation.stake < self.minimum_delegation:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)

        if source_final_stake == 0:
            set_stake_state(source, StakeState(StakeStateType.INITIALIZED, meta=source_kind.meta))
        else:
            source_stake = source_kind.stake._replace(
                delegation=source_delegation._replace(stake=source_final_stake))
            set_stake_state(source, StakeState(StakeStateType.STAKE, meta=source_kind.meta, stake=source_stake))
        set_stake_state(destination, StakeState(StakeStateType.STAKE, meta=destination_kind.meta,
                                                stake=destination_stake))
        source.lamports -= lamports
        destination.lamports += lamports

    def _move_lamports(self, accounts: List[AccountInfo], lamports: int, signers: Set[Pubkey]):
        source, destination, source_kind, _ = self._move_checks(accounts, lamports, signers)
        if source_kind.kind == MergeKind.FULLY_ACTIVE:
            free = source.lamports - source_kind.stake.delegation.stake - source_kind.meta.rent_exempt_reserve
        elif source_kind.kind == MergeKind.INACTIVE:
            free = source.lamports - source_kind.meta.rent_exempt_reserve
        else:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
        if lamports > free:
            msg(f"Cannot move {lamports} lamports, only {free} are free")
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)
        source.lamports -= lamports
        destination.lamports += lamports
