"""Stake Program Instructions."""

from enum import IntEnum
from typing import NamedTuple, Optional

from construct import Switch  # type: ignore
from construct import Int32ul, Int64ul, Pass  # type: ignore
from construct import Struct

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.sysvar import CLOCK, RENT, STAKE_HISTORY

from stake.constants import STAKE_PROGRAM_ID, SYSVAR_STAKE_CONFIG_ID
from stake.state import AUTHORIZED_LAYOUT, LOCKUP_LAYOUT, PUBLIC_KEY_LAYOUT, Authorized, Lockup, StakeAuthorize


class InitializeParams(NamedTuple):
    """Initialize stake transaction params."""

    stake: Pubkey
    """`[w]` Uninitialized stake account."""
    authorized: Authorized
    """Information about the staker and withdrawer keys."""
    lockup: Lockup
    """Stake lockup, if any."""


class DelegateStakeParams(NamedTuple):
    """Delegate stake transaction params."""

    stake: Pubkey
    """`[w]` Initialized stake account to be delegated."""
    vote: Pubkey
    """`[]` Vote account to which this stake will be delegated."""
    staker: Pubkey
    """`[s]` Stake authority."""
    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""
    stake_history_sysvar: Pubkey = STAKE_HISTORY
    """`[]` Stake history sysvar that carries stake warmup/cooldown history."""
    stake_config_id: Pubkey = SYSVAR_STAKE_CONFIG_ID
    """`[]` Address of config account that carries stake config."""


class AuthorizeParams(NamedTuple):
    """Authorize stake transaction params."""

    stake: Pubkey
    """`[w]` Initialized stake account to modify."""
    authority: Pubkey
    """`[s]` Current stake or withdraw authority."""

    # Params
    new_authority: Pubkey
    """New authority's public key."""
    stake_authorize: StakeAuthorize
    """Type of authority to modify, staker or withdrawer."""
    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""


class SplitParams(NamedTuple):
    """Split stake transaction params."""

    stake: Pubkey
    """`[w]` Stake account to be split."""
    split_stake: Pubkey
    """`[w]` Uninitialized stake account that receives the split."""
    staker: Pubkey
    """`[s]` Stake authority."""

    # Params
    lamports: int
    """Amount of lamports to move into the new account."""


class WithdrawParams(NamedTuple):
    """Withdraw stake transaction params."""

    stake: Pubkey
    """`[w]` Stake account from which to withdraw."""
    to_pubkey: Pubkey
    """`[w]` Recipient account."""
    withdrawer: Pubkey
    """`[s]` Withdraw authority."""

    # Params
    lamports: int
    """Amount of lamports to withdraw."""
    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""
    stake_history_sysvar: Pubkey = STAKE_HISTORY
    """`[]` Stake history sysvar."""


class DeactivateParams(NamedTuple):
    """Deactivate stake transaction params."""

    stake: Pubkey
    """`[w]` Delegated stake account."""
    staker: Pubkey
    """`[s]` Stake authority."""
    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""


class MergeParams(NamedTuple):
    """Merge stake transaction params."""

    destination: Pubkey
    """`[w]` Stake account that receives the merge."""
    source: Pubkey
    """`[w]` Stake account merged in and then closed."""
    staker: Pubkey
    """`[s]` Stake authority of both accounts."""
    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""
    stake_history_sysvar: Pubkey = STAKE_HISTORY
    """`[]` Stake history sysvar."""


class MoveParams(NamedTuple):
    """Move stake or lamports between two stake accounts with the same authorities."""

    source: Pubkey
    """`[w]` Active source stake account."""
    destination: Pubkey
    """`[w]` Destination stake account."""
    staker: Pubkey
    """`[s]` Stake authority of both accounts."""

    # Params
    lamports: int
    """Amount to move."""


class InstructionType(IntEnum):
    """Stake Instruction Types."""

    INITIALIZE = 0
    AUTHORIZE = 1
    DELEGATE_STAKE = 2
    SPLIT = 3
    WITHDRAW = 4
    DEACTIVATE = 5
    SET_LOCKUP = 6
    MERGE = 7
    AUTHORIZE_WITH_SEED = 8
    INITIALIZE_CHECKED = 9
    AUTHORIZED_CHECKED = 10
    AUTHORIZED_CHECKED_WITH_SEED = 11
    SET_LOCKUP_CHECKED = 12
    GET_MINIMUM_DELEGATION = 13
    DEACTIVATE_DELINQUENT = 14
    REDELEGATE = 15
    MOVE_STAKE = 16
    MOVE_LAMPORTS = 17


INITIALIZE_LAYOUT = Struct(
    "authorized" / AUTHORIZED_LAYOUT,
    "lockup" / LOCKUP_LAYOUT,
)


AUTHORIZE_LAYOUT = Struct(
    "new_authority" / PUBLIC_KEY_LAYOUT,
    "stake_authorize" / Int32ul,
)


LAMPORTS_LAYOUT = Struct(
    "lamports" / Int64ul,
)


INSTRUCTIONS_LAYOUT = Struct(
    "instruction_type" / Int32ul,
    "args"
    / Switch(
        lambda this: this.instruction_type,
        {
            InstructionType.INITIALIZE: INITIALIZE_LAYOUT,
            InstructionType.AUTHORIZE: AUTHORIZE_LAYOUT,
            InstructionType.DELEGATE_STAKE: Pass,
            InstructionType.SPLIT: LAMPORTS_LAYOUT,
            InstructionType.WITHDRAW: LAMPORTS_LAYOUT,
            InstructionType.DEACTIVATE: Pass,
            InstructionType.MERGE: Pass,
            InstructionType.GET_MINIMUM_DELEGATION: Pass,
            InstructionType.MOVE_STAKE: LAMPORTS_LAYOUT,
            InstructionType.MOVE_LAMPORTS: LAMPORTS_LAYOUT,
        },
    ),
)


def _build(instruction_type: InstructionType, args: Optional[dict] = None) -> bytes:
    return INSTRUCTIONS_LAYOUT.build(dict(instruction_type=instruction_type, args=args))


def initialize(params: InitializeParams) -> Instruction:
    """Creates a transaction instruction to initialize a new stake."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=RENT, is_signer=False, is_writable=False),
        ],
        program_id=STAKE_PROGRAM_ID,
        data=_build(
            InstructionType.INITIALIZE,
            dict(
                authorized=params.authorized.as_bytes_dict(),
                lockup=params.lockup.as_bytes_dict(),
            ),
        )
    )


def delegate_stake(params: DelegateStakeParams) -> Instruction:
    """Creates an instruction to delegate a stake account."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.vote, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_history_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_config_id, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.staker, is_signer=True, is_writable=False),
        ],
        program_id=STAKE_PROGRAM_ID,
        data=_build(InstructionType.DELEGATE_STAKE),
    )


def authorize(params: AuthorizeParams) -> Instruction:
    """Creates an instruction to change the authority on a stake account."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.authority, is_signer=True, is_writable=False),
        ],
        program_id=STAKE_PROGRAM_ID,
        data=_build(
            InstructionType.AUTHORIZE,
            {
                'new_authority': bytes(params.new_authority),
                'stake_authorize': params.stake_authorize,
            },
        )
    )


def split(params: SplitParams) -> Instruction:
    """Creates an instruction to split lamports and stake into an uninitialized stake account."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.split_stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.staker, is_signer=True, is_writable=False),
        ],
        program_id=STAKE_PROGRAM_ID,
        data=_build(InstructionType.SPLIT, {'lamports': params.lamports}),
    )


def withdraw(params: WithdrawParams) -> Instruction:
    """Creates an instruction to withdraw unstaked lamports from a stake account."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.to_pubkey, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_history_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.withdrawer, is_signer=True, is_writable=False),
        ],
        program_id=STAKE_PROGRAM_ID,
        data=_build(InstructionType.WITHDRAW, {'lamports': params.lamports}),
    )


def deactivate(params: DeactivateParams) -> Instruction:
    """Creates an instruction to deactivate a delegated stake account."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.stake, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.staker, is_signer=True, is_writable=False),
        ],
        program_id=STAKE_PROGRAM_ID,
        data=_build(InstructionType.DEACTIVATE),
    )


def merge(params: MergeParams) -> Instruction:
    """Creates an instruction to merge one stake account into another."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.destination, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.source, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.stake_history_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.staker, is_signer=True, is_writable=False),
        ],
        program_id=STAKE_PROGRAM_ID,
        data=_build(InstructionType.MERGE),
    )


def get_minimum_delegation() -> Instruction:
    """Creates an instruction that sets the minimum delegation as return data."""
    return Instruction(
        accounts=[],
        program_id=STAKE_PROGRAM_ID,
        data=_build(InstructionType.GET_MINIMUM_DELEGATION),
    )


def _move(instruction_type: InstructionType, params: MoveParams) -> Instruction:
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.source, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.destination, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.staker, is_signer=True, is_writable=False),
        ],
        program_id=STAKE_PROGRAM_ID,
        data=_build(instruction_type, {'lamports': params.lamports}),
    )


def move_stake(params: MoveParams) -> Instruction:
    """Creates an instruction to move active stake between two stake accounts."""
    return _move(InstructionType.MOVE_STAKE, params)


def move_lamports(params: MoveParams) -> Instruction:
    """Creates an instruction to move undelegated lamports between two stake accounts."""
    return _move(InstructionType.MOVE_LAMPORTS, params)
