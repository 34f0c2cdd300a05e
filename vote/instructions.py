"""Vote Program Instructions."""

from enum import IntEnum
from typing import NamedTuple

from construct import Bytes, Struct, Switch, Int8ul, Int32ul  # type: ignore

from solders.pubkey import Pubkey
from solders.sysvar import CLOCK, RENT
from solders.instruction import AccountMeta, Instruction

from vote.constants import VOTE_PROGRAM_ID

PUBLIC_KEY_LAYOUT = Bytes(32)


class InitializeParams(NamedTuple):
    """Initialize vote account params."""

    vote: Pubkey
    """`[w]` Uninitialized vote account"""
    node: Pubkey
    """`[s]` New validator identity."""

    authorized_voter: Pubkey
    """The authorized voter for this vote account."""
    authorized_withdrawer: Pubkey
    """The authorized withdrawer for this vote account."""
    commission: int
    """Commission, represented as a percentage"""
    rent_sysvar: Pubkey = RENT
    """`[]` Rent sysvar."""
    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""


class VoteAuthorize(IntEnum):
    VOTER = 0
    WITHDRAWER = 1


class AuthorizeParams(NamedTuple):
    """Change the voter or withdrawer of a vote account."""

    vote: Pubkey
    """`[w]` Vote account to be updated."""
    authority: Pubkey
    """`[s]` Current authorized voter or withdrawer."""

    new_authority: Pubkey
    """New authority's public key."""
    vote_authorize: VoteAuthorize
    """Which authority to change."""
    clock_sysvar: Pubkey = CLOCK
    """`[]` Clock sysvar."""


class InstructionType(IntEnum):
    """Vote Instruction Types."""

    INITIALIZE = 0
    AUTHORIZE = 1


INITIALIZE_LAYOUT = Struct(
    "node" / PUBLIC_KEY_LAYOUT,
    "authorized_voter" / PUBLIC_KEY_LAYOUT,
    "authorized_withdrawer" / PUBLIC_KEY_LAYOUT,
    "commission" / Int8ul,
)

AUTHORIZE_LAYOUT = Struct(
    "new_authority" / PUBLIC_KEY_LAYOUT,
    "vote_authorize" / Int32ul,
)

INSTRUCTIONS_LAYOUT = Struct(
    "instruction_type" / Int32ul,
    "args"
    / Switch(
        lambda this: this.instruction_type,
        {
            InstructionType.INITIALIZE: INITIALIZE_LAYOUT,
            InstructionType.AUTHORIZE: AUTHORIZE_LAYOUT,
        },
    ),
)


def initialize(params: InitializeParams) -> Instruction:
    """Creates a transaction instruction to initialize a new vote account."""
    data = INSTRUCTIONS_LAYOUT.build(
        dict(
            instruction_type=InstructionType.INITIALIZE,
            args=dict(
                node=bytes(params.node),
                authorized_voter=bytes(params.authorized_voter),
                authorized_withdrawer=bytes(params.authorized_withdrawer),
                commission=params.commission,
            ),
        )
    )
    return Instruction(
        program_id=VOTE_PROGRAM_ID,
        accounts=[
            AccountMeta(pubkey=params.vote, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.rent_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.node, is_signer=True, is_writable=False),
        ],
        data=data,
    )


def authorize(params: AuthorizeParams) -> Instruction:
    """Creates an instruction to change an authority of a vote account."""
    data = INSTRUCTIONS_LAYOUT.build(
        dict(
            instruction_type=InstructionType.AUTHORIZE,
            args=dict(
                new_authority=bytes(params.new_authority),
                vote_authorize=params.vote_authorize,
            ),
        )
    )
    return Instruction(
        program_id=VOTE_PROGRAM_ID,
        accounts=[
            AccountMeta(pubkey=params.vote, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.clock_sysvar, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.authority, is_signer=True, is_writable=False),
        ],
        data=data,
    )
