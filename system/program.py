"""System Program."""

from enum import IntEnum
from typing import List

from construct import Bytes, PascalString, Struct, Switch, Int32ul, Int64ul  # type: ignore
from solders.pubkey import Pubkey
from solana.constants import SYSTEM_PROGRAM_ID

from bank.account_info import AccountInfo
from bank.error import ErrorKind, ProgramError
from bank.program import msg

PUBLIC_KEY_LAYOUT = Bytes(32)

MAX_PERMITTED_DATA_LENGTH: int = 10 * 1024 * 1024
"""Largest account the system program will allocate."""

MAX_SEED_LEN: int = 32


class SystemError(IntEnum):
    """System program custom errors."""
    ACCOUNT_ALREADY_IN_USE = 0
    RESULT_WITH_NEGATIVE_LAMPORTS = 1
    INVALID_PROGRAM_ID = 2
    INVALID_ACCOUNT_DATA_LENGTH = 3
    MAX_SEED_LENGTH_EXCEEDED = 4
    ADDRESS_WITH_SEED_MISMATCH = 5


class InstructionType(IntEnum):
    """System Instruction Types."""
    CREATE_ACCOUNT = 0
    ASSIGN = 1
    TRANSFER = 2
    CREATE_ACCOUNT_WITH_SEED = 3
    ALLOCATE = 8


INSTRUCTIONS_LAYOUT = Struct(
    "instruction_type" / Int32ul,
    "args"
    / Switch(
        lambda this: this.instruction_type,
        {
            InstructionType.CREATE_ACCOUNT: Struct(
                "lamports" / Int64ul,
                "space" / Int64ul,
                "owner" / PUBLIC_KEY_LAYOUT,
            ),
            InstructionType.ASSIGN: Struct("owner" / PUBLIC_KEY_LAYOUT),
            InstructionType.TRANSFER: Struct("lamports" / Int64ul),
            InstructionType.CREATE_ACCOUNT_WITH_SEED: Struct(
                "base" / PUBLIC_KEY_LAYOUT,
                "seed" / PascalString(Int64ul, "utf8"),
                "lamports" / Int64ul,
                "space" / Int64ul,
                "owner" / PUBLIC_KEY_LAYOUT,
            ),
            InstructionType.ALLOCATE: Struct("space" / Int64ul),
        },
    ),
)


def _require_signer(account: AccountInfo):
    if not account.is_signer:
        msg(f"{account.key} must sign")
        raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)


def _allocate(account: AccountInfo, space: int):
    if not account.data_is_empty() or account.owner != SYSTEM_PROGRAM_ID:
        msg(f"Allocate: account {account.key} already in use")
        raise ProgramError.custom(SystemError.ACCOUNT_ALREADY_IN_USE)
    if space > MAX_PERMITTED_DATA_LENGTH:
        raise ProgramError.custom(SystemError.INVALID_ACCOUNT_DATA_LENGTH)
    account.data = bytes(space)


def _assign(account: AccountInfo, owner: Pubkey):
    if account.owner == owner:
        return
    if account.owner != SYSTEM_PROGRAM_ID:
        raise ProgramError(ErrorKind.MODIFIED_PROGRAM_ID)
    account.owner = owner


def _transfer(source: AccountInfo, destination: AccountInfo, lamports: int):
    if not source.data_is_empty():
        msg("Transfer: `from` must not carry data")
        raise ProgramError(ErrorKind.INVALID_ARGUMENT)
    if source.lamports < lamports:
        msg(f"Transfer: insufficient lamports {source.lamports}, need {lamports}")
        raise ProgramError.custom(SystemError.RESULT_WITH_NEGATIVE_LAMPORTS)
    source.lamports -= lamports
    destination.lamports += lamports


def _create_account(source: AccountInfo, destination: AccountInfo, lamports: int, space: int, owner: Pubkey):
    if destination.lamports > 0:
        msg(f"Create Account: account {destination.key} already in use")
        raise ProgramError.custom(SystemError.ACCOUNT_ALREADY_IN_USE)
    _allocate(destination, space)
    _assign(destination, owner)
    _transfer(source, destination, lamports)


def process_instruction(program_id: Pubkey, accounts: List[AccountInfo], data: bytes):
    """Processes a system program instruction."""
    try:
        parsed = INSTRUCTIONS_LAYOUT.parse(data)
    except Exception:
        raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA) from None
    instruction_type = parsed['instruction_type']
    args = parsed['args']
    if args is None:
        raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA)
    if len(accounts) < (2 if instruction_type in (InstructionType.CREATE_ACCOUNT, InstructionType.TRANSFER,
                                                   InstructionType.CREATE_ACCOUNT_WITH_SEED) else 1):
        raise ProgramError(ErrorKind.NOT_ENOUGH_ACCOUNT_KEYS)

    if instruction_type == InstructionType.CREATE_ACCOUNT:
        source, destination = accounts[0], accounts[1]
        _require_signer(source)
        _require_signer(destination)
        _create_account(source, destination, args['lamports'], args['space'], Pubkey(args['owner']))
    elif instruction_type == InstructionType.CREATE_ACCOUNT_WITH_SEED:
        source, destination = accounts[0], accounts[1]
        base = Pubkey(args['base'])
        owner = Pubkey(args['owner'])
        if len(args['seed']) > MAX_SEED_LEN:
            raise ProgramError.custom(SystemError.MAX_SEED_LENGTH_EXCEEDED)
        if Pubkey.create_with_seed(base, args['seed'], owner) != destination.key:
            msg(f"Create: address {destination.key} does not match derived address")
            raise ProgramError.custom(SystemError.ADDRESS_WITH_SEED_MISMATCH)
        _require_signer(source)
        base_signed = any(account.key == base and account.is_signer for account in accounts)
        if not base_signed:
            raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)
        _create_account(source, destination, args['lamports'], args['space'], owner)
    elif instruction_type == InstructionType.ASSIGN:
        _require_signer(accounts[0])
        _assign(accounts[0], Pubkey(args['owner']))
    elif instruction_type == InstructionType.TRANSFER:
        _require_signer(accounts[0])
        _transfer(accounts[0], accounts[1], args['lamports'])
    elif instruction_type == InstructionType.ALLOCATE:
        _require_signer(accounts[0])
        _allocate(accounts[0], args['space'])
