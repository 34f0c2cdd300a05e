"""Token and associated token account programs.

Covers the single-signer subset of the token program that pools and their
users touch: mints, accounts, transfers, delegation, minting and burning.
"""

from enum import IntEnum
from typing import List

from construct import If, Pass, Struct, Switch, Int8ul, Int64ul, this  # type: ignore
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
import solders.system_program as sys
from solana.constants import SYSTEM_PROGRAM_ID
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

from bank.account_info import AccountInfo
from bank.error import ErrorKind, ProgramError
from bank.program import invoke, invoke_signed, msg, next_account_info
from bank.sysvar import Rent
from spl_token.state import ACCOUNT_LEN, MINT_LEN, PUBLIC_KEY_LAYOUT, AccountState, Mint, TokenAccount

U64_MAX: int = 2**64 - 1


class TokenError(IntEnum):
    """Token program custom errors."""
    NOT_RENT_EXEMPT = 0
    INSUFFICIENT_FUNDS = 1
    INVALID_MINT = 2
    MINT_MISMATCH = 3
    OWNER_MISMATCH = 4
    FIXED_SUPPLY = 5
    ALREADY_IN_USE = 6
    INVALID_NUMBER_OF_PROVIDED_SIGNERS = 7
    INVALID_NUMBER_OF_REQUIRED_SIGNERS = 8
    UNINITIALIZED_STATE = 9
    NATIVE_NOT_SUPPORTED = 10
    NON_NATIVE_HAS_BALANCE = 11
    INVALID_INSTRUCTION = 12
    INVALID_STATE = 13
    OVERFLOW = 14
    AUTHORITY_TYPE_NOT_SUPPORTED = 15
    MINT_CANNOT_FREEZE = 16
    ACCOUNT_FROZEN = 17
    MINT_DECIMALS_MISMATCH = 18


class InstructionType(IntEnum):
    """Token Instruction Types."""
    INITIALIZE_MINT = 0
    INITIALIZE_ACCOUNT = 1
    TRANSFER = 3
    APPROVE = 4
    MINT_TO = 7
    BURN = 8
    INITIALIZE_ACCOUNT3 = 18


AMOUNT_LAYOUT = Struct("amount" / Int64ul)

INSTRUCTIONS_LAYOUT = Struct(
    "instruction_type" / Int8ul,
    "args"
    / Switch(
        lambda this: this.instruction_type,
        {
            InstructionType.INITIALIZE_MINT: Struct(
                "decimals" / Int8ul,
                "mint_authority" / PUBLIC_KEY_LAYOUT,
                "freeze_authority_option" / Int8ul,
                "freeze_authority" / If(this.freeze_authority_option == 1, PUBLIC_KEY_LAYOUT),
            ),
            InstructionType.INITIALIZE_ACCOUNT: Pass,
            InstructionType.TRANSFER: AMOUNT_LAYOUT,
            InstructionType.APPROVE: AMOUNT_LAYOUT,
            InstructionType.MINT_TO: AMOUNT_LAYOUT,
            InstructionType.BURN: AMOUNT_LAYOUT,
            InstructionType.INITIALIZE_ACCOUNT3: Struct("owner" / PUBLIC_KEY_LAYOUT),
        },
    ),
)


def _unpack_mint(account: AccountInfo) -> Mint:
    if account.owner != TOKEN_PROGRAM_ID:
        raise ProgramError(ErrorKind.INCORRECT_PROGRAM_ID)
    if account.data_len() != MINT_LEN:
        raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
    mint = Mint.decode(bytes(account.data))
    if not mint.is_initialized:
        raise ProgramError.custom(TokenError.UNINITIALIZED_STATE)
    return mint


def _unpack_account(account: AccountInfo) -> TokenAccount:
    if account.owner != TOKEN_PROGRAM_ID:
        raise ProgramError(ErrorKind.INCORRECT_PROGRAM_ID)
    if account.data_len() != ACCOUNT_LEN:
        raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
    try:
        token_account = TokenAccount.decode(bytes(account.data))
    except ValueError:
        raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA) from None
    if token_account.state == AccountState.UNINITIALIZED:
        raise ProgramError.custom(TokenError.UNINITIALIZED_STATE)
    if token_account.state == AccountState.FROZEN:
        raise ProgramError.custom(TokenError.ACCOUNT_FROZEN)
    return token_account


def _validate_owner(expected: Pubkey, authority: AccountInfo):
    if expected != authority.key:
        raise ProgramError.custom(TokenError.OWNER_MISMATCH)
    if not authority.is_signer:
        raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)


def _debit_with_authority(token_account: TokenAccount, authority: AccountInfo, amount: int) -> TokenAccount:
    """Checks the owner or delegate may move ``amount``; returns the account with the allowance spent."""
    if token_account.amount < amount:
        msg("Error: insufficient funds")
        raise ProgramError.custom(TokenError.INSUFFICIENT_FUNDS)
    if token_account.delegate is not None and authority.key == token_account.delegate:
        _validate_owner(token_account.delegate, authority)
        if token_account.delegated_amount < amount:
            msg("Error: insufficient delegated amount")
            raise ProgramError.custom(TokenError.INSUFFICIENT_FUNDS)
        delegated_amount = token_account.delegated_amount - amount
        token_account = token_account._replace(
            delegated_amount=delegated_amount,
            delegate=token_account.delegate if delegated_amount else None,
        )
    else:
        _validate_owner(token_account.owner, authority)
    return token_account._replace(amount=token_account.amount - amount)


def _initialize_account(account: AccountInfo, mint_info: AccountInfo, owner: Pubkey):
    if account.owner != TOKEN_PROGRAM_ID:
        raise ProgramError(ErrorKind.INCORRECT_PROGRAM_ID)
    if account.data_len() != ACCOUNT_LEN:
        raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
    if account.data[108] != AccountState.UNINITIALIZED:
        raise ProgramError.custom(TokenError.ALREADY_IN_USE)
    if not Rent.get().is_exempt(account.lamports, account.data_len()):
        raise ProgramError.custom(TokenError.NOT_RENT_EXEMPT)
    try:
        _unpack_mint(mint_info)
    except ProgramError:
        raise ProgramError.custom(TokenError.INVALID_MINT) from None
    account.data = TokenAccount(
        mint=mint_info.key,
        owner=owner,
        amount=0,
        delegate=None,
        state=AccountState.INITIALIZED,
        is_native=None,
        delegated_amount=0,
        close_authority=None,
    ).serialize()


def process_instruction(program_id: Pubkey, accounts: List[AccountInfo], data: bytes):
    """Processes a token program instruction."""
    try:
        parsed = INSTRUCTIONS_LAYOUT.parse(data)
    except Exception:
        raise ProgramError.custom(TokenError.INVALID_INSTRUCTION) from None
    instruction_type = parsed['instruction_type']
    args = parsed['args']
    account_info_iter = iter(accounts)

    if instruction_type == InstructionType.INITIALIZE_MINT:
        mint_info = next_account_info(account_info_iter)
        if mint_info.owner != TOKEN_PROGRAM_ID:
            raise ProgramError(ErrorKind.INCORRECT_PROGRAM_ID)
        if mint_info.data_len() != MINT_LEN:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
        if Mint.decode(bytes(mint_info.data)).is_initialized:
            raise ProgramError.custom(TokenError.ALREADY_IN_USE)
        if not Rent.get().is_exempt(mint_info.lamports, mint_info.data_len()):
            raise ProgramError.custom(TokenError.NOT_RENT_EXEMPT)
        freeze_authority = args['freeze_authority']
        mint_info.data = Mint(
            mint_authority=Pubkey(args['mint_authority']),
            supply=0,
            decimals=args['decimals'],
            is_initialized=True,
            freeze_authority=Pubkey(freeze_authority) if freeze_authority else None,
        ).serialize()

    elif instruction_type == InstructionType.INITIALIZE_ACCOUNT:
        account = next_account_info(account_info_iter)
        mint_info = next_account_info(account_info_iter)
        owner = next_account_info(account_info_iter)
        _initialize_account(account, mint_info, owner.key)

    elif instruction_type == InstructionType.INITIALIZE_ACCOUNT3:
        account = next_account_info(account_info_iter)
        mint_info = next_account_info(account_info_iter)
        _initialize_account(account, mint_info, Pubkey(args['owner']))

    elif instruction_type == InstructionType.TRANSFER:
        source_info = next_account_info(account_info_iter)
        destination_info = next_account_info(account_info_iter)
        authority = next_account_info(account_info_iter)
        source = _unpack_account(source_info)
        destination = _unpack_account(destination_info)
        if source.mint != destination.mint:
            raise ProgramError.custom(TokenError.MINT_MISMATCH)
        amount = args['amount']
        source = _debit_with_authority(source, authority, amount)
        if source_info.key == destination_info.key:
            return
        source_info.data = source.serialize()
        destination_info.data = destination._replace(amount=destination.amount + amount).serialize()

    elif instruction_type == InstructionType.APPROVE:
        source_info = next_account_info(account_info_iter)
        delegate = next_account_info(account_info_iter)
        owner = next_account_info(account_info_iter)
        source = _unpack_account(source_info)
        _validate_owner(source.owner, owner)
        source_info.data = source._replace(delegate=delegate.key, delegated_amount=args['amount']).serialize()

    elif instruction_type == InstructionType.MINT_TO:
        mint_info = next_account_info(account_info_iter)
        destination_info = next_account_info(account_info_iter)
        authority = next_account_info(account_info_iter)
        destination = _unpack_account(destination_info)
        if destination.mint != mint_info.key:
            raise ProgramError.custom(TokenError.MINT_MISMATCH)
        mint = _unpack_mint(mint_info)
        if mint.mint_authority is None:
            raise ProgramError.custom(TokenError.FIXED_SUPPLY)
        _validate_owner(mint.mint_authority, authority)
        amount = args['amount']
        if mint.supply + amount > U64_MAX:
            raise ProgramError.custom(TokenError.OVERFLOW)
        mint_info.data = mint._replace(supply=mint.supply + amount).serialize()
        destination_info.data = destination._replace(amount=destination.amount + amount).serialize()

    elif instruction_type == InstructionType.BURN:
        source_info = next_account_info(account_info_iter)
        mint_info = next_account_info(account_info_iter)
        authority = next_account_info(account_info_iter)
        source = _unpack_account(source_info)
        if source.mint != mint_info.key:
            raise ProgramError.custom(TokenError.MINT_MISMATCH)
        mint = _unpack_mint(mint_info)
        amount = args['amount']
        source_info.data = _debit_with_authority(source, authority, amount).serialize()
        mint_info.data = mint._replace(supply=mint.supply - amount).serialize()

    else:
        raise ProgramError.custom(TokenError.INVALID_INSTRUCTION)


class AssociatedTokenInstruction(IntEnum):
    CREATE = 0
    CREATE_IDEMPOTENT = 1


def process_associated_token_instruction(program_id: Pubkey, accounts: List[AccountInfo], data: bytes):
    """Creates the token account derived from a wallet and a mint."""
    instruction = AssociatedTokenInstruction(data[0]) if data else AssociatedTokenInstruction.CREATE
    account_info_iter = iter(accounts)
    payer = next_account_info(account_info_iter)
    associated_account = next_account_info(account_info_iter)
    wallet = next_account_info(account_info_iter)
    mint_info = next_account_info(account_info_iter)
    next_account_info(account_info_iter)
    token_program = next_account_info(account_info_iter)

    seeds = [bytes(wallet.key), bytes(token_program.key), bytes(mint_info.key)]
    address, bump = Pubkey.find_program_address(seeds, ASSOCIATED_TOKEN_PROGRAM_ID)
    if address != associated_account.key:
        msg("Error: Associated address does not match seed derivation")
        raise ProgramError(ErrorKind.INVALID_SEEDS)

    if instruction == AssociatedTokenInstruction.CREATE_IDEMPOTENT and associated_account.owner == TOKEN_PROGRAM_ID:
        token_account = _unpack_account(associated_account)
        if token_account.owner != wallet.key:
            raise ProgramError(ErrorKind.ILLEGAL_OWNER)
        return
    if associated_account.owner != SYSTEM_PROGRAM_ID:
        raise ProgramError(ErrorKind.ILLEGAL_OWNER)

    required_lamports = max(0, Rent.get().minimum_balance(ACCOUNT_LEN) - associated_account.lamports)
    if required_lamports > 0:
        invoke(
            sys.transfer(sys.TransferParams(
                from_pubkey=payer.key, to_pubkey=associated_account.key, lamports=required_lamports)),
            [payer, associated_account],
        )
    signer_seeds = seeds + [bytes([bump])]
    invoke_signed(
        sys.allocate(sys.AllocateParams(pubkey=associated_account.key, space=ACCOUNT_LEN)),
        [associated_account],
        [signer_seeds],
    )
    invoke_signed(
        sys.assign(sys.AssignParams(pubkey=associated_account.key, owner=token_program.key)),
        [associated_account],
        [signer_seeds],
    )
    invoke(
        Instruction(
            program_id=token_program.key,
            accounts=[
                AccountMeta(pubkey=associated_account.key, is_signer=False, is_writable=True),
                AccountMeta(pubkey=mint_info.key, is_signer=False, is_writable=False),
            ],
            data=INSTRUCTIONS_LAYOUT.build(dict(
                instruction_type=InstructionType.INITIALIZE_ACCOUNT3,
                args=dict(owner=bytes(wallet.key)),
            )),
        ),
        [associated_account, mint_info],
    )
