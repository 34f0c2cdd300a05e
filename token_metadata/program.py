"""Token Metadata Program.

Creates and updates the name/symbol/uri record of a mint. Creators,
collections and editions are not supported.
"""

from enum import IntEnum
from typing import List

from solders.pubkey import Pubkey
import solders.system_program as sys
from solana.constants import SYSTEM_PROGRAM_ID
from spl.token.constants import TOKEN_PROGRAM_ID

from bank.account_info import AccountInfo
from bank.error import ErrorKind, ProgramError
from bank.program import invoke, invoke_signed, msg, next_account_info
from bank.sysvar import Rent
from spl_token.state import Mint
from token_metadata.constants import (
    MAX_METADATA_LEN, MAX_NAME_LENGTH, MAX_SYMBOL_LENGTH, MAX_URI_LENGTH, METADATA_PROGRAM_ID, METADATA_SEED_PREFIX,
)
from token_metadata.instructions import INSTRUCTIONS_LAYOUT, InstructionType
from token_metadata.state import Metadata


class MetadataError(IntEnum):
    """Token metadata program custom errors."""
    INSTRUCTION_UNPACK_ERROR = 0
    INSTRUCTION_PACK_ERROR = 1
    NOT_RENT_EXEMPT = 2
    ALREADY_INITIALIZED = 3
    UNINITIALIZED = 4
    INVALID_METADATA_KEY = 5
    INVALID_EDITION_KEY = 6
    UPDATE_AUTHORITY_INCORRECT = 7
    UPDATE_AUTHORITY_IS_NOT_SIGNER = 8
    NOT_MINT_AUTHORITY = 9
    INVALID_MINT_AUTHORITY = 10
    NAME_TOO_LONG = 11
    SYMBOL_TOO_LONG = 12
    URI_TOO_LONG = 13


def _check_data(data) -> None:
    if len(data['name'].encode("utf8")) > MAX_NAME_LENGTH:
        raise ProgramError.custom(MetadataError.NAME_TOO_LONG)
    if len(data['symbol'].encode("utf8")) > MAX_SYMBOL_LENGTH:
        raise ProgramError.custom(MetadataError.SYMBOL_TOO_LONG)
    if len(data['uri'].encode("utf8")) > MAX_URI_LENGTH:
        raise ProgramError.custom(MetadataError.URI_TOO_LONG)
    if data['creators_option'] or data['collection_option'] or data['uses_option']:
        msg("Creators, collections and uses are not supported")
        raise ProgramError.custom(MetadataError.INSTRUCTION_UNPACK_ERROR)


def _create_metadata_account(accounts: List[AccountInfo], args):
    account_info_iter = iter(accounts)
    metadata_info = next_account_info(account_info_iter)
    mint_info = next_account_info(account_info_iter)
    mint_authority = next_account_info(account_info_iter)
    payer = next_account_info(account_info_iter)
    update_authority = next_account_info(account_info_iter)

    seeds = [METADATA_SEED_PREFIX, bytes(METADATA_PROGRAM_ID), bytes(mint_info.key)]
    address, bump = Pubkey.find_program_address(seeds, METADATA_PROGRAM_ID)
    if address != metadata_info.key:
        raise ProgramError.custom(MetadataError.INVALID_METADATA_KEY)
    if metadata_info.owner != SYSTEM_PROGRAM_ID or not metadata_info.data_is_empty():
        msg("Metadata account already exists")
        raise ProgramError.custom(MetadataError.ALREADY_INITIALIZED)

    if mint_info.owner != TOKEN_PROGRAM_ID:
        raise ProgramError(ErrorKind.INCORRECT_PROGRAM_ID)
    mint = Mint.decode(bytes(mint_info.data))
    if mint.mint_authority != mint_authority.key:
        raise ProgramError.custom(MetadataError.INVALID_MINT_AUTHORITY)
    if not mint_authority.is_signer:
        raise ProgramError.custom(MetadataError.NOT_MINT_AUTHORITY)
    _check_data(args['data'])

    required_lamports = max(0, Rent.get().minimum_balance(MAX_METADATA_LEN) - metadata_info.lamports)
    if required_lamports > 0:
        invoke(
            sys.transfer(sys.TransferParams(
                from_pubkey=payer.key, to_pubkey=metadata_info.key, lamports=required_lamports)),
            [payer, metadata_info],
        )
    signer_seeds = seeds + [bytes([bump])]
    invoke_signed(
        sys.allocate(sys.AllocateParams(pubkey=metadata_info.key, space=MAX_METADATA_LEN)),
        [metadata_info],
        [signer_seeds],
    )
    invoke_signed(
        sys.assign(sys.AssignParams(pubkey=metadata_info.key, owner=METADATA_PROGRAM_ID)),
        [metadata_info],
        [signer_seeds],
    )

    data = args['data']
    metadata_info.data = Metadata(
        update_authority=update_authority.key,
        mint=mint_info.key,
        name=data['name'],
        symbol=data['symbol'],
        uri=data['uri'],
        seller_fee_basis_points=data['seller_fee_basis_points'],
        is_mutable=args['is_mutable'],
    ).serialize()


def _update_metadata_account(accounts: List[AccountInfo], args):
    account_info_iter = iter(accounts)
    metadata_info = next_account_info(account_info_iter)
    update_authority = next_account_info(account_info_iter)

    if metadata_info.owner != METADATA_PROGRAM_ID:
        raise ProgramError(ErrorKind.INCORRECT_PROGRAM_ID)
    metadata = Metadata.decode(bytes(metadata_info.data))
    if metadata.update_authority != update_authority.key:
        msg("Update authority is incorrect")
        raise ProgramError.custom(MetadataError.UPDATE_AUTHORITY_INCORRECT)
    if not update_authority.is_signer:
        raise ProgramError.custom(MetadataError.UPDATE_AUTHORITY_IS_NOT_SIGNER)

    if args['data'] is not None:
        if not metadata.is_mutable:
            raise ProgramError.custom(MetadataError.UPDATE_AUTHORITY_INCORRECT)
        data = args['data']
        _check_data(data)
        metadata = metadata._replace(
            name=data['name'],
            symbol=data['symbol'],
            uri=data['uri'],
            seller_fee_basis_points=data['seller_fee_basis_points'],
        )
    if args['new_update_authority'] is not None:
        metadata = metadata._replace(update_authority=Pubkey(args['new_update_authority']))
    if args['primary_sale_happened'] is not None:
        metadata = metadata._replace(primary_sale_happened=metadata.primary_sale_happened
                                     or args['primary_sale_happened'])
    if args['is_mutable'] is not None:
        metadata = metadata._replace(is_mutable=metadata.is_mutable and args['is_mutable'])
    metadata_info.data = metadata.serialize()


def process_instruction(program_id: Pubkey, accounts: List[AccountInfo], data: bytes):
    """Processes a token metadata instruction."""
    try:
        parsed = INSTRUCTIONS_LAYOUT.parse(data)
    except Exception:
        raise ProgramError.custom(MetadataError.INSTRUCTION_UNPACK_ERROR) from None
    if parsed['instruction_type'] == InstructionType.CREATE_METADATA_ACCOUNT_V3:
        _create_metadata_account(accounts, parsed['args'])
    elif parsed['instruction_type'] == InstructionType.UPDATE_METADATA_ACCOUNT_V2:
        _update_metadata_account(accounts, parsed['args'])
    else:
        raise ProgramError.custom(MetadataError.INSTRUCTION_UNPACK_ERROR)
