"""Token Metadata Program Instructions."""

from enum import IntEnum
from typing import NamedTuple, Optional

from construct import Flag, GreedyString, If, Prefixed, Struct, Switch, Int8ul, Int16ul, Int32ul, this  # type: ignore

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solana.constants import SYSTEM_PROGRAM_ID

from token_metadata.constants import METADATA_PROGRAM_ID
from token_metadata.state import PUBLIC_KEY_LAYOUT


class DataV2(NamedTuple):
    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int = 0

    def as_dict(self) -> dict:
        return dict(
            name=self.name,
            symbol=self.symbol,
            uri=self.uri,
            seller_fee_basis_points=self.seller_fee_basis_points,
            creators_option=0,
            collection_option=0,
            uses_option=0,
        )


class CreateMetadataAccountV3Params(NamedTuple):
    """Create a metadata account for a mint."""

    metadata: Pubkey
    """`[w]` Metadata account, derived from the mint."""
    mint: Pubkey
    """`[]` Mint of the token."""
    mint_authority: Pubkey
    """`[s]` Mint authority."""
    payer: Pubkey
    """`[s, w]` Payer for the metadata account."""
    update_authority: Pubkey
    """`[]` Update authority recorded in the metadata."""

    data: DataV2
    """Name, symbol and uri."""
    is_mutable: bool = True
    """Whether the data can be updated later."""


class UpdateMetadataAccountV2Params(NamedTuple):
    """Update a metadata account."""

    metadata: Pubkey
    """`[w]` Metadata account."""
    update_authority: Pubkey
    """`[s]` Current update authority."""

    data: Optional[DataV2] = None
    """New name, symbol and uri, if changing."""
    new_update_authority: Optional[Pubkey] = None
    """New update authority, if changing."""
    primary_sale_happened: Optional[bool] = None
    is_mutable: Optional[bool] = None


class InstructionType(IntEnum):
    """Token Metadata Instruction Types."""

    UPDATE_METADATA_ACCOUNT_V2 = 15
    CREATE_METADATA_ACCOUNT_V3 = 33


DATA_V2_LAYOUT = Struct(
    "name" / Prefixed(Int32ul, GreedyString("utf8")),
    "symbol" / Prefixed(Int32ul, GreedyString("utf8")),
    "uri" / Prefixed(Int32ul, GreedyString("utf8")),
    "seller_fee_basis_points" / Int16ul,
    "creators_option" / Int8ul,
    "collection_option" / Int8ul,
    "uses_option" / Int8ul,
)

CREATE_METADATA_ACCOUNT_V3_LAYOUT = Struct(
    "data" / DATA_V2_LAYOUT,
    "is_mutable" / Flag,
    "collection_details_option" / Int8ul,
)

UPDATE_METADATA_ACCOUNT_V2_LAYOUT = Struct(
    "data_option" / Int8ul,
    "data" / If(this.data_option == 1, DATA_V2_LAYOUT),
    "new_update_authority_option" / Int8ul,
    "new_update_authority" / If(this.new_update_authority_option == 1, PUBLIC_KEY_LAYOUT),
    "primary_sale_happened_option" / Int8ul,
    "primary_sale_happened" / If(this.primary_sale_happened_option == 1, Flag),
    "is_mutable_option" / Int8ul,
    "is_mutable" / If(this.is_mutable_option == 1, Flag),
)

INSTRUCTIONS_LAYOUT = Struct(
    "instruction_type" / Int8ul,
    "args"
    / Switch(
        lambda this: this.instruction_type,
        {
            InstructionType.UPDATE_METADATA_ACCOUNT_V2: UPDATE_METADATA_ACCOUNT_V2_LAYOUT,
            InstructionType.CREATE_METADATA_ACCOUNT_V3: CREATE_METADATA_ACCOUNT_V3_LAYOUT,
        },
    ),
)


def create_metadata_accounts_v3(params: CreateMetadataAccountV3Params) -> Instruction:
    """Creates an instruction to create the metadata account of a mint."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.metadata, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=params.mint_authority, is_signer=True, is_writable=False),
            AccountMeta(pubkey=params.payer, is_signer=True, is_writable=True),
            AccountMeta(pubkey=params.update_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
        program_id=METADATA_PROGRAM_ID,
        data=INSTRUCTIONS_LAYOUT.build(
            dict(
                instruction_type=InstructionType.CREATE_METADATA_ACCOUNT_V3,
                args=dict(
                    data=params.data.as_dict(),
                    is_mutable=params.is_mutable,
                    collection_details_option=0,
                ),
            )
        )
    )


def update_metadata_accounts_v2(params: UpdateMetadataAccountV2Params) -> Instruction:
    """Creates an instruction to update the metadata account of a mint."""
    return Instruction(
        accounts=[
            AccountMeta(pubkey=params.metadata, is_signer=False, is_writable=True),
            AccountMeta(pubkey=params.update_authority, is_signer=True, is_writable=False),
        ],
        program_id=METADATA_PROGRAM_ID,
        data=INSTRUCTIONS_LAYOUT.build(
            dict(
                instruction_type=InstructionType.UPDATE_METADATA_ACCOUNT_V2,
                args=dict(
                    data_option=0 if params.data is None else 1,
                    data=None if params.data is None else params.data.as_dict(),
                    new_update_authority_option=0 if params.new_update_authority is None else 1,
                    new_update_authority=None if params.new_update_authority is None
                    else bytes(params.new_update_authority),
                    primary_sale_happened_option=0 if params.primary_sale_happened is None else 1,
                    primary_sale_happened=params.primary_sale_happened,
                    is_mutable_option=0 if params.is_mutable is None else 1,
                    is_mutable=params.is_mutable,
                ),
            )
        )
    )
