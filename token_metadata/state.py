"""Token metadata account state."""

from enum import IntEnum
from typing import NamedTuple

from construct import Bytes, Flag, Padded, PascalString, Struct, Int8ul, Int16ul, Int32ul  # type: ignore

from solders.pubkey import Pubkey

from token_metadata.constants import MAX_METADATA_LEN, MAX_NAME_LENGTH, MAX_SYMBOL_LENGTH, MAX_URI_LENGTH

PUBLIC_KEY_LAYOUT = Bytes(32)


def _puff(value: str, length: int) -> str:
    return value + "\x00" * (length - len(value.encode("utf8")))


class Key(IntEnum):
    UNINITIALIZED = 0
    METADATA_V1 = 4


class Metadata(NamedTuple):
    """Name, symbol and uri attached to a mint.

    Strings are stored null-padded to their maximum length; ``decode`` strips
    the padding.
    """
    update_authority: Pubkey
    mint: Pubkey
    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int = 0
    primary_sale_happened: bool = False
    is_mutable: bool = True

    @classmethod
    def decode(cls, data: bytes):
        parsed = METADATA_LAYOUT.parse(data)
        return Metadata(
            update_authority=Pubkey(parsed['update_authority']),
            mint=Pubkey(parsed['mint']),
            name=parsed['name'].rstrip("\x00"),
            symbol=parsed['symbol'].rstrip("\x00"),
            uri=parsed['uri'].rstrip("\x00"),
            seller_fee_basis_points=parsed['seller_fee_basis_points'],
            primary_sale_happened=parsed['primary_sale_happened'],
            is_mutable=parsed['is_mutable'],
        )

    def serialize(self) -> bytes:
        return METADATA_LAYOUT.build(dict(
            key=Key.METADATA_V1,
            update_authority=bytes(self.update_authority),
            mint=bytes(self.mint),
            name=_puff(self.name, MAX_NAME_LENGTH),
            symbol=_puff(self.symbol, MAX_SYMBOL_LENGTH),
            uri=_puff(self.uri, MAX_URI_LENGTH),
            seller_fee_basis_points=self.seller_fee_basis_points,
            creators_option=0,
            primary_sale_happened=self.primary_sale_happened,
            is_mutable=self.is_mutable,
        ))


METADATA_LAYOUT = Padded(
    MAX_METADATA_LEN,
    Struct(
        "key" / Int8ul,
        "update_authority" / PUBLIC_KEY_LAYOUT,
        "mint" / PUBLIC_KEY_LAYOUT,
        "name" / PascalString(Int32ul, "utf8"),
        "symbol" / PascalString(Int32ul, "utf8"),
        "uri" / PascalString(Int32ul, "utf8"),
        "seller_fee_basis_points" / Int16ul,
        "creators_option" / Int8ul,
        "primary_sale_happened" / Flag,
        "is_mutable" / Flag,
    ),
)
