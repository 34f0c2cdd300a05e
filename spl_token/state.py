"""Token Program State."""

from enum import IntEnum
from typing import NamedTuple, Optional

from construct import Bytes, Struct, Int8ul, Int32ul, Int64ul  # type: ignore

from solders.pubkey import Pubkey

PUBLIC_KEY_LAYOUT = Bytes(32)

MINT_LEN: int = 82
"""Size of a mint account."""

ACCOUNT_LEN: int = 165
"""Size of a token account."""


class AccountState(IntEnum):
    UNINITIALIZED = 0
    INITIALIZED = 1
    FROZEN = 2


def _decode_optional_pubkey(option: int, key: bytes) -> Optional[Pubkey]:
    return Pubkey(key) if option else None


def _optional_pubkey_dict(name: str, key: Optional[Pubkey]) -> dict:
    return {
        f"{name}_option": 0 if key is None else 1,
        name: bytes(32) if key is None else bytes(key),
    }


class Mint(NamedTuple):
    """Token mint."""
    mint_authority: Optional[Pubkey]
    supply: int
    decimals: int
    is_initialized: bool
    freeze_authority: Optional[Pubkey]

    @classmethod
    def decode(cls, data: bytes):
        parsed = MINT_LAYOUT.parse(data)
        return Mint(
            mint_authority=_decode_optional_pubkey(parsed['mint_authority_option'], parsed['mint_authority']),
            supply=parsed['supply'],
            decimals=parsed['decimals'],
            is_initialized=bool(parsed['is_initialized']),
            freeze_authority=_decode_optional_pubkey(parsed['freeze_authority_option'], parsed['freeze_authority']),
        )

    def serialize(self) -> bytes:
        return MINT_LAYOUT.build(dict(
            supply=self.supply,
            decimals=self.decimals,
            is_initialized=int(self.is_initialized),
            **_optional_pubkey_dict('mint_authority', self.mint_authority),
            **_optional_pubkey_dict('freeze_authority', self.freeze_authority),
        ))


class TokenAccount(NamedTuple):
    """Token account holding a balance of one mint."""
    mint: Pubkey
    owner: Pubkey
    amount: int
    delegate: Optional[Pubkey]
    state: AccountState
    is_native: Optional[int]
    delegated_amount: int
    close_authority: Optional[Pubkey]

    @classmethod
    def decode(cls, data: bytes):
        parsed = ACCOUNT_LAYOUT.parse(data)
        return TokenAccount(
            mint=Pubkey(parsed['mint']),
            owner=Pubkey(parsed['owner']),
            amount=parsed['amount'],
            delegate=_decode_optional_pubkey(parsed['delegate_option'], parsed['delegate']),
            state=AccountState(parsed['state']),
            is_native=parsed['is_native'] if parsed['is_native_option'] else None,
            delegated_amount=parsed['delegated_amount'],
            close_authority=_decode_optional_pubkey(parsed['close_authority_option'], parsed['close_authority']),
        )

    def serialize(self) -> bytes:
        return ACCOUNT_LAYOUT.build(dict(
            mint=bytes(self.mint),
            owner=bytes(self.owner),
            amount=self.amount,
            state=self.state,
            is_native_option=0 if self.is_native is None else 1,
            is_native=self.is_native or 0,
            delegated_amount=self.delegated_amount,
            **_optional_pubkey_dict('delegate', self.delegate),
            **_optional_pubkey_dict('close_authority', self.close_authority),
        ))


MINT_LAYOUT = Struct(
    "mint_authority_option" / Int32ul,
    "mint_authority" / PUBLIC_KEY_LAYOUT,
    "supply" / Int64ul,
    "decimals" / Int8ul,
    "is_initialized" / Int8ul,
    "freeze_authority_option" / Int32ul,
    "freeze_authority" / PUBLIC_KEY_LAYOUT,
)

ACCOUNT_LAYOUT = Struct(
    "mint" / PUBLIC_KEY_LAYOUT,
    "owner" / PUBLIC_KEY_LAYOUT,
    "amount" / Int64ul,
    "delegate_option" / Int32ul,
    "delegate" / PUBLIC_KEY_LAYOUT,
    "state" / Int8ul,
    "is_native_option" / Int32ul,
    "is_native" / Int64ul,
    "delegated_amount" / Int64ul,
    "close_authority_option" / Int32ul,
    "close_authority" / PUBLIC_KEY_LAYOUT,
)
