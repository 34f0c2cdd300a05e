"""SPL Single-Validator Stake Pool State."""

from enum import IntEnum
from typing import NamedTuple

from construct import Bytes, Flag, Struct, Int8ul  # type: ignore

from solders.pubkey import Pubkey

PUBLIC_KEY_LAYOUT = Bytes(32)


class AccountType(IntEnum):
    """Discriminator of accounts owned by the pool program."""
    UNINITIALIZED = 0
    POOL = 1


class SinglePool(NamedTuple):
    """Pool bound to one vote account, and the bump seeds of its derived accounts."""
    account_type: AccountType
    vote_account_address: Pubkey
    stake_bump_seed: int
    mint_bump_seed: int
    onramp_bump_seed: int
    stake_authority_bump_seed: int
    mint_authority_bump_seed: int
    mpl_authority_bump_seed: int
    has_metadata: bool

    @classmethod
    def decode(cls, data: bytes):
        parsed = SINGLE_POOL_LAYOUT.parse(data)
        return SinglePool(
            account_type=AccountType(parsed['account_type']),
            vote_account_address=Pubkey(parsed['vote_account_address']),
            stake_bump_seed=parsed['stake_bump_seed'],
            mint_bump_seed=parsed['mint_bump_seed'],
            onramp_bump_seed=parsed['onramp_bump_seed'],
            stake_authority_bump_seed=parsed['stake_authority_bump_seed'],
            mint_authority_bump_seed=parsed['mint_authority_bump_seed'],
            mpl_authority_bump_seed=parsed['mpl_authority_bump_seed'],
            has_metadata=parsed['has_metadata'],
        )

    def serialize(self) -> bytes:
        self_dict = self._asdict()
        self_dict['vote_account_address'] = bytes(self.vote_account_address)
        return SINGLE_POOL_LAYOUT.build(self_dict)


SINGLE_POOL_LAYOUT = Struct(
    "account_type" / Int8ul,
    "vote_account_address" / PUBLIC_KEY_LAYOUT,
    "stake_bump_seed" / Int8ul,
    "mint_bump_seed" / Int8ul,
    "onramp_bump_seed" / Int8ul,
    "stake_authority_bump_seed" / Int8ul,
    "mint_authority_bump_seed" / Int8ul,
    "mpl_authority_bump_seed" / Int8ul,
    "has_metadata" / Flag,
)
