"""Vote account state."""

from enum import IntEnum
from typing import NamedTuple

from construct import Bytes, Struct, Int8ul, Int32ul  # type: ignore

from solders.pubkey import Pubkey

PUBLIC_KEY_LAYOUT = Bytes(32)


class VoteStateVersion(IntEnum):
    """Serialized vote state versions; only the first is not parseable by pools."""
    V0_23_5 = 0
    V1_14_11 = 1
    CURRENT = 2


class VoteState(NamedTuple):
    """Leading fields of a vote account, shared by every non-legacy version."""
    version: VoteStateVersion
    node_pubkey: Pubkey
    authorized_withdrawer: Pubkey
    commission: int

    @classmethod
    def decode(cls, data: bytes):
        parsed = VOTE_STATE_LAYOUT.parse(data)
        return VoteState(
            version=VoteStateVersion(parsed['version']),
            node_pubkey=Pubkey(parsed['node_pubkey']),
            authorized_withdrawer=Pubkey(parsed['authorized_withdrawer']),
            commission=parsed['commission'],
        )

    def serialize(self) -> bytes:
        return VOTE_STATE_LAYOUT.build(dict(
            version=self.version,
            node_pubkey=bytes(self.node_pubkey),
            authorized_withdrawer=bytes(self.authorized_withdrawer),
            commission=self.commission,
        ))


VOTE_STATE_LAYOUT = Struct(
    "version" / Int32ul,
    "node_pubkey" / PUBLIC_KEY_LAYOUT,
    "authorized_withdrawer" / PUBLIC_KEY_LAYOUT,
    "commission" / Int8ul,
)
