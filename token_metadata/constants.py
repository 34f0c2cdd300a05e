"""Token Metadata Program Constants."""

from typing import Tuple

from solders.pubkey import Pubkey

METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")
"""Public key that identifies the Metaplex Token Metadata program."""

METADATA_SEED_PREFIX = b"metadata"
"""Seed used to avoid certain collision attacks."""

MAX_NAME_LENGTH: int = 32
MAX_SYMBOL_LENGTH: int = 10
MAX_URI_LENGTH: int = 200

MAX_METADATA_LEN: int = 679
"""Size of a metadata account."""


def find_metadata_account(
    mint_key: Pubkey
) -> Tuple[Pubkey, int]:
    """Generates the metadata account program address"""
    return Pubkey.find_program_address(
        [
            METADATA_SEED_PREFIX,
            bytes(METADATA_PROGRAM_ID),
            bytes(mint_key)
        ],
        METADATA_PROGRAM_ID
    )
