"""Stake Program Constants."""

from solders.pubkey import Pubkey

STAKE_PROGRAM_ID = Pubkey.from_string("Stake11111111111111111111111111111111111111")
"""Public key that identifies the Stake program."""

SYSVAR_STAKE_CONFIG_ID = Pubkey.from_string("StakeConfig11111111111111111111111111111111")
"""Public key that identifies the Stake config sysvar."""

STAKE_LEN: int = 200
"""Size of stake account."""

LAMPORTS_PER_SOL: int = 1_000_000_000
"""Number of lamports per SOL"""

MINIMUM_DELEGATION: int = LAMPORTS_PER_SOL
"""Default minimum delegation enforced by the stake program"""

EPOCH_MAX: int = 2**64 - 1
"""Epoch sentinel for a delegation that was never deactivated."""

DEFAULT_WARMUP_COOLDOWN_RATE: float = 0.09
