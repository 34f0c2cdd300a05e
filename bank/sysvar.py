"""Sysvar accounts: clock and rent."""

from typing import NamedTuple

from construct import Struct, Float64l, Int8ul, Int64sl, Int64ul  # type: ignore
from solders.pubkey import Pubkey
from solders.sysvar import CLOCK, RENT

from bank.account_info import AccountInfo
from bank.error import ErrorKind, ProgramError
from bank.invoke_context import current_context

SYSVAR_OWNER_ID = Pubkey.from_string("Sysvar1111111111111111111111111111111111111")
"""Owner of all sysvar accounts."""

ACCOUNT_STORAGE_OVERHEAD: int = 128
"""Bytes charged for every account on top of its data."""

DEFAULT_LAMPORTS_PER_BYTE_YEAR: int = 3480
DEFAULT_EXEMPTION_THRESHOLD: float = 2.0
DEFAULT_BURN_PERCENT: int = 50

CLOCK_LAYOUT = Struct(
    "slot" / Int64ul,
    "epoch_start_timestamp" / Int64sl,
    "epoch" / Int64ul,
    "leader_schedule_epoch" / Int64ul,
    "unix_timestamp" / Int64sl,
)

RENT_LAYOUT = Struct(
    "lamports_per_byte_year" / Int64ul,
    "exemption_threshold" / Float64l,
    "burn_percent" / Int8ul,
)


class Clock(NamedTuple):
    """Current slot and epoch."""
    slot: int
    epoch_start_timestamp: int
    epoch: int
    leader_schedule_epoch: int
    unix_timestamp: int

    def serialize(self) -> bytes:
        return CLOCK_LAYOUT.build(self._asdict())

    @classmethod
    def decode(cls, data: bytes) -> "Clock":
        parsed = CLOCK_LAYOUT.parse(data)
        return Clock(
            slot=parsed['slot'],
            epoch_start_timestamp=parsed['epoch_start_timestamp'],
            epoch=parsed['epoch'],
            leader_schedule_epoch=parsed['leader_schedule_epoch'],
            unix_timestamp=parsed['unix_timestamp'],
        )

    @classmethod
    def from_account_info(cls, account_info: AccountInfo) -> "Clock":
        if account_info.key != CLOCK:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)
        return cls.decode(bytes(account_info.data))

    @classmethod
    def get(cls) -> "Clock":
        return current_context().clock


class Rent(NamedTuple):
    """Rent-exemption parameters."""
    lamports_per_byte_year: int = DEFAULT_LAMPORTS_PER_BYTE_YEAR
    exemption_threshold: float = DEFAULT_EXEMPTION_THRESHOLD
    burn_percent: int = DEFAULT_BURN_PERCENT

    def minimum_balance(self, data_len: int) -> int:
        """Minimum lamports for an account of ``data_len`` bytes to be rent exempt."""
        bytes_ = ACCOUNT_STORAGE_OVERHEAD + data_len
        return int(bytes_ * self.lamports_per_byte_year * self.exemption_threshold)

    def is_exempt(self, lamports: int, data_len: int) -> bool:
        return lamports >= self.minimum_balance(data_len)

    def serialize(self) -> bytes:
        return RENT_LAYOUT.build(self._asdict())

    @classmethod
    def decode(cls, data: bytes) -> "Rent":
        parsed = RENT_LAYOUT.parse(data)
        return Rent(
            lamports_per_byte_year=parsed['lamports_per_byte_year'],
            exemption_threshold=parsed['exemption_threshold'],
            burn_percent=parsed['burn_percent'],
        )

    @classmethod
    def from_account_info(cls, account_info: AccountInfo) -> "Rent":
        if account_info.key != RENT:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)
        return cls.decode(bytes(account_info.data))

    @classmethod
    def get(cls) -> "Rent":
        return current_context().rent
