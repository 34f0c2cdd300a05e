"""Accounts as seen by the bank and by programs."""

from typing import NamedTuple

from solders.pubkey import Pubkey
from solana.constants import SYSTEM_PROGRAM_ID


class Account:
    """Mutable account record shared by every view of the same address."""

    __slots__ = ("lamports", "data", "owner", "executable")

    def __init__(self, lamports: int = 0, data: bytes = bytes(),
                 owner: Pubkey = SYSTEM_PROGRAM_ID, executable: bool = False):
        self.lamports = lamports
        self.data = bytearray(data)
        self.owner = owner
        self.executable = executable

    def copy(self) -> "Account":
        return Account(self.lamports, bytes(self.data), self.owner, self.executable)

    def snapshot(self) -> "AccountSnapshot":
        return AccountSnapshot(self.lamports, bytes(self.data), self.owner)


class AccountSnapshot(NamedTuple):
    """Frozen copy of an account, used to verify what a program changed."""
    lamports: int
    data: bytes
    owner: Pubkey


class AccountInfo:
    """An account passed to a program, with the privileges of that invocation."""

    def __init__(self, key: Pubkey, is_signer: bool, is_writable: bool, account: Account):
        self.key = key
        self.is_signer = is_signer
        self.is_writable = is_writable
        self.account = account

    @property
    def lamports(self) -> int:
        return self.account.lamports

    @lamports.setter
    def lamports(self, value: int):
        self.account.lamports = value

    @property
    def data(self) -> bytearray:
        return self.account.data

    @data.setter
    def data(self, value: bytes):
        self.account.data = bytearray(value)

    @property
    def owner(self) -> Pubkey:
        return self.account.owner

    @owner.setter
    def owner(self, value: Pubkey):
        self.account.owner = value

    @property
    def executable(self) -> bool:
        return self.account.executable

    def data_len(self) -> int:
        return len(self.account.data)

    def data_is_empty(self) -> bool:
        return len(self.account.data) == 0

    def __repr__(self) -> str:
        return (f"AccountInfo(key={self.key}, lamports={self.lamports}, owner={self.owner}, "
                f"data_len={self.data_len()}, signer={self.is_signer}, writable={self.is_writable})")
