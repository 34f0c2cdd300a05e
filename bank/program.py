"""Runtime services available to programs while they process an instruction."""

from typing import Iterator, Optional, Sequence, Tuple

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from bank.account_info import AccountInfo
from bank.error import ErrorKind, ProgramError
from bank.invoke_context import current_context


def msg(message: str):
    """Writes ``message`` to the transaction log."""
    current_context().log(f"Program log: {message}")


def invoke(instruction: Instruction, account_infos: Sequence[AccountInfo]):
    invoke_signed(instruction, account_infos, [])


def invoke_signed(instruction: Instruction, account_infos: Sequence[AccountInfo],
                  signers_seeds: Sequence[Sequence[bytes]]):
    current_context().invoke_signed(instruction, account_infos, signers_seeds)


def set_return_data(data: bytes):
    current_context().set_return_data(data)


def get_return_data() -> Optional[Tuple[Pubkey, bytes]]:
    return current_context().return_data


def next_account_info(account_info_iter: Iterator[AccountInfo]) -> AccountInfo:
    """Takes the next account from the instruction's account list."""
    try:
        return next(account_info_iter)
    except StopIteration:
        raise ProgramError(ErrorKind.NOT_ENOUGH_ACCOUNT_KEYS) from None
