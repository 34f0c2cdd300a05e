"""Program entrypoint."""

from typing import List

from solders.pubkey import Pubkey

from bank.account_info import AccountInfo
from bank.program import msg
from single_pool import processor
from single_pool.error import SinglePoolException


def process_instruction(program_id: Pubkey, accounts: List[AccountInfo], data: bytes):
    try:
        processor.process(program_id, accounts, data)
    except SinglePoolException as e:
        msg(e.error.message)
        raise
