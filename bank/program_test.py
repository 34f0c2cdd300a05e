"""Test harness: a bank preloaded with every program a single-validator pool talks to."""

from typing import Dict

from solders.pubkey import Pubkey
from solana.constants import SYSTEM_PROGRAM_ID
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

from bank.bank import DEFAULT_SLOTS_PER_EPOCH, Bank
from bank.client import BanksClient
from bank.invoke_context import Entrypoint
from bank.sysvar import Rent
from single_pool.constants import SINGLE_POOL_PROGRAM_ID
import single_pool.entrypoint
from spl_token.program import process_associated_token_instruction, process_instruction as process_token_instruction
from stake.constants import MINIMUM_DELEGATION, STAKE_PROGRAM_ID
from stake.program import StakeProgram
from system.program import process_instruction as process_system_instruction
from token_metadata.constants import METADATA_PROGRAM_ID
from token_metadata.program import process_instruction as process_metadata_instruction
from vote.constants import VOTE_PROGRAM_ID
from vote.program import process_instruction as process_vote_instruction


class ProgramTest:
    """Builds a :class:`Bank` and hands out a client connected to it."""

    def __init__(self, slots_per_epoch: int = DEFAULT_SLOTS_PER_EPOCH,
                 minimum_delegation: int = MINIMUM_DELEGATION, rent: Rent = Rent()):
        self.slots_per_epoch = slots_per_epoch
        self.rent = rent
        self.programs: Dict[Pubkey, Entrypoint] = {
            SYSTEM_PROGRAM_ID: process_system_instruction,
            STAKE_PROGRAM_ID: StakeProgram(minimum_delegation).process_instruction,
            VOTE_PROGRAM_ID: process_vote_instruction,
            TOKEN_PROGRAM_ID: process_token_instruction,
            ASSOCIATED_TOKEN_PROGRAM_ID: process_associated_token_instruction,
            METADATA_PROGRAM_ID: process_metadata_instruction,
            SINGLE_POOL_PROGRAM_ID: single_pool.entrypoint.process_instruction,
        }

    def add_program(self, program_id: Pubkey, entrypoint: Entrypoint):
        self.programs[program_id] = entrypoint

    def start(self) -> BanksClient:
        return BanksClient(Bank(self.programs, rent=self.rent, slots_per_epoch=self.slots_per_epoch))
