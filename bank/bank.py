"""In-process ledger: committed accounts, the clock, and atomic transaction processing."""

from typing import Dict, List, Optional

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.sysvar import CLOCK, RENT, STAKE_HISTORY
from solders.transaction import Transaction

from bank.account_info import Account
from bank.error import ErrorKind, ProgramError, TransactionError
from bank.invoke_context import Entrypoint, InvokeContext
from bank.sysvar import SYSVAR_OWNER_ID, Clock, Rent

NATIVE_LOADER_ID = Pubkey.from_string("NativeLoader1111111111111111111111111111111")
"""Owner of builtin program accounts."""

DEFAULT_SLOTS_PER_EPOCH: int = 32


class Bank:
    """Holds committed account state and applies transactions all-or-nothing."""

    def __init__(self, programs: Dict[Pubkey, Entrypoint], rent: Rent = Rent(),
                 slots_per_epoch: int = DEFAULT_SLOTS_PER_EPOCH):
        self.programs = dict(programs)
        self.rent = rent
        self.slots_per_epoch = slots_per_epoch
        self.accounts: Dict[Pubkey, Account] = {}
        self.clock = Clock(slot=0, epoch_start_timestamp=0, epoch=0, leader_schedule_epoch=1, unix_timestamp=0)
        for program_id in self.programs:
            self.accounts[program_id] = Account(1, bytes(), NATIVE_LOADER_ID, executable=True)
        self._store_sysvar(RENT, self.rent.serialize())
        self._store_sysvar(STAKE_HISTORY, bytes(8))
        self._store_sysvar(CLOCK, self.clock.serialize())

    def _store_sysvar(self, address: Pubkey, data: bytes):
        self.accounts[address] = Account(self.rent.minimum_balance(len(data)), data, SYSVAR_OWNER_ID)

    def get_account(self, address: Pubkey) -> Optional[Account]:
        account = self.accounts.get(address)
        return account.copy() if account else None

    def set_account(self, address: Pubkey, account: Account):
        """Overwrites an account directly, bypassing all program checks."""
        self.accounts[address] = account.copy()

    def airdrop(self, address: Pubkey, lamports: int):
        account = self.accounts.setdefault(address, Account())
        account.lamports += lamports

    def warp_to_slot(self, slot: int):
        epoch = slot // self.slots_per_epoch
        self.clock = self.clock._replace(
            slot=slot,
            epoch=epoch,
            leader_schedule_epoch=epoch + 1,
            epoch_start_timestamp=epoch * self.slots_per_epoch,
            unix_timestamp=slot,
        )
        self._store_sysvar(CLOCK, self.clock.serialize())

    def warp_to_epoch(self, epoch: int):
        self.warp_to_slot(epoch * self.slots_per_epoch)

    def process_transaction(self, txn: Transaction) -> List[str]:
        """Executes every instruction of ``txn``; returns the log messages.

        Instructions run against copies of the accounts; the copies are only
        committed once the whole transaction has succeeded.
        """
        txn.verify()
        message = txn.message
        keys = list(message.account_keys)
        header = message.header
        num_signers = header.num_required_signatures

        def is_writable(index: int) -> bool:
            if index < num_signers:
                return index < num_signers - header.num_readonly_signed_accounts
            return index < len(keys) - header.num_readonly_unsigned_accounts

        working = {
            key: self.accounts[key].copy() if key in self.accounts else Account()
            for key in keys
        }
        pre_exempt = {
            key: self.rent.is_exempt(account.lamports, len(account.data)) or account.lamports == 0
            for key, account in working.items()
        }

        with InvokeContext(self.programs, working, self.clock, self.rent) as context:
            for index, compiled in enumerate(message.instructions):
                instruction = Instruction(
                    program_id=keys[compiled.program_id_index],
                    data=bytes(compiled.data),
                    accounts=[
                        AccountMeta(pubkey=keys[i], is_signer=i < num_signers, is_writable=is_writable(i))
                        for i in compiled.accounts
                    ],
                )
                try:
                    context.process_instruction(instruction)
                except ProgramError as e:
                    raise TransactionError(index, e, context.logs) from e

        for key, account in working.items():
            if account.lamports == 0 or not pre_exempt[key]:
                continue
            if not self.rent.is_exempt(account.lamports, len(account.data)):
                context.log(f"Account {key} left with {account.lamports} lamports, below its rent-exempt minimum")
                raise TransactionError(None, ProgramError(ErrorKind.INSUFFICIENT_FUNDS_FOR_RENT), context.logs)

        for key, account in working.items():
            if account.executable:
                continue
            if account.lamports == 0:
                self.accounts.pop(key, None)
            else:
                self.accounts[key] = account
        return context.logs
