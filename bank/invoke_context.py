"""Instruction execution: program dispatch, cross-program invocation and
account change verification."""

from contextvars import ContextVar
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from bank.account_info import Account, AccountInfo, AccountSnapshot
from bank.error import ErrorKind, ProgramError

Entrypoint = Callable[[Pubkey, List[AccountInfo], bytes], None]
"""Signature of a program's ``process_instruction``."""

MAX_INVOKE_DEPTH: int = 5
"""Top-level instruction plus four levels of cross-program invocation."""

MAX_RETURN_DATA: int = 1024

_current: ContextVar[Optional["InvokeContext"]] = ContextVar("invoke_context", default=None)


def current_context() -> "InvokeContext":
    context = _current.get()
    if context is None:
        raise RuntimeError("No instruction is being processed")
    return context


class Frame:
    """One level of the invocation stack."""

    def __init__(self, program_id: Pubkey, account_infos: List[AccountInfo]):
        self.program_id = program_id
        self.account_infos = account_infos
        self.writable = {info.key for info in account_infos if info.is_writable}
        self.signers = {info.key for info in account_infos if info.is_signer}
        self.pre: Dict[Pubkey, AccountSnapshot] = {}
        self.snapshot()

    def snapshot(self):
        self.pre = {info.key: info.account.snapshot() for info in self.account_infos}


class InvokeContext:
    """State shared by every instruction of one transaction."""

    def __init__(self, programs: Dict[Pubkey, Entrypoint], accounts: Dict[Pubkey, Account], clock, rent):
        self.programs = programs
        self.accounts = accounts
        self.clock = clock
        self.rent = rent
        self.logs: List[str] = []
        self.return_data: Optional[Tuple[Pubkey, bytes]] = None
        self.stack: List[Frame] = []

    def __enter__(self) -> "InvokeContext":
        self._token = _current.set(self)
        return self

    def __exit__(self, *exc):
        _current.reset(self._token)

    def log(self, message: str):
        self.logs.append(message)

    def process_instruction(self, instruction: Instruction):
        """Runs ``instruction`` and verifies the changes its program made."""
        program_id = instruction.program_id
        entrypoint = self.programs.get(program_id)
        if entrypoint is None:
            raise ProgramError(ErrorKind.UNSUPPORTED_PROGRAM_ID)
        if len(self.stack) >= MAX_INVOKE_DEPTH:
            raise ProgramError(ErrorKind.CALL_DEPTH)

        account_infos = []
        for meta in instruction.accounts:
            account = self.accounts.get(meta.pubkey)
            if account is None:
                raise ProgramError(ErrorKind.NOT_ENOUGH_ACCOUNT_KEYS)
            account_infos.append(AccountInfo(meta.pubkey, meta.is_signer, meta.is_writable, account))

        frame = Frame(program_id, account_infos)
        self.stack.append(frame)
        self.log(f"Program {program_id} invoke [{len(self.stack)}]")
        try:
            entrypoint(program_id, account_infos, bytes(instruction.data))
            self.verify(frame)
        except ProgramError as e:
            self.log(f"Program {program_id} failed: {e}")
            raise
        finally:
            self.stack.pop()
        self.log(f"Program {program_id} success")

    def invoke_signed(self, instruction: Instruction, account_infos: Sequence[AccountInfo],
                      signers_seeds: Sequence[Sequence[bytes]]):
        """Cross-program invocation from the program on top of the stack.

        The callee may only receive signer and writable privileges the caller
        already holds, or signatures of addresses derived from the caller's
        program id and ``signers_seeds``.
        """
        caller = self.stack[-1]
        self.verify(caller)

        signers = set(caller.signers)
        for seeds in signers_seeds:
            signers.add(Pubkey.create_program_address(list(seeds), caller.program_id))
        provided = {info.key for info in account_infos}
        for meta in instruction.accounts:
            if meta.pubkey not in provided:
                raise ProgramError(ErrorKind.NOT_ENOUGH_ACCOUNT_KEYS)
            if meta.is_signer and meta.pubkey not in signers:
                self.log(f"{meta.pubkey}'s signer privilege escalated")
                raise ProgramError(ErrorKind.PRIVILEGE_ESCALATION)
            if meta.is_writable and meta.pubkey not in caller.writable:
                self.log(f"{meta.pubkey}'s writable privilege escalated")
                raise ProgramError(ErrorKind.PRIVILEGE_ESCALATION)

        self.process_instruction(instruction)
        caller.snapshot()

    def verify(self, frame: Frame):
        """Checks the changes made by ``frame``'s program against account ownership rules."""
        pre_total = 0
        post_total = 0
        for key, pre in frame.pre.items():
            account = self.accounts[key]
            writable = key in frame.writable
            owned = pre.owner == frame.program_id
            pre_total += pre.lamports
            post_total += account.lamports

            if account.owner != pre.owner:
                if not writable or not owned or any(account.data):
                    raise ProgramError(ErrorKind.MODIFIED_PROGRAM_ID)
            if account.lamports != pre.lamports:
                if not writable:
                    raise ProgramError(ErrorKind.READONLY_LAMPORT_CHANGE)
                if account.lamports < pre.lamports and not owned:
                    raise ProgramError(ErrorKind.EXTERNAL_ACCOUNT_LAMPORT_SPEND)
            if bytes(account.data) != pre.data:
                if not writable:
                    raise ProgramError(ErrorKind.READONLY_DATA_MODIFIED)
                if not owned:
                    raise ProgramError(ErrorKind.EXTERNAL_ACCOUNT_DATA_MODIFIED)
        if pre_total != post_total:
            raise ProgramError(ErrorKind.UNBALANCED_INSTRUCTION)
        frame.snapshot()

    def set_return_data(self, data: bytes):
        if len(data) > MAX_RETURN_DATA:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)
        self.return_data = (self.stack[-1].program_id, bytes(data))
