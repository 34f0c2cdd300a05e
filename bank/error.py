"""Program and transaction errors raised by the bank."""

from enum import Enum
from typing import List, Optional


class ErrorKind(Enum):
    """Builtin program error kinds."""

    CUSTOM = "Custom"
    INVALID_ARGUMENT = "InvalidArgument"
    INVALID_INSTRUCTION_DATA = "InvalidInstructionData"
    INVALID_ACCOUNT_DATA = "InvalidAccountData"
    ACCOUNT_DATA_TOO_SMALL = "AccountDataTooSmall"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    INCORRECT_PROGRAM_ID = "IncorrectProgramId"
    MISSING_REQUIRED_SIGNATURE = "MissingRequiredSignature"
    ACCOUNT_ALREADY_INITIALIZED = "AccountAlreadyInitialized"
    UNINITIALIZED_ACCOUNT = "UninitializedAccount"
    NOT_ENOUGH_ACCOUNT_KEYS = "NotEnoughAccountKeys"
    ARITHMETIC_OVERFLOW = "ArithmeticOverflow"
    INVALID_SEEDS = "InvalidSeeds"
    ILLEGAL_OWNER = "IllegalOwner"
    INVALID_ACCOUNT_OWNER = "InvalidAccountOwner"
    UNSUPPORTED_PROGRAM_ID = "UnsupportedProgramId"
    PRIVILEGE_ESCALATION = "PrivilegeEscalation"
    READONLY_LAMPORT_CHANGE = "ReadonlyLamportChange"
    READONLY_DATA_MODIFIED = "ReadonlyDataModified"
    EXTERNAL_ACCOUNT_LAMPORT_SPEND = "ExternalAccountLamportSpend"
    EXTERNAL_ACCOUNT_DATA_MODIFIED = "ExternalAccountDataModified"
    MODIFIED_PROGRAM_ID = "ModifiedProgramId"
    UNBALANCED_INSTRUCTION = "UnbalancedInstruction"
    INSUFFICIENT_FUNDS_FOR_RENT = "InsufficientFundsForRent"
    CALL_DEPTH = "CallDepth"


class ProgramError(Exception):
    """Error returned by a program while processing an instruction.

    Custom errors carry a program-specific ``code``; builtin errors only carry
    their ``kind``.
    """

    def __init__(self, kind: ErrorKind, code: Optional[int] = None):
        self.kind = kind
        self.code = code
        if kind == ErrorKind.CUSTOM:
            super().__init__(f"custom program error: {code:#x}")
        else:
            super().__init__(kind.value)

    @classmethod
    def custom(cls, code: int) -> "ProgramError":
        return cls(ErrorKind.CUSTOM, int(code))

    def __eq__(self, other) -> bool:
        if not isinstance(other, ProgramError):
            return NotImplemented
        return self.kind == other.kind and self.code == other.code

    def __hash__(self) -> int:
        return hash((self.kind, self.code))


class TransactionError(Exception):
    """A transaction failed; nothing it touched was committed.

    ``instruction_index`` is None when the failure is not attributable to a
    single instruction, e.g. an account left below its rent-exempt minimum.
    """

    def __init__(self, instruction_index: Optional[int], error: ProgramError, logs: List[str]):
        if instruction_index is None:
            super().__init__(f"Transaction failed: {error}")
        else:
            super().__init__(f"Error processing Instruction {instruction_index}: {error}")
        self.instruction_index = instruction_index
        self.error = error
        self.logs = logs
