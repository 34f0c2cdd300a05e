"""SPL Single-Validator Stake Pool Errors."""

from enum import IntEnum

from bank.error import ErrorKind, ProgramError


class SinglePoolError(IntEnum):
    """Custom errors returned by the pool program."""

    INVALID_POOL_ACCOUNT = 0
    INVALID_POOL_STAKE_ACCOUNT = 1
    INVALID_POOL_MINT = 2
    INVALID_POOL_STAKE_AUTHORITY = 3
    INVALID_POOL_MINT_AUTHORITY = 4
    INVALID_POOL_MPL_AUTHORITY = 5
    INVALID_METADATA_ACCOUNT = 6
    INVALID_METADATA_SIGNER = 7
    DEPOSIT_TOO_SMALL = 8
    WITHDRAWAL_TOO_SMALL = 9
    WITHDRAWAL_TOO_LARGE = 10
    SIGNATURE_MISSING = 11
    WRONG_STAKE_STAKE = 12
    ARITHMETIC_OVERFLOW = 13
    UNEXPECTED_MATH_ERROR = 14
    LEGACY_VOTE_ACCOUNT = 15
    UNPARSEABLE_VOTE_ACCOUNT = 16
    WRONG_RENT_AMOUNT = 17
    INVALID_POOL_STAKE_ACCOUNT_USAGE = 18
    ALREADY_INITIALIZED = 19
    INVALID_POOL_ONRAMP_ACCOUNT = 20
    ONRAMP_DOESNT_EXIST = 21
    INVALID_VALIDATOR = 22
    WRONG_VALIDATOR = 23
    STAKE_NOT_FULLY_ACTIVE = 24
    POOL_WOULD_BE_UNDERSIZED = 25
    INSUFFICIENT_WITHDRAW_AMOUNT = 26

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    SinglePoolError.INVALID_POOL_ACCOUNT:
        "Error: Provided pool account has the wrong address for its vote account, is uninitialized, "
        "or is otherwise invalid.",
    SinglePoolError.INVALID_POOL_STAKE_ACCOUNT:
        "Error: Provided pool stake account does not match address derived from the pool account.",
    SinglePoolError.INVALID_POOL_MINT:
        "Error: Provided pool mint does not match address derived from the pool account.",
    SinglePoolError.INVALID_POOL_STAKE_AUTHORITY:
        "Error: Provided pool stake authority does not match address derived from the pool account.",
    SinglePoolError.INVALID_POOL_MINT_AUTHORITY:
        "Error: Provided pool mint authority does not match address derived from the pool account.",
    SinglePoolError.INVALID_POOL_MPL_AUTHORITY:
        "Error: Provided pool MPL authority does not match address derived from the pool account.",
    SinglePoolError.INVALID_METADATA_ACCOUNT:
        "Error: Provided metadata account does not match metadata account derived for pool mint.",
    SinglePoolError.INVALID_METADATA_SIGNER:
        "Error: Authorized withdrawer provided for metadata update does not match the vote account.",
    SinglePoolError.DEPOSIT_TOO_SMALL:
        "Error: Not enough lamports provided for deposit to result in one pool token.",
    SinglePoolError.WITHDRAWAL_TOO_SMALL:
        "Error: Not enough pool tokens provided to withdraw stake worth one lamport.",
    SinglePoolError.WITHDRAWAL_TOO_LARGE:
        "Error: Not enough stake to cover the provided quantity of pool tokens.",
    SinglePoolError.SIGNATURE_MISSING:
        "Error: Required signature is missing.",
    SinglePoolError.WRONG_STAKE_STAKE:
        "Error: Stake account is not in the state expected by the program.",
    SinglePoolError.ARITHMETIC_OVERFLOW:
        "Error: Unsigned subtraction crossed the zero.",
    SinglePoolError.UNEXPECTED_MATH_ERROR:
        "Error: A calculation failed unexpectedly.",
    SinglePoolError.LEGACY_VOTE_ACCOUNT:
        "Error: The V0_23_5 vote account type is unsupported and should be upgraded via `convert_to_current()`.",
    SinglePoolError.UNPARSEABLE_VOTE_ACCOUNT:
        "Error: Failed to parse vote account.",
    SinglePoolError.WRONG_RENT_AMOUNT:
        "Error: Incorrect number of lamports provided for rent-exemption when initializing.",
    SinglePoolError.INVALID_POOL_STAKE_ACCOUNT_USAGE:
        "Error: Attempted to deposit from or withdraw to pool stake account.",
    SinglePoolError.ALREADY_INITIALIZED:
        "Error: Attempted to initialize a pool that is already initialized.",
    SinglePoolError.INVALID_POOL_ONRAMP_ACCOUNT:
        "Error: Provided pool onramp account does not match address derived from the pool account.",
    SinglePoolError.ONRAMP_DOESNT_EXIST:
        "Error: The onramp account for this pool does not exist. "
        "InitializePool creates it alongside the pool stake account.",
    SinglePoolError.INVALID_VALIDATOR:
        "Error: Provided vote account is not owned by the vote program.",
    SinglePoolError.WRONG_VALIDATOR:
        "Error: Deposited stake is delegated to a different validator than the pool.",
    SinglePoolError.STAKE_NOT_FULLY_ACTIVE:
        "Error: Deposited stake must be fully active.",
    SinglePoolError.POOL_WOULD_BE_UNDERSIZED:
        "Error: Withdrawal would leave the pool stake account below its minimum balance.",
    SinglePoolError.INSUFFICIENT_WITHDRAW_AMOUNT:
        "Error: Withdrawal is too small to make the destination stake account rent-exempt.",
}


class SinglePoolException(ProgramError):
    """A pool error, surfaced to the runtime as a custom program error."""

    def __init__(self, error: SinglePoolError):
        super().__init__(ErrorKind.CUSTOM, int(error))
        self.error = error

    def __str__(self) -> str:
        return f"{self.error.name}: {self.error.message}"
