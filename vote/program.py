"""Vote Program.

Only account creation and withdrawer rotation are modelled; pools read the
validator identity and authorized withdrawer, nothing else.
"""

from typing import List

from solders.pubkey import Pubkey

from bank.account_info import AccountInfo
from bank.error import ErrorKind, ProgramError
from bank.program import msg
from bank.sysvar import Rent
from vote.constants import MAX_COMMISSION, VOTE_PROGRAM_ID, VOTE_STATE_LEN
from vote.instructions import INSTRUCTIONS_LAYOUT, InstructionType, VoteAuthorize
from vote.state import VoteState, VoteStateVersion


def process_instruction(program_id: Pubkey, accounts: List[AccountInfo], data: bytes):
    try:
        parsed = INSTRUCTIONS_LAYOUT.parse(data)
    except Exception:
        raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA) from None
    args = parsed['args']
    if args is None:
        raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA)
    if len(accounts) < 3:
        raise ProgramError(ErrorKind.NOT_ENOUGH_ACCOUNT_KEYS)
    vote_account = accounts[0]
    if vote_account.owner != VOTE_PROGRAM_ID:
        raise ProgramError(ErrorKind.INVALID_ACCOUNT_OWNER)

    if parsed['instruction_type'] == InstructionType.INITIALIZE:
        if len(accounts) < 4:
            raise ProgramError(ErrorKind.NOT_ENOUGH_ACCOUNT_KEYS)
        if vote_account.data_len() != VOTE_STATE_LEN:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA)
        if any(vote_account.data):
            raise ProgramError(ErrorKind.ACCOUNT_ALREADY_INITIALIZED)
        if not Rent.get().is_exempt(vote_account.lamports, vote_account.data_len()):
            raise ProgramError(ErrorKind.INSUFFICIENT_FUNDS)
        node = Pubkey(args['node'])
        if not any(account.key == node and account.is_signer for account in accounts):
            msg(f"Validator identity {node} must sign")
            raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)
        if args['commission'] > MAX_COMMISSION:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)
        state = VoteState(
            version=VoteStateVersion.CURRENT,
            node_pubkey=node,
            authorized_withdrawer=Pubkey(args['authorized_withdrawer']),
            commission=args['commission'],
        )
    elif parsed['instruction_type'] == InstructionType.AUTHORIZE:
        try:
            state = VoteState.decode(bytes(vote_account.data))
        except Exception:
            raise ProgramError(ErrorKind.INVALID_ACCOUNT_DATA) from None
        if args['vote_authorize'] != VoteAuthorize.WITHDRAWER:
            raise ProgramError(ErrorKind.INVALID_ARGUMENT)
        if not any(account.key == state.authorized_withdrawer and account.is_signer for account in accounts):
            raise ProgramError(ErrorKind.MISSING_REQUIRED_SIGNATURE)
        state = state._replace(authorized_withdrawer=Pubkey(args['new_authority']))
    else:
        raise ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA)

    serialized = state.serialize()
    vote_account.data[:len(serialized)] = serialized
