"""Async client over an in-process bank.

Exposes the subset of ``solana.rpc.async_api.AsyncClient`` used by the client
actions, so the same actions run against a test bank or a live cluster.
"""

from typing import Any, List, NamedTuple, Optional

from solders.account import Account as RpcAccount
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction
from solana.rpc.types import TxOpts

from bank.bank import Bank
from spl_token.state import Mint, TokenAccount


class Response(NamedTuple):
    value: Any


class LatestBlockhash(NamedTuple):
    blockhash: Hash
    last_valid_block_height: int


class EpochInfo(NamedTuple):
    absolute_slot: int
    epoch: int
    slot_index: int
    slots_in_epoch: int


class TokenAmount(NamedTuple):
    amount: str
    decimals: int


class BanksClient:
    """Serves reads from, and sends transactions to, a :class:`Bank`."""

    def __init__(self, bank: Bank):
        self.bank = bank
        self.logs: List[str] = []

    async def is_connected(self) -> bool:
        return True

    async def close(self):
        pass

    async def get_account_info(self, pubkey: Pubkey, commitment=None) -> Response:
        account = self.bank.get_account(pubkey)
        if account is None:
            return Response(None)
        return Response(RpcAccount(
            lamports=account.lamports,
            data=bytes(account.data),
            owner=account.owner,
            executable=account.executable,
            rent_epoch=0,
        ))

    async def get_balance(self, pubkey: Pubkey, commitment=None) -> Response:
        account = self.bank.get_account(pubkey)
        return Response(account.lamports if account else 0)

    async def get_minimum_balance_for_rent_exemption(self, usize: int, commitment=None) -> Response:
        return Response(self.bank.rent.minimum_balance(usize))

    async def get_latest_blockhash(self, commitment=None) -> Response:
        return Response(LatestBlockhash(blockhash=Hash.new_unique(), last_valid_block_height=self.bank.clock.slot))

    async def get_epoch_info(self, commitment=None) -> Response:
        clock = self.bank.clock
        return Response(EpochInfo(
            absolute_slot=clock.slot,
            epoch=clock.epoch,
            slot_index=clock.slot % self.bank.slots_per_epoch,
            slots_in_epoch=self.bank.slots_per_epoch,
        ))

    async def get_token_account_balance(self, pubkey: Pubkey, commitment=None) -> Response:
        token_account = TokenAccount.decode(bytes(self.bank.accounts[pubkey].data))
        mint = Mint.decode(bytes(self.bank.accounts[token_account.mint].data))
        return Response(TokenAmount(amount=str(token_account.amount), decimals=mint.decimals))

    async def get_token_supply(self, pubkey: Pubkey, commitment=None) -> Response:
        mint = Mint.decode(bytes(self.bank.accounts[pubkey].data))
        return Response(TokenAmount(amount=str(mint.supply), decimals=mint.decimals))

    async def send_transaction(self, txn: Transaction, opts: Optional[TxOpts] = None) -> Response:
        """Processes ``txn`` immediately; raises ``TransactionError`` on failure."""
        self.logs = []
        self.logs = self.bank.process_transaction(txn)
        return Response(txn.signatures[0])

    async def request_airdrop(self, pubkey: Pubkey, lamports: int, commitment=None) -> Response:
        self.bank.airdrop(pubkey, lamports)
        return Response(Signature.new_unique())

    async def confirm_transaction(self, tx_sig: Signature, commitment=None, sleep_seconds: float = 0.5,
                                  last_valid_block_height: Optional[int] = None) -> Response:
        return Response([None])

    async def warp_to_epoch(self, epoch: int):
        self.bank.warp_to_epoch(epoch)

    async def warp_to_next_epoch(self):
        self.bank.warp_to_epoch(self.bank.clock.epoch + 1)
