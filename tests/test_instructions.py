import pytest
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.transaction import Transaction

from bank.error import ErrorKind, ProgramError, TransactionError
from single_pool.constants import SINGLE_POOL_PROGRAM_ID, find_pool_address, find_pool_stake_authority_address
from single_pool.error import SinglePoolError, SinglePoolException
import single_pool.instructions as sp


def test_withdraw_stake_data():
    authority = Keypair().pubkey()
    ix = sp.withdraw_stake_with_pool(
        SINGLE_POOL_PROGRAM_ID, Keypair().pubkey(), Keypair().pubkey(), authority, Keypair().pubkey(), 1_000)
    data = bytes(ix.data)
    assert data[0] == sp.InstructionType.WITHDRAW_STAKE
    assert data[1:33] == bytes(authority)
    assert int.from_bytes(data[33:41], "little") == 1_000
    assert len(data) == 41


def test_update_token_metadata_data():
    ix = sp.update_token_metadata_with_vote(
        SINGLE_POOL_PROGRAM_ID, Keypair().pubkey(), Keypair().pubkey(), "name", "SYM", "")
    assert bytes(ix.data) == bytes([sp.InstructionType.UPDATE_TOKEN_METADATA]) + \
        (4).to_bytes(4, "little") + b"name" + \
        (3).to_bytes(4, "little") + b"SYM" + \
        (0).to_bytes(4, "little")


def test_deposit_hands_stake_authorities_to_pool():
    pool = Keypair().pubkey()
    user_stake = Keypair().pubkey()
    user = Keypair().pubkey()
    instructions = sp.deposit(SINGLE_POOL_PROGRAM_ID, pool, user_stake, Keypair().pubkey(), user, user)
    assert len(instructions) == 3
    (stake_authority, _) = find_pool_stake_authority_address(SINGLE_POOL_PROGRAM_ID, pool)
    for ix in instructions[:2]:
        assert ix.accounts[0].pubkey == user_stake
        assert bytes(stake_authority) in bytes(ix.data)
    assert bytes(instructions[2].data) == bytes([sp.InstructionType.DEPOSIT_STAKE])


@pytest.mark.asyncio
async def test_garbage_instruction_fails(async_client, payer, pool_addresses):
    for data in (bytes(), bytes([42]), bytes([sp.InstructionType.WITHDRAW_STAKE, 1, 2])):
        ix = Instruction(program_id=SINGLE_POOL_PROGRAM_ID, data=data, accounts=[])
        recent_blockhash = (await async_client.get_latest_blockhash()).value.blockhash
        txn = Transaction.new_signed_with_payer([ix], payer.pubkey(), [payer], recent_blockhash)
        with pytest.raises(TransactionError) as e:
            await async_client.send_transaction(txn)
        assert e.value.error == ProgramError(ErrorKind.INVALID_INSTRUCTION_DATA)


@pytest.mark.asyncio
async def test_replenish_wrong_vote_fails(async_client, payer, validators, pool_addresses):
    (_, pool_address, _) = pool_addresses
    ix = sp.replenish_pool_with_vote(SINGLE_POOL_PROGRAM_ID, validators[1])
    # point the instruction at the first pool while naming the second validator
    params = sp.ReplenishPoolParams(
        program_id=SINGLE_POOL_PROGRAM_ID,
        vote_account=validators[1],
        pool=pool_address,
        pool_stake=ix.accounts[2].pubkey,
        pool_onramp=ix.accounts[3].pubkey,
        pool_stake_authority=ix.accounts[4].pubkey,
    )
    recent_blockhash = (await async_client.get_latest_blockhash()).value.blockhash
    txn = Transaction.new_signed_with_payer([sp.replenish_pool(params)], payer.pubkey(), [payer], recent_blockhash)
    with pytest.raises(TransactionError) as e:
        await async_client.send_transaction(txn)
    assert e.value.error == ProgramError.custom(SinglePoolError.INVALID_POOL_ACCOUNT)
    assert find_pool_address(SINGLE_POOL_PROGRAM_ID, validators[1])[0] != pool_address


def test_error_messages():
    for error in SinglePoolError:
        assert error.message.startswith("Error: ")
    assert "InitializePool" in SinglePoolError.ONRAMP_DOESNT_EXIST.message
    assert str(SinglePoolException(SinglePoolError.ONRAMP_DOESNT_EXIST)).startswith("ONRAMP_DOESNT_EXIST: ")
