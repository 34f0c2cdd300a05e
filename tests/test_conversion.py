from single_pool.constants import minimum_pool_balance
from single_pool.conversion import calculate_deposit_amount, calculate_withdraw_amount, pool_net_asset_value
from stake.constants import LAMPORTS_PER_SOL


def test_first_deposit_is_one_to_one():
    assert calculate_deposit_amount(0, 0, 5 * LAMPORTS_PER_SOL) == 5 * LAMPORTS_PER_SOL
    assert calculate_deposit_amount(1_000, 0, 250) == 250


def test_deposit_at_parity():
    assert calculate_deposit_amount(10 * LAMPORTS_PER_SOL, 10 * LAMPORTS_PER_SOL, 3) == 3


def test_deposit_after_rewards_rounds_down():
    # 100 tokens backed by 150 lamports: 10 lamports buy 6.66 tokens
    assert calculate_deposit_amount(100, 150, 10) == 6
    assert calculate_deposit_amount(100, 150, 1) == 0


def test_withdraw_at_parity():
    assert calculate_withdraw_amount(10 * LAMPORTS_PER_SOL, 10 * LAMPORTS_PER_SOL, LAMPORTS_PER_SOL) == \
        LAMPORTS_PER_SOL


def test_withdraw_after_rewards_rounds_down():
    # 150 tokens backed by 100 lamports: 1 token is worth 0.66 lamports
    assert calculate_withdraw_amount(150, 100, 1) == 0
    assert calculate_withdraw_amount(150, 100, 2) == 1
    assert calculate_withdraw_amount(100, 150, 7) == 10


def test_withdraw_from_empty_pool():
    assert calculate_withdraw_amount(0, 0, 100) == 0
    assert calculate_withdraw_amount(0, 1_000, 100) == 0


def test_round_trip_never_gains():
    supply = 3 * LAMPORTS_PER_SOL
    value = 4 * LAMPORTS_PER_SOL + 1
    deposit = 1_234_567_891
    tokens = calculate_deposit_amount(supply, value, deposit)
    returned = calculate_withdraw_amount(supply + tokens, value + deposit, tokens)
    assert returned <= deposit


def test_large_amounts_do_not_overflow():
    supply = 2 ** 63
    value = 2 ** 63 + 7
    assert calculate_withdraw_amount(supply, value, supply) == value
    assert calculate_deposit_amount(supply, value, value) == supply


def test_net_asset_value_excludes_minimum_balance():
    minimum = minimum_pool_balance(LAMPORTS_PER_SOL)
    assert pool_net_asset_value(minimum, 0, minimum) == 0
    assert pool_net_asset_value(minimum + 10, 5, minimum) == 15
    assert pool_net_asset_value(minimum - 10, 0, minimum) == 0


def test_minimum_pool_balance_is_at_least_one_sol():
    assert minimum_pool_balance(1) == LAMPORTS_PER_SOL
    assert minimum_pool_balance(3 * LAMPORTS_PER_SOL) == 3 * LAMPORTS_PER_SOL
