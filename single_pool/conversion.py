"""Conversion between pool tokens and stake.

All amounts are lamports or token base units. Results round down, so the
pool never hands out more than it holds.
"""


def pool_net_asset_value(pool_stake: int, onramp_stake: int, minimum_pool_balance: int) -> int:
    """Stake backing the outstanding pool tokens.

    The minimum pool balance seeded at initialization backs no tokens; a pool
    whose stake has not yet reached it is worth nothing.
    """
    return max(0, pool_stake + onramp_stake - minimum_pool_balance)


def calculate_deposit_amount(pre_token_supply: int, pre_pool_stake: int, user_stake_to_deposit: int) -> int:
    """Tokens minted for ``user_stake_to_deposit`` lamports of new stake.

    An empty or worthless pool mints one token per lamport.
    """
    if pre_token_supply == 0 or pre_pool_stake == 0:
        return user_stake_to_deposit
    return user_stake_to_deposit * pre_token_supply // pre_pool_stake


def calculate_withdraw_amount(pre_token_supply: int, pre_pool_stake: int, user_tokens_to_burn: int) -> int:
    """Lamports of stake released for burning ``user_tokens_to_burn`` tokens."""
    numerator = user_tokens_to_burn * pre_pool_stake
    if pre_token_supply == 0 or numerator < pre_token_supply:
        return 0
    return numerator // pre_token_supply
