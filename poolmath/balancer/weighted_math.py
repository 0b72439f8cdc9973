"""Balancer weighted pool join/exit math.

Closed-form BPT formulas for weighted product pools, matching
WeightedMath.sol:
https://github.com/balancer-labs/balancer-v2-monorepo/blob/master/pkg/pool-weighted/contracts/WeightedMath.sol

All values are 18-decimal fixed point. Callers scale amounts in before
calling and scale results out afterwards.
"""

from collections.abc import Sequence

from poolmath.errors import InvalidAmount, ZeroTotalSupplyOrBalance
from poolmath.math.fixed_point import ONE_18, Bfp


def _check_pool(balances: Sequence[Bfp], total_supply: Bfp) -> None:
    if total_supply.value <= 0:
        raise ZeroTotalSupplyOrBalance("Pool has no BPT supply")
    for i, balance in enumerate(balances):
        if balance.value <= 0:
            raise ZeroTotalSupplyOrBalance(f"Balance at index {i} must be positive")


def _check_lengths(balances: Sequence[Bfp], *others: Sequence[Bfp]) -> None:
    for other in others:
        if len(other) != len(balances):
            raise ValueError(f"Expected {len(balances)} values, got {len(other)}")


def calc_bpt_out_given_exact_tokens_in(
    balances: Sequence[Bfp],
    weights: Sequence[Bfp],
    amounts_in: Sequence[Bfp],
    total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Calculate BPT minted for an exact multi-token deposit.

    The part of each deposit above the weighted-mean balance ratio is a
    swap in disguise, so the swap fee is charged on it before the invariant
    ratio is taken.

    Args:
        balances: Scaled pool balances
        weights: Normalized weights (sum to one)
        amounts_in: Scaled deposit amounts, one per token
        total_supply: Scaled BPT supply
        swap_fee: Swap fee percentage

    Returns:
        BPT out, rounded down

    Raises:
        ZeroTotalSupplyOrBalance: If supply or any balance is zero
    """
    _check_lengths(balances, weights, amounts_in)
    _check_pool(balances, total_supply)

    balance_ratios_with_fee = []
    invariant_ratio_with_fees = Bfp(0)
    for balance, weight, amount in zip(balances, weights, amounts_in):
        ratio = balance.add(amount).div_down(balance)
        balance_ratios_with_fee.append(ratio)
        invariant_ratio_with_fees = invariant_ratio_with_fees.add(ratio.mul_down(weight))

    invariant_ratio = Bfp.one()
    for i, (balance, weight, amount) in enumerate(zip(balances, weights, amounts_in)):
        if balance_ratios_with_fee[i] > invariant_ratio_with_fees:
            non_taxable = balance.mul_down(invariant_ratio_with_fees.sub(Bfp.one()))
            taxable = amount.sub(non_taxable)
            fee = taxable.mul_up(swap_fee)
            amount_without_fee = non_taxable.add(taxable.sub(fee))
        else:
            amount_without_fee = amount

        balance_ratio = balance.add(amount_without_fee).div_down(balance)
        invariant_ratio = invariant_ratio.mul_down(balance_ratio.pow_down(weight))

    if invariant_ratio.value > ONE_18:
        return total_supply.mul_down(invariant_ratio.sub(Bfp.one()))
    return Bfp(0)


def calc_bpt_in_given_exact_tokens_out(
    balances: Sequence[Bfp],
    weights: Sequence[Bfp],
    amounts_out: Sequence[Bfp],
    total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Calculate BPT burned for an exact multi-token withdrawal.

    Mirror of the deposit case: the part of each withdrawal above the
    weighted-mean ratio is grossed up by the fee.

    Returns:
        BPT in, rounded up

    Raises:
        ZeroTotalSupplyOrBalance: If supply or any balance is zero
        InvalidAmount: If an amount out would drain its balance
    """
    _check_lengths(balances, weights, amounts_out)
    _check_pool(balances, total_supply)
    for i, (balance, amount) in enumerate(zip(balances, amounts_out)):
        if amount.value >= balance.value:
            raise InvalidAmount(f"Amount out at index {i} exceeds the pool balance")

    balance_ratios_without_fee = []
    invariant_ratio_without_fees = Bfp(0)
    for balance, weight, amount in zip(balances, weights, amounts_out):
        ratio = balance.sub(amount).div_up(balance)
        balance_ratios_without_fee.append(ratio)
        invariant_ratio_without_fees = invariant_ratio_without_fees.add(ratio.mul_up(weight))

    invariant_ratio = Bfp.one()
    for i, (balance, weight, amount) in enumerate(zip(balances, weights, amounts_out)):
        if invariant_ratio_without_fees > balance_ratios_without_fee[i]:
            non_taxable = balance.mul_down(invariant_ratio_without_fees.complement())
            taxable = amount.sub(non_taxable)
            amount_with_fee = non_taxable.add(taxable.div_up(swap_fee.complement()))
        else:
            amount_with_fee = amount
        if amount_with_fee.value >= balance.value:
            raise InvalidAmount(f"Amount out at index {i} plus fee exceeds the pool balance")

        balance_ratio = balance.sub(amount_with_fee).div_down(balance)
        invariant_ratio = invariant_ratio.mul_down(balance_ratio.pow_down(weight))

    return total_supply.mul_up(invariant_ratio.complement())


def calc_token_out_given_exact_bpt_in(
    balance: Bfp,
    weight: Bfp,
    bpt_in: Bfp,
    total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Calculate the single token paid out for an exact BPT burn.

    Formula:
        amount_out = balance * (1 - ((supply - bpt_in) / supply) ^ (1 / weight))

    Only the ``1 - weight`` share of the amount is a swap against the other
    tokens; the fee is charged on that share.

    Returns:
        Token amount out, rounded down

    Raises:
        ZeroTotalSupplyOrBalance: If supply or the balance is zero
        InvalidAmount: If bpt_in exceeds the total supply
    """
    _check_pool([balance], total_supply)
    if bpt_in.value > total_supply.value:
        raise InvalidAmount("BPT in exceeds the total supply")

    invariant_ratio = total_supply.sub(bpt_in).div_up(total_supply)
    balance_ratio = invariant_ratio.pow_up(Bfp.one().div_down(weight))
    amount_out_without_fee = balance.mul_down(balance_ratio.complement())

    taxable = amount_out_without_fee.mul_up(weight.complement())
    non_taxable = amount_out_without_fee.sub(taxable)
    return non_taxable.add(taxable.mul_down(swap_fee.complement()))


def bpt_for_tokens_zero_price_impact(
    balances: Sequence[Bfp],
    weights: Sequence[Bfp],
    amounts: Sequence[Bfp],
    total_supply: Bfp,
) -> Bfp:
    """BPT a fee-less, perfectly proportional operation of equal value would move.

    Each token's amount is valued at the pool's own spot price, so the
    baseline is ``sum(amount_i / balance_i * weight_i) * supply``.

    Raises:
        ZeroTotalSupplyOrBalance: If supply or any balance is zero
    """
    _check_lengths(balances, weights, amounts)
    _check_pool(balances, total_supply)

    bpt = Bfp(0)
    for balance, weight, amount in zip(balances, weights, amounts):
        share = amount.div_down(balance).mul_down(weight)
        bpt = bpt.add(share.mul_down(total_supply))
    return bpt
