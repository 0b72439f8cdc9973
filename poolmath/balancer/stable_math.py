"""Balancer stable pool join/exit math.

StableSwap (Curve-style) invariant with Newton-Raphson solves, matching
StableMath.sol:
https://github.com/balancer-labs/balancer-v2-monorepo/blob/master/pkg/pool-stable/contracts/StableMath.sol

``amp`` is always the adjusted amplification (raw amp * AMP_PRECISION).
Balances and amounts are 18-decimal fixed point unless stated otherwise.
"""

from collections.abc import Sequence

from poolmath.balancer.scaling import AMP_PRECISION, upscale
from poolmath.config import STABLE_MAX_ITERATIONS
from poolmath.errors import InvalidAmount, InvariantConvergenceFailure, ZeroTotalSupplyOrBalance
from poolmath.math.fixed_point import ONE_18, Bfp


def calculate_invariant(
    amp: int,
    balances: Sequence[Bfp],
    max_iterations: int = STABLE_MAX_ITERATIONS,
) -> Bfp:
    """Calculate StableSwap invariant D using Newton-Raphson iteration.

    Uses Balancer's parameterization where the Newton-Raphson formula uses
    A*n (not A*n^n). The n^n factor is incorporated through the iterative
    d_p calculation.

    Algorithm:
        1. Initial guess: D = sum(balances)
        2. Iterate until |D_new - D_old| <= 1 wei
        3. Give up after max_iterations

    Args:
        amp: Adjusted amplification parameter
        balances: Scaled token balances
        max_iterations: Newton step cap

    Returns:
        The invariant D

    Raises:
        InvariantConvergenceFailure: If iteration doesn't converge
        ZeroTotalSupplyOrBalance: If any balance is zero
    """
    n_coins = len(balances)
    if n_coins == 0:
        return Bfp(0)

    for i, bal in enumerate(balances):
        if bal.value <= 0:
            raise ZeroTotalSupplyOrBalance(f"Balance at index {i} must be positive")

    sum_balances = sum(b.value for b in balances)
    d_prev = sum_balances
    amp_times_n = amp * n_coins

    for _ in range(max_iterations):
        # d_p = D^(n+1) / (n^n * prod(balances)), one balance at a time
        d_p = d_prev
        for bal in balances:
            d_p = d_p * d_prev // (n_coins * bal.value)

        numerator = (amp_times_n * sum_balances // AMP_PRECISION + d_p * n_coins) * d_prev
        denominator = (amp_times_n - AMP_PRECISION) * d_prev // AMP_PRECISION + (n_coins + 1) * d_p
        d_new = numerator // denominator

        if abs(d_new - d_prev) <= 1:
            return Bfp(d_new)
        d_prev = d_new

    raise InvariantConvergenceFailure(
        f"Stable invariant did not converge after {max_iterations} iterations"
    )


def _invariant_product_term(balances: Sequence[Bfp], invariant: int) -> int:
    """d_p at a converged invariant, computed the same way the solver does."""
    n_coins = len(balances)
    d_p = invariant
    for bal in balances:
        d_p = d_p * invariant // (n_coins * bal.value)
    return d_p


def get_token_balance_given_invariant_and_all_other_balances(
    amp: int,
    balances: Sequence[Bfp],
    invariant: Bfp,
    token_index: int,
    max_iterations: int = STABLE_MAX_ITERATIONS,
) -> Bfp:
    """Solve for balance[token_index] given D and all other balances.

    The current value at ``token_index`` only enters through the ``c``
    term, exactly as in the contract.

    Args:
        amp: Adjusted amplification parameter
        balances: Scaled token balances
        invariant: The invariant D to preserve
        token_index: Index of the token whose balance we're solving for
        max_iterations: Newton step cap

    Returns:
        The balance that keeps the invariant at D

    Raises:
        InvariantConvergenceFailure: If iteration doesn't converge
        ZeroTotalSupplyOrBalance: If D or a balance is zero
        IndexError: If token_index is out of range
    """
    n_coins = len(balances)
    if token_index < 0 or token_index >= n_coins:
        raise IndexError(f"token_index {token_index} out of range for {n_coins} tokens")

    d = invariant.value
    if d <= 0:
        raise ZeroTotalSupplyOrBalance("Invariant must be positive")
    amp_times_total = amp * n_coins

    sum_balances = balances[0].value
    p_d = balances[0].value * n_coins
    for j in range(1, n_coins):
        p_d = p_d * balances[j].value * n_coins // d
        sum_balances += balances[j].value

    sum_others = sum_balances - balances[token_index].value
    inv2 = d * d

    amp_times_p_d = amp_times_total * p_d
    if amp_times_p_d == 0:
        raise ZeroTotalSupplyOrBalance("Balances must be positive")
    # c = inv2 / (ampTimesTotal * P_D) * AMP_PRECISION * balances[tokenIndex], first division rounded up
    c = -(-inv2 // amp_times_p_d) * AMP_PRECISION * balances[token_index].value
    b = sum_others + d // amp_times_total * AMP_PRECISION

    token_balance = -(-(inv2 + c) // (d + b))

    for _ in range(max_iterations):
        prev_token_balance = token_balance

        # tokenBalance = (tokenBalance^2 + c) / (2 * tokenBalance + b - invariant), rounded up
        denominator = 2 * token_balance + b - d
        if denominator <= 0:
            raise InvariantConvergenceFailure("Stable balance solve left the valid region")
        token_balance = -(-(token_balance * token_balance + c) // denominator)

        if abs(token_balance - prev_token_balance) <= 1:
            return Bfp(token_balance)

    raise InvariantConvergenceFailure(
        f"Stable balance did not converge after {max_iterations} iterations"
    )


def _check_supply(total_supply: Bfp) -> None:
    if total_supply.value <= 0:
        raise ZeroTotalSupplyOrBalance("Pool has no BPT supply")


def calc_bpt_out_given_exact_tokens_in(
    amp: int,
    balances: Sequence[Bfp],
    amounts_in: Sequence[Bfp],
    total_supply: Bfp,
    swap_fee: Bfp,
    max_iterations: int = STABLE_MAX_ITERATIONS,
) -> Bfp:
    """Calculate BPT minted for an exact multi-token deposit.

    The fee is charged on the part of each deposit above the pool's
    balance-weighted mean ratio, then BPT is minted in proportion to the
    invariant growth.

    Returns:
        BPT out, rounded down

    Raises:
        InvariantConvergenceFailure: If an invariant solve doesn't converge
        ZeroTotalSupplyOrBalance: If supply or any balance is zero
    """
    if len(amounts_in) != len(balances):
        raise ValueError(f"Expected {len(balances)} amounts, got {len(amounts_in)}")
    _check_supply(total_supply)
    current_invariant = calculate_invariant(amp, balances, max_iterations)

    sum_balances = Bfp(sum(b.value for b in balances))
    balance_ratios_with_fee = []
    invariant_ratio_with_fees = Bfp(0)
    for balance, amount in zip(balances, amounts_in):
        current_weight = balance.div_down(sum_balances)
        ratio = balance.add(amount).div_down(balance)
        balance_ratios_with_fee.append(ratio)
        invariant_ratio_with_fees = invariant_ratio_with_fees.add(ratio.mul_down(current_weight))

    new_balances = []
    for i, (balance, amount) in enumerate(zip(balances, amounts_in)):
        if balance_ratios_with_fee[i] > invariant_ratio_with_fees:
            non_taxable = balance.mul_down(invariant_ratio_with_fees.sub(Bfp.one()))
            taxable = amount.sub(non_taxable)
            amount_without_fee = non_taxable.add(taxable.mul_down(swap_fee.complement()))
        else:
            amount_without_fee = amount
        new_balances.append(balance.add(amount_without_fee))

    new_invariant = calculate_invariant(amp, new_balances, max_iterations)
    invariant_ratio = new_invariant.div_down(current_invariant)
    if invariant_ratio.value > ONE_18:
        return total_supply.mul_down(invariant_ratio.sub(Bfp.one()))
    return Bfp(0)


def calc_bpt_in_given_exact_tokens_out(
    amp: int,
    balances: Sequence[Bfp],
    amounts_out: Sequence[Bfp],
    total_supply: Bfp,
    swap_fee: Bfp,
    max_iterations: int = STABLE_MAX_ITERATIONS,
) -> Bfp:
    """Calculate BPT burned for an exact multi-token withdrawal.

    Returns:
        BPT in, rounded up

    Raises:
        InvariantConvergenceFailure: If an invariant solve doesn't converge
        ZeroTotalSupplyOrBalance: If supply or any balance is zero
        InvalidAmount: If an amount out would drain its balance
    """
    if len(amounts_out) != len(balances):
        raise ValueError(f"Expected {len(balances)} amounts, got {len(amounts_out)}")
    _check_supply(total_supply)
    current_invariant = calculate_invariant(amp, balances, max_iterations)
    for i, (balance, amount) in enumerate(zip(balances, amounts_out)):
        if amount.value >= balance.value:
            raise InvalidAmount(f"Amount out at index {i} exceeds the pool balance")

    sum_balances = Bfp(sum(b.value for b in balances))
    balance_ratios_without_fee = []
    invariant_ratio_without_fees = Bfp(0)
    for balance, amount in zip(balances, amounts_out):
        current_weight = balance.div_up(sum_balances)
        ratio = balance.sub(amount).div_up(balance)
        balance_ratios_without_fee.append(ratio)
        invariant_ratio_without_fees = invariant_ratio_without_fees.add(ratio.mul_up(current_weight))

    new_balances = []
    for i, (balance, amount) in enumerate(zip(balances, amounts_out)):
        if invariant_ratio_without_fees > balance_ratios_without_fee[i]:
            non_taxable = balance.mul_down(invariant_ratio_without_fees.complement())
            taxable = amount.sub(non_taxable)
            amount_with_fee = non_taxable.add(taxable.div_up(swap_fee.complement()))
        else:
            amount_with_fee = amount
        if amount_with_fee.value >= balance.value:
            raise InvalidAmount(f"Amount out at index {i} plus fee exceeds the pool balance")
        new_balances.append(balance.sub(amount_with_fee))

    new_invariant = calculate_invariant(amp, new_balances, max_iterations)
    invariant_ratio = new_invariant.div_down(current_invariant)
    return total_supply.mul_up(invariant_ratio.complement())


def calc_token_out_given_exact_bpt_in(
    amp: int,
    balances: Sequence[Bfp],
    token_index: int,
    bpt_in: Bfp,
    total_supply: Bfp,
    swap_fee: Bfp,
    max_iterations: int = STABLE_MAX_ITERATIONS,
) -> Bfp:
    """Calculate the single token paid out for an exact BPT burn.

    D shrinks by the burned share of supply (rounded up, so the pool keeps
    the dust), the token's balance is solved at the new D, and the fee is
    charged on the part not backed by the token's own share of the pool.

    Returns:
        Token amount out, rounded down

    Raises:
        InvariantConvergenceFailure: If a solve doesn't converge
        ZeroTotalSupplyOrBalance: If supply or any balance is zero
        InvalidAmount: If bpt_in is not below the total supply
        IndexError: If token_index is out of range
    """
    if token_index < 0 or token_index >= len(balances):
        raise IndexError(f"token_index {token_index} out of range for {len(balances)} tokens")
    _check_supply(total_supply)
    if bpt_in.value >= total_supply.value:
        raise InvalidAmount("BPT in must be below the total supply")

    current_invariant = calculate_invariant(amp, balances, max_iterations)
    new_invariant = total_supply.sub(bpt_in).div_up(total_supply).mul_up(current_invariant)

    new_balance = get_token_balance_given_invariant_and_all_other_balances(
        amp, balances, new_invariant, token_index, max_iterations
    )
    balance = balances[token_index]
    if new_balance.value >= balance.value:
        return Bfp(0)
    amount_out_without_fee = balance.sub(new_balance)

    sum_balances = Bfp(sum(b.value for b in balances))
    current_weight = balance.div_down(sum_balances)
    taxable = amount_out_without_fee.mul_up(current_weight.complement())
    non_taxable = amount_out_without_fee.sub(taxable)
    return non_taxable.add(taxable.mul_down(swap_fee.complement()))


def bpt_for_tokens_zero_price_impact(
    amp: int,
    balances: Sequence[int],
    decimals: Sequence[int],
    amounts: Sequence[int],
    total_supply: Bfp,
    max_iterations: int = STABLE_MAX_ITERATIONS,
) -> Bfp:
    """BPT a fee-less, perfectly proportional operation of equal value would move.

    Unlike the rest of this module, ``balances`` and ``amounts`` are integers
    in each token's NATIVE decimals; they are upscaled here. Each amount is
    valued at the marginal rate dD/dx_i of the invariant:

        bpt = sum(amount_i * supply / D * dD/dx_i)

    with dD/dx_i taken from the implicit derivative of the Newton fixed
    point at the converged D.

    Raises:
        InvariantConvergenceFailure: If the invariant doesn't converge
        ZeroTotalSupplyOrBalance: If supply or any balance is zero
    """
    if not len(balances) == len(decimals) == len(amounts):
        raise ValueError("balances, decimals and amounts must have the same length")
    _check_supply(total_supply)

    scaled_balances = [upscale(balance, d) for balance, d in zip(balances, decimals)]
    invariant = calculate_invariant(amp, scaled_balances, max_iterations).value
    d_p = _invariant_product_term(scaled_balances, invariant)

    n_coins = len(scaled_balances)
    amp_times_n = amp * n_coins
    slope_base = (amp_times_n - AMP_PRECISION) * invariant + AMP_PRECISION * (n_coins + 1) * d_p

    bpt = 0
    for balance, d, amount in zip(scaled_balances, decimals, amounts):
        if amount == 0:
            continue
        x = balance.value
        numerator = upscale(amount, d).value * total_supply.value * (amp_times_n * x + AMP_PRECISION * d_p)
        bpt += numerator // (slope_base * x)
    return Bfp(bpt)
