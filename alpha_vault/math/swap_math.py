"""
Swap Math - 스왑 한 스텝 계산

하나의 유동성 구간(다음 초기화된 틱 또는 가격 한도까지) 안에서
입력/출력/수수료와 도달 가격을 계산한다. 풀의 스왑 루프가 구간마다 호출한다.

References:
- Uniswap V3 Core: contracts/libraries/SwapMath.sol
- 백서 Section 6.2.3: Swapping Within a Single Tick

핵심 공식:
    amount_in_less_fee = amount_remaining × (1e6 - fee) / 1e6
    목표 가격에 도달하면 fee = amount_in × fee / (1e6 - fee) (올림)
    도달하지 못하면 남은 입력 전체가 수수료 + 입력
"""

from typing import NamedTuple

from .liquidity_math import get_amount0_delta, get_amount1_delta, mul_div_rounding_up
from .sqrt_price_math import get_next_sqrt_price_from_input, get_next_sqrt_price_from_output


class SwapStep(NamedTuple):
    """스왑 스텝 결과"""
    sqrt_price_next_x96: int  # 스텝 종료 가격
    amount_in: int  # 수수료 제외 입력량
    amount_out: int  # 출력량
    fee_amount: int  # 입력 토큰으로 낸 수수료


def compute_swap_step(
    sqrt_price_current_x96: int,
    sqrt_price_target_x96: int,
    liquidity: int,
    amount_remaining: int,
    fee_pips: int
) -> SwapStep:
    """스왑 한 스텝 계산

    Args:
        sqrt_price_current_x96: 현재 sqrtPriceX96
        sqrt_price_target_x96: 이번 스텝에서 넘을 수 없는 가격 (다음 틱 또는 한도)
        liquidity: 현재 구간의 활성 유동성
        amount_remaining: 남은 수량 (양수: exact input, 음수: exact output)
        fee_pips: 풀 수수료 (1e-6 단위, 예: 3000)

    Returns:
        SwapStep
    """
    zero_for_one = sqrt_price_current_x96 >= sqrt_price_target_x96
    exact_in = amount_remaining >= 0

    if exact_in:
        amount_remaining_less_fee = amount_remaining * (1_000_000 - fee_pips) // 1_000_000
        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, True)

        if amount_remaining_less_fee >= amount_in:
            sqrt_price_next = sqrt_price_target_x96
        else:
            sqrt_price_next = get_next_sqrt_price_from_input(
                sqrt_price_current_x96, liquidity, amount_remaining_less_fee, zero_for_one
            )
    else:
        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, False)

        if -amount_remaining >= amount_out:
            sqrt_price_next = sqrt_price_target_x96
        else:
            sqrt_price_next = get_next_sqrt_price_from_output(
                sqrt_price_current_x96, liquidity, -amount_remaining, zero_for_one
            )

    reached_target = sqrt_price_target_x96 == sqrt_price_next

    # 목표에 도달하지 못한 쪽만 실제 이동 구간으로 다시 계산
    if zero_for_one:
        if not (reached_target and exact_in):
            amount_in = get_amount0_delta(sqrt_price_next, sqrt_price_current_x96, liquidity, True)
        if not (reached_target and not exact_in):
            amount_out = get_amount1_delta(sqrt_price_next, sqrt_price_current_x96, liquidity, False)
    else:
        if not (reached_target and exact_in):
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_next, liquidity, True)
        if not (reached_target and not exact_in):
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_next, liquidity, False)

    # exact output은 요청량 이상 내보내지 않음
    if not exact_in and amount_out > -amount_remaining:
        amount_out = -amount_remaining

    if exact_in and sqrt_price_next != sqrt_price_target_x96:
        # 목표 미도달: 남은 입력은 전부 수수료
        fee_amount = amount_remaining - amount_in
    else:
        fee_amount = mul_div_rounding_up(amount_in, fee_pips, 1_000_000 - fee_pips)

    return SwapStep(sqrt_price_next, amount_in, amount_out, fee_amount)
