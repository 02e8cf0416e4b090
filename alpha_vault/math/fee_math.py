"""
Fee Math - 백서 기반 수수료 누적 계산

풀이 스왑 수수료를 유동성 단위당 누적값(fee growth)으로 기록하고,
포지션이 poke/burn 될 때 미수령 수수료(tokensOwed)로 정산하는 공식.
모든 fee growth는 Q128 고정소수점이며 uint256처럼 2^256에서 랩어라운드한다.

References:
- 백서 Section 6.3: Tick-Indexed State (feeGrowthOutside)
- 백서 Section 6.4.1: Position-Indexed State (uncollected fees)

핵심 공식:
    f_g += fee × 2^128 / L                               # 스왑 스텝마다
    f_a(i) = f_g - f_o(i)  if i_c >= i else f_o(i)       # 틱 i 위 수수료
    f_b(i) = f_o(i)        if i_c >= i else f_g - f_o(i) # 틱 i 아래 수수료
    f_r = f_g - f_b(i_l) - f_a(i_u)                      # 범위 내 수수료
    f_u = l × (f_r(t_1) - f_r(t_0)) / 2^128              # 미수령 수수료
"""

from ..constants import Q128

_WRAP = 2 ** 256


def fee_growth_above(
    tick_idx: int,
    current_tick: int,
    fee_growth_global: int,
    fee_growth_outside: int
) -> int:
    """틱 위에서 발생한 수수료 성장률 (f_a)

    Args:
        tick_idx: 틱 인덱스 (i)
        current_tick: 현재 틱 (i_c)
        fee_growth_global: 전역 fee growth (f_g)
        fee_growth_outside: 틱의 fee growth outside (f_o)

    Returns:
        틱 위의 fee growth (f_a)
    """
    if current_tick >= tick_idx:
        return (fee_growth_global - fee_growth_outside) % _WRAP
    return fee_growth_outside


def fee_growth_below(
    tick_idx: int,
    current_tick: int,
    fee_growth_global: int,
    fee_growth_outside: int
) -> int:
    """틱 아래에서 발생한 수수료 성장률 (f_b)

    Args:
        tick_idx: 틱 인덱스 (i)
        current_tick: 현재 틱 (i_c)
        fee_growth_global: 전역 fee growth (f_g)
        fee_growth_outside: 틱의 fee growth outside (f_o)

    Returns:
        틱 아래의 fee growth (f_b)
    """
    if current_tick >= tick_idx:
        return fee_growth_outside
    return (fee_growth_global - fee_growth_outside) % _WRAP


def fee_growth_inside(
    tick_lower: int,
    tick_upper: int,
    current_tick: int,
    fee_growth_global: int,
    fee_growth_outside_lower: int,
    fee_growth_outside_upper: int
) -> int:
    """범위 내 fee growth 계산 (f_r = f_g - f_b(i_l) - f_a(i_u))

    중간값이 음수가 될 수 있으므로 uint256 unchecked 연산처럼 랩어라운드한다.

    Args:
        tick_lower: 하한 틱 (i_l)
        tick_upper: 상한 틱 (i_u)
        current_tick: 현재 틱 (i_c)
        fee_growth_global: 전역 fee growth (f_g)
        fee_growth_outside_lower: 하한 틱의 fee growth outside (f_o(i_l))
        fee_growth_outside_upper: 상한 틱의 fee growth outside (f_o(i_u))

    Returns:
        범위 내 fee growth (f_r)
    """
    f_b = fee_growth_below(tick_lower, current_tick, fee_growth_global, fee_growth_outside_lower)
    f_a = fee_growth_above(tick_upper, current_tick, fee_growth_global, fee_growth_outside_upper)
    return (fee_growth_global - f_b - f_a) % _WRAP


def calculate_fee_growth_delta(
    fee_growth_current: int,
    fee_growth_previous: int
) -> int:
    """두 시점 간 fee growth 변화량 (uint256 랩어라운드)"""
    return (fee_growth_current - fee_growth_previous) % _WRAP


def calculate_uncollected_fees(
    liquidity: int,
    fee_growth_inside_current: int,
    fee_growth_inside_last: int
) -> int:
    """미수령 수수료 계산 (f_u), 토큰 최소 단위로 내림

    Args:
        liquidity: 포지션 유동성 (l)
        fee_growth_inside_current: 현재 범위 내 fee growth (f_r(t_1))
        fee_growth_inside_last: 마지막 정산 시 fee growth (f_r(t_0))

    Returns:
        미수령 수수료 (토큰 최소 단위)
    """
    delta = calculate_fee_growth_delta(fee_growth_inside_current, fee_growth_inside_last)
    return liquidity * delta // Q128


def fee_growth_global_increment(fee_amount: int, liquidity: int) -> int:
    """스왑 스텝 수수료를 전역 fee growth 증가분으로 변환

    활성 유동성이 0이면 수수료는 누구에게도 귀속되지 않는다.
    """
    if liquidity <= 0:
        return 0
    return fee_amount * Q128 // liquidity


def wrap_add(a: int, b: int) -> int:
    """uint256 랩어라운드 덧셈"""
    return (a + b) % _WRAP
