"""
Liquidity Math - 유동성 ↔ 토큰 수량 변환

볼트 포지션의 민트/소각/평가에 쓰는 정수 함수들.
풀에 지불하는 쪽(민트, 스왑 입력)은 올림, 풀에서 받는 쪽(소각, 평가)은
내림을 사용한다. 호출자는 round_up 인자로 방향을 고른다.

    Δx = L · (√P_b − √P_a) / (√P_a · √P_b)
    Δy = L · (√P_b − √P_a)

References:
- LiquidityMath.sol / LiquidityAmounts.sol / SqrtPriceMath.sol
"""

from typing import Tuple

from ..constants import Q96, UINT128_MAX


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator)"""
    return -(-(a * b) // denominator)


def div_rounding_up(numerator: int, denominator: int) -> int:
    """ceil(numerator / denominator)"""
    return -(-numerator // denominator)


def _ordered(sqrt_a: int, sqrt_b: int) -> Tuple[int, int]:
    return (sqrt_a, sqrt_b) if sqrt_a <= sqrt_b else (sqrt_b, sqrt_a)


def get_amount0_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool = True
) -> int:
    """두 가격 사이 유동성 L에 해당하는 token0 수량

    Q96 정밀도를 잃지 않도록 L << 96 을 먼저 곱한 뒤 두 번 나눈다.
    """
    lower, upper = _ordered(sqrt_ratio_a_x96, sqrt_ratio_b_x96)
    scaled = (liquidity << 96) * (upper - lower)

    if not round_up:
        return scaled // upper // lower
    return div_rounding_up(div_rounding_up(scaled, upper), lower)


def get_amount1_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool = True
) -> int:
    """두 가격 사이 유동성 L에 해당하는 token1 수량"""
    lower, upper = _ordered(sqrt_ratio_a_x96, sqrt_ratio_b_x96)
    scaled = liquidity * (upper - lower)
    return div_rounding_up(scaled, Q96) if round_up else scaled // Q96


def get_liquidity_for_amount0(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, amount0: int) -> int:
    """token0만으로 범위에 넣을 수 있는 유동성 (내림)

    L = Δx · √P_a · √P_b / (√P_b − √P_a)
    """
    lower, upper = _ordered(sqrt_ratio_a_x96, sqrt_ratio_b_x96)
    if lower == upper:
        return 0
    return amount0 * (lower * upper // Q96) // (upper - lower)


def get_liquidity_for_amount1(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, amount1: int) -> int:
    """token1만으로 범위에 넣을 수 있는 유동성 (내림)

    L = Δy / (√P_b − √P_a)
    """
    lower, upper = _ordered(sqrt_ratio_a_x96, sqrt_ratio_b_x96)
    if lower == upper:
        return 0
    return amount1 * Q96 // (upper - lower)


def get_liquidity_for_amounts(
    sqrt_ratio_x96: int,
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    amount0: int,
    amount1: int
) -> int:
    """현재 가격에서 amount0/amount1 한도로 민트 가능한 최대 유동성

    범위 안이면 두 토큰 제약 중 작은 쪽이 결정한다. 범위 밖이면
    필요한 한 토큰만 본다.

    Args:
        sqrt_ratio_x96: 현재 sqrtPriceX96
        sqrt_ratio_a_x96: 범위 한쪽 끝 sqrtPriceX96
        sqrt_ratio_b_x96: 범위 다른 쪽 끝 sqrtPriceX96
        amount0: token0 한도
        amount1: token1 한도
    """
    lower, upper = _ordered(sqrt_ratio_a_x96, sqrt_ratio_b_x96)

    if sqrt_ratio_x96 <= lower:
        return get_liquidity_for_amount0(lower, upper, amount0)
    if sqrt_ratio_x96 >= upper:
        return get_liquidity_for_amount1(lower, upper, amount1)
    return min(
        get_liquidity_for_amount0(sqrt_ratio_x96, upper, amount0),
        get_liquidity_for_amount1(lower, sqrt_ratio_x96, amount1),
    )


def get_amounts_for_liquidity(
    sqrt_ratio_x96: int,
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int
) -> Tuple[int, int]:
    """현재 가격에서 유동성 L이 담고 있는 (amount0, amount1), 내림

    현재 가격을 범위 안으로 잘라 두 구간으로 나누면 된다:
    [clamp(P), upper] 구간은 token0, [lower, clamp(P)] 구간은 token1.
    """
    lower, upper = _ordered(sqrt_ratio_a_x96, sqrt_ratio_b_x96)
    current = min(max(sqrt_ratio_x96, lower), upper)

    amount0 = get_amount0_delta(current, upper, liquidity, False) if current < upper else 0
    amount1 = get_amount1_delta(lower, current, liquidity, False) if current > lower else 0
    return amount0, amount1


def add_delta(liquidity: int, delta: int) -> int:
    """유동성에 부호 있는 변화량 적용

    Raises:
        ValueError: 결과가 음수("LS")이거나 uint128을 넘는 경우("LA")
    """
    result = liquidity + delta
    if result < 0:
        raise ValueError("LS")
    if result > UINT128_MAX:
        raise ValueError("LA")
    return result


def to_uint128(value: int) -> int:
    """uint128 범위 확인 후 그대로 반환"""
    if not 0 <= value <= UINT128_MAX:
        raise ValueError(f"uint128 범위를 벗어났습니다: {value}")
    return value
