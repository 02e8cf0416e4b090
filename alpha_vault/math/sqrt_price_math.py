"""
Sqrt Price Math - sqrtPriceX96 관련 계산

풀 가격은 sqrtPriceX96 형식으로 저장됩니다.
sqrtPriceX96 = sqrt(price) * 2^96

스왑 한 스텝에서 입력/출력 수량이 주어졌을 때 다음 가격을 구하는 함수와
human-readable 가격 변환을 제공한다. 가격 이동은 항상 풀에 유리한 방향으로
반올림한다 (token0 입력 → 올림, token1 입력 → 내림).

References:
- Uniswap V3 Core: contracts/libraries/SqrtPriceMath.sol
"""

import math

from ..constants import Q96, UINT256_MAX
from .liquidity_math import div_rounding_up, mul_div_rounding_up


def sqrt_price_x96_to_price(
    sqrt_price_x96: int,
    decimal0: int = 18,
    decimal1: int = 18
) -> float:
    """sqrtPriceX96을 human-readable 가격으로 변환

    가격 = (sqrtPriceX96 / 2^96)^2 / 10^(decimal1 - decimal0)

    Args:
        sqrt_price_x96: sqrtPriceX96 값
        decimal0: token0 소수점 자릿수
        decimal1: token1 소수점 자릿수

    Returns:
        가격 (token1/token0 기준, human-readable)
    """
    sqrt_price = sqrt_price_x96 / Q96
    return sqrt_price ** 2 / (10 ** (decimal1 - decimal0))


def price_to_sqrt_price_x96(
    price: float,
    decimal0: int = 18,
    decimal1: int = 18
) -> int:
    """Human-readable 가격을 sqrtPriceX96으로 변환

    sqrtPriceX96 = sqrt(price * 10^(decimal1 - decimal0)) * 2^96

    Args:
        price: 가격 (token1/token0 기준)
        decimal0: token0 소수점 자릿수
        decimal1: token1 소수점 자릿수

    Returns:
        sqrtPriceX96 값

    Example:
        >>> price_to_sqrt_price_x96(100) == 10 * 2 ** 96
        True
    """
    if price <= 0:
        raise ValueError("가격은 양수여야 합니다")

    adjusted_price = price * (10 ** (decimal1 - decimal0))
    return int(math.sqrt(adjusted_price) * Q96)


def get_next_sqrt_price_from_amount0_rounding_up(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool
) -> int:
    """amount0 변화에 따른 다음 sqrtPriceX96 계산 (올림)

    공식: √P' = L·√P / (L ± Δx·√P)

    Args:
        sqrt_price_x96: 현재 sqrtPriceX96
        liquidity: 유동성
        amount: amount0 변화량
        add: True면 풀에 추가(가격 하락), False면 풀에서 제거(가격 상승)

    Returns:
        새로운 sqrtPriceX96

    Raises:
        ValueError: 제거량이 가상 reserve를 넘는 경우
    """
    if amount == 0:
        return sqrt_price_x96

    numerator1 = liquidity << 96
    product = amount * sqrt_price_x96

    if add:
        # uint256 안에서 계산 가능한 경우 정밀한 공식 사용
        if product <= UINT256_MAX:
            denominator = numerator1 + product
            if denominator <= UINT256_MAX:
                return mul_div_rounding_up(numerator1, sqrt_price_x96, denominator)
        return div_rounding_up(numerator1, (numerator1 // sqrt_price_x96) + amount)

    if product > UINT256_MAX or numerator1 <= product:
        raise ValueError("token0 reserve보다 많은 양을 꺼낼 수 없습니다")
    return mul_div_rounding_up(numerator1, sqrt_price_x96, numerator1 - product)


def get_next_sqrt_price_from_amount1_rounding_down(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool
) -> int:
    """amount1 변화에 따른 다음 sqrtPriceX96 계산 (내림)

    공식: √P' = √P ± Δy / L

    Args:
        sqrt_price_x96: 현재 sqrtPriceX96
        liquidity: 유동성
        amount: amount1 변화량
        add: True면 풀에 추가(가격 상승), False면 풀에서 제거(가격 하락)

    Returns:
        새로운 sqrtPriceX96
    """
    if add:
        return sqrt_price_x96 + (amount << 96) // liquidity

    quotient = div_rounding_up(amount << 96, liquidity)
    if sqrt_price_x96 <= quotient:
        raise ValueError("token1 reserve보다 많은 양을 꺼낼 수 없습니다")
    return sqrt_price_x96 - quotient


def get_next_sqrt_price_from_input(
    sqrt_price_x96: int,
    liquidity: int,
    amount_in: int,
    zero_for_one: bool
) -> int:
    """입력 수량으로 이동한 다음 가격

    zero_for_one이면 token0 입력(가격 하락), 아니면 token1 입력(가격 상승).
    """
    if sqrt_price_x96 <= 0 or liquidity <= 0:
        raise ValueError("가격과 유동성은 양수여야 합니다")

    if zero_for_one:
        return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_in, True)
    return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_in, True)


def get_next_sqrt_price_from_output(
    sqrt_price_x96: int,
    liquidity: int,
    amount_out: int,
    zero_for_one: bool
) -> int:
    """출력 수량으로 이동한 다음 가격

    zero_for_one이면 token1 출력(가격 하락), 아니면 token0 출력(가격 상승).
    """
    if sqrt_price_x96 <= 0 or liquidity <= 0:
        raise ValueError("가격과 유동성은 양수여야 합니다")

    if zero_for_one:
        return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_out, False)
    return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_out, False)
