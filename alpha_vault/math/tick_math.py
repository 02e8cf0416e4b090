"""
Tick Math - Tick ↔ sqrtPrice 변환

볼트의 범위 계산에 쓰이는 틱 수학 함수들. 온체인 컨트랙트와 동일한 정밀도로 구현.
포지션 경계는 항상 tick spacing의 배수로 내림(floor)하며,
음수 틱도 0 방향 절삭이 아닌 음의 무한대 방향으로 내린다.

References:
- Uniswap V3 Core: contracts/libraries/TickMath.sol
- 백서 Section 6.1: Ticks and Tick Spacing

핵심 공식:
    price = 1.0001^tick
    tick = floor(log₁.₀₀₀₁(price))
    sqrtPriceX96 = sqrt(price) * 2^96
    floor_tick = (tick // spacing) * spacing
"""

import math
from typing import Tuple

from ..constants import MIN_TICK, MAX_TICK, TICK_SPACINGS
from .liquidity_math import div_rounding_up


# Uniswap V3 TickMath 상수
MIN_SQRT_RATIO: int = 4295128739
MAX_SQRT_RATIO: int = 1461446703485210103287273052203988822378723970342


# 1/sqrt(1.0001)^(2^i) 의 Q128.128 값, i = 1..19 (i = 0은 시작값에서 처리)
_RATIO_FACTORS = (
    0xfff97272373d413259a46990580e213a,
    0xfff2e50f5f656932ef12357cf3c7fdcc,
    0xffe5caca7e10e4e61c3624eaa0941cd0,
    0xffcb9843d60f6159c9db58835c926644,
    0xff973b41fa98c081472e6896dfb254c0,
    0xff2ea16466c96a3843ec78b326b52861,
    0xfe5dee046a99a2a811c461f1969c3053,
    0xfcbe86c7900a88aedcffc83b479aa3a4,
    0xf987a7253ac413176f2b074cf7815e54,
    0xf3392b0822b70005940c7a398e4b70f3,
    0xe7159475a2c29b7443b29c7fa6e889d9,
    0xd097f3bdfd2022b8845ad8f792aa5825,
    0xa9f746462d870fdf8a65dc1f90e061e5,
    0x70d869a156d2a1b890bb3df62baf32f7,
    0x31be135f97d08fd981231505542fcfa6,
    0x9aa508b5b7a84e1c677de54f3e99bc9,
    0x5d6af8dedb81196699c329225ee604,
    0x2216e584f5fa1ea926041bedfe98,
    0x48a170391f7dc42444e8fa2,
)

# log_sqrt(1.0001)(2) × 2^64, 틱 후보 보정값
_LOG_SQRT10001_2 = 255738958999603826347141
_TICK_LOW_ERROR = 3402992956809132418596140100660247210
_TICK_HIGH_ERROR = 291339464771989622907027621153398088495


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """틱에서 sqrtPriceX96 계산

    |tick|의 각 비트에 해당하는 1/√1.0001^(2^i) 상수를 Q128.128로 곱해
    1.0001^(-|tick|/2)를 만들고, 양수 틱이면 역수를 취한 뒤
    Q64.96으로 올림 변환한다. 결과는 온체인 값과 비트 단위로 같다.

    Args:
        tick: 틱 인덱스 (MIN_TICK ~ MAX_TICK)

    Returns:
        sqrtPriceX96

    Raises:
        ValueError: 틱이 유효 범위를 벗어난 경우
    """
    if not MIN_TICK <= tick <= MAX_TICK:
        raise ValueError(f"틱이 유효 범위를 벗어났습니다: {tick} (범위: {MIN_TICK} ~ {MAX_TICK})")

    abs_tick = abs(tick)
    ratio = 0xfffcb933bd6fad37aa2d162d1a594001 if abs_tick & 1 else 1 << 128
    for bit, factor in enumerate(_RATIO_FACTORS, start=1):
        if abs_tick >> bit & 1:
            ratio = ratio * factor >> 128

    if tick > 0:
        ratio = ((1 << 256) - 1) // ratio

    return div_rounding_up(ratio, 1 << 32)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """sqrtPriceX96에서 틱 계산

    get_sqrt_ratio_at_tick(t) <= sqrt_price_x96 를 만족하는 가장 큰 틱 t
    (음의 무한대 방향 floor). log2를 정수부는 bit_length로, 소수부는
    제곱 반복으로 14비트까지 구한 뒤 두 후보 틱 중 하나를 고른다.

    Raises:
        ValueError: sqrtPriceX96이 [MIN_SQRT_RATIO, MAX_SQRT_RATIO) 밖인 경우
    """
    if not MIN_SQRT_RATIO <= sqrt_price_x96 < MAX_SQRT_RATIO:
        raise ValueError(f"sqrtPriceX96이 유효 범위를 벗어났습니다: {sqrt_price_x96}")

    ratio = sqrt_price_x96 << 32
    msb = ratio.bit_length() - 1
    r = ratio >> (msb - 127) if msb >= 127 else ratio << (127 - msb)

    log_2 = (msb - 128) << 64
    for i in range(14):
        r = r * r >> 127
        f = r >> 128
        log_2 |= f << (63 - i)
        r >>= f

    log_sqrt10001 = log_2 * _LOG_SQRT10001_2
    tick_low = (log_sqrt10001 - _TICK_LOW_ERROR) >> 128
    tick_high = (log_sqrt10001 + _TICK_HIGH_ERROR) >> 128

    if tick_low == tick_high or get_sqrt_ratio_at_tick(tick_high) > sqrt_price_x96:
        return tick_low
    return tick_high


def floor_tick_to_spacing(tick: int, tick_spacing: int) -> int:
    """틱을 tick spacing의 배수로 내림

    Python의 ``//``는 음의 무한대 방향 floor division이므로
    음수 틱도 올바르게 내려간다 (예: -1 → -60).

    Args:
        tick: 내림할 틱
        tick_spacing: 틱 간격 (예: 60 for 0.3% fee)

    Returns:
        tick 이하의 가장 큰 spacing 배수
    """
    if tick_spacing <= 0:
        raise ValueError(f"틱 간격은 양수여야 합니다: {tick_spacing}")
    return (tick // tick_spacing) * tick_spacing


def usable_tick_bounds(tick_spacing: int) -> Tuple[int, int]:
    """spacing 배수이면서 유효 범위 안에 있는 최소/최대 틱

    Example:
        >>> usable_tick_bounds(60)
        (-887220, 887220)
    """
    max_usable = MAX_TICK // tick_spacing * tick_spacing
    return -max_usable, max_usable


def tick_to_price(tick: int, token0_decimals: int = 18, token1_decimals: int = 18) -> float:
    """틱을 human-readable 가격으로 변환

    price = 1.0001^tick × 10^(token0_decimals - token1_decimals)

    Args:
        tick: 틱 인덱스
        token0_decimals: token0 소수점 자릿수
        token1_decimals: token1 소수점 자릿수

    Returns:
        가격 (token1/token0)
    """
    ratio = 1.0001 ** tick
    return ratio * (10 ** (token0_decimals - token1_decimals))


def price_to_tick(price: float, token0_decimals: int = 18, token1_decimals: int = 18) -> int:
    """Human-readable 가격을 틱으로 변환 (내림)

    tick = floor(log₁.₀₀₀₁(price × 10^(token1_decimals - token0_decimals)))

    Args:
        price: 가격 (token1/token0)
        token0_decimals: token0 소수점 자릿수
        token1_decimals: token1 소수점 자릿수

    Returns:
        틱 인덱스 (MIN_TICK ~ MAX_TICK로 clamp)

    Example:
        >>> price_to_tick(100)
        46054
    """
    if price <= 0:
        raise ValueError("가격은 양수여야 합니다")

    ratio = price * (10 ** (token1_decimals - token0_decimals))
    tick = math.floor(math.log(ratio) / math.log(1.0001))
    return max(MIN_TICK, min(MAX_TICK, tick))


def get_tick_spacing_for_fee(fee_tier: int) -> int:
    """수수료 티어에 해당하는 틱 간격 반환

    Args:
        fee_tier: 수수료 티어 (100, 500, 3000, 10000)

    Returns:
        틱 간격
    """
    if fee_tier not in TICK_SPACINGS:
        raise ValueError(f"지원하지 않는 수수료 티어: {fee_tier}")
    return TICK_SPACINGS[fee_tier]
