"""
Math layer for Alpha Vault

온체인 수준 정밀도의 수학 함수들:
- tick_math: Tick ↔ sqrtPrice 변환, tick spacing 내림
- sqrt_price_math: sqrtPriceX96 관련 계산
- liquidity_math: 유동성 ↔ 토큰 수량 변환
- swap_math: 스왑 한 스텝 계산
- fee_math: 백서 기반 수수료 누적 계산
"""

from .tick_math import (
    MIN_SQRT_RATIO,
    MAX_SQRT_RATIO,
    get_tick_at_sqrt_ratio,
    get_sqrt_ratio_at_tick,
    floor_tick_to_spacing,
    usable_tick_bounds,
    tick_to_price,
    price_to_tick,
    get_tick_spacing_for_fee,
)
from .sqrt_price_math import (
    sqrt_price_x96_to_price,
    price_to_sqrt_price_x96,
)
from .liquidity_math import (
    get_amount0_delta,
    get_amount1_delta,
    get_liquidity_for_amounts,
    get_amounts_for_liquidity,
    mul_div_rounding_up,
    div_rounding_up,
)
from .swap_math import SwapStep, compute_swap_step
from .fee_math import (
    fee_growth_inside,
    calculate_uncollected_fees,
    calculate_fee_growth_delta,
)
