"""
Swap Math / Sqrt Price Math 테스트

스왑 한 스텝의 입력/출력/수수료 보존 관계와 가격 이동 반올림 방향을 검증합니다.
"""

import pytest

from ..constants import Q96
from ..math.liquidity_math import get_amount0_delta, get_amount1_delta
from ..math.sqrt_price_math import (
    get_next_sqrt_price_from_input,
    get_next_sqrt_price_from_output,
    price_to_sqrt_price_x96,
    sqrt_price_x96_to_price
)
from ..math.swap_math import compute_swap_step
from ..math.tick_math import get_sqrt_ratio_at_tick

LIQUIDITY = 2 * 10 ** 18
PRICE_1 = Q96
PRICE_UP = get_sqrt_ratio_at_tick(100)
PRICE_DOWN = get_sqrt_ratio_at_tick(-100)


class TestPriceConversion:
    """sqrt_price_x96_to_price, price_to_sqrt_price_x96 테스트"""

    def test_price_100(self):
        assert price_to_sqrt_price_x96(100) == 10 * Q96
        assert sqrt_price_x96_to_price(10 * Q96) == pytest.approx(100.0)

    def test_decimals(self):
        """token0 18자리, token1 6자리"""
        sqrt_price = price_to_sqrt_price_x96(2000, 18, 6)
        assert sqrt_price_x96_to_price(sqrt_price, 18, 6) == pytest.approx(2000, rel=1e-9)

    def test_invalid(self):
        with pytest.raises(ValueError):
            price_to_sqrt_price_x96(0)


class TestNextSqrtPrice:
    """get_next_sqrt_price_from_input / output 테스트"""

    def test_token0_input_lowers_price(self):
        next_price = get_next_sqrt_price_from_input(PRICE_1, LIQUIDITY, 10 ** 17, True)
        assert next_price < PRICE_1

    def test_token1_input_raises_price(self):
        next_price = get_next_sqrt_price_from_input(PRICE_1, LIQUIDITY, 10 ** 17, False)
        assert next_price > PRICE_1
        # √P' = √P + Δy / L (내림)
        assert next_price == PRICE_1 + (10 ** 17 << 96) // LIQUIDITY

    def test_zero_amount(self):
        assert get_next_sqrt_price_from_input(PRICE_1, LIQUIDITY, 0, True) == PRICE_1
        assert get_next_sqrt_price_from_input(PRICE_1, LIQUIDITY, 0, False) == PRICE_1

    def test_input_covers_delta(self):
        """이동한 가격 구간에 필요한 입력은 실제 입력 이하 (풀에 유리한 반올림)"""
        amount_in = 10 ** 17
        next_price = get_next_sqrt_price_from_input(PRICE_1, LIQUIDITY, amount_in, True)
        assert get_amount0_delta(next_price, PRICE_1, LIQUIDITY, True) <= amount_in

    def test_output_exceeding_reserve(self):
        """가상 reserve보다 많은 출력은 불가"""
        with pytest.raises(ValueError):
            get_next_sqrt_price_from_output(PRICE_1, 1, 10 ** 18, True)
        with pytest.raises(ValueError):
            get_next_sqrt_price_from_output(PRICE_1, 1, 10 ** 18, False)

    def test_invalid_liquidity(self):
        with pytest.raises(ValueError):
            get_next_sqrt_price_from_input(PRICE_1, 0, 10, True)


class TestComputeSwapStep:
    """compute_swap_step 테스트"""

    def test_exact_in_capped_at_target(self):
        """입력이 충분하면 목표 가격에서 멈추고 입력 일부만 사용"""
        step = compute_swap_step(PRICE_1, PRICE_UP, LIQUIDITY, 10 ** 18, 600)
        assert step.sqrt_price_next_x96 == PRICE_UP
        assert step.amount_in == get_amount1_delta(PRICE_1, PRICE_UP, LIQUIDITY, True)
        assert step.amount_out == get_amount0_delta(PRICE_1, PRICE_UP, LIQUIDITY, False)
        assert step.amount_in + step.fee_amount < 10 ** 18

    def test_exact_in_not_reaching_target(self):
        """목표에 못 미치면 입력 전부 소진 (수수료 포함)"""
        amount = 10 ** 15
        step = compute_swap_step(PRICE_1, PRICE_DOWN, LIQUIDITY, amount, 3000)
        assert PRICE_DOWN < step.sqrt_price_next_x96 < PRICE_1
        assert step.amount_in + step.fee_amount == amount
        assert step.fee_amount >= amount * 3000 // 1_000_000

    def test_exact_out_capped_at_target(self):
        """출력 요청이 크면 목표 가격까지만 출력"""
        step = compute_swap_step(PRICE_1, PRICE_DOWN, LIQUIDITY, -10 ** 18, 600)
        assert step.sqrt_price_next_x96 == PRICE_DOWN
        assert step.amount_out == get_amount1_delta(PRICE_DOWN, PRICE_1, LIQUIDITY, False)
        assert step.amount_out < 10 ** 18

    def test_exact_out_partial(self):
        """출력 요청을 정확히 채우고 그 이상 내보내지 않음"""
        requested = 10 ** 15
        step = compute_swap_step(PRICE_1, PRICE_UP, LIQUIDITY, -requested, 3000)
        assert step.sqrt_price_next_x96 < PRICE_UP
        assert step.amount_out == requested
        assert step.amount_in > 0
        assert step.fee_amount > 0

    def test_zero_fee(self):
        step = compute_swap_step(PRICE_1, PRICE_UP, LIQUIDITY, 10 ** 18, 0)
        assert step.fee_amount == 0

    def test_zero_liquidity_jumps_to_target(self):
        """활성 유동성이 없으면 입력 없이 목표 가격으로"""
        step = compute_swap_step(PRICE_1, PRICE_UP, 0, 10 ** 18, 3000)
        assert step.sqrt_price_next_x96 == PRICE_UP
        assert step.amount_in == 0
        assert step.amount_out == 0
        assert step.fee_amount == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
