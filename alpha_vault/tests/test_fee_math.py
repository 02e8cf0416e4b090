"""
Fee Math 테스트

백서 Section 6.3, 6.4 기반 수수료 누적 함수들을 테스트합니다.
fee growth는 uint256처럼 랩어라운드해야 합니다.
"""

import pytest

from ..math.fee_math import (
    fee_growth_above,
    fee_growth_below,
    fee_growth_inside,
    calculate_uncollected_fees,
    calculate_fee_growth_delta,
    fee_growth_global_increment,
    wrap_add
)
from ..constants import Q128

WRAP = 2 ** 256


class TestFeeGrowthAboveBelow:
    """fee_growth_above (f_a), fee_growth_below (f_b) 테스트

    f_g = 1000, f_o = 300, 틱 i = 100
    """

    @pytest.mark.parametrize("current_tick,expected", [
        (150, 700),  # i_c > i: f_g - f_o
        (100, 700),  # i_c == i: f_g - f_o
        (50, 300),   # i_c < i: f_o
    ])
    def test_above(self, current_tick, expected):
        assert fee_growth_above(100, current_tick, 1000, 300) == expected

    @pytest.mark.parametrize("current_tick,expected", [
        (150, 300),  # i_c > i: f_o
        (100, 300),  # i_c == i: f_o
        (50, 700),   # i_c < i: f_g - f_o
    ])
    def test_below(self, current_tick, expected):
        assert fee_growth_below(100, current_tick, 1000, 300) == expected

    def test_above_plus_below_is_global(self):
        """한 틱 기준 위/아래 성장의 합은 전역 성장"""
        for current_tick in (50, 100, 150):
            total = fee_growth_above(100, current_tick, 1000, 300) + fee_growth_below(100, current_tick, 1000, 300)
            assert total == 1000

    def test_outside_larger_than_global_wraps(self):
        """f_o > f_g (초기화 시점 차이) 는 랩어라운드"""
        assert fee_growth_above(100, 150, 100, 300) == WRAP - 200


class TestFeeGrowthInside:
    """fee_growth_inside 테스트 (f_r = f_g - f_b(i_l) - f_a(i_u))

    범위 [100, 200], f_g = 1000, f_o(100) = 100, f_o(200) = 200
    """

    @pytest.mark.parametrize("current_tick,expected", [
        (150, 700),          # 범위 내: 1000 - 100 - 200
        (50, WRAP - 100),    # 범위 아래: 1000 - 900 - 200 (음수 → 랩)
        (250, 100),          # 범위 위: 1000 - 100 - 800
    ])
    def test_positions(self, current_tick, expected):
        result = fee_growth_inside(
            tick_lower=100, tick_upper=200, current_tick=current_tick,
            fee_growth_global=1000,
            fee_growth_outside_lower=100,
            fee_growth_outside_upper=200
        )
        assert result == expected

    def test_wrapped_values_still_give_correct_delta(self):
        """랩어라운드된 f_r도 두 시점 차이는 정확"""
        before = fee_growth_inside(100, 200, 50, 1000, 100, 200)
        after = fee_growth_inside(100, 200, 50, 1500, 100, 200)
        # 범위 밖에 있었으므로 내부 성장 없음
        assert calculate_fee_growth_delta(after, before) == 0


class TestCalculateUncollectedFees:
    """calculate_uncollected_fees 테스트 (f_u = l × Δf_r / 2^128)"""

    def test_basic_calculation(self):
        """토큰 최소 단위로 변환"""
        liquidity = 10 ** 6
        result = calculate_uncollected_fees(liquidity, 500 * Q128, 100 * Q128)
        assert result == liquidity * 400

    def test_rounds_down(self):
        """단위 미만 수수료는 버림"""
        assert calculate_uncollected_fees(3, Q128 // 2, 0) == 1

    def test_zero_delta(self):
        assert calculate_uncollected_fees(10 ** 6, 100 * Q128, 100 * Q128) == 0

    def test_wrapped_growth(self):
        """f_r이 2^256을 넘어 랩된 경우에도 실제 증가분만 반영"""
        last = WRAP - 10 * Q128
        current = 5 * Q128
        assert calculate_uncollected_fees(1000, current, last) == 1000 * 15


class TestGlobalGrowth:
    """fee_growth_global_increment, wrap_add, calculate_fee_growth_delta 테스트"""

    def test_increment(self):
        """fee × 2^128 / L"""
        assert fee_growth_global_increment(300, 100) == 3 * Q128

    def test_increment_zero_liquidity(self):
        """활성 유동성이 없으면 누적하지 않음"""
        assert fee_growth_global_increment(300, 0) == 0

    def test_increment_then_uncollected_roundtrip(self):
        """L 전체가 받을 수수료는 원래 수수료 이하"""
        fee, liquidity = 12345, 10 ** 18
        growth = fee_growth_global_increment(fee, liquidity)
        assert calculate_uncollected_fees(liquidity, growth, 0) <= fee
        assert calculate_uncollected_fees(liquidity, growth, 0) >= fee - 1

    def test_wrap_add(self):
        assert wrap_add(WRAP - 1, 2) == 1
        assert wrap_add(1, 2) == 3

    def test_delta(self):
        assert calculate_fee_growth_delta(1000, 500) == 500
        assert calculate_fee_growth_delta(100, 200) == WRAP - 100


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
