"""
OracleGuard 테스트

spot 틱과 TWAP 비교, 마지막 리밸런스 틱 대비 이동량 검사를 검증합니다.
"""

from collections import namedtuple

import pytest

from ..errors import ConfigurationError, OracleError, PriceManipulationError
from ..vault.oracle_guard import OracleGuard, check_twap_config

FakeSlot0 = namedtuple("FakeSlot0", ["tick"])


class FakePool:
    """고정된 tickCumulative를 돌려주는 풀"""

    def __init__(self, tick, cumulatives):
        self.tick = tick
        self.cumulatives = cumulatives

    def slot0(self):
        return FakeSlot0(self.tick)

    def observe(self, seconds_agos):
        return list(self.cumulatives)


class TestCheckTwapConfig:
    """check_twap_config 테스트"""

    @pytest.mark.parametrize("args,reason", [
        ((-1, 600, 0), "maxTwapDeviation"),
        ((100, 0, 0), "twapDuration"),
        ((100, 600, -1), "minLastTickDeviation"),
    ])
    def test_invalid(self, args, reason):
        with pytest.raises(ConfigurationError) as exc_info:
            check_twap_config(*args)
        assert exc_info.value.reason == reason

    def test_valid(self):
        check_twap_config(0, 1, 0)


class TestTwap:
    """twap 계산 테스트"""

    def test_floor_for_negative(self):
        guard = OracleGuard(FakePool(-4, [0, -7]), 100, 2)
        assert guard.twap() == -4

    def test_stable_pool(self, pool):
        guard = OracleGuard(pool, 100, 600)
        assert guard.twap() == pool.slot0().tick
        assert guard.check() == pool.slot0().tick

    def test_window_longer_than_history(self, pool):
        guard = OracleGuard(pool, 100, 7200)
        with pytest.raises(OracleError):
            guard.twap()


class TestCheck:
    """check 테스트"""

    def test_recent_swap_rejected(self, pool, router, user):
        guard = OracleGuard(pool, 500, 600)
        router.swap(pool, True, 10 ** 15, sender=user)
        with pytest.raises(PriceManipulationError) as exc_info:
            guard.check()
        assert exc_info.value.reason == "maxTwapDeviation"

    def test_passes_after_window(self, pool, router, user, chain):
        guard = OracleGuard(pool, 500, 600)
        router.swap(pool, True, 10 ** 15, sender=user)
        chain.sleep(610)
        assert guard.check() == pool.slot0().tick

    def test_deviation_boundary(self):
        assert OracleGuard(FakePool(10, [0, 0]), 10, 1).check() == 10
        with pytest.raises(PriceManipulationError):
            OracleGuard(FakePool(11, [0, 0]), 10, 1).check()

    def test_min_last_tick_deviation(self):
        guard = OracleGuard(FakePool(100, [0, 100]), 10, 1, min_last_tick_deviation=50)
        with pytest.raises(PriceManipulationError) as exc_info:
            guard.check(last_tick=60)
        assert exc_info.value.reason == "minLastTickDeviation"
        assert guard.check(last_tick=50) == 100
        # 첫 리밸런스는 이동량 검사 생략
        assert guard.check() == 100


class TestSetters:
    """설정 변경 테스트"""

    def test_set_and_validate(self):
        guard = OracleGuard(FakePool(0, [0, 0]), 10, 60)
        guard.set_max_twap_deviation(20)
        guard.set_twap_duration(120)
        guard.set_min_last_tick_deviation(5)
        assert (guard.max_twap_deviation, guard.twap_duration, guard.min_last_tick_deviation) == (20, 120, 5)

        with pytest.raises(ConfigurationError):
            guard.set_twap_duration(0)
        assert guard.twap_duration == 120
