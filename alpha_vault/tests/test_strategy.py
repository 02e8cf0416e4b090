"""
AlphaStrategy 테스트

생성자/세터 검증, 키퍼 권한, 쿨다운과 last-tick 검사,
틱 경계 근처에서의 범위 검증을 테스트합니다.
"""

import pytest

from ..errors import (
    AuthorizationError,
    ConfigurationError,
    CooldownError,
    PriceManipulationError,
    RangeValidityError,
)
from ..math.tick_math import get_sqrt_ratio_at_tick
from ..vault import AlphaStrategy, AlphaVault
from .conftest import MAX_TOTAL_SUPPLY, PROTOCOL_FEE


def make_strategy(chain, vault, keeper, *args, **kwargs):
    params = dict(
        base_threshold=2400,
        limit_threshold=1200,
        max_twap_deviation=500,
        twap_duration=600,
        keeper=keeper,
    )
    params.update(kwargs)
    return AlphaStrategy(chain, vault, *args, **params)


class TestConstructor:
    """생성자 테스트"""

    def test_constructor(self, chain, vault, keeper):
        strategy = AlphaStrategy(chain, vault, 2400, 1200, 500, 300, keeper, min_last_tick_deviation=600)
        assert strategy.vault is vault
        assert strategy.pool is vault.pool
        assert strategy.base_threshold == 2400
        assert strategy.limit_threshold == 1200
        assert strategy.max_twap_deviation == 500
        assert strategy.twap_duration == 300
        assert strategy.min_last_tick_deviation == 600
        assert strategy.rebalance_cooldown == 0
        assert strategy.keeper == keeper
        assert strategy.last_tick is None

    @pytest.mark.parametrize("kwargs,reason", [
        ({"base_threshold": 2401}, "threshold not tick multiple"),
        ({"limit_threshold": 1201}, "threshold not tick multiple"),
        ({"base_threshold": 0}, "threshold not positive"),
        ({"limit_threshold": -60}, "threshold not positive"),
        ({"base_threshold": 887280}, "threshold too high"),
        ({"limit_threshold": 887280}, "threshold too high"),
        ({"max_twap_deviation": -1}, "maxTwapDeviation"),
        ({"twap_duration": 0}, "twapDuration"),
        ({"min_last_tick_deviation": -1}, "minLastTickDeviation"),
        ({"rebalance_cooldown": -1}, "rebalanceCooldown"),
    ])
    def test_constructor_checks(self, chain, vault, keeper, kwargs, reason):
        with pytest.raises(ConfigurationError) as exc_info:
            make_strategy(chain, vault, keeper, **kwargs)
        assert exc_info.value.reason == reason


class TestRebalanceGuards:
    """rebalance 사전 검사"""

    def test_only_keeper(self, strategy, gov, user):
        for sender in (gov, user):
            with pytest.raises(AuthorizationError) as exc_info:
                strategy.rebalance(sender=sender)
            assert exc_info.value.reason == "keeper"

    def test_returns_tick_and_floor(self, strategy, pool, keeper):
        tick, tick_floor = strategy.rebalance(sender=keeper)
        assert tick == pool.slot0().tick == 46054
        assert tick_floor == 46020

    def test_get_tick_and_twap(self, strategy, pool):
        assert strategy.get_tick() == pool.slot0().tick
        assert strategy.get_twap() == pool.slot0().tick

    def test_cooldown(self, chain, vault, gov, keeper):
        strategy = make_strategy(chain, vault, keeper, rebalance_cooldown=3600)
        vault.set_strategy(strategy.address, sender=gov)

        strategy.rebalance(sender=keeper)
        assert not strategy.should_rebalance()
        with pytest.raises(CooldownError):
            strategy.rebalance(sender=keeper)

        chain.sleep(3599)
        assert not strategy.should_rebalance()
        chain.sleep(1)
        assert strategy.should_rebalance()
        strategy.rebalance(sender=keeper)

    def test_min_last_tick_deviation(self, chain, vault, pool, router, gov, keeper):
        strategy = make_strategy(chain, vault, keeper, min_last_tick_deviation=100)
        vault.set_strategy(strategy.address, sender=gov)

        # 첫 리밸런스는 이동량 검사 생략
        strategy.rebalance(sender=keeper)
        chain.sleep(600)
        with pytest.raises(PriceManipulationError) as exc_info:
            strategy.rebalance(sender=keeper)
        assert exc_info.value.reason == "minLastTickDeviation"

        router.swap(pool, True, 10 ** 13, sender=gov)
        assert abs(pool.slot0().tick - strategy.last_tick) >= 100
        chain.sleep(600)
        strategy.rebalance(sender=keeper)

    def test_should_rebalance_after_manipulation(self, strategy, pool, router, gov):
        assert strategy.should_rebalance()
        router.swap(pool, True, 10 ** 15, sender=gov)
        assert not strategy.should_rebalance()

    def test_failed_rebalance_keeps_state(self, strategy, vault, pool, router, gov, keeper):
        router.swap(pool, True, 10 ** 15, sender=gov)
        with pytest.raises(PriceManipulationError):
            strategy.rebalance(sender=keeper)
        assert strategy.last_rebalance == 0
        assert strategy.last_tick is None
        assert (vault.base_lower, vault.base_upper) == (0, 0)

    @pytest.mark.parametrize("tick,reason", [
        (-885000, "tick too low"),
        (885000, "tick too high"),
    ])
    def test_tick_near_bounds(self, chain, make_pool, gov, keeper, tick, reason):
        pool = make_pool(sqrt_price_x96=get_sqrt_ratio_at_tick(tick), liquidity=0)
        vault = AlphaVault(chain, pool, PROTOCOL_FEE, MAX_TOTAL_SUPPLY, governance=gov)
        strategy = make_strategy(chain, vault, keeper)
        vault.set_strategy(strategy.address, sender=gov)

        with pytest.raises(RangeValidityError) as exc_info:
            strategy.rebalance(sender=keeper)
        assert exc_info.value.reason == reason
        # 범위 오류는 일시적 오류가 아니므로 그대로 전파
        with pytest.raises(RangeValidityError):
            strategy.should_rebalance()


class TestStrategySetters:
    """관리자 세터 (볼트의 현재 관리자 기준)"""

    def test_thresholds(self, strategy, gov, user):
        with pytest.raises(AuthorizationError):
            strategy.set_base_threshold(0, sender=user)
        with pytest.raises(ConfigurationError) as exc_info:
            strategy.set_base_threshold(2401, sender=gov)
        assert exc_info.value.reason == "threshold not tick multiple"
        with pytest.raises(ConfigurationError) as exc_info:
            strategy.set_base_threshold(0, sender=gov)
        assert exc_info.value.reason == "threshold not positive"
        with pytest.raises(ConfigurationError) as exc_info:
            strategy.set_base_threshold(887280, sender=gov)
        assert exc_info.value.reason == "threshold too high"
        strategy.set_base_threshold(4800, sender=gov)
        assert strategy.base_threshold == 4800

        with pytest.raises(AuthorizationError):
            strategy.set_limit_threshold(0, sender=user)
        with pytest.raises(ConfigurationError):
            strategy.set_limit_threshold(1201, sender=gov)
        strategy.set_limit_threshold(600, sender=gov)
        assert strategy.limit_threshold == 600

    def test_oracle_params(self, strategy, gov, user):
        with pytest.raises(AuthorizationError):
            strategy.set_max_twap_deviation(1000, sender=user)
        with pytest.raises(ConfigurationError) as exc_info:
            strategy.set_max_twap_deviation(-1, sender=gov)
        assert exc_info.value.reason == "maxTwapDeviation"
        strategy.set_max_twap_deviation(1000, sender=gov)
        assert strategy.max_twap_deviation == 1000

        with pytest.raises(AuthorizationError):
            strategy.set_twap_duration(800, sender=user)
        with pytest.raises(ConfigurationError):
            strategy.set_twap_duration(0, sender=gov)
        strategy.set_twap_duration(800, sender=gov)
        assert strategy.twap_duration == 800

        strategy.set_min_last_tick_deviation(60, sender=gov)
        assert strategy.min_last_tick_deviation == 60
        strategy.set_rebalance_cooldown(300, sender=gov)
        assert strategy.rebalance_cooldown == 300
        with pytest.raises(ConfigurationError):
            strategy.set_rebalance_cooldown(-1, sender=gov)

    def test_keeper_follows_vault_governance(self, strategy, vault, gov, user, recipient):
        with pytest.raises(AuthorizationError):
            strategy.set_keeper(recipient, sender=user)
        assert strategy.keeper != recipient
        strategy.set_keeper(recipient, sender=gov)
        assert strategy.keeper == recipient

        vault.set_governance(user, sender=gov)
        vault.accept_governance(sender=user)
        with pytest.raises(AuthorizationError):
            strategy.set_keeper(recipient, sender=gov)
        strategy.set_keeper(recipient, sender=user)
