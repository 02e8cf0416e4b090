"""
Keeper 테스트

틱 이동량에 따른 건너뛰기, 일시적 오류 재시도, 그 외 오류 전파를 검증합니다.
"""

import logging

import pytest

from ..errors import AuthorizationError
from ..keeper import Keeper
from ..vault import Snapshot


class TestKeeper:
    """Keeper 테스트"""

    def test_negative_min_tick_move(self, strategy, keeper):
        with pytest.raises(ValueError):
            Keeper(strategy, keeper, min_tick_move=-1)

    def test_first_poke_rebalances(self, strategy, keeper, chain):
        bot = Keeper(strategy, keeper, min_tick_move=200)
        assert bot.tick_moved() == -1
        assert bot.poke()
        assert strategy.last_tick == strategy.get_tick()
        assert bot.tick_moved() == 0
        assert len(chain.events_of(Snapshot)) == 1

    def test_skip_small_move(self, strategy, keeper, chain, caplog):
        bot = Keeper(strategy, keeper, min_tick_move=200)
        bot.poke()
        chain.sleep(600)
        with caplog.at_level(logging.INFO):
            assert not bot.poke()
        assert "건너뜀" in caplog.text
        assert len(chain.events_of(Snapshot)) == 1

    def test_rebalance_after_move(self, strategy, keeper, pool, router, gov, chain):
        bot = Keeper(strategy, keeper, min_tick_move=100)
        bot.poke()
        router.swap(pool, True, 10 ** 13, sender=gov)
        chain.sleep(600)
        assert bot.tick_moved() >= 100
        assert bot.poke()
        assert len(chain.events_of(Snapshot)) == 2

    def test_transient_error_returns_false(self, strategy, keeper, pool, router, gov, caplog):
        bot = Keeper(strategy, keeper)
        router.swap(pool, True, 10 ** 15, sender=gov)
        with caplog.at_level(logging.WARNING):
            assert not bot.poke()
        assert "maxTwapDeviation" in caplog.text
        assert strategy.last_tick is None

    def test_other_errors_propagate(self, strategy, user):
        bot = Keeper(strategy, user)
        with pytest.raises(AuthorizationError):
            bot.poke()

    def test_run(self, strategy, keeper, chain):
        bot = Keeper(strategy, keeper)
        start = chain.timestamp
        assert bot.run(iterations=3, interval=3600) == [True, True, True]
        assert chain.timestamp == start + 3 * 3600
        assert strategy.last_rebalance == chain.timestamp

    def test_run_skips(self, strategy, keeper):
        bot = Keeper(strategy, keeper, min_tick_move=200)
        assert bot.run(iterations=3, interval=60) == [True, False, False]
