"""
Settings 테스트

환경 변수 기본값/덮어쓰기와 전략 파라미터 묶음을 검증합니다.
Settings 속성은 import 시점에 읽히므로 모듈을 다시 로드해서 확인합니다.
"""

import importlib
import inspect

import pytest

from .. import config
from ..vault import AlphaStrategy

ENV_KEYS = [
    "POOL_FEE",
    "VAULT_PROTOCOL_FEE",
    "VAULT_MAX_TOTAL_SUPPLY",
    "STRATEGY_BASE_THRESHOLD",
    "STRATEGY_LIMIT_THRESHOLD",
    "STRATEGY_MAX_TWAP_DEVIATION",
    "STRATEGY_TWAP_DURATION",
    "STRATEGY_MIN_LAST_TICK_DEVIATION",
    "STRATEGY_REBALANCE_COOLDOWN",
    "KEEPER_MIN_TICK_MOVE",
    "LOG_LEVEL",
]


@pytest.fixture
def reload_config(monkeypatch):
    """환경 변수를 지정하고 config 모듈을 다시 로드"""
    def f(**env):
        for key in ENV_KEYS:
            monkeypatch.delenv(key, raising=False)
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(config)

    yield f

    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    importlib.reload(config)


class TestSettings:
    """Settings 테스트"""

    def test_defaults(self, reload_config):
        settings = reload_config().settings
        assert settings.POOL_FEE == 3000
        assert settings.VAULT_PROTOCOL_FEE == 10000
        assert settings.VAULT_MAX_TOTAL_SUPPLY == 100 * 10 ** 18
        assert settings.STRATEGY_BASE_THRESHOLD == 2400
        assert settings.STRATEGY_LIMIT_THRESHOLD == 1200
        assert settings.STRATEGY_MAX_TWAP_DEVIATION == 500
        assert settings.STRATEGY_TWAP_DURATION == 600
        assert settings.KEEPER_MIN_TICK_MOVE == 200
        assert settings.LOG_LEVEL == "INFO"

    def test_env_override(self, reload_config):
        settings = reload_config(
            STRATEGY_BASE_THRESHOLD="4800",
            VAULT_MAX_TOTAL_SUPPLY=str(10 ** 30),
            LOG_LEVEL="debug",
        ).settings
        assert settings.STRATEGY_BASE_THRESHOLD == 4800
        assert settings.VAULT_MAX_TOTAL_SUPPLY == 10 ** 30
        assert settings.LOG_LEVEL == "DEBUG"

    def test_invalid_env(self, reload_config):
        with pytest.raises(ValueError):
            reload_config(POOL_FEE="0.3%")

    def test_strategy_params_match_constructor(self, reload_config):
        params = reload_config().settings.strategy_params()
        accepted = inspect.signature(AlphaStrategy).parameters
        assert set(params) <= set(accepted)
        assert params["rebalance_cooldown"] == 0
