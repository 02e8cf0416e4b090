"""
Configuration settings for Alpha Vault

.env 파일과 환경 변수에서 볼트/전략/키퍼 기본 파라미터를 읽는다.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings:
    """Alpha Vault settings"""

    # Pool
    POOL_FEE: int = int(os.getenv("POOL_FEE", 3000))

    # Vault (수수료 단위: ppm, 10000 = 1%)
    VAULT_PROTOCOL_FEE: int = int(os.getenv("VAULT_PROTOCOL_FEE", 10000))
    VAULT_MAX_TOTAL_SUPPLY: int = int(os.getenv("VAULT_MAX_TOTAL_SUPPLY", str(100 * 10 ** 18)))

    # Strategy (틱 단위, 기간은 초)
    STRATEGY_BASE_THRESHOLD: int = int(os.getenv("STRATEGY_BASE_THRESHOLD", 2400))
    STRATEGY_LIMIT_THRESHOLD: int = int(os.getenv("STRATEGY_LIMIT_THRESHOLD", 1200))
    STRATEGY_MAX_TWAP_DEVIATION: int = int(os.getenv("STRATEGY_MAX_TWAP_DEVIATION", 500))
    STRATEGY_TWAP_DURATION: int = int(os.getenv("STRATEGY_TWAP_DURATION", 600))
    STRATEGY_MIN_LAST_TICK_DEVIATION: int = int(os.getenv("STRATEGY_MIN_LAST_TICK_DEVIATION", 0))
    STRATEGY_REBALANCE_COOLDOWN: int = int(os.getenv("STRATEGY_REBALANCE_COOLDOWN", 0))

    # Keeper
    KEEPER_MIN_TICK_MOVE: int = int(os.getenv("KEEPER_MIN_TICK_MOVE", 200))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    def strategy_params(self) -> dict:
        """AlphaStrategy 생성자 키워드 인자"""
        return {
            "base_threshold": self.STRATEGY_BASE_THRESHOLD,
            "limit_threshold": self.STRATEGY_LIMIT_THRESHOLD,
            "max_twap_deviation": self.STRATEGY_MAX_TWAP_DEVIATION,
            "twap_duration": self.STRATEGY_TWAP_DURATION,
            "min_last_tick_deviation": self.STRATEGY_MIN_LAST_TICK_DEVIATION,
            "rebalance_cooldown": self.STRATEGY_REBALANCE_COOLDOWN,
        }


# Create global settings instance
settings = Settings()
