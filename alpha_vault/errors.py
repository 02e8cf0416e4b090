"""
볼트 에러 분류

모든 실패는 안정적인 ``reason`` 코드를 가진다. 키퍼 등 오프체인 도구는
메시지 대신 reason과 예외 타입으로 분기한다.

- 설정 오류: ConfigurationError (생성자/세터 인자 검증)
- 권한 오류: AuthorizationError, NotPendingGovernanceError
- 일시적 오류: PriceManipulationError, CooldownError (키퍼가 재시도)
- 입력 오류: ZeroAmountError, InvalidRecipientError, MinimumSupplyError,
  SlippageError, MaxTotalSupplyError
- 잔고 부족: InsufficientBalanceError
- 영구 오류: FinalizedError
- 범위 오류: RangeValidityError
- 협력자 오류: PoolError, OracleError
"""

from typing import Optional


class VaultError(Exception):
    """볼트 코어의 모든 실패에 대한 기본 예외

    Attributes:
        reason: 기계가 판별 가능한 고정 사유 코드 (예: "maxTwapDeviation")
    """

    default_reason = "vault"

    def __init__(self, reason: Optional[str] = None, message: Optional[str] = None):
        self.reason = reason or self.default_reason
        self.message = message
        super().__init__(self.reason if message is None else f"{self.reason}: {message}")


class ConfigurationError(VaultError):
    default_reason = "configuration"


InvalidConfiguration = ConfigurationError


class AuthorizationError(VaultError):
    default_reason = "governance"


class NotPendingGovernanceError(AuthorizationError):
    default_reason = "pendingGovernance"


class PriceManipulationError(VaultError):
    default_reason = "maxTwapDeviation"


class CooldownError(VaultError):
    default_reason = "cooldown"


class ZeroAmountError(VaultError):
    default_reason = "shares"


class InvalidRecipientError(VaultError):
    default_reason = "to"


class MinimumSupplyError(VaultError):
    default_reason = "MIN_TOTAL_SUPPLY"


class SlippageError(VaultError):
    default_reason = "amount0Min"


class MaxTotalSupplyError(VaultError):
    default_reason = "maxTotalSupply"


class InsufficientBalanceError(VaultError):
    default_reason = "balance"


class FinalizedError(VaultError):
    default_reason = "finalized"


class RangeValidityError(VaultError):
    default_reason = "range"


class PoolError(VaultError):
    """풀(외부 협력자) 수준 검증 실패. reason은 Uniswap 코드 ("TLU", "LOK" 등)"""

    default_reason = "pool"


class OracleError(PoolError):
    default_reason = "OLD"


# 키퍼가 가격 안정 또는 대기 후 재시도할 수 있는 오류
TRANSIENT_ERRORS = (PriceManipulationError, CooldownError)
