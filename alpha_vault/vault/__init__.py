"""
Vault core

- positions: 틱 범위 단위 풀 포지션 접근자
- oracle_guard: TWAP 기반 가격 검증
- ledger: 지분 장부와 예치/인출 비례 계산
- governance: 2단계 관리자 이전
- vault: AlphaVault (예치, 인출, 리밸런스, 수수료)
- strategy: AlphaStrategy (키퍼 호출 리밸런스)
"""

from .events import CollectFees, Deposit, GovernanceTransferred, Snapshot, StreamingFee, Withdraw
from .governance import Governance
from .ledger import DepositQuote, ShareLedger, calc_shares_and_amounts, calc_withdraw_amount
from .oracle_guard import OracleGuard, check_twap_config
from .positions import BurnResult, PositionManager
from .vault import AlphaVault
from .strategy import AlphaStrategy

__all__ = [
    "AlphaVault",
    "AlphaStrategy",
    "PositionManager",
    "BurnResult",
    "OracleGuard",
    "check_twap_config",
    "ShareLedger",
    "DepositQuote",
    "calc_shares_and_amounts",
    "calc_withdraw_amount",
    "Governance",
    "Deposit",
    "Withdraw",
    "CollectFees",
    "StreamingFee",
    "Snapshot",
    "GovernanceTransferred",
]
