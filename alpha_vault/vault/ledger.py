"""
Share Ledger - 지분 장부와 예치/인출 비례 계산

보유자 → 지분 매핑, 총 공급량, 공급 상한을 관리하고
예치/인출 시 지분과 토큰량을 정수로 정확히 계산한다.

핵심 공식:
    첫 예치 (S == 0): 풀 현재가로 비율 결정
        t0 = 2^192, t1 = sqrtPriceX96^2           # t1/t0 = price
    기존 공급 (S > 0): 볼트 총량 비율 유지
        t0 = total0, t1 = total1
    cross = min(a0 × t1, a1 × t0)                 # 묶이는 쪽 선택
    amount0 = ceil(cross / t1), amount1 = ceil(cross / t0)
    shares = cross × S / t0 / t1                  # S > 0
    shares = max(amount0, amount1)                # S == 0
    인출: amount = shares × total / S (내림)

올림/내림 방향 덕분에 예치자는 항상 기존 보유자보다 불리하게 반올림되어
지분당 가치가 감소하지 않는다.
"""

from typing import Dict, NamedTuple, Optional

from ..constants import MIN_TOTAL_SUPPLY, Q192
from ..errors import (
    InsufficientBalanceError,
    MaxTotalSupplyError,
    MinimumSupplyError,
    ZeroAmountError,
)


class DepositQuote(NamedTuple):
    """예치 미리보기 결과"""
    shares: int
    amount0: int
    amount1: int


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def calc_shares_and_amounts(
    amount0_desired: int,
    amount1_desired: int,
    total0: int,
    total1: int,
    total_supply: int,
    sqrt_price_x96: Optional[int] = None
) -> DepositQuote:
    """예치 지분과 실제 투입 토큰량 계산

    Args:
        amount0_desired: 최대 token0 투입량
        amount1_desired: 최대 token1 투입량
        total0: 볼트 총 token0 (유휴 + 포지션)
        total1: 볼트 총 token1
        total_supply: 현재 총 지분
        sqrt_price_x96: 첫 예치 비율을 정할 풀 가격 (total_supply == 0일 때 필수)

    Returns:
        DepositQuote (amount0 <= amount0_desired, amount1 <= amount1_desired)

    Raises:
        MinimumSupplyError: 첫 예치 지분이 MIN_TOTAL_SUPPLY 미만
        ZeroAmountError: 기존 공급에서 지분이 0
    """
    if amount0_desired < 0 or amount1_desired < 0:
        raise ValueError("예치량은 음수일 수 없습니다")

    if total_supply == 0:
        if sqrt_price_x96 is None:
            raise ValueError("첫 예치에는 풀 가격이 필요합니다")
        t0, t1 = Q192, sqrt_price_x96 * sqrt_price_x96
        cross = min(amount0_desired * t1, amount1_desired * t0)
        amount0 = _ceil_div(cross, t1)
        amount1 = _ceil_div(cross, t0)
        shares = max(amount0, amount1)
        if shares < MIN_TOTAL_SUPPLY:
            raise MinimumSupplyError(
                "MIN_TOTAL_SUPPLY", f"첫 예치 지분이 최소 공급량보다 작습니다: {shares} < {MIN_TOTAL_SUPPLY}"
            )
        return DepositQuote(shares, amount0, amount1)

    if total0 == 0 and total1 == 0:
        raise ZeroAmountError("shares", "볼트 총량이 0이라 지분을 계산할 수 없습니다")

    if total0 == 0:
        amount0, amount1 = 0, amount1_desired
        shares = amount1 * total_supply // total1
    elif total1 == 0:
        amount0, amount1 = amount0_desired, 0
        shares = amount0 * total_supply // total0
    else:
        cross = min(amount0_desired * total1, amount1_desired * total0)
        amount0 = _ceil_div(cross, total1)
        amount1 = _ceil_div(cross, total0)
        shares = cross * total_supply // total0 // total1

    if shares == 0:
        raise ZeroAmountError("shares", "지분이 0입니다")
    return DepositQuote(shares, amount0, amount1)


def calc_withdraw_amount(shares: int, total_amount: int, total_supply: int) -> int:
    """지분에 비례하는 인출량 (내림)"""
    if total_supply == 0:
        return 0
    return total_amount * shares // total_supply


class ShareLedger:
    """보유자 → 지분 장부"""

    def __init__(self, max_total_supply: int):
        self.max_total_supply = max_total_supply
        self.total_supply = 0
        self._balances: Dict[str, int] = {}

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def mint(self, to: str, shares: int) -> None:
        """지분 발행

        Raises:
            MaxTotalSupplyError: 발행 후 총 공급이 상한 초과
        """
        if self.total_supply + shares > self.max_total_supply:
            raise MaxTotalSupplyError(
                "maxTotalSupply", f"공급 상한 초과: {self.total_supply + shares} > {self.max_total_supply}"
            )
        self._balances[to] = self.balance_of(to) + shares
        self.total_supply += shares

    def burn(self, holder: str, shares: int) -> None:
        """지분 소각

        Raises:
            InsufficientBalanceError: 보유 지분 부족
        """
        balance = self.balance_of(holder)
        if balance < shares:
            raise InsufficientBalanceError("shares", f"보유 지분 부족: {balance} < {shares}")
        self._balances[holder] = balance - shares
        self.total_supply -= shares

    def transfer(self, sender: str, to: str, shares: int) -> None:
        balance = self.balance_of(sender)
        if balance < shares:
            raise InsufficientBalanceError("shares", f"보유 지분 부족: {balance} < {shares}")
        self._balances[sender] = balance - shares
        self._balances[to] = self.balance_of(to) + shares
