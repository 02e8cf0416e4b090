"""
Position Accessor - 이름 붙은 틱 범위 단위의 풀 포지션 래퍼

볼트는 (tick_lower, tick_upper)로 구분되는 포지션만 다룬다.
토큰 수량 → 유동성 변환은 현재 가격 기준이며, 두 토큰 제약 중 좁은 쪽을 따르므로
호출자가 준 최대치를 절대 넘지 않는다.

References:
- Uniswap V3 Periphery: contracts/libraries/LiquidityAmounts.sol
"""

from typing import Any, NamedTuple, Tuple

from ..chain.pool import Pool, PositionInfo
from ..constants import UINT128_MAX
from ..math.liquidity_math import get_amounts_for_liquidity, get_liquidity_for_amounts, to_uint128
from ..math.tick_math import get_sqrt_ratio_at_tick


class BurnResult(NamedTuple):
    """burn + collect 결과"""
    burned0: int  # 원금
    burned1: int
    fees0: int  # 수령액 중 원금을 뺀 수수료
    fees1: int


class PositionManager:
    """owner 명의 풀 포지션 접근자

    owner는 ``address``와 ``uniswap_v3_mint_callback``을 가진 객체 (볼트).
    """

    def __init__(self, pool: Pool, owner: Any):
        self.pool = pool
        self.owner = owner

    def position(self, tick_lower: int, tick_upper: int) -> PositionInfo:
        return self.pool.positions(self.owner.address, tick_lower, tick_upper)

    def liquidity(self, tick_lower: int, tick_upper: int) -> int:
        return self.position(tick_lower, tick_upper).liquidity

    def amounts_for_liquidity(self, tick_lower: int, tick_upper: int, liquidity: int) -> Tuple[int, int]:
        """현재 가격에서 liquidity가 나타내는 토큰량 (내림)"""
        if liquidity == 0:
            return 0, 0
        return get_amounts_for_liquidity(
            self.pool.sqrt_price_x96,
            get_sqrt_ratio_at_tick(tick_lower),
            get_sqrt_ratio_at_tick(tick_upper),
            liquidity,
        )

    def liquidity_for_amounts(self, tick_lower: int, tick_upper: int, amount0: int, amount1: int) -> int:
        """현재 가격에서 amount0/amount1 이하로 만들 수 있는 최대 유동성"""
        liquidity = get_liquidity_for_amounts(
            self.pool.sqrt_price_x96,
            get_sqrt_ratio_at_tick(tick_lower),
            get_sqrt_ratio_at_tick(tick_upper),
            amount0,
            amount1,
        )
        return to_uint128(liquidity)

    def liquidity_for_shares(self, tick_lower: int, tick_upper: int, shares: int, total_supply: int) -> int:
        """포지션 유동성 중 shares / total_supply 몫 (내림)"""
        return self.liquidity(tick_lower, tick_upper) * shares // total_supply

    def mint_liquidity(self, tick_lower: int, tick_upper: int, liquidity: int) -> Tuple[int, int]:
        """유동성 추가. 0이면 아무것도 하지 않음"""
        if liquidity == 0:
            return 0, 0
        return self.pool.mint(self.owner.address, tick_lower, tick_upper, liquidity, payer=self.owner)

    def deposit(self, tick_lower: int, tick_upper: int, amount0_max: int, amount1_max: int) -> Tuple[int, int]:
        """최대 amount0_max/amount1_max로 만들 수 있는 만큼 유동성 추가

        Returns:
            (amount0_used, amount1_used)
        """
        liquidity = self.liquidity_for_amounts(tick_lower, tick_upper, amount0_max, amount1_max)
        return self.mint_liquidity(tick_lower, tick_upper, liquidity)

    def poke(self, tick_lower: int, tick_upper: int) -> None:
        """유동성 0 burn으로 누적 수수료를 tokens_owed에 반영"""
        if self.liquidity(tick_lower, tick_upper) > 0:
            self.pool.burn(self.owner.address, tick_lower, tick_upper, 0)

    def burn_and_collect(self, tick_lower: int, tick_upper: int, liquidity: int) -> BurnResult:
        """liquidity만큼 제거하고 적립된 토큰을 모두 수령

        수령액은 원금과 (이전 poke분 포함) 수수료의 합이다.
        """
        burned0 = burned1 = 0
        if liquidity > 0:
            burned0, burned1 = self.pool.burn(self.owner.address, tick_lower, tick_upper, liquidity)

        collect0, collect1 = self.pool.collect(
            self.owner.address,
            self.owner.address,
            tick_lower,
            tick_upper,
            UINT128_MAX,
            UINT128_MAX,
        )
        return BurnResult(burned0, burned1, collect0 - burned0, collect1 - burned1)

    def withdraw(self, tick_lower: int, tick_upper: int) -> Tuple[int, int]:
        """범위의 모든 유동성 제거 후 수령한 총액 (원금 + 수수료)"""
        result = self.burn_and_collect(tick_lower, tick_upper, self.liquidity(tick_lower, tick_upper))
        return result.burned0 + result.fees0, result.burned1 + result.fees1
