"""
Pool - 집중화 유동성 AMM 풀 시뮬레이터

볼트가 의존하는 외부 풀을 정수 연산으로 정확히 재현한다.
slot0, 틱/포지션 상태, fee growth 누적, 틱 크로싱, TWAP 오라클,
콜백 기반 정산(mint/swap)을 제공한다.

References:
- Uniswap V3 Core: contracts/UniswapV3Pool.sol
- 백서 Section 6.2.3: Swapping Within a Single Tick
- 백서 Section 6.3 / 6.4: Tick-Indexed / Position-Indexed State

핵심 흐름:
    mint/burn → _modify_position → _update_position (틱 갱신, 수수료 정산)
    swap → 구간별 compute_swap_step → 틱 크로싱 → 오라클 기록 → 콜백 정산
"""

import bisect
import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Sequence, Tuple

from ..constants import MIN_TICK, MAX_TICK, UINT128_MAX
from ..errors import PoolError
from ..math.fee_math import (
    calculate_uncollected_fees,
    fee_growth_global_increment,
    fee_growth_inside,
    wrap_add,
)
from ..math.liquidity_math import add_delta as _add_delta, get_amount0_delta, get_amount1_delta
from ..math.swap_math import compute_swap_step
from ..math.tick_math import (
    MIN_SQRT_RATIO,
    MAX_SQRT_RATIO,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    get_tick_spacing_for_fee,
)
from .chain import Chain
from .oracle import Oracle
from .token import Token

logger = logging.getLogger(__name__)

_WRAP = 2 ** 256


def add_delta(liquidity: int, delta: int) -> int:
    """LiquidityMath.addDelta, 실패 사유를 PoolError로"""
    try:
        return _add_delta(liquidity, delta)
    except ValueError as exc:
        raise PoolError(str(exc)) from exc


class Slot0(NamedTuple):
    """풀의 현재 가격 상태"""
    sqrt_price_x96: int
    tick: int
    observation_index: int
    observation_cardinality: int
    observation_cardinality_next: int


@dataclass
class TickInfo:
    """초기화된 틱의 상태"""
    liquidity_gross: int = 0
    liquidity_net: int = 0
    fee_growth_outside_0_x128: int = 0
    fee_growth_outside_1_x128: int = 0
    initialized: bool = False


@dataclass
class PositionInfo:
    """(owner, tick_lower, tick_upper) 포지션 상태"""
    liquidity: int = 0
    fee_growth_inside_0_last_x128: int = 0
    fee_growth_inside_1_last_x128: int = 0
    tokens_owed_0: int = 0
    tokens_owed_1: int = 0


def max_liquidity_per_tick(tick_spacing: int) -> int:
    """틱 하나가 가질 수 있는 최대 liquidity_gross"""
    min_tick = -(-MIN_TICK // tick_spacing) * tick_spacing
    max_tick = MAX_TICK // tick_spacing * tick_spacing
    num_ticks = (max_tick - min_tick) // tick_spacing + 1
    return UINT128_MAX // num_ticks


def _signed_amount0_delta(sqrt_a: int, sqrt_b: int, liquidity_delta: int) -> int:
    if liquidity_delta < 0:
        return -get_amount0_delta(sqrt_a, sqrt_b, -liquidity_delta, False)
    return get_amount0_delta(sqrt_a, sqrt_b, liquidity_delta, True)


def _signed_amount1_delta(sqrt_a: int, sqrt_b: int, liquidity_delta: int) -> int:
    if liquidity_delta < 0:
        return -get_amount1_delta(sqrt_a, sqrt_b, -liquidity_delta, False)
    return get_amount1_delta(sqrt_a, sqrt_b, liquidity_delta, True)


class Pool:
    """단일 토큰 쌍 / 수수료 티어 풀

    토큰은 주소 순으로 정렬되어 token0 < token1.
    """

    def __init__(self, chain: Chain, token_a: Token, token_b: Token, fee: int):
        if token_a.address == token_b.address:
            raise ValueError("같은 토큰으로 풀을 만들 수 없습니다")

        self.chain = chain
        self.address = chain.new_address()
        self.token0, self.token1 = sorted([token_a, token_b], key=lambda t: t.address)
        self.fee = fee
        self.tick_spacing = get_tick_spacing_for_fee(fee)
        self.max_liquidity_per_tick = max_liquidity_per_tick(self.tick_spacing)

        self.sqrt_price_x96 = 0
        self.tick = 0
        self.observation_index = 0
        self.observation_cardinality = 0
        self.observation_cardinality_next = 0
        self.unlocked = False

        self.liquidity = 0
        self.fee_growth_global_0_x128 = 0
        self.fee_growth_global_1_x128 = 0

        self.ticks: Dict[int, TickInfo] = {}
        self._initialized_ticks: List[int] = []
        self._positions: Dict[Tuple[str, int, int], PositionInfo] = {}
        self.oracle = Oracle()

        chain.register(self)

    def __repr__(self) -> str:
        return f"Pool({self.token0.symbol}/{self.token1.symbol}, fee={self.fee}, {self.address})"

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    def slot0(self) -> Slot0:
        return Slot0(
            self.sqrt_price_x96,
            self.tick,
            self.observation_index,
            self.observation_cardinality,
            self.observation_cardinality_next,
        )

    def positions(self, owner: str, tick_lower: int, tick_upper: int) -> PositionInfo:
        """포지션 상태 사본 (없으면 0으로 채운 값)"""
        position = self._positions.get((owner, tick_lower, tick_upper))
        if position is None:
            return PositionInfo()
        return dataclasses.replace(position)

    def observe(self, seconds_agos: Sequence[int]) -> List[int]:
        """현재 시각 기준 여러 과거 시점의 tickCumulative"""
        return self.oracle.observe(
            self.chain.timestamp,
            seconds_agos,
            self.tick,
            self.observation_index,
            self.observation_cardinality,
        )

    def balance0(self) -> int:
        return self.token0.balance_of(self.address)

    def balance1(self) -> int:
        return self.token1.balance_of(self.address)

    # ------------------------------------------------------------------
    # 초기화 / 오라클
    # ------------------------------------------------------------------

    def initialize(self, sqrt_price_x96: int) -> None:
        if self.sqrt_price_x96 != 0:
            raise PoolError("AI", "이미 초기화된 풀입니다")

        self.tick = get_tick_at_sqrt_ratio(sqrt_price_x96)
        self.sqrt_price_x96 = sqrt_price_x96
        cardinality, cardinality_next = self.oracle.initialize(self.chain.timestamp)
        self.observation_index = 0
        self.observation_cardinality = cardinality
        self.observation_cardinality_next = cardinality_next
        self.unlocked = True
        logger.debug("풀 초기화: %s tick=%d", self, self.tick)

    def increase_observation_cardinality_next(self, observation_cardinality_next: int) -> None:
        with self.chain.transaction():
            self._lock()
            try:
                old = self.observation_cardinality_next
                new = self.oracle.grow(old, observation_cardinality_next)
                self.observation_cardinality_next = new
            finally:
                self.unlocked = True

    def _write_observation(self, tick: int) -> None:
        self.observation_index, self.observation_cardinality = self.oracle.write(
            self.observation_index,
            self.chain.timestamp,
            tick,
            self.observation_cardinality,
            self.observation_cardinality_next,
        )

    def _lock(self) -> None:
        if not self.unlocked:
            raise PoolError("LOK", "재진입 또는 초기화되지 않은 풀")
        self.unlocked = False

    # ------------------------------------------------------------------
    # 틱 / 포지션
    # ------------------------------------------------------------------

    def _check_ticks(self, tick_lower: int, tick_upper: int) -> None:
        if tick_lower >= tick_upper:
            raise PoolError("TLU")
        if tick_lower < MIN_TICK:
            raise PoolError("TLM")
        if tick_upper > MAX_TICK:
            raise PoolError("TUM")
        if tick_lower % self.tick_spacing or tick_upper % self.tick_spacing:
            raise PoolError("TS", "틱이 tick spacing의 배수가 아닙니다")

    def _update_tick(self, tick: int, liquidity_delta: int, upper: bool) -> bool:
        """틱의 liquidity 갱신. 초기화 상태가 바뀌면 True"""
        info = self.ticks.get(tick) or TickInfo()
        gross_before = info.liquidity_gross
        gross_after = add_delta(gross_before, liquidity_delta)
        if gross_after > self.max_liquidity_per_tick:
            raise PoolError("LO")

        flipped = (gross_after == 0) != (gross_before == 0)

        if gross_before == 0:
            # 현재 틱 아래에서 초기화되면 지금까지의 성장은 전부 "outside"로 간주
            if tick <= self.tick:
                info.fee_growth_outside_0_x128 = self.fee_growth_global_0_x128
                info.fee_growth_outside_1_x128 = self.fee_growth_global_1_x128
            info.initialized = True

        info.liquidity_gross = gross_after
        info.liquidity_net = info.liquidity_net - liquidity_delta if upper else info.liquidity_net + liquidity_delta
        self.ticks[tick] = info

        if flipped and gross_after > 0:
            bisect.insort(self._initialized_ticks, tick)
        return flipped

    def _clear_tick(self, tick: int) -> None:
        del self.ticks[tick]
        index = bisect.bisect_left(self._initialized_ticks, tick)
        del self._initialized_ticks[index]

    def _cross_tick(self, tick: int, fee_growth_global_0: int, fee_growth_global_1: int) -> int:
        info = self.ticks[tick]
        info.fee_growth_outside_0_x128 = (fee_growth_global_0 - info.fee_growth_outside_0_x128) % _WRAP
        info.fee_growth_outside_1_x128 = (fee_growth_global_1 - info.fee_growth_outside_1_x128) % _WRAP
        return info.liquidity_net

    def _next_initialized_tick(self, tick: int, lte: bool) -> Tuple[int, bool]:
        """스왑 방향의 다음 초기화된 틱 (없으면 틱 경계)"""
        if lte:
            index = bisect.bisect_right(self._initialized_ticks, tick)
            if index == 0:
                return MIN_TICK, False
            return self._initialized_ticks[index - 1], True

        index = bisect.bisect_right(self._initialized_ticks, tick)
        if index == len(self._initialized_ticks):
            return MAX_TICK, False
        return self._initialized_ticks[index], True

    def _fee_growth_inside(self, tick_lower: int, tick_upper: int) -> Tuple[int, int]:
        lower = self.ticks.get(tick_lower) or TickInfo()
        upper = self.ticks.get(tick_upper) or TickInfo()
        inside0 = fee_growth_inside(
            tick_lower, tick_upper, self.tick, self.fee_growth_global_0_x128,
            lower.fee_growth_outside_0_x128, upper.fee_growth_outside_0_x128,
        )
        inside1 = fee_growth_inside(
            tick_lower, tick_upper, self.tick, self.fee_growth_global_1_x128,
            lower.fee_growth_outside_1_x128, upper.fee_growth_outside_1_x128,
        )
        return inside0, inside1

    def _update_position(self, owner: str, tick_lower: int, tick_upper: int, liquidity_delta: int) -> PositionInfo:
        key = (owner, tick_lower, tick_upper)
        position = self._positions.get(key) or PositionInfo()

        if liquidity_delta == 0 and position.liquidity == 0:
            raise PoolError("NP", "유동성이 없는 포지션은 poke할 수 없습니다")

        flipped_lower = flipped_upper = False
        if liquidity_delta != 0:
            flipped_lower = self._update_tick(tick_lower, liquidity_delta, False)
            flipped_upper = self._update_tick(tick_upper, liquidity_delta, True)

        inside0, inside1 = self._fee_growth_inside(tick_lower, tick_upper)

        owed0 = calculate_uncollected_fees(position.liquidity, inside0, position.fee_growth_inside_0_last_x128)
        owed1 = calculate_uncollected_fees(position.liquidity, inside1, position.fee_growth_inside_1_last_x128)

        if liquidity_delta != 0:
            position.liquidity = add_delta(position.liquidity, liquidity_delta)
        position.fee_growth_inside_0_last_x128 = inside0
        position.fee_growth_inside_1_last_x128 = inside1
        position.tokens_owed_0 = (position.tokens_owed_0 + owed0) & UINT128_MAX
        position.tokens_owed_1 = (position.tokens_owed_1 + owed1) & UINT128_MAX
        self._positions[key] = position

        if liquidity_delta < 0:
            if flipped_lower:
                self._clear_tick(tick_lower)
            if flipped_upper:
                self._clear_tick(tick_upper)
        return position

    def _modify_position(
        self,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int
    ) -> Tuple[PositionInfo, int, int]:
        self._check_ticks(tick_lower, tick_upper)
        position = self._update_position(owner, tick_lower, tick_upper, liquidity_delta)

        amount0 = amount1 = 0
        if liquidity_delta != 0:
            sqrt_lower = get_sqrt_ratio_at_tick(tick_lower)
            sqrt_upper = get_sqrt_ratio_at_tick(tick_upper)
            if self.tick < tick_lower:
                # 현재가가 범위 아래: token0만 필요
                amount0 = _signed_amount0_delta(sqrt_lower, sqrt_upper, liquidity_delta)
            elif self.tick < tick_upper:
                self._write_observation(self.tick)
                amount0 = _signed_amount0_delta(self.sqrt_price_x96, sqrt_upper, liquidity_delta)
                amount1 = _signed_amount1_delta(sqrt_lower, self.sqrt_price_x96, liquidity_delta)
                self.liquidity = add_delta(self.liquidity, liquidity_delta)
            else:
                # 현재가가 범위 위: token1만 필요
                amount1 = _signed_amount1_delta(sqrt_lower, sqrt_upper, liquidity_delta)
        return position, amount0, amount1

    # ------------------------------------------------------------------
    # 유동성 공급 / 회수
    # ------------------------------------------------------------------

    def mint(
        self,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        amount: int,
        payer: Any,
        data: Any = None
    ) -> Tuple[int, int]:
        """유동성 추가

        필요한 토큰은 ``payer.uniswap_v3_mint_callback(amount0, amount1, data)``
        안에서 풀로 전송되어야 한다.

        Returns:
            (amount0, amount1) 풀이 받은 토큰량
        """
        if amount <= 0:
            raise PoolError("AM", "유동성은 양수여야 합니다")

        with self.chain.transaction():
            self._lock()
            try:
                _, amount0_int, amount1_int = self._modify_position(recipient, tick_lower, tick_upper, amount)
                amount0, amount1 = amount0_int, amount1_int

                balance0_before = self.balance0() if amount0 > 0 else 0
                balance1_before = self.balance1() if amount1 > 0 else 0
                payer.uniswap_v3_mint_callback(amount0, amount1, data)
                if amount0 > 0 and balance0_before + amount0 > self.balance0():
                    raise PoolError("M0")
                if amount1 > 0 and balance1_before + amount1 > self.balance1():
                    raise PoolError("M1")
            finally:
                self.unlocked = True

        logger.debug("mint %s [%d, %d] L=%d → (%d, %d)", recipient, tick_lower, tick_upper, amount, amount0, amount1)
        return amount0, amount1

    def burn(self, owner: str, tick_lower: int, tick_upper: int, amount: int) -> Tuple[int, int]:
        """유동성 제거. 원금은 즉시 전송되지 않고 tokens_owed에 적립된다

        amount=0이면 수수료만 정산하는 poke.
        """
        if amount < 0:
            raise PoolError("AM", "제거할 유동성은 음수일 수 없습니다")

        with self.chain.transaction():
            self._lock()
            try:
                position, amount0_int, amount1_int = self._modify_position(owner, tick_lower, tick_upper, -amount)
                amount0, amount1 = -amount0_int, -amount1_int
                if amount0 > 0 or amount1 > 0:
                    position.tokens_owed_0 += amount0
                    position.tokens_owed_1 += amount1
            finally:
                self.unlocked = True
        return amount0, amount1

    def collect(
        self,
        owner: str,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        amount0_requested: int,
        amount1_requested: int
    ) -> Tuple[int, int]:
        """적립된 tokens_owed 수령"""
        with self.chain.transaction():
            self._lock()
            try:
                position = self._positions.get((owner, tick_lower, tick_upper)) or PositionInfo()
                amount0 = min(amount0_requested, position.tokens_owed_0)
                amount1 = min(amount1_requested, position.tokens_owed_1)

                if amount0 > 0:
                    position.tokens_owed_0 -= amount0
                    self.token0.transfer(self.address, recipient, amount0)
                if amount1 > 0:
                    position.tokens_owed_1 -= amount1
                    self.token1.transfer(self.address, recipient, amount1)
            finally:
                self.unlocked = True
        return amount0, amount1

    # ------------------------------------------------------------------
    # 스왑
    # ------------------------------------------------------------------

    def swap(
        self,
        recipient: str,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: int,
        payer: Any,
        data: Any = None
    ) -> Tuple[int, int]:
        """스왑 실행

        Args:
            recipient: 출력 토큰 수령 주소
            zero_for_one: True면 token0 → token1 (가격 하락)
            amount_specified: 양수면 exact input, 음수면 exact output
            sqrt_price_limit_x96: 넘지 않을 가격 한도
            payer: ``uniswap_v3_swap_callback(amount0, amount1, data)`` 구현 객체
            data: 콜백에 그대로 전달할 값

        Returns:
            (amount0, amount1) 풀 관점의 잔고 변화 (양수: 풀이 받음, 음수: 풀이 지급)
        """
        if amount_specified == 0:
            raise PoolError("AS")

        if zero_for_one:
            if not (MIN_SQRT_RATIO < sqrt_price_limit_x96 < self.sqrt_price_x96):
                raise PoolError("SPL")
        else:
            if not (self.sqrt_price_x96 < sqrt_price_limit_x96 < MAX_SQRT_RATIO):
                raise PoolError("SPL")

        with self.chain.transaction():
            self._lock()
            try:
                amount0, amount1 = self._swap(recipient, zero_for_one, amount_specified, sqrt_price_limit_x96, payer, data)
            finally:
                self.unlocked = True

        logger.debug("swap zero_for_one=%s → (%d, %d), tick=%d", zero_for_one, amount0, amount1, self.tick)
        return amount0, amount1

    def _swap(
        self,
        recipient: str,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: int,
        payer: Any,
        data: Any
    ) -> Tuple[int, int]:
        exact_input = amount_specified > 0
        tick_start = self.tick

        amount_remaining = amount_specified
        amount_calculated = 0
        sqrt_price = self.sqrt_price_x96
        tick = self.tick
        liquidity = self.liquidity
        fee_growth_global = self.fee_growth_global_0_x128 if zero_for_one else self.fee_growth_global_1_x128

        while amount_remaining != 0 and sqrt_price != sqrt_price_limit_x96:
            sqrt_price_start = sqrt_price

            tick_next, initialized = self._next_initialized_tick(tick, zero_for_one)
            tick_next = max(MIN_TICK, min(MAX_TICK, tick_next))
            sqrt_price_next = get_sqrt_ratio_at_tick(tick_next)

            if zero_for_one:
                sqrt_price_target = max(sqrt_price_next, sqrt_price_limit_x96)
            else:
                sqrt_price_target = min(sqrt_price_next, sqrt_price_limit_x96)

            step = compute_swap_step(sqrt_price, sqrt_price_target, liquidity, amount_remaining, self.fee)
            sqrt_price = step.sqrt_price_next_x96

            if exact_input:
                amount_remaining -= step.amount_in + step.fee_amount
                amount_calculated -= step.amount_out
            else:
                amount_remaining += step.amount_out
                amount_calculated += step.amount_in + step.fee_amount

            fee_growth_global = wrap_add(fee_growth_global, fee_growth_global_increment(step.fee_amount, liquidity))

            if sqrt_price == sqrt_price_next:
                if initialized:
                    if zero_for_one:
                        liquidity_net = self._cross_tick(tick_next, fee_growth_global, self.fee_growth_global_1_x128)
                        liquidity_net = -liquidity_net
                    else:
                        liquidity_net = self._cross_tick(tick_next, self.fee_growth_global_0_x128, fee_growth_global)
                    liquidity = add_delta(liquidity, liquidity_net)
                tick = tick_next - 1 if zero_for_one else tick_next
            elif sqrt_price != sqrt_price_start:
                tick = get_tick_at_sqrt_ratio(sqrt_price)

        if tick != tick_start:
            # 가격이 움직이기 전의 틱으로 관측값 기록
            self._write_observation(tick_start)
            self.tick = tick
        self.sqrt_price_x96 = sqrt_price
        self.liquidity = liquidity

        if zero_for_one:
            self.fee_growth_global_0_x128 = fee_growth_global
        else:
            self.fee_growth_global_1_x128 = fee_growth_global

        if zero_for_one == exact_input:
            amount0, amount1 = amount_specified - amount_remaining, amount_calculated
        else:
            amount0, amount1 = amount_calculated, amount_specified - amount_remaining

        if zero_for_one:
            if amount1 < 0:
                self.token1.transfer(self.address, recipient, -amount1)
            balance0_before = self.balance0()
            payer.uniswap_v3_swap_callback(amount0, amount1, data)
            if balance0_before + amount0 > self.balance0():
                raise PoolError("IIA")
        else:
            if amount0 < 0:
                self.token0.transfer(self.address, recipient, -amount0)
            balance1_before = self.balance1()
            payer.uniswap_v3_swap_callback(amount0, amount1, data)
            if balance1_before + amount1 > self.balance1():
                raise PoolError("IIA")

        return amount0, amount1

