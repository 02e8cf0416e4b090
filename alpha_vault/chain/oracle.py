"""
Oracle - 누적 틱 관측값 링 버퍼

풀은 매 타임스탬프의 첫 상태 변경 전에 직전 틱으로 관측값을 하나 기록한다.
TWAP은 두 시점의 누적 틱 차이를 시간으로 나눈 값이다.

References:
- Uniswap V3 Core: contracts/libraries/Oracle.sol
- 백서 Section 5.2: Oracle Observations

핵심 공식:
    a_t = a_{t-1} + tick × (t - t_{t-1})       # tickCumulative
    twap(t1, t2) = (a_{t2} - a_{t1}) / (t2 - t1)
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ..errors import OracleError


@dataclass
class Observation:
    """관측값 하나"""
    block_timestamp: int = 0
    tick_cumulative: int = 0
    initialized: bool = False


def _transform(last: Observation, block_timestamp: int, tick: int) -> Observation:
    delta = block_timestamp - last.block_timestamp
    return Observation(block_timestamp, last.tick_cumulative + tick * delta, True)


def _div_toward_zero(numerator: int, denominator: int) -> int:
    # 부호 있는 정수 나눗셈은 0 방향으로 절삭
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


class Oracle:
    """관측값 배열과 기록/조회 로직"""

    def __init__(self):
        self.observations: List[Observation] = []

    def initialize(self, block_timestamp: int) -> Tuple[int, int]:
        """첫 관측값 기록

        Returns:
            (cardinality, cardinality_next) = (1, 1)
        """
        self.observations = [Observation(block_timestamp, 0, True)]
        return 1, 1

    def write(
        self,
        index: int,
        block_timestamp: int,
        tick: int,
        cardinality: int,
        cardinality_next: int
    ) -> Tuple[int, int]:
        """관측값 기록 (같은 타임스탬프에는 한 번만)

        Returns:
            (index_updated, cardinality_updated)
        """
        last = self.observations[index]
        if last.block_timestamp == block_timestamp:
            return index, cardinality

        # 버퍼 끝에 도달했을 때만 확장된 cardinality를 적용
        if cardinality_next > cardinality and index == cardinality - 1:
            cardinality_updated = cardinality_next
        else:
            cardinality_updated = cardinality

        index_updated = (index + 1) % cardinality_updated
        self.observations[index_updated] = _transform(last, block_timestamp, tick)
        return index_updated, cardinality_updated

    def grow(self, current: int, next_: int) -> int:
        """관측 슬롯 확장 (초기화되지 않은 빈 슬롯 추가)"""
        if current <= 0:
            raise OracleError("I")
        if next_ <= current:
            return current
        while len(self.observations) < next_:
            self.observations.append(Observation())
        return next_

    def observe(
        self,
        time: int,
        seconds_agos: Sequence[int],
        tick: int,
        index: int,
        cardinality: int
    ) -> List[int]:
        """여러 시점의 tickCumulative 조회

        Raises:
            OracleError: 가장 오래된 관측값보다 과거를 요청한 경우 ("OLD")
        """
        if cardinality <= 0:
            raise OracleError("I")
        return [
            self.observe_single(time, seconds_ago, tick, index, cardinality)
            for seconds_ago in seconds_agos
        ]

    def observe_single(
        self,
        time: int,
        seconds_ago: int,
        tick: int,
        index: int,
        cardinality: int
    ) -> int:
        if seconds_ago == 0:
            last = self.observations[index]
            if last.block_timestamp != time:
                last = _transform(last, time, tick)
            return last.tick_cumulative

        target = time - seconds_ago
        before, after = self._surrounding(target, tick, index, cardinality)

        if target == before.block_timestamp:
            return before.tick_cumulative
        if target == after.block_timestamp:
            return after.tick_cumulative

        # 두 관측값 사이 선형 보간
        observation_delta = after.block_timestamp - before.block_timestamp
        target_delta = target - before.block_timestamp
        tick_delta = _div_toward_zero(after.tick_cumulative - before.tick_cumulative, observation_delta)
        return before.tick_cumulative + tick_delta * target_delta

    def _surrounding(
        self,
        target: int,
        tick: int,
        index: int,
        cardinality: int
    ) -> Tuple[Observation, Observation]:
        newest = self.observations[index]
        if newest.block_timestamp <= target:
            if newest.block_timestamp == target:
                return newest, newest
            return newest, _transform(newest, target, tick)

        oldest = self.observations[(index + 1) % cardinality]
        if not oldest.initialized:
            oldest = self.observations[0]

        if oldest.block_timestamp > target:
            raise OracleError("OLD", f"관측 가능한 가장 오래된 시점({oldest.block_timestamp})보다 과거입니다: {target}")

        return self._binary_search(target, index, cardinality)

    def _binary_search(self, target: int, index: int, cardinality: int) -> Tuple[Observation, Observation]:
        left = (index + 1) % cardinality
        right = left + cardinality - 1
        while True:
            i = (left + right) // 2
            before = self.observations[i % cardinality]
            if not before.initialized:
                left = i + 1
                continue

            after = self.observations[(i + 1) % cardinality]
            target_at_or_after = before.block_timestamp <= target
            if target_at_or_after and target <= after.block_timestamp:
                return before, after

            if not target_at_or_after:
                right = i - 1
            else:
                left = i + 1
