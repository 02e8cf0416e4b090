"""
Oracle Guard - TWAP 기반 가격 조작 방어

현재(spot) 틱을 바로 믿지 않고 최근 twap_duration 초의 시간가중 평균 틱과 비교한다.

검사 순서:
    1. last-tick 검사: 마지막 리밸런스 틱에서 min_last_tick_deviation 이상 움직였는가
    2. TWAP 검사: |spot - twap| <= max_twap_deviation 인가

핵심 공식:
    twap = (tickCumulative(now) - tickCumulative(now - duration)) // duration
"""

import logging
from typing import Optional

from ..chain.pool import Pool
from ..errors import ConfigurationError, PriceManipulationError

logger = logging.getLogger(__name__)


def check_twap_config(max_twap_deviation: int, twap_duration: int, min_last_tick_deviation: int = 0) -> None:
    """오라클 설정값 검증

    Raises:
        ConfigurationError: 음수 편차, 0 이하 기간
    """
    if max_twap_deviation < 0:
        raise ConfigurationError("maxTwapDeviation", f"음수일 수 없습니다: {max_twap_deviation}")
    if twap_duration <= 0:
        raise ConfigurationError("twapDuration", f"양수여야 합니다: {twap_duration}")
    if min_last_tick_deviation < 0:
        raise ConfigurationError("minLastTickDeviation", f"음수일 수 없습니다: {min_last_tick_deviation}")


class OracleGuard:
    """풀 오라클을 읽기만 하는 가격 검증기"""

    def __init__(
        self,
        pool: Pool,
        max_twap_deviation: int,
        twap_duration: int,
        min_last_tick_deviation: int = 0
    ):
        check_twap_config(max_twap_deviation, twap_duration, min_last_tick_deviation)
        self.pool = pool
        self.max_twap_deviation = max_twap_deviation
        self.twap_duration = twap_duration
        self.min_last_tick_deviation = min_last_tick_deviation

    def spot_tick(self) -> int:
        return self.pool.slot0().tick

    def twap(self) -> int:
        """최근 twap_duration 초의 산술 평균 틱 (floor)"""
        cumulatives = self.pool.observe([self.twap_duration, 0])
        # 음의 무한대 방향 내림. 0 방향 절삭보다 음수 틱에서 1 작을 수 있다
        return (cumulatives[1] - cumulatives[0]) // self.twap_duration

    def check(self, last_tick: Optional[int] = None) -> int:
        """가격 검증 후 spot 틱 반환

        Args:
            last_tick: 마지막 리밸런스 시점의 틱 (없으면 last-tick 검사 생략)

        Raises:
            PriceManipulationError: last-tick 이동 부족 또는 TWAP 편차 초과
        """
        tick = self.spot_tick()

        if last_tick is not None and abs(tick - last_tick) < self.min_last_tick_deviation:
            raise PriceManipulationError(
                "minLastTickDeviation",
                f"마지막 리밸런스 이후 틱 이동이 부족합니다: |{tick} - {last_tick}| < {self.min_last_tick_deviation}",
            )

        twap = self.twap()
        deviation = abs(tick - twap)
        if deviation > self.max_twap_deviation:
            raise PriceManipulationError(
                "maxTwapDeviation",
                f"spot과 TWAP 차이가 큽니다: |{tick} - {twap}| = {deviation} > {self.max_twap_deviation}",
            )

        logger.debug("오라클 통과: tick=%d twap=%d", tick, twap)
        return tick

    def set_max_twap_deviation(self, max_twap_deviation: int) -> None:
        check_twap_config(max_twap_deviation, self.twap_duration, self.min_last_tick_deviation)
        self.max_twap_deviation = max_twap_deviation

    def set_twap_duration(self, twap_duration: int) -> None:
        check_twap_config(self.max_twap_deviation, twap_duration, self.min_last_tick_deviation)
        self.twap_duration = twap_duration

    def set_min_last_tick_deviation(self, min_last_tick_deviation: int) -> None:
        check_twap_config(self.max_twap_deviation, self.twap_duration, min_last_tick_deviation)
        self.min_last_tick_deviation = min_last_tick_deviation
