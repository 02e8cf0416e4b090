"""
Alpha Strategy - 키퍼가 호출하는 리밸런스 전략

현재 틱을 검증한 뒤 tick spacing에 맞춰 base / bid / ask 범위를 계산하고
볼트의 rebalance를 호출한다. 볼트는 이 전략 주소만 신뢰한다.

범위 계산 (tick_floor = floor(tick / spacing) × spacing):
    base = [tick_floor - base_threshold, tick_floor + spacing + base_threshold]
    bid  = [tick_floor - limit_threshold, tick_floor]
    ask  = [tick_floor + spacing, tick_floor + spacing + limit_threshold]

base는 한 spacing만큼 위로 비대칭이라 현재 틱을 포함하는 구간의 양 끝에서
같은 거리를 유지한다.
"""

import logging
from typing import Tuple

from ..chain.chain import Chain
from ..errors import (
    TRANSIENT_ERRORS,
    AuthorizationError,
    ConfigurationError,
    CooldownError,
    RangeValidityError,
)
from ..math.tick_math import floor_tick_to_spacing, usable_tick_bounds
from .oracle_guard import OracleGuard
from .vault import AlphaVault

logger = logging.getLogger(__name__)


class AlphaStrategy:
    """base/limit 임계값 기반 리밸런스 전략

    Args:
        chain: 호스트 원장
        vault: 관리 대상 볼트
        base_threshold: base 범위 반폭 (틱, spacing 배수)
        limit_threshold: limit 범위 폭 (틱, spacing 배수)
        max_twap_deviation: spot과 TWAP의 최대 허용 차이 (틱)
        twap_duration: TWAP 구간 (초)
        keeper: rebalance 호출 권한 주소
        min_last_tick_deviation: 마지막 리밸런스 틱 대비 최소 이동 (틱)
        rebalance_cooldown: 리밸런스 간 최소 간격 (초)
    """

    def __init__(
        self,
        chain: Chain,
        vault: AlphaVault,
        base_threshold: int,
        limit_threshold: int,
        max_twap_deviation: int,
        twap_duration: int,
        keeper: str,
        min_last_tick_deviation: int = 0,
        rebalance_cooldown: int = 0
    ):
        self.chain = chain
        self.vault = vault
        self.pool = vault.pool
        self.tick_spacing = vault.tick_spacing

        self._check_threshold(base_threshold)
        self._check_threshold(limit_threshold)
        self._check_cooldown(rebalance_cooldown)

        self.base_threshold = base_threshold
        self.limit_threshold = limit_threshold
        self.rebalance_cooldown = rebalance_cooldown
        self.guard = OracleGuard(self.pool, max_twap_deviation, twap_duration, min_last_tick_deviation)
        self.keeper = keeper

        self.last_rebalance = 0
        self.last_tick = None
        self.address = chain.new_address()
        chain.register(self)

    def __repr__(self) -> str:
        return f"AlphaStrategy({self.base_threshold}/{self.limit_threshold}, {self.address})"

    @property
    def max_twap_deviation(self) -> int:
        return self.guard.max_twap_deviation

    @property
    def twap_duration(self) -> int:
        return self.guard.twap_duration

    @property
    def min_last_tick_deviation(self) -> int:
        return self.guard.min_last_tick_deviation

    # ------------------------------------------------------------------
    # 리밸런스
    # ------------------------------------------------------------------

    def rebalance(self, sender: str) -> Tuple[int, int]:
        """검증된 틱 주변으로 볼트 포지션 재배치

        Returns:
            (tick, tick_floor)

        Raises:
            AuthorizationError: sender가 키퍼가 아닌 경우
            CooldownError: 마지막 리밸런스 후 rebalance_cooldown이 지나지 않은 경우
            PriceManipulationError: last-tick 또는 TWAP 검사 실패
            RangeValidityError: 계산된 범위가 틱 경계를 벗어나는 경우
        """
        if sender != self.keeper:
            raise AuthorizationError("keeper", f"키퍼만 호출할 수 있습니다: {sender}")

        with self.chain.transaction():
            tick = self._check_can_rebalance()
            tick_floor = floor_tick_to_spacing(tick, self.tick_spacing)
            tick_ceil = tick_floor + self.tick_spacing

            self.vault.rebalance(
                tick_floor - self.base_threshold,
                tick_ceil + self.base_threshold,
                tick_floor - self.limit_threshold,
                tick_floor,
                tick_ceil,
                tick_ceil + self.limit_threshold,
                sender=self.address,
            )
            self.last_rebalance = self.chain.timestamp
            self.last_tick = tick

        logger.info("전략 리밸런스: tick=%d floor=%d", tick, tick_floor)
        return tick, tick_floor

    def should_rebalance(self) -> bool:
        """지금 rebalance가 통과할지 여부 (상태 변경 없음)

        쿨다운과 가격 검사 실패만 False로 바꾸고 나머지 오류는 그대로 던진다.
        """
        try:
            self._check_can_rebalance()
        except TRANSIENT_ERRORS as exc:
            logger.debug("리밸런스 불가: %s", exc)
            return False
        return True

    def _check_can_rebalance(self) -> int:
        now = self.chain.timestamp
        if self.last_rebalance and now < self.last_rebalance + self.rebalance_cooldown:
            raise CooldownError(
                "cooldown", f"쿨다운 중입니다: {now - self.last_rebalance}s < {self.rebalance_cooldown}s"
            )

        tick = self.guard.check(self.last_tick)

        min_tick, max_tick = usable_tick_bounds(self.tick_spacing)
        max_threshold = max(self.base_threshold, self.limit_threshold)
        tick_floor = floor_tick_to_spacing(tick, self.tick_spacing)
        if tick_floor - max_threshold < min_tick:
            raise RangeValidityError("tick too low", f"tick={tick}, threshold={max_threshold}")
        if tick_floor + self.tick_spacing + max_threshold > max_tick:
            raise RangeValidityError("tick too high", f"tick={tick}, threshold={max_threshold}")
        return tick

    def get_tick(self) -> int:
        return self.guard.spot_tick()

    def get_twap(self) -> int:
        return self.guard.twap()

    # ------------------------------------------------------------------
    # 검증
    # ------------------------------------------------------------------

    def _check_threshold(self, threshold: int) -> None:
        if threshold <= 0:
            raise ConfigurationError("threshold not positive", f"{threshold}")
        if threshold > usable_tick_bounds(self.tick_spacing)[1]:
            raise ConfigurationError("threshold too high", f"{threshold}")
        if threshold % self.tick_spacing:
            raise ConfigurationError("threshold not tick multiple", f"{threshold} % {self.tick_spacing}")

    @staticmethod
    def _check_cooldown(rebalance_cooldown: int) -> None:
        if rebalance_cooldown < 0:
            raise ConfigurationError("rebalanceCooldown", f"음수일 수 없습니다: {rebalance_cooldown}")

    # ------------------------------------------------------------------
    # 관리자 기능 (볼트의 현재 관리자)
    # ------------------------------------------------------------------

    def _only_governance(self, sender: str) -> None:
        self.vault.roles.check(sender)

    def set_base_threshold(self, base_threshold: int, sender: str) -> None:
        self._only_governance(sender)
        self._check_threshold(base_threshold)
        self.base_threshold = base_threshold

    def set_limit_threshold(self, limit_threshold: int, sender: str) -> None:
        self._only_governance(sender)
        self._check_threshold(limit_threshold)
        self.limit_threshold = limit_threshold

    def set_max_twap_deviation(self, max_twap_deviation: int, sender: str) -> None:
        self._only_governance(sender)
        self.guard.set_max_twap_deviation(max_twap_deviation)

    def set_twap_duration(self, twap_duration: int, sender: str) -> None:
        self._only_governance(sender)
        self.guard.set_twap_duration(twap_duration)

    def set_min_last_tick_deviation(self, min_last_tick_deviation: int, sender: str) -> None:
        self._only_governance(sender)
        self.guard.set_min_last_tick_deviation(min_last_tick_deviation)

    def set_rebalance_cooldown(self, rebalance_cooldown: int, sender: str) -> None:
        self._only_governance(sender)
        self._check_cooldown(rebalance_cooldown)
        self.rebalance_cooldown = rebalance_cooldown

    def set_keeper(self, keeper: str, sender: str) -> None:
        self._only_governance(sender)
        self.keeper = keeper
