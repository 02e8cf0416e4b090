"""
Keeper - 오프체인 리밸런스 호출자

전략의 rebalance를 언제 부를지 결정하고 실패를 분류한다.

- 마지막 리밸런스 틱에서 min_tick_move 미만으로 움직였으면 건너뜀
- 가격 검사/쿨다운 실패(TRANSIENT_ERRORS)는 경고만 남기고 다음 주기에 재시도
- 그 외 VaultError는 설정/권한 문제이므로 그대로 전파
"""

import logging
from typing import List

from .errors import TRANSIENT_ERRORS
from .vault.strategy import AlphaStrategy

logger = logging.getLogger(__name__)


class Keeper:
    """단일 전략용 폴링 키퍼

    Args:
        strategy: 대상 전략
        address: 키퍼 주소 (strategy.keeper와 같아야 함)
        min_tick_move: 리밸런스를 시도할 최소 틱 이동
    """

    def __init__(self, strategy: AlphaStrategy, address: str, min_tick_move: int = 0):
        if min_tick_move < 0:
            raise ValueError(f"min_tick_move는 음수일 수 없습니다: {min_tick_move}")
        self.strategy = strategy
        self.address = address
        self.min_tick_move = min_tick_move

    def tick_moved(self) -> int:
        """마지막 리밸런스 이후 틱 이동량 (첫 리밸런스 전이면 -1)"""
        if self.strategy.last_tick is None:
            return -1
        return abs(self.strategy.get_tick() - self.strategy.last_tick)

    def poke(self) -> bool:
        """필요하면 리밸런스 실행

        Returns:
            리밸런스를 실행했으면 True
        """
        moved = self.tick_moved()
        if 0 <= moved < self.min_tick_move:
            logger.info("틱 이동 부족으로 건너뜀: %d < %d", moved, self.min_tick_move)
            return False

        try:
            tick, _ = self.strategy.rebalance(sender=self.address)
        except TRANSIENT_ERRORS as exc:
            logger.warning("리밸런스 보류 (%s): %s", exc.reason, exc)
            return False

        logger.info("리밸런스 완료: tick=%d", tick)
        return True

    def run(self, iterations: int, interval: int) -> List[bool]:
        """interval초마다 poke (시뮬레이션 시계 사용)

        Returns:
            각 주기의 poke 결과
        """
        results = []
        for _ in range(iterations):
            self.strategy.chain.sleep(interval)
            results.append(self.poke())
        return results
