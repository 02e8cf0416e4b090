"""
Chain - 시뮬레이션 호스트 원장

볼트 코어가 기대하는 호스트 환경을 파이썬 객체로 흉내낸다.

- 시계: ``timestamp``, ``sleep()``
- 주소 발급: ``new_address()``
- 이벤트 로그: ``emit()``, ``events_of()``
- 원자적 트랜잭션: ``transaction()`` 블록 안에서 예외가 나면
  등록된 모든 참여자(토큰, 풀, 볼트, 전략)의 상태와 이벤트 로그를 진입 시점으로 되돌린다.

코어는 부분 실패를 직접 되돌리지 않고 이 all-or-nothing 의미론에 의존한다.
"""

import copy
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type

logger = logging.getLogger(__name__)

DEFAULT_GENESIS_TIMESTAMP: int = 1_600_000_000


class Chain:
    """단일 스레드 순차 실행 원장"""

    def __init__(self, timestamp: int = DEFAULT_GENESIS_TIMESTAMP):
        self.timestamp = timestamp
        self.events: List[Any] = []
        self._participants: List[Any] = []
        self._address_count = 0
        self._depth = 0

    def new_address(self) -> str:
        """고유한 20바이트 hex 주소 발급 (발급 순서대로 정렬됨)"""
        self._address_count += 1
        return "0x" + format(self._address_count, "040x")

    def register(self, participant: Any) -> None:
        """트랜잭션 롤백 대상에 상태 객체 등록"""
        self._participants.append(participant)

    def sleep(self, seconds: int) -> int:
        """시간을 앞으로 이동

        Raises:
            RuntimeError: 트랜잭션 도중 호출된 경우
        """
        if seconds < 0:
            raise ValueError(f"시간은 뒤로 갈 수 없습니다: {seconds}")
        if self._depth:
            raise RuntimeError("트랜잭션 도중에는 시간을 이동할 수 없습니다")
        self.timestamp += seconds
        return self.timestamp

    def emit(self, event: Any) -> None:
        self.events.append(event)

    def events_of(self, kind: Type, since: int = 0) -> List[Any]:
        """특정 타입의 이벤트만 반환

        Args:
            kind: 이벤트 클래스
            since: 이 인덱스 이후의 이벤트만 (``len(chain.events)``로 표시)
        """
        return [e for e in self.events[since:] if isinstance(e, kind)]

    @contextmanager
    def transaction(self) -> Iterator["Chain"]:
        """원자적 실행 블록

        중첩된 블록은 가장 바깥 블록에 합류한다. 바깥 블록에서 예외가 전파되면
        모든 참여자 상태를 복원하고 예외를 다시 던진다.
        """
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        snapshot = self._snapshot()
        event_count = len(self.events)
        self._depth = 1
        try:
            yield self
        except Exception as exc:
            self._restore(snapshot)
            del self.events[event_count:]
            logger.debug("트랜잭션 롤백: %r", exc)
            raise
        finally:
            self._depth = 0

    def _snapshot(self) -> List[Tuple[Any, Dict[str, Any]]]:
        # 참여자끼리의 참조는 복사하지 않고 그대로 유지
        memo: Dict[int, Any] = {id(self): self}
        for participant in self._participants:
            memo[id(participant)] = participant
        return [
            (participant, copy.deepcopy(participant.__dict__, memo))
            for participant in self._participants
        ]

    @staticmethod
    def _restore(snapshot: List[Tuple[Any, Dict[str, Any]]]) -> None:
        for participant, state in snapshot:
            participant.__dict__.clear()
            participant.__dict__.update(state)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def latest_event(self, kind: Type) -> Optional[Any]:
        matches = self.events_of(kind)
        return matches[-1] if matches else None
