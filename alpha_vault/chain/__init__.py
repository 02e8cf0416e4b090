"""
Simulated host environment

볼트 코어의 외부 협력자들:
- chain: 시계, 주소, 이벤트 로그, 원자적 트랜잭션
- token: 대체 가능 토큰
- oracle: 누적 틱 관측값
- pool: 집중화 유동성 풀
- router: 테스트/시뮬레이션용 풀 호출 도우미
"""

from .chain import Chain
from .token import Token
from .oracle import Oracle, Observation
from .pool import Pool, Slot0, TickInfo, PositionInfo
from .router import Router
