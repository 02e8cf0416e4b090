"""
Alpha Vault - 집중화 유동성 자동 관리 볼트

예치자의 두 토큰을 현재가 주변 base 포지션과 한쪽 limit 포지션으로 운용하고,
키퍼가 TWAP 검증을 거쳐 주기적으로 재배치한다.
온체인 수준 정밀도의 정수 연산과 시뮬레이션 풀 위에서 동작한다.
"""

__version__ = "0.1.0"
__author__ = "Zekiya"

from .constants import Q96, Q128, FEE_DENOMINATOR, MIN_TOTAL_SUPPLY, FEE_TIERS, TICK_SPACINGS
