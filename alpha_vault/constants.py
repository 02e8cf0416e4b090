"""
Alpha Vault 상수 정의

온체인 수준 정밀도를 위한 상수들:
- Q96: sqrt price 인코딩에 사용 (2^96)
- Q128: fee growth 인코딩에 사용 (2^128)
- TICK_SPACINGS: 각 수수료 티어별 틱 간격
- FEE_DENOMINATOR: 볼트 수수료(ppm)의 분모
- MIN_TOTAL_SUPPLY: 첫 예치 시 최소 지분 공급량
"""

from typing import Dict

# Fixed-point 인코딩 상수
Q96: int = 2 ** 96
Q128: int = 2 ** 128
Q192: int = 2 ** 192

# 풀 수수료 티어 (pips, 1e-6 단위)
# 500 = 0.05%, 3000 = 0.30%, 10000 = 1.00%
FEE_TIERS: Dict[int, str] = {
    100: "0.01%",
    500: "0.05%",
    3000: "0.30%",
    10000: "1.00%",
}

# 각 수수료 티어별 틱 간격
TICK_SPACINGS: Dict[int, int] = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}

# 틱 범위 상수
MIN_TICK: int = -887272
MAX_TICK: int = 887272

# uint 최대값
UINT256_MAX: int = 2 ** 256 - 1
UINT128_MAX: int = 2 ** 128 - 1

# 볼트 수수료는 ppm 단위 (10000 = 1%)
FEE_DENOMINATOR: int = 1_000_000

# 첫 예치 시 지분 가격 조작 방지를 위한 최소 공급량
MIN_TOTAL_SUPPLY: int = 1000

# 스트리밍 수수료 연율화 기준
SECONDS_PER_YEAR: int = 365 * 24 * 60 * 60

# null 주소 (수령인 검증용)
NULL_ADDRESS: str = "0x0000000000000000000000000000000000000000"
