"""볼트 이벤트 레코드 (Chain.emit으로 기록)"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Deposit:
    sender: str
    to: str
    shares: int
    amount0: int
    amount1: int


@dataclass(frozen=True)
class Withdraw:
    sender: str
    to: str
    shares: int
    amount0: int
    amount1: int


@dataclass(frozen=True)
class CollectFees:
    """포지션 하나에서 수령한 수수료와 그중 프로토콜 몫"""
    fees_to_protocol0: int
    fees_to_protocol1: int
    fees_from_pool0: int
    fees_from_pool1: int


@dataclass(frozen=True)
class StreamingFee:
    """운용자산 기준 시간 비례 수수료"""
    fee0: int
    fee1: int
    elapsed: int


@dataclass(frozen=True)
class Snapshot:
    tick: int
    total_amount0: int
    total_amount1: int
    total_supply: int


@dataclass(frozen=True)
class GovernanceTransferred:
    previous: str
    current: str
