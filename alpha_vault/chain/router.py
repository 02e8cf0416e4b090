"""
Router - 테스트/시뮬레이션용 풀 호출 도우미

자금을 보관하지 않는다. 호출자(sender)가 라우터에 approve한 토큰을
풀 콜백 안에서 바로 풀로 옮긴다.
"""

from typing import Optional, Tuple

from ..math.tick_math import MIN_SQRT_RATIO, MAX_SQRT_RATIO
from .chain import Chain
from .pool import Pool


class Router:
    def __init__(self, chain: Chain):
        self.chain = chain
        self.address = chain.new_address()
        chain.register(self)

    def mint(self, pool: Pool, tick_lower: int, tick_upper: int, liquidity: int, sender: str) -> Tuple[int, int]:
        """sender 명의로 유동성 추가"""
        return pool.mint(sender, tick_lower, tick_upper, liquidity, payer=self, data=(pool, sender))

    def swap(
        self,
        pool: Pool,
        zero_for_one: bool,
        amount: int,
        sender: str,
        sqrt_price_limit_x96: Optional[int] = None
    ) -> Tuple[int, int]:
        """exact input(양수) 또는 exact output(음수) 스왑

        한도를 주지 않으면 가격 경계 직전까지 허용한다.
        """
        if sqrt_price_limit_x96 is None:
            sqrt_price_limit_x96 = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1
        return pool.swap(sender, zero_for_one, amount, sqrt_price_limit_x96, payer=self, data=(pool, sender))

    def swap_to_price(self, pool: Pool, sqrt_price_target_x96: int, sender: str, max_amount_in: int) -> Tuple[int, int]:
        """풀 가격을 목표 가격까지 이동 (최대 입력량 제한)

        목표가 현재 가격과 같으면 아무것도 하지 않는다.
        """
        current = pool.sqrt_price_x96
        if sqrt_price_target_x96 == current or max_amount_in <= 0:
            return 0, 0

        zero_for_one = sqrt_price_target_x96 < current
        sqrt_price_target_x96 = max(MIN_SQRT_RATIO + 1, min(MAX_SQRT_RATIO - 1, sqrt_price_target_x96))
        return self.swap(pool, zero_for_one, max_amount_in, sender, sqrt_price_target_x96)

    def uniswap_v3_mint_callback(self, amount0_owed: int, amount1_owed: int, data: Tuple[Pool, str]) -> None:
        pool, sender = data
        if amount0_owed > 0:
            pool.token0.transfer_from(self.address, sender, pool.address, amount0_owed)
        if amount1_owed > 0:
            pool.token1.transfer_from(self.address, sender, pool.address, amount1_owed)

    def uniswap_v3_swap_callback(self, amount0_delta: int, amount1_delta: int, data: Tuple[Pool, str]) -> None:
        pool, sender = data
        if amount0_delta > 0:
            pool.token0.transfer_from(self.address, sender, pool.address, amount0_delta)
        if amount1_delta > 0:
            pool.token1.transfer_from(self.address, sender, pool.address, amount1_delta)
