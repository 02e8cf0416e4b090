"""
Alpha Vault - 자동 유동성 관리 볼트

예치자는 두 토큰을 맡기고 지분을 받는다. 볼트는 현재가 주변에
넓은 base 포지션과 한쪽으로 치우친 좁은 limit 포지션을 유지하며,
전략(strategy)만 호출할 수 있는 rebalance로 두 포지션을 재배치한다.

모든 공개 진입점은 Chain.transaction() 안에서 실행되어 실패 시 전부 롤백된다.
각 진입점은 검증 → 내부 장부 갱신 → 외부 호출(풀, 토큰 전송) 순서를 따른다.

스트리밍 수수료는 deposit / withdraw / rebalance / 요율 변경 때마다
마지막 정산 이후 경과 시간만큼 총량(유휴 + 포지션) 기준으로 정산된다.
포지션에 묶인 몫까지 적립금으로 잡히므로 다음 리밸런스 전까지
get_balance0/1 (유휴 잔고 - 적립금)이 음수일 수 있다.

리밸런스 절차:
    1. 기존 base/limit 포지션 전량 회수 (원금 + 수수료)
    2. 수수료 중 protocol_fee 몫을 프로토콜 적립금으로 분리
    3. 스트리밍 수수료 정산 (설정된 경우)
    4. 유휴 잔고 전부로 base 포지션 공급
    5. 남은 한쪽 토큰으로 bid / ask 중 더 많은 유동성을 만드는 쪽 공급
    6. 범위 기록, Snapshot 이벤트
"""

import logging
from typing import Optional, Tuple

from ..chain.chain import Chain
from ..chain.pool import Pool
from ..chain.token import Token
from ..constants import (
    FEE_DENOMINATOR,
    MAX_TICK,
    MIN_TICK,
    MIN_TOTAL_SUPPLY,
    NULL_ADDRESS,
    SECONDS_PER_YEAR,
    UINT128_MAX,
)
from ..errors import (
    AuthorizationError,
    ConfigurationError,
    FinalizedError,
    InsufficientBalanceError,
    InvalidRecipientError,
    MinimumSupplyError,
    RangeValidityError,
    SlippageError,
    ZeroAmountError,
)
from .events import CollectFees, Deposit, GovernanceTransferred, Snapshot, StreamingFee, Withdraw
from .governance import Governance
from .ledger import ShareLedger, calc_shares_and_amounts, calc_withdraw_amount
from .positions import PositionManager

logger = logging.getLogger(__name__)


def check_fee(fee: int, name: str) -> None:
    """ppm 수수료 검증 (0 <= fee < 1e6)"""
    if fee < 0 or fee >= FEE_DENOMINATOR:
        raise ConfigurationError(name, f"수수료는 0 이상 {FEE_DENOMINATOR} 미만이어야 합니다: {fee}")


class AlphaVault:
    """볼트 애그리거트 루트

    Args:
        chain: 호스트 원장
        pool: 대상 풀 (token0/token1/tick_spacing을 여기서 가져옴)
        protocol_fee: 포지션 수수료 중 프로토콜 몫 (ppm)
        max_total_supply: 지분 공급 상한
        governance: 관리자 주소
        streaming_fee: 연율 운용 수수료 (ppm)
        deposit_fee: 예치 수수료 (ppm)
    """

    def __init__(
        self,
        chain: Chain,
        pool: Pool,
        protocol_fee: int,
        max_total_supply: int,
        governance: str,
        streaming_fee: int = 0,
        deposit_fee: int = 0,
        name: str = "Alpha Vault",
        symbol: str = "AV"
    ):
        check_fee(protocol_fee, "protocolFee")
        check_fee(streaming_fee, "streamingFee")
        check_fee(deposit_fee, "depositFee")

        tick = pool.slot0().tick
        if tick <= MIN_TICK:
            raise ConfigurationError("price too low", f"풀 가격이 하한에 있습니다: tick={tick}")
        if tick >= MAX_TICK - 1:
            raise ConfigurationError("price too high", f"풀 가격이 상한에 있습니다: tick={tick}")

        self.chain = chain
        self.pool = pool
        self.token0: Token = pool.token0
        self.token1: Token = pool.token1
        self.tick_spacing: int = pool.tick_spacing
        self.name = name
        self.symbol = symbol
        self.address = chain.new_address()

        self.protocol_fee = protocol_fee
        self.streaming_fee = streaming_fee
        self.deposit_fee = deposit_fee
        self.accrued_protocol_fees0 = 0
        self.accrued_protocol_fees1 = 0
        self.last_fee_accrual = chain.timestamp

        self.ledger = ShareLedger(max_total_supply)
        self.roles = Governance(governance)
        self.positions = PositionManager(pool, self)
        self.strategy: Optional[str] = None
        self.finalized = False

        self.base_lower = 0
        self.base_upper = 0
        self.limit_lower = 0
        self.limit_upper = 0

        chain.register(self)

    def __repr__(self) -> str:
        return f"AlphaVault({self.symbol}, {self.address})"

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    @property
    def governance(self) -> str:
        return self.roles.governance

    @property
    def pending_governance(self) -> Optional[str]:
        return self.roles.pending_governance

    @property
    def total_supply(self) -> int:
        return self.ledger.total_supply

    @property
    def max_total_supply(self) -> int:
        return self.ledger.max_total_supply

    def balance_of(self, holder: str) -> int:
        return self.ledger.balance_of(holder)

    def get_balance0(self) -> int:
        """프로토콜 적립금을 제외한 유휴 token0"""
        return self.token0.balance_of(self.address) - self.accrued_protocol_fees0

    def get_balance1(self) -> int:
        """프로토콜 적립금을 제외한 유휴 token1"""
        return self.token1.balance_of(self.address) - self.accrued_protocol_fees1

    def get_position_amounts(self, tick_lower: int, tick_upper: int) -> Tuple[int, int]:
        """포지션이 나타내는 토큰량 + 프로토콜 몫을 뺀 미수령 수수료"""
        position = self.positions.position(tick_lower, tick_upper)
        amount0, amount1 = self.positions.amounts_for_liquidity(tick_lower, tick_upper, position.liquidity)
        one_minus_fee = FEE_DENOMINATOR - self.protocol_fee
        amount0 += position.tokens_owed_0 * one_minus_fee // FEE_DENOMINATOR
        amount1 += position.tokens_owed_1 * one_minus_fee // FEE_DENOMINATOR
        return amount0, amount1

    def get_total_amounts(self) -> Tuple[int, int]:
        """볼트가 관리하는 총 토큰량 (유휴 + base + limit)"""
        base0, base1 = self.get_position_amounts(self.base_lower, self.base_upper)
        limit0, limit1 = self.get_position_amounts(self.limit_lower, self.limit_upper)
        return self.get_balance0() + base0 + limit0, self.get_balance1() + base1 + limit1

    def preview_deposit(self, amount0_desired: int, amount1_desired: int) -> Tuple[int, int, int]:
        """예치 시 받을 (shares, amount0, amount1). 상태를 바꾸지 않는다

        미수령 수수료는 마지막 poke 기준이므로 실제 deposit 결과와 약간 다를 수 있다.
        """
        total0, total1 = self.get_total_amounts()
        quote = calc_shares_and_amounts(
            amount0_desired, amount1_desired, total0, total1,
            self.total_supply, self.pool.slot0().sqrt_price_x96,
        )
        shares = quote.shares * (FEE_DENOMINATOR - self.deposit_fee) // FEE_DENOMINATOR
        return shares, quote.amount0, quote.amount1

    def preview_withdraw(self, shares: int) -> Tuple[int, int]:
        """지분 소각 시 받을 토큰량 (총량 기준 비례 추정)"""
        total0, total1 = self.get_total_amounts()
        return (
            calc_withdraw_amount(shares, total0, self.total_supply),
            calc_withdraw_amount(shares, total1, self.total_supply),
        )

    # ------------------------------------------------------------------
    # 예치 / 인출
    # ------------------------------------------------------------------

    def deposit(
        self,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int,
        amount1_min: int,
        to: str,
        sender: str
    ) -> Tuple[int, int, int]:
        """토큰을 현재 보유 비율대로 예치하고 지분 발행

        예치된 토큰은 다음 리밸런스까지 유휴 상태로 남는다.

        Returns:
            (shares, amount0, amount1)

        Raises:
            ZeroAmountError: 두 예치량이 모두 0 또는 지분이 0
            InvalidRecipientError: to가 null 주소 또는 볼트 자신
            MinimumSupplyError: 첫 예치 지분이 MIN_TOTAL_SUPPLY 미만
            SlippageError: 투입량이 amount0_min/amount1_min 미만
            MaxTotalSupplyError: 공급 상한 초과
        """
        if amount0_desired <= 0 and amount1_desired <= 0:
            raise ZeroAmountError("amount0Desired or amount1Desired", "예치량이 모두 0입니다")
        if to == NULL_ADDRESS or to == self.address:
            raise InvalidRecipientError("to", f"잘못된 수령인: {to}")

        with self.chain.transaction():
            # 누적 수수료를 tokens_owed에 반영해야 총량이 정확하다
            self.positions.poke(self.base_lower, self.base_upper)
            self.positions.poke(self.limit_lower, self.limit_upper)
            self._accrue_streaming_fee()

            total_supply = self.total_supply
            total0, total1 = self.get_total_amounts()
            shares, amount0, amount1 = calc_shares_and_amounts(
                amount0_desired, amount1_desired, total0, total1,
                total_supply, self.pool.slot0().sqrt_price_x96,
            )
            if amount0 < amount0_min:
                raise SlippageError("amount0Min", f"{amount0} < {amount0_min}")
            if amount1 < amount1_min:
                raise SlippageError("amount1Min", f"{amount1} < {amount1_min}")

            if self.deposit_fee > 0:
                fee0 = amount0 * self.deposit_fee // FEE_DENOMINATOR
                fee1 = amount1 * self.deposit_fee // FEE_DENOMINATOR
                self.accrued_protocol_fees0 += fee0
                self.accrued_protocol_fees1 += fee1
                shares = shares * (FEE_DENOMINATOR - self.deposit_fee) // FEE_DENOMINATOR
                if total_supply == 0 and shares < MIN_TOTAL_SUPPLY:
                    raise MinimumSupplyError("MIN_TOTAL_SUPPLY", f"수수료 차감 후 지분 부족: {shares}")
                if shares == 0:
                    raise ZeroAmountError("shares", "수수료 차감 후 지분이 0입니다")

            self.ledger.mint(to, shares)

            if amount0 > 0:
                self.token0.transfer_from(self.address, sender, self.address, amount0)
            if amount1 > 0:
                self.token1.transfer_from(self.address, sender, self.address, amount1)

            self.chain.emit(Deposit(sender, to, shares, amount0, amount1))

        logger.info("예치: %s → %s shares=%d (%d, %d)", sender, to, shares, amount0, amount1)
        return shares, amount0, amount1

    def withdraw(
        self,
        shares: int,
        amount0_min: int,
        amount1_min: int,
        to: str,
        sender: str
    ) -> Tuple[int, int]:
        """지분을 소각하고 유휴 잔고와 두 포지션에서 비례 몫을 인출

        모든 지분을 소각하는 전액 인출은 허용한다. 일부 인출 후
        총 공급이 0보다 크고 MIN_TOTAL_SUPPLY보다 작아지면 거부한다.

        Returns:
            (amount0, amount1)
        """
        if shares <= 0:
            raise ZeroAmountError("shares", "인출 지분이 0입니다")
        if to == NULL_ADDRESS or to == self.address:
            raise InvalidRecipientError("to", f"잘못된 수령인: {to}")

        with self.chain.transaction():
            self._accrue_streaming_fee()

            total_supply = self.total_supply
            remaining = total_supply - shares
            if 0 < remaining < MIN_TOTAL_SUPPLY:
                raise MinimumSupplyError(
                    "MIN_TOTAL_SUPPLY", f"남는 지분이 최소 공급량보다 작습니다: {remaining}"
                )

            self.ledger.burn(sender, shares)

            # 유휴 잔고 몫은 포지션 회수 전에 계산
            unused0 = calc_withdraw_amount(shares, self.get_balance0(), total_supply)
            unused1 = calc_withdraw_amount(shares, self.get_balance1(), total_supply)

            base0, base1 = self._burn_liquidity_share(self.base_lower, self.base_upper, shares, total_supply)
            limit0, limit1 = self._burn_liquidity_share(self.limit_lower, self.limit_upper, shares, total_supply)

            # 스트리밍 수수료 적립 후에는 unused가 음수일 수 있다
            amount0 = max(0, unused0 + base0 + limit0)
            amount1 = max(0, unused1 + base1 + limit1)
            if amount0 < amount0_min:
                raise SlippageError("amount0Min", f"{amount0} < {amount0_min}")
            if amount1 < amount1_min:
                raise SlippageError("amount1Min", f"{amount1} < {amount1_min}")

            if amount0 > 0:
                self.token0.transfer(self.address, to, amount0)
            if amount1 > 0:
                self.token1.transfer(self.address, to, amount1)

            self.chain.emit(Withdraw(sender, to, shares, amount0, amount1))

        logger.info("인출: %s → %s shares=%d (%d, %d)", sender, to, shares, amount0, amount1)
        return amount0, amount1

    def _burn_liquidity_share(
        self,
        tick_lower: int,
        tick_upper: int,
        shares: int,
        total_supply: int
    ) -> Tuple[int, int]:
        """포지션 유동성의 shares/total_supply 몫을 회수

        회수된 원금 전부와 수령 수수료의 비례 몫을 돌려준다.
        나머지 수수료는 볼트 유휴 잔고로 남는다.
        """
        liquidity = self.positions.liquidity_for_shares(tick_lower, tick_upper, shares, total_supply)
        if liquidity == 0:
            return 0, 0

        burned0, burned1, fees0, fees1 = self._burn_and_collect(tick_lower, tick_upper, liquidity)
        amount0 = burned0 + fees0 * shares // total_supply
        amount1 = burned1 + fees1 * shares // total_supply
        return amount0, amount1

    def _burn_and_collect(self, tick_lower: int, tick_upper: int, liquidity: int) -> Tuple[int, int, int, int]:
        """유동성 회수 + 수수료 수령 후 프로토콜 몫 분리

        Returns:
            (burned0, burned1, fees_to_vault0, fees_to_vault1)
        """
        result = self.positions.burn_and_collect(tick_lower, tick_upper, liquidity)

        fees_to_protocol0 = result.fees0 * self.protocol_fee // FEE_DENOMINATOR
        fees_to_protocol1 = result.fees1 * self.protocol_fee // FEE_DENOMINATOR
        self.accrued_protocol_fees0 += fees_to_protocol0
        self.accrued_protocol_fees1 += fees_to_protocol1

        self.chain.emit(CollectFees(fees_to_protocol0, fees_to_protocol1, result.fees0, result.fees1))
        return (
            result.burned0,
            result.burned1,
            result.fees0 - fees_to_protocol0,
            result.fees1 - fees_to_protocol1,
        )

    # ------------------------------------------------------------------
    # 리밸런스
    # ------------------------------------------------------------------

    def rebalance(
        self,
        base_lower: int,
        base_upper: int,
        bid_lower: int,
        bid_upper: int,
        ask_lower: int,
        ask_upper: int,
        sender: str
    ) -> None:
        """두 포지션을 회수한 뒤 새 범위로 재배치 (전략 전용)

        bid 범위는 현재 틱 이하, ask 범위는 현재 틱 초과여야 한다.

        Raises:
            AuthorizationError: sender가 전략이 아닌 경우
            RangeValidityError: 범위가 뒤집혔거나, 경계를 넘거나, spacing 배수가 아닌 경우
        """
        if self.strategy is None or sender != self.strategy:
            raise AuthorizationError("strategy", f"전략만 호출할 수 있습니다: {sender}")

        self._check_range(base_lower, base_upper)
        self._check_range(bid_lower, bid_upper)
        self._check_range(ask_lower, ask_upper)

        tick = self.pool.slot0().tick
        if bid_upper > tick:
            raise RangeValidityError("bidUpper", f"bid 상한이 현재 틱보다 큽니다: {bid_upper} > {tick}")
        if ask_lower <= tick:
            raise RangeValidityError("askLower", f"ask 하한이 현재 틱 이하입니다: {ask_lower} <= {tick}")

        with self.chain.transaction():
            base_liquidity = self.positions.liquidity(self.base_lower, self.base_upper)
            limit_liquidity = self.positions.liquidity(self.limit_lower, self.limit_upper)
            self._burn_and_collect(self.base_lower, self.base_upper, base_liquidity)
            self._burn_and_collect(self.limit_lower, self.limit_upper, limit_liquidity)

            self._accrue_streaming_fee()

            # 유휴 잔고 전부로 base 공급
            balance0 = self.get_balance0()
            balance1 = self.get_balance1()
            self.positions.deposit(base_lower, base_upper, balance0, balance1)
            self.base_lower, self.base_upper = base_lower, base_upper

            # 남은 한쪽 토큰은 더 많은 유동성을 만드는 쪽 limit 범위로
            balance0 = self.get_balance0()
            balance1 = self.get_balance1()
            bid_liquidity = self.positions.liquidity_for_amounts(bid_lower, bid_upper, balance0, balance1)
            ask_liquidity = self.positions.liquidity_for_amounts(ask_lower, ask_upper, balance0, balance1)

            if bid_liquidity > ask_liquidity:
                self.positions.mint_liquidity(bid_lower, bid_upper, bid_liquidity)
                self.limit_lower, self.limit_upper = bid_lower, bid_upper
            else:
                self.positions.mint_liquidity(ask_lower, ask_upper, ask_liquidity)
                self.limit_lower, self.limit_upper = ask_lower, ask_upper

            total0, total1 = self.get_total_amounts()
            self.chain.emit(Snapshot(tick, total0, total1, self.total_supply))

        logger.info(
            "리밸런스: tick=%d base=[%d, %d] limit=[%d, %d] total=(%d, %d)",
            tick, self.base_lower, self.base_upper, self.limit_lower, self.limit_upper, total0, total1,
        )

    def _check_range(self, tick_lower: int, tick_upper: int) -> None:
        if tick_lower >= tick_upper:
            raise RangeValidityError("tickLower < tickUpper", f"[{tick_lower}, {tick_upper}]")
        if tick_lower < MIN_TICK:
            raise RangeValidityError("tickLower too low", f"{tick_lower} < {MIN_TICK}")
        if tick_upper > MAX_TICK:
            raise RangeValidityError("tickUpper too high", f"{tick_upper} > {MAX_TICK}")
        if tick_lower % self.tick_spacing:
            raise RangeValidityError("tickLower % tickSpacing", f"{tick_lower} % {self.tick_spacing}")
        if tick_upper % self.tick_spacing:
            raise RangeValidityError("tickUpper % tickSpacing", f"{tick_upper} % {self.tick_spacing}")

    def _accrue_streaming_fee(self) -> None:
        """마지막 정산 이후 경과 시간만큼 운용 수수료 적립

        fee = total × streaming_fee × elapsed / (1e6 × 1년), 총량을 넘지 않는다.
        지분 가격이 바뀌는 모든 진입점 앞에서 호출해야 보유 기간만큼만 부담한다.
        """
        now = self.chain.timestamp
        elapsed = now - self.last_fee_accrual
        self.last_fee_accrual = now
        if self.streaming_fee == 0 or elapsed <= 0:
            return

        total0, total1 = self.get_total_amounts()
        denominator = FEE_DENOMINATOR * SECONDS_PER_YEAR
        fee0 = min(total0, total0 * self.streaming_fee * elapsed // denominator)
        fee1 = min(total1, total1 * self.streaming_fee * elapsed // denominator)
        if fee0 <= 0 and fee1 <= 0:
            return
        self.accrued_protocol_fees0 += fee0
        self.accrued_protocol_fees1 += fee1
        self.chain.emit(StreamingFee(fee0, fee1, elapsed))

    # ------------------------------------------------------------------
    # 풀 콜백
    # ------------------------------------------------------------------

    def uniswap_v3_mint_callback(self, amount0: int, amount1: int, data: object = None) -> None:
        if amount0 > 0:
            self.token0.transfer(self.address, self.pool.address, amount0)
        if amount1 > 0:
            self.token1.transfer(self.address, self.pool.address, amount1)

    # ------------------------------------------------------------------
    # 관리자 기능
    # ------------------------------------------------------------------

    def set_strategy(self, strategy: str, sender: str) -> None:
        self.roles.check(sender)
        self.strategy = strategy

    def set_protocol_fee(self, protocol_fee: int, sender: str) -> None:
        self.roles.check(sender)
        check_fee(protocol_fee, "protocolFee")
        self.protocol_fee = protocol_fee

    def set_streaming_fee(self, streaming_fee: int, sender: str) -> None:
        """연율 운용 수수료 변경. 지금까지의 몫은 이전 요율로 먼저 정산한다"""
        self.roles.check(sender)
        check_fee(streaming_fee, "streamingFee")
        with self.chain.transaction():
            self._accrue_streaming_fee()
            self.streaming_fee = streaming_fee

    def set_deposit_fee(self, deposit_fee: int, sender: str) -> None:
        self.roles.check(sender)
        check_fee(deposit_fee, "depositFee")
        self.deposit_fee = deposit_fee

    def set_max_total_supply(self, max_total_supply: int, sender: str) -> None:
        self.roles.check(sender)
        if max_total_supply < 0:
            raise ConfigurationError("maxTotalSupply", f"음수일 수 없습니다: {max_total_supply}")
        self.ledger.max_total_supply = max_total_supply

    def collect_protocol(self, amount0: int, amount1: int, to: str, sender: str) -> None:
        """적립된 프로토콜 수수료를 to로 전송

        Raises:
            ZeroAmountError: 수령량이 음수인 경우
            InvalidRecipientError: to가 null 주소 또는 볼트 자신
            InsufficientBalanceError: 적립액보다 많이 요청한 경우
        """
        self.roles.check(sender)
        if amount0 < 0 or amount1 < 0:
            raise ZeroAmountError("amount", f"수령량은 음수일 수 없습니다: ({amount0}, {amount1})")
        if to == NULL_ADDRESS or to == self.address:
            raise InvalidRecipientError("to", f"잘못된 수령인: {to}")
        if amount0 > self.accrued_protocol_fees0:
            raise InsufficientBalanceError(
                "accruedProtocolFees0", f"{amount0} > {self.accrued_protocol_fees0}"
            )
        if amount1 > self.accrued_protocol_fees1:
            raise InsufficientBalanceError(
                "accruedProtocolFees1", f"{amount1} > {self.accrued_protocol_fees1}"
            )

        with self.chain.transaction():
            self.accrued_protocol_fees0 -= amount0
            self.accrued_protocol_fees1 -= amount1
            if amount0 > 0:
                self.token0.transfer(self.address, to, amount0)
            if amount1 > 0:
                self.token1.transfer(self.address, to, amount1)
        logger.info("프로토콜 수수료 수령: (%d, %d) → %s", amount0, amount1, to)

    def emergency_withdraw(self, token: Token, amount: int, to: str, sender: str) -> None:
        """볼트에 있는 임의 토큰 인출 (finalize 전까지만)"""
        self.roles.check(sender)
        if self.finalized:
            raise FinalizedError("finalized", "finalize 이후에는 긴급 인출할 수 없습니다")
        if to == NULL_ADDRESS or to == self.address:
            raise InvalidRecipientError("to", f"잘못된 수령인: {to}")

        with self.chain.transaction():
            token.transfer(self.address, to, amount)
        logger.warning("긴급 인출: %s %d → %s", token.symbol, amount, to)

    def emergency_burn(self, tick_lower: int, tick_upper: int, liquidity: int, sender: str) -> Tuple[int, int]:
        """포지션 강제 해제. 회수 토큰은 관리자에게 전송 (finalize 전까지만)"""
        self.roles.check(sender)
        if self.finalized:
            raise FinalizedError("finalized", "finalize 이후에는 긴급 해제할 수 없습니다")

        with self.chain.transaction():
            self.pool.burn(self.address, tick_lower, tick_upper, liquidity)
            amounts = self.pool.collect(
                self.address, sender, tick_lower, tick_upper,
                UINT128_MAX, UINT128_MAX,
            )
        logger.warning("긴급 해제: [%d, %d] L=%d → %s", tick_lower, tick_upper, liquidity, amounts)
        return amounts

    def finalize(self, sender: str) -> None:
        """긴급 기능을 영구히 비활성화"""
        self.roles.check(sender)
        self.finalized = True

    def set_governance(self, candidate: str, sender: str) -> None:
        self.roles.propose(candidate, sender)

    def accept_governance(self, sender: str) -> None:
        with self.chain.transaction():
            previous = self.roles.accept(sender)
            self.chain.emit(GovernanceTransferred(previous, sender))
