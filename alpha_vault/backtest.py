"""
Backtest - 시뮬레이션 풀 위에서 볼트 리밸런스 재생

가격 경로(GBM)를 따라 외부 트레이더가 풀 가격을 옮기고, 매 스텝마다
시간을 흘린 뒤 키퍼가 리밸런스를 시도한다. 각 스텝의 볼트 상태를
pandas DataFrame으로 기록한다.

핵심 공식:
    log-return ~ N((μ - σ²/2), σ²)          # 스텝당
    price_t = price_0 × exp(Σ log-return)
    value_per_share = (total0 × price + total1) / total_supply   # token1 기준
    hodl_per_share = (deposit0 × price + deposit1) / shares
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from .chain import Chain, Pool, Router, Token
from .config import Settings
from .keeper import Keeper
from .math.sqrt_price_math import price_to_sqrt_price_x96, sqrt_price_x96_to_price
from .math.tick_math import usable_tick_bounds
from .vault import AlphaStrategy, AlphaVault

logger = logging.getLogger(__name__)

INITIAL_PRICE = 100.0
BACKGROUND_LIQUIDITY = 10 ** 21
DEPOSIT_AMOUNT0 = 10 ** 17
DEPOSIT_AMOUNT1 = 10 ** 19
TRADER_FUNDS = 10 ** 30
OBSERVATION_CARDINALITY = 100
WARMUP_SECONDS = 3600


@dataclass
class BacktestEnv:
    """백테스트에 필요한 참여자 묶음"""
    chain: Chain
    token0: Token
    token1: Token
    pool: Pool
    router: Router
    vault: AlphaVault
    strategy: AlphaStrategy
    keeper: Keeper
    governance: str
    depositor: str
    trader: str
    deposit_shares: int = 0
    deposit_amount0: int = 0
    deposit_amount1: int = 0


def build_environment(settings: Settings, initial_price: float = INITIAL_PRICE) -> BacktestEnv:
    """풀, 볼트, 전략, 키퍼를 만들고 예치자 자금을 넣는다

    풀은 전 구간 배경 유동성과 오라클 cardinality를 갖춘 뒤
    TWAP이 동작하도록 WARMUP_SECONDS만큼 시간이 흐른 상태로 반환된다.
    """
    chain = Chain()
    governance = chain.new_address()
    keeper_address = chain.new_address()
    depositor = chain.new_address()
    trader = chain.new_address()

    token_a = Token(chain, "Token A", "TKA")
    token_b = Token(chain, "Token B", "TKB")
    pool = Pool(chain, token_a, token_b, settings.POOL_FEE)
    pool.initialize(price_to_sqrt_price_x96(initial_price))
    token0, token1 = pool.token0, pool.token1

    router = Router(chain)
    for token in (token0, token1):
        token.mint(trader, TRADER_FUNDS)
        token.approve(trader, router.address, TRADER_FUNDS)

    min_tick, max_tick = usable_tick_bounds(pool.tick_spacing)
    router.mint(pool, min_tick, max_tick, BACKGROUND_LIQUIDITY, sender=trader)
    pool.increase_observation_cardinality_next(OBSERVATION_CARDINALITY)
    chain.sleep(WARMUP_SECONDS)

    vault = AlphaVault(
        chain,
        pool,
        protocol_fee=settings.VAULT_PROTOCOL_FEE,
        max_total_supply=settings.VAULT_MAX_TOTAL_SUPPLY,
        governance=governance,
    )
    strategy = AlphaStrategy(chain, vault, keeper=keeper_address, **settings.strategy_params())
    vault.set_strategy(strategy.address, sender=governance)
    keeper = Keeper(strategy, keeper_address, settings.KEEPER_MIN_TICK_MOVE)

    token0.mint(depositor, DEPOSIT_AMOUNT0)
    token1.mint(depositor, DEPOSIT_AMOUNT1)
    token0.approve(depositor, vault.address, DEPOSIT_AMOUNT0)
    token1.approve(depositor, vault.address, DEPOSIT_AMOUNT1)
    shares, amount0, amount1 = vault.deposit(
        DEPOSIT_AMOUNT0, DEPOSIT_AMOUNT1, 0, 0, to=depositor, sender=depositor
    )

    env = BacktestEnv(
        chain=chain,
        token0=token0,
        token1=token1,
        pool=pool,
        router=router,
        vault=vault,
        strategy=strategy,
        keeper=keeper,
        governance=governance,
        depositor=depositor,
        trader=trader,
        deposit_shares=shares,
        deposit_amount0=amount0,
        deposit_amount1=amount1,
    )
    logger.info("백테스트 환경 준비: %s, 예치 shares=%d", pool, shares)
    return env


def simulate_price_path(
    n_steps: int,
    volatility: float,
    seed: Optional[int] = None,
    initial_price: float = INITIAL_PRICE,
    drift: float = 0.0
) -> np.ndarray:
    """기하 브라운 운동 가격 경로

    Args:
        n_steps: 스텝 수
        volatility: 스텝당 로그 수익률 표준편차
        seed: 난수 시드
        initial_price: 시작 가격 (경로에는 포함하지 않음)
        drift: 스텝당 기대 로그 수익률

    Returns:
        길이 n_steps의 가격 배열
    """
    if n_steps < 0:
        raise ValueError(f"스텝 수는 음수일 수 없습니다: {n_steps}")
    if volatility < 0:
        raise ValueError(f"변동성은 음수일 수 없습니다: {volatility}")

    rng = np.random.default_rng(seed)
    log_returns = rng.normal(drift - 0.5 * volatility ** 2, volatility, size=n_steps)
    return initial_price * np.exp(np.cumsum(log_returns))


def _record(env: BacktestEnv, rebalanced: bool) -> Dict[str, Any]:
    vault = env.vault
    slot0 = env.pool.slot0()
    price = sqrt_price_x96_to_price(slot0.sqrt_price_x96)
    total0, total1 = vault.get_total_amounts()
    total_supply = vault.total_supply

    value_per_share = (total0 * price + total1) / total_supply if total_supply else 0.0
    hodl_per_share = (
        (env.deposit_amount0 * price + env.deposit_amount1) / env.deposit_shares
        if env.deposit_shares else 0.0
    )
    return {
        "timestamp": env.chain.timestamp,
        "tick": slot0.tick,
        "price": price,
        "total0": total0 / 10 ** env.token0.decimals,
        "total1": total1 / 10 ** env.token1.decimals,
        "total_supply": total_supply,
        "value_per_share": value_per_share,
        "hodl_per_share": hodl_per_share,
        "base_lower": vault.base_lower,
        "base_upper": vault.base_upper,
        "limit_lower": vault.limit_lower,
        "limit_upper": vault.limit_upper,
        "in_base_range": vault.base_lower <= slot0.tick < vault.base_upper,
        "rebalanced": rebalanced,
    }


def run_backtest(env: BacktestEnv, path: np.ndarray, step_seconds: int = 3600) -> pd.DataFrame:
    """가격 경로를 재생하며 매 스텝 볼트 상태 기록

    첫 행은 초기 리밸런스 직후 상태다. step_seconds가 TWAP 구간보다 짧으면
    스왑 직후 가격 검사에 막혀 리밸런스가 건너뛰어질 수 있다.

    Args:
        env: build_environment 결과
        path: 목표 가격 배열
        step_seconds: 스텝 간격 (초)

    Returns:
        스텝별 DataFrame
    """
    if step_seconds <= 0:
        raise ValueError(f"스텝 간격은 양수여야 합니다: {step_seconds}")

    rows = [_record(env, env.keeper.poke())]

    for target_price in path:
        target = price_to_sqrt_price_x96(float(target_price))
        env.router.swap_to_price(env.pool, target, sender=env.trader, max_amount_in=TRADER_FUNDS // 10)
        env.chain.sleep(step_seconds)
        rows.append(_record(env, env.keeper.poke()))

    df = pd.DataFrame(rows)
    df["datetime"] = pd.to_datetime(df["timestamp"], unit="s")
    logger.info("백테스트 완료: %d 스텝, 리밸런스 %d회", len(path), int(df["rebalanced"].sum()))
    return df


def summarize(df: pd.DataFrame) -> Dict[str, Any]:
    """백테스트 주요 지표"""
    if df.empty:
        raise ValueError("빈 백테스트 결과입니다")

    first = df.iloc[0]
    last = df.iloc[-1]
    vps_change = (last["value_per_share"] / first["value_per_share"] - 1) * 100 if first["value_per_share"] else 0.0
    vs_hodl = (last["value_per_share"] / last["hodl_per_share"] - 1) * 100 if last["hodl_per_share"] else 0.0

    return {
        "steps": len(df) - 1,
        "rebalances": int(df["rebalanced"].sum()),
        "start_price": float(first["price"]),
        "end_price": float(last["price"]),
        "price_change_pct": float((last["price"] / first["price"] - 1) * 100),
        "start_value_per_share": float(first["value_per_share"]),
        "end_value_per_share": float(last["value_per_share"]),
        "value_per_share_change_pct": float(vps_change),
        "vs_hodl_pct": float(vs_hodl),
        "in_range_pct": float(df["in_base_range"].mean() * 100),
    }
