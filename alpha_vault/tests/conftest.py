"""
공통 fixture

기준 시나리오:
- 수수료 0.3% (tick spacing 60) 풀, 가격 100
- 사용자마다 token0 100e18, token1 10000e18 지급 후 라우터/볼트에 approve
- 전 구간 배경 유동성 1e16, 오라클 cardinality 100, 1시간 경과
- 전략 base 2400 / limit 1200 / maxTwapDeviation 500 / twapDuration 600
"""

import pytest

from ..chain import Chain, Pool, Router, Token
from ..math.sqrt_price_math import price_to_sqrt_price_x96
from ..math.tick_math import usable_tick_bounds
from ..vault import AlphaStrategy, AlphaVault

E18 = 10 ** 18
USER_AMOUNT0 = 100 * E18
USER_AMOUNT1 = 10000 * E18
BACKGROUND_LIQUIDITY = 10 ** 16
PROTOCOL_FEE = 10000
MAX_TOTAL_SUPPLY = 100 * E18


@pytest.fixture
def chain():
    return Chain()


@pytest.fixture
def gov(chain):
    return chain.new_address()


@pytest.fixture
def user(chain):
    return chain.new_address()


@pytest.fixture
def recipient(chain):
    return chain.new_address()


@pytest.fixture
def keeper(chain):
    return chain.new_address()


@pytest.fixture
def users(gov, user, recipient):
    return [gov, user, recipient]


@pytest.fixture
def router(chain):
    return Router(chain)


@pytest.fixture
def make_pool(chain, router, users):
    """가격을 지정해 새 풀 생성 (사용자 자금 지급 포함)"""
    def f(price=100, liquidity=BACKGROUND_LIQUIDITY, sqrt_price_x96=None):
        token_a = Token(chain, "name A", "symbol A")
        token_b = Token(chain, "name B", "symbol B")
        pool = Pool(chain, token_a, token_b, 3000)
        pool.initialize(sqrt_price_x96 or price_to_sqrt_price_x96(price))

        for u in users:
            pool.token0.mint(u, USER_AMOUNT0)
            pool.token1.mint(u, USER_AMOUNT1)
            pool.token0.approve(u, router.address, USER_AMOUNT0)
            pool.token1.approve(u, router.address, USER_AMOUNT1)

        if liquidity:
            min_tick, max_tick = usable_tick_bounds(pool.tick_spacing)
            router.mint(pool, min_tick, max_tick, liquidity, sender=users[0])

        # TWAP이 동작하도록 cardinality를 늘리고 시간 경과
        pool.increase_observation_cardinality_next(100)
        chain.sleep(3600)
        return pool

    return f


@pytest.fixture
def pool(make_pool):
    return make_pool()


@pytest.fixture
def tokens(pool):
    return pool.token0, pool.token1


@pytest.fixture
def vault(chain, pool, tokens, gov, users):
    vault = AlphaVault(chain, pool, PROTOCOL_FEE, MAX_TOTAL_SUPPLY, governance=gov)
    for u in users:
        tokens[0].approve(u, vault.address, USER_AMOUNT0)
        tokens[1].approve(u, vault.address, USER_AMOUNT1)
    return vault


@pytest.fixture
def strategy(chain, vault, gov, keeper):
    strategy = AlphaStrategy(chain, vault, 2400, 1200, 500, 600, keeper)
    vault.set_strategy(strategy.address, sender=gov)
    return strategy


@pytest.fixture
def get_positions(pool):
    """볼트의 (base, limit) 포지션 상태"""
    def f(vault):
        base = pool.positions(vault.address, vault.base_lower, vault.base_upper)
        limit = pool.positions(vault.address, vault.limit_lower, vault.limit_upper)
        return base, limit

    return f


@pytest.fixture
def vault_after_price_move(vault, strategy, pool, router, gov, user, keeper, chain):
    """예치 + 리밸런스 + 가격 이동 후 다시 리밸런스된 볼트"""
    vault.deposit(10 ** 16, 10 ** 18, 0, 0, to=gov, sender=gov)
    strategy.rebalance(sender=keeper)

    prev_tick = pool.slot0().tick // 60 * 60
    router.swap(pool, True, 10 ** 16, sender=gov)
    assert pool.slot0().tick // 60 * 60 != prev_tick

    chain.sleep(3600)
    strategy.rebalance(sender=keeper)

    total0, total1 = vault.get_total_amounts()
    assert total0 > 0 and total1 > 0
    return vault
