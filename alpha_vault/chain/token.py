"""
Token - 표준 대체 가능 토큰

잔고 조회, 전송, approve/transferFrom 기반 인출만 제공한다.
잔고나 허용량이 부족하면 InsufficientBalanceError("balance" / "allowance").
"""

from typing import Dict, Tuple

from ..errors import InsufficientBalanceError
from .chain import Chain


class Token:
    """시뮬레이션 토큰 (decimals는 표시용)"""

    def __init__(self, chain: Chain, name: str, symbol: str, decimals: int = 18):
        self.chain = chain
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.address = chain.new_address()
        self.total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        chain.register(self)

    def __repr__(self) -> str:
        return f"Token({self.symbol}, {self.address})"

    def balance_of(self, owner: str) -> int:
        return self._balances.get(owner, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def mint(self, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"발행량은 음수일 수 없습니다: {amount}")
        self._balances[to] = self.balance_of(to) + amount
        self.total_supply += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"허용량은 음수일 수 없습니다: {amount}")
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        """sender → to 전송

        Raises:
            InsufficientBalanceError: 잔고 부족
        """
        if amount < 0:
            raise ValueError(f"전송량은 음수일 수 없습니다: {amount}")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalanceError(
                "balance", f"{self.symbol} 잔고 부족: {balance} < {amount}"
            )
        self._balances[sender] = balance - amount
        self._balances[to] = self.balance_of(to) + amount

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        """spender가 owner의 허용량을 써서 owner → to 전송

        Raises:
            InsufficientBalanceError: 허용량 또는 잔고 부족
        """
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientBalanceError(
                "allowance", f"{self.symbol} 허용량 부족: {allowed} < {amount}"
            )
        self.transfer(owner, to, amount)
        self._allowances[(owner, spender)] = allowed - amount
