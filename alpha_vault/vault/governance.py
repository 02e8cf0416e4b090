"""
Governance - 2단계 관리자 이전

현재 관리자(governance)가 후보(pending)를 지정하고, 후보 본인만 수락할 수 있다.
도달 불가능한 주소로 관리 권한이 잘못 넘어가는 것을 막는다.
"""

from typing import Optional

from ..errors import AuthorizationError, NotPendingGovernanceError


class Governance:
    """(current, pending) 두 필드 상태 기계"""

    def __init__(self, governance: str):
        self.governance = governance
        self.pending_governance: Optional[str] = None

    def check(self, sender: str) -> None:
        """관리자 권한 확인

        Raises:
            AuthorizationError: sender가 현재 관리자가 아닌 경우
        """
        if sender != self.governance:
            raise AuthorizationError("governance", f"관리자만 호출할 수 있습니다: {sender}")

    def propose(self, candidate: str, sender: str) -> None:
        self.check(sender)
        self.pending_governance = candidate

    def accept(self, sender: str) -> str:
        """후보가 관리 권한 수락

        Returns:
            이전 관리자 주소

        Raises:
            NotPendingGovernanceError: sender가 지정된 후보가 아닌 경우
        """
        if self.pending_governance is None or sender != self.pending_governance:
            raise NotPendingGovernanceError("pendingGovernance", f"지정된 후보가 아닙니다: {sender}")
        previous = self.governance
        self.governance = sender
        self.pending_governance = None
        return previous
