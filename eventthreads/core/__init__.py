from .expiry import ExpirySweeper
from .join_requests import JoinOutcome, JoinRequestMachine, JoinState
from .ledger import MessageLedger
from .locks import KeyedLocks
from .membership import AdminPrincipal, MembershipAuthority
from .notifier import Broadcaster

__all__ = [
    "AdminPrincipal",
    "Broadcaster",
    "ExpirySweeper",
    "JoinOutcome",
    "JoinRequestMachine",
    "JoinState",
    "KeyedLocks",
    "MembershipAuthority",
    "MessageLedger",
]
