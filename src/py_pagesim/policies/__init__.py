"""Page-replacement policies — two-list, aging, and working-set.

Re-exports public symbols so callers can write::

    from py_pagesim.policies import TwoListPolicy, Snapshot
"""

from py_pagesim.policies.aging import AgingPolicy
from py_pagesim.policies.base import Policy, PolicyStats, Snapshot
from py_pagesim.policies.two_list import TwoListPolicy
from py_pagesim.policies.working_set import WorkingSetPolicy

__all__ = [
    "AgingPolicy",
    "Policy",
    "PolicyStats",
    "Snapshot",
    "TwoListPolicy",
    "WorkingSetPolicy",
]
