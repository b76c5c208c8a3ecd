"""Read access decisions for document distributions.

`decide` is a pure function over an `AccessPolicy`; `policy_for` performs the
database reads needed to build one.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet

from core.identity import Identity, Role
from distributions import models as dist_models


class AccessDecision(str, Enum):
    ALLOW = 'allow'
    DENY = 'deny'


@dataclass(frozen=True)
class AccessPolicy:
    owner_id: int
    permissions: dict
    # Teachers named by an explicit narrowing action
    specific_teacher_ids: FrozenSet[int] = field(default_factory=frozenset)
    # Teachers added through shares; they join an active allow-list
    shared_teacher_ids: FrozenSet[int] = field(default_factory=frozenset)

    def role_flag(self, audience: str, flag: str) -> bool:
        return bool((self.permissions or {}).get(audience, {}).get(flag, False))


def policy_for(distribution: dist_models.DocumentDistribution) -> AccessPolicy:
    narrowed = set()
    shared = set()
    # .all() so a prefetch_related('teacher_shares') on the caller's queryset is reused
    for share in distribution.teacher_shares.all():
        if share.narrowed:
            narrowed.add(share.teacher_id)
        if share.shared:
            shared.add(share.teacher_id)
    return AccessPolicy(
        owner_id=distribution.module_leader_id,
        permissions=distribution.permissions or {},
        specific_teacher_ids=frozenset(narrowed),
        shared_teacher_ids=frozenset(shared),
    )


def _decide_flag(policy: AccessPolicy, identity: Identity, flag: str) -> AccessDecision:
    # The owner is never locked out, whatever the permission matrix says
    if identity.id == policy.owner_id:
        return AccessDecision.ALLOW

    if identity.role == Role.TEACHER and policy.role_flag('teachers', flag):
        if policy.specific_teacher_ids:
            allowed = policy.specific_teacher_ids | policy.shared_teacher_ids
            return AccessDecision.ALLOW if identity.id in allowed else AccessDecision.DENY
        return AccessDecision.ALLOW

    # Batch and section narrowing for students is not enforced here
    if identity.role == Role.STUDENT and policy.role_flag('students', flag):
        return AccessDecision.ALLOW

    if policy.role_flag('public', flag):
        return AccessDecision.ALLOW

    return AccessDecision.DENY


def decide(policy: AccessPolicy, identity: Identity) -> AccessDecision:
    return _decide_flag(policy, identity, 'can_view')


def decide_download(policy: AccessPolicy, identity: Identity) -> AccessDecision:
    """Same precedence as `decide`, checked against the download flags."""
    if decide(policy, identity) is AccessDecision.DENY:
        return AccessDecision.DENY
    return _decide_flag(policy, identity, 'can_download')


def evaluate_access(distribution, identity: Identity) -> AccessDecision:
    policy = distribution if isinstance(distribution, AccessPolicy) else policy_for(distribution)
    return decide(policy, identity)


def can_download(distribution, identity: Identity) -> bool:
    policy = distribution if isinstance(distribution, AccessPolicy) else policy_for(distribution)
    return decide_download(policy, identity) is AccessDecision.ALLOW
