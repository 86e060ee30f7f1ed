"""Access service client and the mapping from entitlement results to outcomes.

``DebugEntitlementAccess`` answers two questions for a (principal, target,
role) triple: can the principal request the entitlement, and would the
request be auto-approved.  Those two booleans collapse into one of three
outcomes:

==============  ===============  =====================
can_request     auto_approved    outcome
==============  ===============  =====================
True            True             ``auto-approved``
True            False            ``requires-approval``
False           (ignored)        ``no-access``
==============  ===============  =====================
"""

from typing import Any, Dict

from .http_client import ConnectClient

ACCESS_SERVICE = "commonfate.access.v1alpha1.AccessService"

USER_ENTITY_TYPE = "CF::User"

AUTO_APPROVED = "auto-approved"
REQUIRES_APPROVAL = "requires-approval"
NO_ACCESS = "no-access"

OUTCOMES = (AUTO_APPROVED, REQUIRES_APPROVAL, NO_ACCESS)


def outcome(can_request: bool, auto_approved: bool) -> str:
    """Map the two entitlement booleans onto an outcome string."""
    if can_request and auto_approved:
        return AUTO_APPROVED
    if can_request:
        return REQUIRES_APPROVAL
    return NO_ACCESS


class EntitlementAccess:
    """Result of a ``DebugEntitlementAccess`` call."""

    def __init__(self, can_request: bool, auto_approved: bool):
        self.can_request = can_request
        self.auto_approved = auto_approved

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntitlementAccess":
        # proto3 JSON omits false booleans
        return cls(bool(data.get("canRequest", False)), bool(data.get("autoApproved", False)))

    @property
    def outcome(self) -> str:
        return outcome(self.can_request, self.auto_approved)

    def __repr__(self):
        return (
            f"EntitlementAccess(can_request={self.can_request!r}, "
            f"auto_approved={self.auto_approved!r})"
        )


class AccessClient:
    """Wraps the ``AccessService`` RPCs."""

    def __init__(self, client: ConnectClient):
        self.client = client

    def debug_entitlement_access(self, user_id: str, target: str, role: str) -> EntitlementAccess:
        """Evaluate whether ``user_id`` can access ``role`` on ``target``.

        ``target`` and ``role`` are lookup strings resolved by the platform
        (e.g. an account ID and a permission set name).
        """
        res = self.client.call(ACCESS_SERVICE, "DebugEntitlementAccess", {
            "principal": {"eid": {"type": USER_ENTITY_TYPE, "id": user_id}},
            "target": {"lookup": target},
            "role": {"lookup": role},
        })
        return EntitlementAccess.from_dict(res)
