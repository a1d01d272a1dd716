"""Role-based visibility scoping and delete capability checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Mapping

from policy_ledger.core.errors import ForbiddenError, NotFoundError, ValidationError
from policy_ledger.models.query import Query

logger = logging.getLogger(__name__)

ROLE_STAFF = "staff"
ROLE_MODERATOR = "moderator"
ROLE_ADMIN = "admin"

ROLES = (ROLE_STAFF, ROLE_MODERATOR, ROLE_ADMIN)
PRIVILEGED_ROLES = frozenset({ROLE_MODERATOR, ROLE_ADMIN})

# Reference data written only by privileged roles and readable by everyone.
SHARED_READ_ENTITIES = frozenset({"insurer", "policy"})


@dataclass(frozen=True)
class Requester:
    """The authenticated caller supplied by the auth collaborator."""

    user_id: str
    role: str
    can_delete_override: bool = False

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValidationError("user id is required", field="userId")
        if self.role not in ROLES:
            raise ValidationError(f"must be one of: {', '.join(ROLES)}", field="role")

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


class AccessScoper:
    """Narrows queries to what a requester may see and gates privileged actions."""

    def scope(self, query: Query, requester: Requester, entity: str | None = None) -> Query:
        """Add the ownership predicate for the base role."""
        if requester.is_privileged or entity in SHARED_READ_ENTITIES:
            return query
        return replace(query, filters={**query.filters, "created_by": requester.user_id})

    def is_visible(self, record: Mapping[str, Any], requester: Requester, entity: str | None = None) -> bool:
        if requester.is_privileged or entity in SHARED_READ_ENTITIES:
            return True
        return record.get("created_by") == requester.user_id

    def ensure_visible(
        self,
        record: Mapping[str, Any] | None,
        requester: Requester,
        entity: str,
        entity_id: Any,
    ) -> Mapping[str, Any]:
        """Return the record or raise NotFound so existence is not leaked."""
        if record is None or not self.is_visible(record, requester, entity):
            raise NotFoundError(entity, entity_id)
        return record

    def ensure_writable(
        self,
        record: Mapping[str, Any] | None,
        requester: Requester,
        entity: str,
        entity_id: Any,
    ) -> Mapping[str, Any]:
        if record is None or not self.is_visible(record, requester):
            raise NotFoundError(entity, entity_id)
        return record

    def ensure_privileged(self, requester: Requester, action: str) -> None:
        if not requester.is_privileged:
            logger.warning("Denied %s for user=%s role=%s", action, requester.user_id, requester.role)
            raise ForbiddenError(f"Insufficient permissions to {action}")

    def ensure_can_delete(self, requester: Requester, entity: str) -> None:
        """Delete capability is independent of ownership."""
        if requester.is_privileged or requester.can_delete_override:
            return
        logger.warning("Denied delete of %s for user=%s role=%s", entity, requester.user_id, requester.role)
        raise ForbiddenError(f"Insufficient permissions to delete {entity}")
