"""Domain exception hierarchy for structured error responses.

Every exception carries a human-readable ``message`` and a ``details`` list of
dicts identifying the entity, its current status and the attempted action, so
the HTTP layer can build an actionable response without this package knowing
anything about HTTP.
"""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404

    @classmethod
    def for_entity(cls, entity: str, entity_id: object) -> NotFoundException:
        return cls(
            f"{entity.replace('_', ' ').capitalize()} {entity_id} not found",
            details=[{"entity": entity, "id": str(entity_id)}],
        )


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class BusinessRuleException(AppException):
    code = "BUSINESS_RULE_VIOLATION"
    status_code = 422


class InvalidStateTransitionException(ConflictException):
    code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entity: str,
        entity_id: object,
        current_status: str,
        attempted_action: str,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message
            or f"Cannot {attempted_action} {entity.replace('_', ' ')} {entity_id} "
            f"in status '{current_status}'",
            details=[{
                "entity": entity,
                "id": str(entity_id),
                "current_status": current_status,
                "attempted_action": attempted_action,
            }],
        )
        self.current_status = current_status
        self.attempted_action = attempted_action


class ApprovalRequiredException(ConflictException):
    code = "APPROVAL_REQUIRED"

    def __init__(self, amendment_id: object, current_status: str) -> None:
        super().__init__(
            f"Amendment {amendment_id} requires approval before it can be applied "
            f"(current status: '{current_status}')",
            details=[{
                "entity": "amendment",
                "id": str(amendment_id),
                "current_status": current_status,
                "attempted_action": "apply",
            }],
        )
        self.current_status = current_status


class ConsistencyViolationException(BusinessRuleException):
    code = "CONSISTENCY_VIOLATION"


class TransactionFailureException(AppException):
    code = "TRANSACTION_FAILURE"
    status_code = 500
