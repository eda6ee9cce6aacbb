"""
Typed Exception Hierarchy for the Hours Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected operation in the hour ledger must be distinguishable by the
caller without parsing message strings:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.create_redistribution(...)
    except InsufficientCreditError as e:
        api_response(code=e.code, available=e.available_minutes)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from HoursKernelError:

    HoursKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidMinutesError
    |   +-- InvalidHourlyCostError
    |   +-- UnknownMarginComponentError
    |   +-- InvalidAssignmentEntryError
    |   +-- JustificationRequiredError
    |   +-- CommentRequiredError
    |   +-- CancellationReasonRequiredError
    |   +-- InvalidRemediationError
    |   +-- InvalidDispositionError
    |   +-- InvalidPeriodError
    |   +-- InvalidDestinationError
    |   +-- AsymmetricRedistributionError
    |
    +-- NotFoundError
    |   +-- ResourceNotFoundError
    |   +-- ClientNotFoundError
    |   +-- ProjectNotFoundError
    |   +-- ActivityNotFoundError
    |   +-- TaskNotFoundError
    |   +-- AssignmentNotFoundError
    |   +-- BonusNotFoundError
    |   +-- RedistributionNotFoundError
    |
    +-- StateError
    |   +-- TaskNotCompletedError
    |   +-- TaskAlreadyCompletedError
    |   +-- MissingActualTimeError
    |   +-- BonusAlreadyEvaluatedError
    |   +-- BonusNotPendingError
    |   +-- NotNegativeBonusError
    |   +-- RemediationRequiredError
    |   +-- RedistributionAlreadyCancelledError
    |   +-- DuplicateAssignmentError
    |
    +-- AuthorizationError
    |   +-- ManagerRoleRequiredError
    |
    +-- ConservationError
    |   +-- InsufficientCreditError
    |   +-- OverCompensationError
    |   +-- BudgetExceededError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- AuditError
        +-- AuditChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Validation      | INVALID_MINUTES               | Minutes missing, zero, or negative
                | INVALID_HOURLY_COST           | Base hourly cost not > 0
                | UNKNOWN_MARGIN_COMPONENT      | Toggle name not in the component table
                | INVALID_ASSIGNMENT_ENTRY      | Assignment payload shape not understood
                | JUSTIFICATION_REQUIRED        | Redistribution without a reason
                | COMMENT_REQUIRED              | Reject/remediate without a comment
                | CANCELLATION_REASON_REQUIRED  | Cancel without a reason
                | INVALID_REMEDIATION           | Remediation choice missing or unknown
                | INVALID_DISPOSITION           | Unknown bonus disposition action
                | INVALID_PERIOD                | Unknown capacity period
                | INVALID_DESTINATION           | Destination shape wrong or same as source
                | ASYMMETRIC_REDISTRIBUTION     | Withdraw != grant while not allowed
----------------|-------------------------------|---------------------------------------
Not found       | RESOURCE_NOT_FOUND            | Resource id doesn't exist
                | CLIENT_NOT_FOUND              | Client id doesn't exist
                | PROJECT_NOT_FOUND             | Project id doesn't exist
                | ACTIVITY_NOT_FOUND            | Activity id doesn't exist
                | TASK_NOT_FOUND                | Task id doesn't exist
                | ASSIGNMENT_NOT_FOUND          | Project assignment id doesn't exist
                | BONUS_NOT_FOUND               | Bonus record id doesn't exist
                | REDISTRIBUTION_NOT_FOUND      | Redistribution record doesn't exist
----------------|-------------------------------|---------------------------------------
State           | TASK_NOT_COMPLETED            | Bonus evaluation before completion
                | TASK_ALREADY_COMPLETED        | Completing a completed task again
                | MISSING_ACTUAL_TIME           | Completed task without actual minutes
                | BONUS_ALREADY_EVALUATED       | Second evaluation of the same task
                | BONUS_NOT_PENDING             | Disposition of a terminal record
                | NOT_NEGATIVE_BONUS            | Remediation of a non-negative record
                | REDISTRIBUTION_ALREADY_CANCELLED | Second cancellation
                | DUPLICATE_ASSIGNMENT          | Resource already on the project
----------------|-------------------------------|---------------------------------------
Authorization   | MANAGER_ROLE_REQUIRED         | Non-manager calling a manager operation
----------------|-------------------------------|---------------------------------------
Conservation    | INSUFFICIENT_CREDIT           | Withdraw exceeds remaining credit
                | OVER_COMPENSATION             | Grant exceeds the destination's debit
                | BUDGET_EXCEEDED               | Assignment pushes project past budget
----------------|-------------------------------|---------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | Write to an append-only/frozen record
----------------|-------------------------------|---------------------------------------
Audit           | AUDIT_CHAIN_BROKEN            | Hash chain validation failed

Every rejected operation leaves persisted state unchanged: services roll the
session back before the exception propagates.
"""


class HoursKernelError(Exception):
    """
    Base exception for all hours kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "HOURS_KERNEL_ERROR"


# Validation exceptions


class ValidationError(HoursKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class InvalidMinutesError(ValidationError):
    """A minutes quantity is missing, zero, negative, or not an integer."""

    code: str = "INVALID_MINUTES"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be a positive whole number of minutes, got {value!r}")


class InvalidHourlyCostError(ValidationError):
    """Base hourly cost must be strictly positive."""

    code: str = "INVALID_HOURLY_COST"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Base hourly cost must be greater than zero, got {value!r}")


class UnknownMarginComponentError(ValidationError):
    """Toggle name does not match any margin component."""

    code: str = "UNKNOWN_MARGIN_COMPONENT"

    def __init__(self, component: str):
        self.component = component
        super().__init__(f"Unknown margin component: {component}")


class InvalidAssignmentEntryError(ValidationError):
    """An assignment payload is neither a resource id nor a {id, minutes} mapping."""

    code: str = "INVALID_ASSIGNMENT_ENTRY"

    def __init__(self, entry: object):
        self.entry = entry
        super().__init__(f"Cannot interpret assignment entry: {entry!r}")


class JustificationRequiredError(ValidationError):
    """Redistribution requires a non-empty justification."""

    code: str = "JUSTIFICATION_REQUIRED"

    def __init__(self) -> None:
        super().__init__("A justification is required for redistribution")


class CommentRequiredError(ValidationError):
    """Bonus disposition requires a non-empty comment."""

    code: str = "COMMENT_REQUIRED"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"A comment is required to {action} a bonus record")


class CancellationReasonRequiredError(ValidationError):
    """Cancelling a redistribution requires a reason."""

    code: str = "CANCELLATION_REASON_REQUIRED"

    def __init__(self, redistribution_id: str):
        self.redistribution_id = redistribution_id
        super().__init__(
            f"A reason is required to cancel redistribution {redistribution_id}"
        )


class InvalidRemediationError(ValidationError):
    """Remediation choice missing or not recognised."""

    code: str = "INVALID_REMEDIATION"

    def __init__(self, remediation: object):
        self.remediation = remediation
        super().__init__(f"Invalid remediation choice: {remediation!r}")


class InvalidDispositionError(ValidationError):
    """Unknown bonus disposition action."""

    code: str = "INVALID_DISPOSITION"

    def __init__(self, action: object):
        self.action = action
        super().__init__(f"Invalid bonus disposition: {action!r}")


class InvalidPeriodError(ValidationError):
    """Unknown capacity period name."""

    code: str = "INVALID_PERIOD"

    def __init__(self, period: object):
        self.period = period
        super().__init__(f"Invalid capacity period: {period!r}")


class InvalidDestinationError(ValidationError):
    """Redistribution destination is malformed or equals the source."""

    code: str = "INVALID_DESTINATION"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid redistribution destination: {reason}")


class AsymmetricRedistributionError(ValidationError):
    """Withdrawn and granted minutes differ while conversion is disabled."""

    code: str = "ASYMMETRIC_REDISTRIBUTION"

    def __init__(self, withdraw_minutes: int, grant_minutes: int):
        self.withdraw_minutes = withdraw_minutes
        self.grant_minutes = grant_minutes
        super().__init__(
            f"Withdrawn minutes ({withdraw_minutes}) must equal "
            f"granted minutes ({grant_minutes})"
        )


# Lookup exceptions


class NotFoundError(HoursKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class ResourceNotFoundError(NotFoundError):
    code: str = "RESOURCE_NOT_FOUND"

    def __init__(self, resource_id: str):
        self.resource_id = resource_id
        super().__init__(f"Resource not found: {resource_id}")


class ClientNotFoundError(NotFoundError):
    code: str = "CLIENT_NOT_FOUND"

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client not found: {client_id}")


class ProjectNotFoundError(NotFoundError):
    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class ActivityNotFoundError(NotFoundError):
    code: str = "ACTIVITY_NOT_FOUND"

    def __init__(self, activity_id: str):
        self.activity_id = activity_id
        super().__init__(f"Activity not found: {activity_id}")


class TaskNotFoundError(NotFoundError):
    code: str = "TASK_NOT_FOUND"

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class AssignmentNotFoundError(NotFoundError):
    code: str = "ASSIGNMENT_NOT_FOUND"

    def __init__(self, assignment_id: str):
        self.assignment_id = assignment_id
        super().__init__(f"Project assignment not found: {assignment_id}")


class BonusNotFoundError(NotFoundError):
    code: str = "BONUS_NOT_FOUND"

    def __init__(self, bonus_id: str):
        self.bonus_id = bonus_id
        super().__init__(f"Bonus record not found: {bonus_id}")


class RedistributionNotFoundError(NotFoundError):
    code: str = "REDISTRIBUTION_NOT_FOUND"

    def __init__(self, redistribution_id: str):
        self.redistribution_id = redistribution_id
        super().__init__(f"Redistribution not found: {redistribution_id}")


# State exceptions


class StateError(HoursKernelError):
    """Base exception for operations invalid in the current lifecycle state."""

    code: str = "STATE_ERROR"


class TaskNotCompletedError(StateError):
    """Bonus evaluation requires a completed task."""

    code: str = "TASK_NOT_COMPLETED"

    def __init__(self, task_id: str, status: str):
        self.task_id = task_id
        self.status = status
        super().__init__(f"Task {task_id} is {status}, not completed")


class TaskAlreadyCompletedError(StateError):
    """Actual minutes are fixed once a task is completed."""

    code: str = "TASK_ALREADY_COMPLETED"

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id} is already completed")


class MissingActualTimeError(StateError):
    """Completed task has no actual minutes recorded."""

    code: str = "MISSING_ACTUAL_TIME"

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id} has no actual time recorded")


class BonusAlreadyEvaluatedError(StateError):
    """A bonus record already exists for the task."""

    code: str = "BONUS_ALREADY_EVALUATED"

    def __init__(self, task_id: str, bonus_id: str | None = None):
        self.task_id = task_id
        self.bonus_id = bonus_id
        super().__init__(f"Bonus already evaluated for task {task_id}")


class BonusNotPendingError(StateError):
    """Only pending bonus records can be dispositioned."""

    code: str = "BONUS_NOT_PENDING"

    def __init__(self, bonus_id: str, status: str):
        self.bonus_id = bonus_id
        self.status = status
        super().__init__(f"Bonus {bonus_id} is {status}, not pending")


class NotNegativeBonusError(StateError):
    """Remediation applies to negative records only."""

    code: str = "NOT_NEGATIVE_BONUS"

    def __init__(self, bonus_id: str, classification: str):
        self.bonus_id = bonus_id
        self.classification = classification
        super().__init__(
            f"Bonus {bonus_id} is {classification}; only negative records can be remediated"
        )


class RemediationRequiredError(StateError):
    """Negative records are settled through remediation, not plain approval."""

    code: str = "REMEDIATION_REQUIRED"

    def __init__(self, bonus_id: str):
        self.bonus_id = bonus_id
        super().__init__(
            f"Bonus {bonus_id} is negative; choose a remediation instead of approving"
        )


class RedistributionAlreadyCancelledError(StateError):
    code: str = "REDISTRIBUTION_ALREADY_CANCELLED"

    def __init__(self, redistribution_id: str):
        self.redistribution_id = redistribution_id
        super().__init__(f"Redistribution {redistribution_id} is already cancelled")


class DuplicateAssignmentError(StateError):
    """A resource may be assigned to a project at most once."""

    code: str = "DUPLICATE_ASSIGNMENT"

    def __init__(self, project_id: str, resource_id: str):
        self.project_id = project_id
        self.resource_id = resource_id
        super().__init__(
            f"Resource {resource_id} is already assigned to project {project_id}"
        )


# Authorization exceptions


class AuthorizationError(HoursKernelError):
    """Base exception for role checks."""

    code: str = "AUTHORIZATION_ERROR"


class ManagerRoleRequiredError(AuthorizationError):
    code: str = "MANAGER_ROLE_REQUIRED"

    def __init__(self, actor_id: str, role: str, operation: str):
        self.actor_id = actor_id
        self.role = role
        self.operation = operation
        super().__init__(
            f"Operation {operation} requires a manager; actor {actor_id} has role {role}"
        )


# Conservation exceptions


class ConservationError(HoursKernelError):
    """Base exception for operations that would break a balance invariant."""

    code: str = "CONSERVATION_ERROR"


class InsufficientCreditError(ConservationError):
    """Withdrawal exceeds the remaining credit of the source task."""

    code: str = "INSUFFICIENT_CREDIT"

    def __init__(self, task_id: str, requested_minutes: int, available_minutes: int):
        self.task_id = task_id
        self.requested_minutes = requested_minutes
        self.available_minutes = available_minutes
        super().__init__(
            f"Task {task_id} has {available_minutes} credit minutes available, "
            f"{requested_minutes} requested"
        )


class OverCompensationError(ConservationError):
    """Grant exceeds the remaining debit of the destination task."""

    code: str = "OVER_COMPENSATION"

    def __init__(self, task_id: str, granted_minutes: int, debit_minutes: int):
        self.task_id = task_id
        self.granted_minutes = granted_minutes
        self.debit_minutes = debit_minutes
        super().__init__(
            f"Task {task_id} has a debit of {debit_minutes} minutes, "
            f"cannot grant {granted_minutes}"
        )


class BudgetExceededError(ConservationError):
    """Committed cost would exceed the project budget."""

    code: str = "BUDGET_EXCEEDED"

    def __init__(self, project_id: str, budget: object, committed: object, requested: object):
        self.project_id = project_id
        self.budget = budget
        self.committed = committed
        self.requested = requested
        super().__init__(
            f"Project {project_id} budget {budget} exceeded: "
            f"committed {committed} + requested {requested}"
        )


# Immutability exceptions


class ImmutabilityError(HoursKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    AuditEvent is immutable from creation; RedistributionRecord is
    append-only apart from its one-time cancellation; Task actual minutes
    and terminal BonusRecords are frozen.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Audit exceptions


class AuditError(HoursKernelError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_event_id: str, expected_hash: str, actual_hash: str):
        self.audit_event_id = audit_event_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at {audit_event_id}: "
            f"expected {expected_hash}, found {actual_hash}"
        )
