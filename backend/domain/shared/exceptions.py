"""
Domain Exceptions.

Typed failures raised by the BOM engine.
Every error the engine detects is raised as one of these; none are
logged and swallowed. The presentation layer maps ``code`` to a response.
"""

from typing import Optional, Any, Dict


class DomainException(Exception):
    """Base exception for all domain errors."""

    retryable = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "DOMAIN_ERROR"
        self.details = details or {}


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationException(DomainException):
    """Raised when input validation fails, before any write."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        code: str = "VALIDATION_ERROR",
    ):
        super().__init__(
            message=message,
            code=code,
            details={"field": field, "value": str(value) if value is not None else None}
        )


class InvalidSkuException(ValidationException):
    """Raised when a SKU does not match the uppercase alnum/_/- pattern."""

    def __init__(self, sku: Any):
        super().__init__(
            f"SKU '{sku}' is invalid: use uppercase letters, digits, '_' or '-'",
            field="sku",
            value=sku,
            code="INVALID_SKU",
        )


class InvalidNumberException(ValidationException):
    """Raised when a numeric field is not a finite decimal that fits its column."""

    def __init__(self, field: Optional[str], value: Any, reason: str = "is not a valid number"):
        super().__init__(
            f"Value '{value}' for {field or 'number'} {reason}",
            field=field,
            value=value,
            code="INVALID_NUMBER",
        )


class InvalidBoundsException(ValidationException):
    """Raised when a part's min quantity exceeds its max quantity."""

    def __init__(self, min_quantity: Any, max_quantity: Any):
        super().__init__(
            f"Minimum quantity {min_quantity} exceeds maximum quantity {max_quantity}",
            field="min_quantity",
            value=min_quantity,
            code="INVALID_BOUNDS",
        )


class SelfReferenceException(ValidationException):
    """Raised when a BOM line would make a part its own component."""

    def __init__(self, part_id: Any):
        super().__init__(
            "A part cannot be a component of itself",
            field="child_part_id",
            value=part_id,
            code="SELF_REFERENCE",
        )


class QuantityOutOfBoundsException(ValidationException):
    """Raised when qty_per falls outside the child's declared bounds."""

    def __init__(
        self,
        sku: str,
        qty_per: Any,
        min_quantity: Any = None,
        max_quantity: Any = None,
    ):
        if min_quantity is not None and qty_per < min_quantity:
            message = f"Quantity {qty_per} is below minimum {min_quantity} for part {sku}"
        else:
            message = f"Quantity {qty_per} exceeds maximum {max_quantity} for part {sku}"
        super().__init__(message, field="qty_per", value=qty_per, code="QUANTITY_OUT_OF_BOUNDS")
        self.details.update({
            "sku": sku,
            "min_quantity": str(min_quantity) if min_quantity is not None else None,
            "max_quantity": str(max_quantity) if max_quantity is not None else None,
        })


class EmptyReasonException(ValidationException):
    """Raised when an audited change is submitted without a reason."""

    def __init__(self, field: str = "reason"):
        super().__init__(
            "A non-empty change reason is required",
            field=field,
            code="EMPTY_REASON",
        )


class SkuImmutableException(ValidationException):
    """Raised when renaming the SKU of a part already used in a BOM."""

    def __init__(self, sku: str):
        super().__init__(
            f"SKU '{sku}' is referenced by BOM lines and cannot be changed",
            field="sku",
            value=sku,
            code="SKU_IMMUTABLE",
        )


# =============================================================================
# LOOKUP / CONFLICT ERRORS
# =============================================================================

class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any, code: str = "ENTITY_NOT_FOUND"):
        super().__init__(
            message=f"{entity_type} with id '{entity_id}' not found",
            code=code,
            details={"entity_type": entity_type, "entity_id": str(entity_id)}
        )


class PartNotFoundException(EntityNotFoundException):
    def __init__(self, part_id: Any):
        super().__init__("Part", part_id, code="PART_NOT_FOUND")


class LineNotFoundException(EntityNotFoundException):
    def __init__(self, line_id: Any):
        super().__init__("BOMLine", line_id, code="LINE_NOT_FOUND")


class EntityAlreadyExistsException(DomainException):
    """Raised when trying to create an entity that already exists."""

    def __init__(self, entity_type: str, identifier: Any, code: str = "ENTITY_ALREADY_EXISTS"):
        super().__init__(
            message=f"{entity_type} with identifier '{identifier}' already exists",
            code=code,
            details={"entity_type": entity_type, "identifier": str(identifier)}
        )


class DuplicateSkuException(EntityAlreadyExistsException):
    def __init__(self, sku: str):
        super().__init__("Part", sku, code="DUPLICATE_SKU")


class DuplicateLineException(EntityAlreadyExistsException):
    """Raised when an active line already links the same parent and child."""

    def __init__(self, parent_part_id: Any, child_part_id: Any):
        super().__init__("BOMLine", f"{parent_part_id}->{child_part_id}", code="DUPLICATE_LINE")


# =============================================================================
# STRUCTURAL INTEGRITY ERRORS
# =============================================================================

class StructuralIntegrityException(DomainException):
    """Base for errors that are always fatal to the requested operation."""


class WouldCreateCycleException(StructuralIntegrityException):
    """Raised when an edge would make a part its own transitive child."""

    def __init__(self, parent_part_id: Any, child_part_id: Any, path: Optional[list] = None):
        super().__init__(
            message="Adding this BOM line would create a circular reference",
            code="WOULD_CREATE_CYCLE",
            details={
                "parent_part_id": str(parent_part_id),
                "child_part_id": str(child_part_id),
                "path": [str(p) for p in (path or [])],
            }
        )


class CorruptStructureException(StructuralIntegrityException):
    """
    Raised when a cycle is found in already-stored data.

    This is a prior invariant breach, not a user mistake, and must reach
    an operator.
    """

    def __init__(self, part_ids: list):
        super().__init__(
            message="Stored BOM structure contains a cycle",
            code="CORRUPT_STRUCTURE",
            details={"part_ids": [str(p) for p in part_ids]}
        )


class SameSubtreeException(StructuralIntegrityException):
    def __init__(self, part_id: Any):
        super().__init__(
            message="Source and target of a clone must be different parts",
            code="SAME_SUBTREE",
            details={"part_id": str(part_id)}
        )


# =============================================================================
# LIFECYCLE ERRORS
# =============================================================================

class LifecycleException(DomainException):
    """Base for lifecycle gate failures; overridable with an audited reason."""


class ObsoletePartException(LifecycleException):
    def __init__(self, sku: str, status: str):
        super().__init__(
            message=f"Part {sku} is {status} and cannot be added to a BOM",
            code="OBSOLETE_PART",
            details={"sku": sku, "lifecycle_status": status}
        )


class InvalidTransitionException(LifecycleException):
    """Raised when an invalid lifecycle transition is attempted."""

    def __init__(
        self,
        entity_type: str,
        current_status: str,
        target_status: str,
        allowed_transitions: Optional[list] = None,
        message: Optional[str] = None,
    ):
        super().__init__(
            message=message or (
                f"Cannot transition {entity_type} from '{current_status}' to '{target_status}'"
            ),
            code="INVALID_TRANSITION",
            details={
                "entity_type": entity_type,
                "current_status": current_status,
                "target_status": target_status,
                "allowed_transitions": allowed_transitions or []
            }
        )


# =============================================================================
# TRANSIENT / COST ERRORS
# =============================================================================

class ContentionException(DomainException):
    """Raised when structural locks could not be acquired in time."""

    retryable = True

    def __init__(self, operation: str, attempts: int = 1):
        super().__init__(
            message=f"Could not acquire BOM structure lock for '{operation}', retry later",
            code="CONTENTION",
            details={"operation": operation, "attempts": attempts}
        )


class MissingCostException(DomainException):
    """Raised when a rollup meets a part that has no standard cost."""

    def __init__(self, part_id: Any, sku: str):
        super().__init__(
            message=f"Part {sku} has no standard cost; rollup refused",
            code="MISSING_COST",
            details={"part_id": str(part_id), "sku": sku}
        )
