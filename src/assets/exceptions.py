"""Named lifecycle failures.

Every expected failure of a lifecycle operation is a ``LifecycleError``
with a stable ``code`` (used in JSON responses and bulk reports) and an
HTTP ``status``. Database faults are not wrapped and propagate as-is.
"""

from django.core.exceptions import ValidationError


class LifecycleError(ValidationError):
    code = "lifecycle_error"
    status = 400

    def __init__(self, message):
        super().__init__(message, code=self.code)


# --- Validation (rejected before any state is read) ---


class UnknownState(LifecycleError):
    code = "unknown_state"

    def __init__(self, value):
        self.value = value
        super().__init__(f"'{value}' is not a valid asset state.")


class UnknownAssetType(LifecycleError):
    code = "unknown_asset_type"

    def __init__(self, value):
        self.value = value
        self.field = "type"
        super().__init__(f"'{value}' is not a known asset type.")


class MissingRequiredField(LifecycleError):
    code = "missing_required_field"

    def __init__(self, field):
        self.field = field
        super().__init__(f"Required field '{field}' is missing.")


class InvalidFieldValue(LifecycleError):
    code = "invalid_value"

    def __init__(self, field, value):
        self.field = field
        self.value = value
        super().__init__(f"Invalid value {value!r} for field '{field}'.")


class InvalidAssetNumber(LifecycleError):
    code = "invalid_asset_number"

    def __init__(self, value, reason):
        self.field = "asset_number"
        self.value = value
        super().__init__(f"Asset number '{value}' is invalid: {reason}.")


class MissingAssignee(LifecycleError):
    code = "missing_assignee"

    def __init__(self, target):
        self.target = target
        super().__init__(
            f"A user is required to move an asset to '{target}'."
        )


class AssigneeNotCleared(LifecycleError):
    code = "assignee_not_cleared"
    status = 409

    def __init__(self, target, message=None):
        self.target = target
        super().__init__(
            message
            or f"An asset in '{target}' cannot be bound to a user."
        )


# --- Lookups ---


class AssetNotFound(LifecycleError):
    code = "not_found"
    status = 404

    def __init__(self, asset_id):
        self.asset_id = asset_id
        super().__init__(f"Asset '{asset_id}' does not exist.")


class UserNotFound(LifecycleError):
    code = "user_not_found"
    status = 404

    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"User '{user_id}' does not exist or is inactive.")


# --- Invariants (rejected after a read, before any write) ---


class InvalidTransition(LifecycleError):
    code = "invalid_transition"
    status = 409

    def __init__(self, current, requested, allowed=(), message=None):
        self.current = current
        self.requested = requested
        super().__init__(
            message
            or f"Cannot transition from '{current}' to '{requested}'. "
            f"Allowed transitions: {', '.join(allowed) or 'none'}."
        )


class AssetArchived(LifecycleError):
    code = "asset_archived"
    status = 409

    def __init__(self, asset):
        self.asset_id = asset.pk
        super().__init__(
            f"Asset {asset.asset_number} is archived and cannot change."
        )


class AssetNotAvailable(LifecycleError):
    code = "asset_not_available"
    status = 409

    def __init__(self, asset):
        self.asset_id = asset.pk
        super().__init__(
            f"Asset {asset.asset_number} is '{asset.state}' and cannot be "
            f"assigned."
        )


class NotAssigned(LifecycleError):
    code = "not_assigned"
    status = 409

    def __init__(self, asset):
        self.asset_id = asset.pk
        super().__init__(
            f"Asset {asset.asset_number} is not assigned to anyone."
        )


class DuplicateAssetNumber(LifecycleError):
    code = "duplicate_asset_number"
    status = 409

    def __init__(self, value):
        self.field = "asset_number"
        self.value = value
        super().__init__(f"Asset number '{value}' is already in use.")


class DuplicateSerialNumber(LifecycleError):
    code = "duplicate_serial_number"
    status = 409

    def __init__(self, value):
        self.field = "serial_number"
        self.value = value
        super().__init__(f"Serial number '{value}' is already in use.")


# --- Concurrency (rejected at the serialization point) ---


class AlreadyAssigned(LifecycleError):
    code = "already_assigned"
    status = 409

    def __init__(self, asset):
        self.asset_id = asset.pk
        super().__init__(
            f"Asset {asset.asset_number} was just assigned by someone else."
        )


class ConcurrentUpdate(LifecycleError):
    code = "concurrent_update"
    status = 409

    def __init__(self, asset_id):
        self.asset_id = asset_id
        super().__init__(
            f"Asset '{asset_id}' kept changing underneath this request. "
            f"Reload and try again."
        )
