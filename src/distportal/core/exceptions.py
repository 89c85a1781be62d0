"""Core exceptions for portal domain operations."""

from uuid import UUID

from distportal.utils.exceptions import PortalError


class ContextNotSetError(PortalError):
    """Raised when attempting to access request context that is not set.

    This error indicates a programming error - operations requiring context
    are being called outside of a request_context() context manager.
    """

    def __init__(self, message: str = "Request context is not set"):
        super().__init__(message)


class ResourceNotFoundError(PortalError):
    """Raised when a referenced record does not exist.

    Attributes:
        resource: Kind of record that was looked up (e.g., "device")
        resource_id: The identifier that was not found
    """

    resource = "resource"

    def __init__(self, resource_id: UUID | str, resource: str | None = None):
        if resource is not None:
            self.resource = resource
        label = self.resource.replace("_", " ").capitalize()
        super().__init__(f"{label} not found: {resource_id}")
        self.resource_id = resource_id

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.args[0]}"


class DistributorNotFoundError(ResourceNotFoundError):
    """Raised when a distributor does not exist."""

    resource = "distributor"


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a portal user does not exist."""

    resource = "user"


class CustomerNotFoundError(ResourceNotFoundError):
    """Raised when a customer does not exist."""

    resource = "customer"


class DeviceNotFoundError(ResourceNotFoundError):
    """Raised when a device does not exist."""

    resource = "device"


class DocumentNotFoundError(ResourceNotFoundError):
    """Raised when a device document does not exist."""

    resource = "document"


class ProductNotFoundError(ResourceNotFoundError):
    """Raised when a catalog product does not exist."""

    resource = "product"


class ContentNotFoundError(ResourceNotFoundError):
    """Raised when a shareable content item or release does not exist.

    Attributes:
        kind: The content kind that was looked up
    """

    resource = "content"

    def __init__(self, resource_id: UUID | str, kind: str = "content"):
        super().__init__(resource_id, resource=kind)
        self.kind = kind


class ReleaseNotFoundError(ContentNotFoundError):
    """Raised when a software release does not exist."""

    def __init__(self, resource_id: UUID | str):
        super().__init__(resource_id, kind="software_release")


class DuplicateSerialNumberError(PortalError):
    """Raised when a device serial number is already registered.

    Attributes:
        serial_number: The conflicting serial number
    """

    def __init__(self, serial_number: str):
        super().__init__(f'A device with serial number "{serial_number}" already exists')
        self.serial_number = serial_number

    def __str__(self) -> str:
        return f"DuplicateSerialNumberError: {self.args[0]}"


class DuplicateEmailError(PortalError):
    """Raised when a user email address is already registered.

    Attributes:
        email: The conflicting email address
    """

    def __init__(self, email: str):
        super().__init__(f"A user with email {email} already exists")
        self.email = email

    def __str__(self) -> str:
        return f"DuplicateEmailError: {self.args[0]}"


class InvalidStateTransitionError(PortalError):
    """Raised when a lifecycle transition is not allowed from the current state.

    Attributes:
        resource_id: The record whose state was to change
        current: The state the record is in
        target: The state that was requested
    """

    def __init__(self, resource_id: UUID | str, current: str, target: str):
        super().__init__(f"Cannot move {resource_id} from '{current}' to '{target}'")
        self.resource_id = resource_id
        self.current = current
        self.target = target

    def __str__(self) -> str:
        return f"InvalidStateTransitionError: {self.args[0]}"


class AuthenticationError(PortalError):
    """Raised when authentication fails.

    Attributes:
        reason: The specific reason authentication failed
    """

    def __init__(self, reason: str = "Authentication failed"):
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"AuthenticationError: {self.args[0]}"


class PermissionDeniedError(PortalError):
    """Raised when an authenticated caller may not perform an operation.

    Attributes:
        reason: Why the operation was refused
    """

    def __init__(self, reason: str = "Operation not permitted"):
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"PermissionDeniedError: {self.args[0]}"
