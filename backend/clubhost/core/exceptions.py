"""Shared exceptions module."""

from typing import Optional

from pydantic import ValidationError


class ClubhostException(Exception):
    """Base exception for club hosting services."""

    pass


class PermissionException(ClubhostException):
    """Exception raised when a user does not have the necessary permissions to perform an action."""

    def __init__(
        self,
        message: Optional[str] = "User does not have the right to perform this action",
    ):
        """Create a new PermissionException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ClubOwnershipError(PermissionException):
    """Raised when a uid tries to mutate a club it is not the host of.

    Raised from inside a transaction body, so the whole transaction is aborted and
    neither the user nor the club row is written.
    """

    def __init__(self, club_id: str, uid: str, action: str = "modify"):
        """Create a new ClubOwnershipError instance.

        Args:
        ----
            club_id (str): The club that was targeted.
            uid (str): The user that attempted the mutation.
            action (str): Short verb describing the attempted operation.

        """
        self.club_id = club_id
        self.uid = uid
        super().__init__(f"Cannot {action} club you do not own (club {club_id})")


class NotFoundException(ClubhostException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class InvalidStateError(ClubhostException):
    """Exception raised when an object is in an invalid state.

    Used when the stored state of one record is inconsistent with the requested operation,
    for example a club without a host being activated.
    """

    def __init__(self, message: Optional[str] = "Object is in an invalid state"):
        """Create a new InvalidStateError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class SlugUnavailableError(InvalidStateError):
    """Raised when no free slug could be derived for a club name."""

    def __init__(self, base_slug: str, attempts: int):
        """Create a new SlugUnavailableError instance.

        Args:
        ----
            base_slug (str): The slug derived from the club name.
            attempts (int): How many candidates were tried.

        """
        self.base_slug = base_slug
        self.attempts = attempts
        super().__init__(f"No free slug for '{base_slug}' after {attempts} attempts")


class UnknownTierError(ValueError):
    """Raised for a billing tier id that is not part of the tier table."""

    def __init__(self, tier: str):
        """Create a new UnknownTierError instance.

        Args:
        ----
            tier (str): The unknown tier id.

        """
        self.tier = tier
        self.message = f"Unknown billing tier: {tier}"
        super().__init__(self.message)


class WebhookSignatureError(ClubhostException):
    """Raised when a webhook payload cannot be authenticated or parsed."""

    def __init__(self, message: Optional[str] = "Invalid webhook signature"):
        """Create a new WebhookSignatureError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class TransactionContentionError(ClubhostException):
    """Raised when a transaction kept conflicting with concurrent writers."""

    def __init__(self, attempts: int, message: Optional[str] = "Transaction contention"):
        """Create a new TransactionContentionError instance.

        Args:
        ----
            attempts (int): How many times the transaction body was executed.
            message (str, optional): The error message. Has default message.

        """
        self.attempts = attempts
        self.message = message
        super().__init__(f"{message} after {attempts} attempts")


class ExternalServiceError(Exception):
    """Exception raised when an external service fails."""

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Create a new ExternalServiceError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            message (str, optional): The error message. Has default message.

        """
        self.service_name = service_name
        self.message = message
        super().__init__(f"{service_name}: {message}")


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        error_messages.append({field: error["msg"]})

    return {"errors": error_messages}
