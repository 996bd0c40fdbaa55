"""
Error types for bare-metal host lifecycle handling.

Error Hierarchy:
- HostLifecycleError: base for every error the lifecycle core understands
  - CredentialFetchError: SSH secrets could not be retrieved
  - CredentialStatusError: stored credential fingerprint could not be updated
  - UnknownStateError: no handler for the host's state (not retryable)
  - TerminalHostError: a recorded terminal failure (not retryable)

Errors are carried inside a failed ActionOutcome rather than raised through
the state machine. Collaborators raise them; the credential gate converts
them into outcomes.

Usage:
    from baremetal.errors import CredentialFetchError, ErrorType

    raise CredentialFetchError("vault read failed for secret/ssh/os")
"""

from enum import Enum


class ErrorType(Enum):
    """Classification of terminal host errors, stored on the host record."""

    PREPARATION_ERROR = "preparation error"
    REGISTRATION_ERROR = "registration error"
    PROVISIONING_ERROR = "provisioning error"
    DEPROVISIONING_ERROR = "deprovisioning error"


# =============================================================================
# Exception Classes
# =============================================================================

class HostLifecycleError(Exception):
    """
    Base class for lifecycle errors.

    The caller's scheduler decides whether to requeue; ``retryable`` is the
    hint it uses.
    """
    retryable = True


class CredentialFetchError(HostLifecycleError):
    """SSH secrets could not be fetched."""


class CredentialStatusError(HostLifecycleError):
    """Credential status on the host record could not be updated."""


class UnknownStateError(HostLifecycleError):
    """The host is in a state with no registered handler."""
    retryable = False

    def __init__(self, state):
        self.state = state
        value = getattr(state, "value", state)
        super().__init__(f'no handler found for state "{value}"')


class TerminalHostError(HostLifecycleError):
    """
    A terminal failure recorded against the host.

    Reported when an invariant of a live host is violated, e.g. the OS
    credential of a provisioned machine changed underneath it.
    """
    retryable = False

    def __init__(self, error_type: ErrorType, message: str):
        super().__init__(message)
        self.error_type = error_type
        self.message = message
