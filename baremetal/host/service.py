"""
Reconciler service contract for one bare-metal host.

The state machine calls into a HostService for everything that touches the
outside world. Concrete provisioning actions (rescue boot, image install,
readiness polling, teardown) are left to subclasses; credential handling and
terminal-failure recording are implemented here since every provider does
them the same way.

Usage:
    class RobotHostService(HostService):
        def action_preparing(self) -> ActionOutcome:
            ...

    service = RobotHostService(host, secret_store=SSHSecretStore())
"""

import logging
import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Sequence, Tuple

from baremetal.errors import ErrorType, TerminalHostError
from baremetal.events import EVENT_WARNING, EventRecorder, get_event_recorder
from baremetal.host.outcome import ActionOutcome
from baremetal.host.record import Credential, HostRecord

logger = logging.getLogger(__name__)

# "<algorithm> <base64 body> [comment]"
PUBLIC_KEY_PATTERN = re.compile(r"^(ssh-[a-z0-9-]+|ecdsa-sha2-[a-z0-9-]+)\s+[A-Za-z0-9+/]+={0,3}(\s+.*)?$")


class CredentialKind(Enum):
    OS = "os"
    RESCUE = "rescue"


class HostService(ABC):
    """
    Collaborator the state machine delegates to.

    One instance serves one host record for the duration of a tick.

    Args:
        host: The host record being reconciled
        secret_store: Object with ``get_ssh_secrets()`` returning
            (os_credential, rescue_credential)
        events: Audit event recorder (defaults to the process-wide one)
        required_keys: Data keys every SSH credential must carry, in
            name, public key, private key order (defaults to the SSH_* settings)
    """

    def __init__(
        self,
        host: HostRecord,
        secret_store,
        events: Optional[EventRecorder] = None,
        required_keys: Optional[Sequence[str]] = None,
    ):
        self.host = host
        self.secret_store = secret_store
        self.events = events or get_event_recorder()
        if required_keys is None:
            from config.settings import get_settings
            required_keys = get_settings().ssh.required_keys
        self.required_keys = tuple(required_keys)

    # =========================================================================
    # Credentials
    # =========================================================================

    def fetch_credentials(self) -> Tuple[Optional[Credential], Optional[Credential]]:
        """Fetch the current OS and rescue credentials.

        Raises:
            CredentialFetchError: The secret store could not be read
        """
        return self.secret_store.get_ssh_secrets()

    def validate_credential(self, credential: Credential, kind: CredentialKind) -> ActionOutcome:
        """Check that a credential is usable for SSH access."""
        problem = self._credential_problem(credential)
        if problem is None:
            return ActionOutcome.complete()

        message = f"{kind.value} ssh credential {credential.name!r} is invalid: {problem}"
        self.events.record(self.host.name, "SSHKeyInvalid", message, EVENT_WARNING)
        return self.record_terminal_failure(ErrorType.PREPARATION_ERROR, message)

    def _credential_problem(self, credential: Credential) -> Optional[str]:
        missing = [key for key in self.required_keys if not credential.data.get(key)]
        if missing:
            return f"missing data keys {', '.join(missing)}"

        # Key order is name, public key, private key
        public_key = credential.data[self.required_keys[1]].strip()
        if not PUBLIC_KEY_PATTERN.match(public_key):
            return "public key is not in OpenSSH format"
        return None

    def update_os_credential_status(self, credential: Credential) -> None:
        """Store the OS credential fingerprint on the host record.

        Raises:
            CredentialStatusError: The credential carries no data
        """
        self.host.update_os_ssh_status(credential)
        logger.debug(f"[{self.host.name}] Stored OS credential status for {credential.name}")

    def update_rescue_credential_status(self, credential: Credential) -> None:
        """Store the rescue credential fingerprint on the host record.

        Raises:
            CredentialStatusError: The credential carries no data
        """
        self.host.update_rescue_ssh_status(credential)
        logger.debug(f"[{self.host.name}] Stored rescue credential status for {credential.name}")

    # =========================================================================
    # Failures
    # =========================================================================

    def record_terminal_failure(self, error_type: ErrorType, message: str) -> ActionOutcome:
        """Record a terminal error on the host and report it as a failed outcome."""
        self.host.set_error(error_type, message)
        self.events.record(
            self.host.name,
            _reason(error_type),
            message,
            EVENT_WARNING,
        )
        logger.error(
            f"[{self.host.name}] {error_type.value}: {message}",
            extra={"host": self.host.name, "error_type": error_type.value},
        )
        return ActionOutcome.failed(TerminalHostError(error_type, message))

    # =========================================================================
    # Per-state actions
    # =========================================================================

    @abstractmethod
    def action_preparing(self) -> ActionOutcome:
        """Boot the host into rescue mode and gather hardware details."""

    @abstractmethod
    def action_registering(self) -> ActionOutcome:
        """Register the host's hardware details."""

    @abstractmethod
    def action_image_installing(self) -> ActionOutcome:
        """Install the requested image."""

    @abstractmethod
    def action_provisioning(self) -> ActionOutcome:
        """Reboot into the installed OS."""

    @abstractmethod
    def action_ensure_provisioned(self) -> ActionOutcome:
        """Wait until the installed OS is reachable."""

    @abstractmethod
    def action_provisioned(self) -> ActionOutcome:
        """Maintain a provisioned host."""

    @abstractmethod
    def action_deprovisioning(self) -> ActionOutcome:
        """Tear the host down so it can be reused."""

    @abstractmethod
    def action_deleting(self) -> ActionOutcome:
        """Final cleanup before the record is removed."""


def _reason(error_type: ErrorType) -> str:
    # "registration error" -> "RegistrationError"
    return "".join(word.capitalize() for word in error_type.value.split())
