"""
Credential rotation gate.

Runs ahead of every state handler. Fetches the host's OS and rescue SSH
credentials and compares them with the fingerprints stored on the record:

- OS credential rotated while installing/booting the OS: go back to
  image installation so the new key is installed
- OS credential rotated on a provisioned host: terminal failure
- rescue credential rotated before the OS image is installed: restart the
  lifecycle from the initial state

A credential seen for the first time is recorded without any state change.
"""

import logging
from typing import Optional

from baremetal.errors import ErrorType, HostLifecycleError
from baremetal.host.outcome import ActionOutcome
from baremetal.host.record import Credential
from baremetal.host.service import CredentialKind, HostService
from baremetal.host.states import OS_REINSTALL_STATES, RESCUE_RESET_STATES, ProvisioningState
from baremetal.host.tick import Tick

logger = logging.getLogger(__name__)

OS_SECRET_MODIFIED_MESSAGE = "secret has been modified although a provisioned machine uses it"


class CredentialSyncGate:
    """Detects externally rotated SSH credentials for one tick."""

    def __init__(self, service: HostService, log: Optional[logging.Logger] = None):
        self.service = service
        self.log = log or logger

    def check(self, tick: Tick) -> ActionOutcome:
        """Run the gate.

        Returns:
            COMPLETE if the state handler may run, otherwise the outcome
            that suspends this tick
        """
        if tick.host.provisioning_state is ProvisioningState.DEPROVISIONING:
            return ActionOutcome.complete()

        try:
            os_credential, rescue_credential = self.service.fetch_credentials()
        except HostLifecycleError as e:
            return ActionOutcome.failed(e)

        if os_credential is not None:
            outcome = self._check_os(tick, os_credential)
            if not outcome.is_complete:
                return outcome

        if rescue_credential is not None:
            outcome = self._check_rescue(tick, rescue_credential)
            if not outcome.is_complete:
                return outcome

        return ActionOutcome.complete()

    def _check_os(self, tick: Tick, credential: Credential) -> ActionOutcome:
        status = tick.host.ssh_status.current_os
        # An unobserved credential is not a rotation
        rotated = status is not None and not status.match(credential)

        if rotated:
            if tick.next_state in OS_REINSTALL_STATES:
                self.log.info(
                    f"[{tick.host.name}] OS secret was updated, installing image again",
                    extra={"host": tick.host.name, "state": tick.next_state.value},
                )
                tick.next_state = ProvisioningState.IMAGE_INSTALLING
            elif tick.next_state is ProvisioningState.PROVISIONED:
                self.service.events.record(
                    tick.host.name, "SSHSecretUnexpectedlyModified", OS_SECRET_MODIFIED_MESSAGE
                )
                return self.service.record_terminal_failure(
                    ErrorType.REGISTRATION_ERROR, OS_SECRET_MODIFIED_MESSAGE
                )

        if status is None or rotated:
            try:
                self.service.update_os_credential_status(credential)
            except HostLifecycleError as e:
                return ActionOutcome.failed(e)

        return self.service.validate_credential(credential, CredentialKind.OS)

    def _check_rescue(self, tick: Tick, credential: Credential) -> ActionOutcome:
        status = tick.host.ssh_status.current_rescue
        rotated = status is not None and not status.match(credential)

        if rotated and tick.next_state in RESCUE_RESET_STATES:
            self.log.info(
                f"[{tick.host.name}] Going back to state none as rescue secret was updated",
                extra={
                    "host": tick.host.name,
                    "state": tick.next_state.value,
                    "current_rescue": status.reference,
                },
            )
            tick.next_state = ProvisioningState.NONE

        if status is None or rotated:
            try:
                self.service.update_rescue_credential_status(credential)
            except HostLifecycleError as e:
                return ActionOutcome.failed(e)

        return self.service.validate_credential(credential, CredentialKind.RESCUE)
