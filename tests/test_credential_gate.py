"""
Tests for the credential rotation gate.

Each test seeds the stored fingerprints on the host, then hands the gate a
possibly different credential through a fake secret store.
"""

import pytest

from baremetal.errors import CredentialFetchError, ErrorType, TerminalHostError
from baremetal.host.credentials import CredentialSyncGate
from baremetal.host.outcome import ActionOutcome
from baremetal.host.record import Credential
from baremetal.host.states import ProvisioningState
from baremetal.host.tick import Tick

ROTATED_OS_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIRotatedOperatingSystemKey00 ops@example"
ROTATED_RESCUE_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIRotatedRescueSystemKey0000 ops@example"


@pytest.fixture
def rotated_os(credential_factory):
    return credential_factory(public_key=ROTATED_OS_KEY)


@pytest.fixture
def rotated_rescue(credential_factory):
    return credential_factory(
        name="secret/ssh/rescue", public_key=ROTATED_RESCUE_KEY, key_name="rescue-key"
    )


class TestGateSkipAndFetch:
    """Tests for the gate's entry conditions."""

    def test_skipped_while_deprovisioning(self, make_host, make_service):
        """Credentials are not even fetched during teardown."""
        host = make_host(ProvisioningState.DEPROVISIONING)
        service = make_service(host, error=CredentialFetchError("vault down"))

        outcome = CredentialSyncGate(service).check(Tick(host))

        assert outcome.is_complete
        assert service.secret_store.calls == 0

    def test_fetch_error_fails(self, make_host, make_service):
        """A secret store error aborts the tick."""
        host = make_host(ProvisioningState.REGISTERING)
        error = CredentialFetchError("vault down")
        service = make_service(host, error=error)

        outcome = CredentialSyncGate(service).check(Tick(host))

        assert outcome.is_failed
        assert outcome.error is error

    def test_no_credentials_complete(self, make_host, make_service):
        """Nothing configured means nothing to check."""
        host = make_host(ProvisioningState.REGISTERING)
        service = make_service(host)

        assert CredentialSyncGate(service).check(Tick(host)).is_complete


class TestOSCredential:
    """Tests for OS credential rotation handling."""

    def test_first_observation_recorded(self, make_host, make_service, os_credential):
        """An unobserved credential is stored without a state change."""
        host = make_host(ProvisioningState.PROVISIONED)
        service = make_service(host, os_credential=os_credential)
        tick = Tick(host)

        outcome = CredentialSyncGate(service).check(tick)

        assert outcome.is_complete
        assert tick.next_state is ProvisioningState.PROVISIONED
        assert host.ssh_status.current_os.match(os_credential)

    def test_unchanged_credential(self, make_host, make_service, os_credential):
        """A matching credential passes straight through."""
        host = make_host(ProvisioningState.PROVISIONED)
        host.update_os_ssh_status(os_credential)
        service = make_service(host, os_credential=os_credential)
        tick = Tick(host)

        assert CredentialSyncGate(service).check(tick).is_complete
        assert not tick.changed

    @pytest.mark.parametrize(
        "state", [ProvisioningState.PROVISIONING, ProvisioningState.ENSURE_PROVISIONED]
    )
    def test_rotation_reinstalls_image(self, make_host, make_service, os_credential, rotated_os, state):
        """Rotation while booting the OS sends the host back to image installation."""
        host = make_host(state)
        host.update_os_ssh_status(os_credential)
        service = make_service(host, os_credential=rotated_os)
        tick = Tick(host)

        outcome = CredentialSyncGate(service).check(tick)

        assert outcome.is_complete
        assert tick.next_state is ProvisioningState.IMAGE_INSTALLING
        assert host.ssh_status.current_os.match(rotated_os)

    def test_rotation_on_provisioned_host_fails(
        self, make_host, make_service, recorder, os_credential, rotated_os
    ):
        """A provisioned machine's credential must never change underneath it."""
        host = make_host(ProvisioningState.PROVISIONED)
        host.update_os_ssh_status(os_credential)
        service = make_service(host, os_credential=rotated_os)
        tick = Tick(host)

        outcome = CredentialSyncGate(service).check(tick)

        assert outcome.is_failed
        assert outcome.fatal
        assert isinstance(outcome.error, TerminalHostError)
        assert tick.next_state is ProvisioningState.PROVISIONED
        # Stored status keeps the credential the machine was built with
        assert host.ssh_status.current_os.match(os_credential)
        assert host.error_type is ErrorType.REGISTRATION_ERROR
        assert recorder.get_events(reason="SSHSecretUnexpectedlyModified")

    @pytest.mark.parametrize(
        "state",
        [ProvisioningState.PREPARING, ProvisioningState.REGISTERING, ProvisioningState.IMAGE_INSTALLING],
    )
    def test_rotation_before_install_updates_status(
        self, make_host, make_service, os_credential, rotated_os, state
    ):
        """Before the OS exists, rotation only refreshes the stored status."""
        host = make_host(state)
        host.update_os_ssh_status(os_credential)
        service = make_service(host, os_credential=rotated_os)
        tick = Tick(host)

        assert CredentialSyncGate(service).check(tick).is_complete
        assert tick.next_state is state
        assert host.ssh_status.current_os.match(rotated_os)

    def test_validation_failure_propagates(self, make_host, make_service):
        """An invalid OS credential suspends the tick."""
        host = make_host(ProvisioningState.REGISTERING)
        broken = Credential(name="secret/ssh/os", data={"name": "os-key"})
        service = make_service(host, os_credential=broken)

        outcome = CredentialSyncGate(service).check(Tick(host))

        assert outcome.is_failed
        assert host.error_type is ErrorType.PREPARATION_ERROR

    def test_validator_continue_propagates(self, make_host, make_service, os_credential, rotated_os):
        """A non-complete validation keeps the revert but stops the gate."""
        host = make_host(ProvisioningState.PROVISIONING)
        host.update_os_ssh_status(os_credential)
        service = make_service(host, os_credential=rotated_os)
        service.validate_credential = lambda credential, kind: ActionOutcome.continue_(delay=10)
        tick = Tick(host)

        outcome = CredentialSyncGate(service).check(tick)

        assert outcome.is_continue
        assert tick.next_state is ProvisioningState.IMAGE_INSTALLING

    def test_status_update_error_fails(self, make_host, make_service, os_credential):
        """An empty credential cannot be recorded and fails the tick."""
        host = make_host(ProvisioningState.REGISTERING)
        host.update_os_ssh_status(os_credential)
        service = make_service(host, os_credential=Credential(name="secret/ssh/os"))

        outcome = CredentialSyncGate(service).check(Tick(host))

        assert outcome.is_failed
        assert "no data" in str(outcome.error)


class TestRescueCredential:
    """Tests for rescue credential rotation handling."""

    @pytest.mark.parametrize(
        "state",
        [ProvisioningState.PREPARING, ProvisioningState.REGISTERING, ProvisioningState.IMAGE_INSTALLING],
    )
    def test_rotation_resets_lifecycle(
        self, make_host, make_service, rescue_credential, rotated_rescue, state
    ):
        """Progress made under a stale rescue credential is discarded."""
        host = make_host(state)
        host.update_rescue_ssh_status(rescue_credential)
        service = make_service(host, rescue_credential=rotated_rescue)
        tick = Tick(host)

        outcome = CredentialSyncGate(service).check(tick)

        assert outcome.is_complete
        assert tick.next_state is ProvisioningState.NONE
        assert host.ssh_status.current_rescue.match(rotated_rescue)

    @pytest.mark.parametrize(
        "state",
        [
            ProvisioningState.PROVISIONING,
            ProvisioningState.ENSURE_PROVISIONED,
            ProvisioningState.PROVISIONED,
        ],
    )
    def test_rotation_after_install_updates_status(
        self, make_host, make_service, rescue_credential, rotated_rescue, state
    ):
        """Once the OS is installed the rescue key is only bookkeeping."""
        host = make_host(state)
        host.update_rescue_ssh_status(rescue_credential)
        service = make_service(host, rescue_credential=rotated_rescue)
        tick = Tick(host)

        assert CredentialSyncGate(service).check(tick).is_complete
        assert tick.next_state is state
        assert host.ssh_status.current_rescue.match(rotated_rescue)

    def test_os_failure_skips_rescue(self, make_host, make_service, rescue_credential, rotated_rescue):
        """A failing OS check stops before the rescue credential is looked at."""
        host = make_host(ProvisioningState.REGISTERING)
        host.update_rescue_ssh_status(rescue_credential)
        broken_os = Credential(name="secret/ssh/os", data={"name": "os-key"})
        service = make_service(host, os_credential=broken_os, rescue_credential=rotated_rescue)
        tick = Tick(host)

        outcome = CredentialSyncGate(service).check(tick)

        assert outcome.is_failed
        assert tick.next_state is ProvisioningState.REGISTERING
        assert host.ssh_status.current_rescue.match(rescue_credential)

    def test_invalid_rescue_fails(self, make_host, make_service):
        """An invalid rescue credential suspends the tick."""
        host = make_host(ProvisioningState.PREPARING)
        broken = Credential(
            name="secret/ssh/rescue",
            data={"name": "rescue-key", "public-key": "not a key", "private-key": "x"},
        )
        service = make_service(host, rescue_credential=broken)

        outcome = CredentialSyncGate(service).check(Tick(host))

        assert outcome.is_failed
        assert "OpenSSH format" in str(outcome.error)
