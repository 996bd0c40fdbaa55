"""
Provisioning lifecycle of a single bare-metal host.

Usage:
    from baremetal.host import HostRecord, HostStateMachine, ProvisioningState

    host = HostRecord(name="bm-01", provisioning_state=ProvisioningState.PREPARING)
    outcome = HostStateMachine(host, service).reconcile_state()
"""

from baremetal.host.outcome import ActionOutcome, OutcomeKind
from baremetal.host.record import (
    Credential,
    HostRecord,
    InstallImage,
    SecretStatus,
    SSHStatus,
)
from baremetal.host.service import CredentialKind, HostService
from baremetal.host.state_machine import HostStateMachine, reconcile_host
from baremetal.host.states import ProvisioningState

__all__ = [
    "ActionOutcome",
    "OutcomeKind",
    "Credential",
    "HostRecord",
    "InstallImage",
    "SecretStatus",
    "SSHStatus",
    "CredentialKind",
    "HostService",
    "HostStateMachine",
    "reconcile_host",
    "ProvisioningState",
]
