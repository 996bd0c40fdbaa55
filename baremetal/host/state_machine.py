"""
Finite state machine sequencing the lifecycle of a bare-metal host.

Each call to ``reconcile_state`` is one tick:

    deletion escalation -> credential gate -> state handler -> commit

The record's provisioning state is written at most once per tick, and only
when the computed next state differs from the state read at entry. The
caller persists the record and schedules the next tick from the outcome.
"""

import logging
from typing import Optional

from baremetal.host.credentials import CredentialSyncGate
from baremetal.host.deletion import DeletionEscalator
from baremetal.host.dispatcher import StateDispatcher
from baremetal.host.outcome import ActionOutcome
from baremetal.host.record import HostRecord
from baremetal.host.service import HostService
from baremetal.host.states import ProvisioningState
from baremetal.host.tick import Tick

logger = logging.getLogger(__name__)


class HostStateMachine:
    """
    Manages transitions between the provisioning states of one host.

    Usage:
        machine = HostStateMachine(host, service)
        outcome = machine.reconcile_state()
        save(host)  # caller's persistence
        if not outcome.is_complete:
            requeue(host, outcome.delay)

    Args:
        host: Host record, exclusively owned for the duration of the call
        service: Collaborator performing actions and credential handling
        log: Logger for transition messages (defaults to this module's)
    """

    def __init__(
        self,
        host: HostRecord,
        service: HostService,
        log: Optional[logging.Logger] = None,
    ):
        self.host = host
        self.service = service
        self.log = log or logger
        self.escalator = DeletionEscalator()
        self.gate = CredentialSyncGate(service, log=self.log)
        self.dispatcher = StateDispatcher(service, log=self.log)
        self._tick = Tick(host)

    @property
    def next_state(self) -> ProvisioningState:
        return self._tick.next_state

    def reconcile_state(self) -> ActionOutcome:
        """Run one tick and commit the resulting state change, if any."""
        self._tick = Tick(self.host)
        try:
            return self._reconcile(self._tick)
        finally:
            self._commit(self._tick)

    def _reconcile(self, tick: Tick) -> ActionOutcome:
        if self.escalator.check(tick):
            self.log.info(
                f"[{self.host.name}] Initiating host deletion",
                extra={"host": self.host.name, "state": tick.initial_state.value},
            )
            return ActionOutcome.complete()

        outcome = self.gate.check(tick)
        if not outcome.is_complete:
            return outcome

        return self.dispatcher.dispatch(tick)

    def _commit(self, tick: Tick) -> None:
        if not tick.changed:
            return
        self.log.info(
            f"[{self.host.name}] Changing provisioning state "
            f"{tick.initial_state} -> {tick.next_state}",
            extra={
                "host": self.host.name,
                "old_state": tick.initial_state.value,
                "new_state": tick.next_state.value,
            },
        )
        self.host.provisioning_state = tick.next_state


def reconcile_host(
    host: HostRecord,
    service: HostService,
    log: Optional[logging.Logger] = None,
) -> ActionOutcome:
    """Run a single tick for ``host``."""
    return HostStateMachine(host, service, log=log).reconcile_state()
