"""
Per-state handlers.

Each handler delegates to the HostService action for its state and decides
the next state from the action's outcome. Forward-progress handlers first
check whether provisioning was cancelled (install image withdrawn) and, if
so, pivot to deprovisioning without running the action.
"""

import logging
from typing import Callable, Dict, Optional

from baremetal.errors import UnknownStateError
from baremetal.host.outcome import ActionOutcome
from baremetal.host.service import HostService
from baremetal.host.states import SUCCESSORS, ProvisioningState
from baremetal.host.tick import Tick

logger = logging.getLogger(__name__)

StateHandler = Callable[[Tick], ActionOutcome]


class StateDispatcher:
    """Routes a tick to the handler registered for the host's state."""

    def __init__(self, service: HostService, log: Optional[logging.Logger] = None):
        self.service = service
        self.log = log or logger
        self._handlers: Dict[ProvisioningState, StateHandler] = {
            ProvisioningState.PREPARING: self.handle_preparing,
            ProvisioningState.REGISTERING: self.handle_registering,
            ProvisioningState.IMAGE_INSTALLING: self.handle_image_installing,
            ProvisioningState.PROVISIONING: self.handle_provisioning,
            ProvisioningState.ENSURE_PROVISIONED: self.handle_ensure_provisioned,
            ProvisioningState.PROVISIONED: self.handle_provisioned,
            ProvisioningState.DEPROVISIONING: self.handle_deprovisioning,
            ProvisioningState.DELETING: self.handle_deleting,
        }

    def handles(self, state: ProvisioningState) -> bool:
        return state in self._handlers

    def dispatch(self, tick: Tick) -> ActionOutcome:
        """Run the handler for the state the tick started in."""
        handler = self._handlers.get(tick.initial_state)
        if handler is None:
            self.log.warning(
                f"[{tick.host.name}] No handler found for state {tick.initial_state}",
                extra={"host": tick.host.name, "state": tick.initial_state.value},
            )
            return ActionOutcome.failed(UnknownStateError(tick.initial_state))
        return handler(tick)

    def _advance(self, tick: Tick, action: Callable[[], ActionOutcome]) -> ActionOutcome:
        """Shared shape of the forward-progress handlers."""
        if tick.host.provisioning_cancelled:
            tick.next_state = ProvisioningState.DEPROVISIONING
            return ActionOutcome.complete()

        outcome = action()
        # A credential revert set earlier in the tick stands
        if outcome.is_complete and tick.next_state is tick.initial_state:
            tick.next_state = SUCCESSORS[tick.initial_state]
        return outcome

    def handle_preparing(self, tick: Tick) -> ActionOutcome:
        return self._advance(tick, self.service.action_preparing)

    def handle_registering(self, tick: Tick) -> ActionOutcome:
        return self._advance(tick, self.service.action_registering)

    def handle_image_installing(self, tick: Tick) -> ActionOutcome:
        return self._advance(tick, self.service.action_image_installing)

    def handle_provisioning(self, tick: Tick) -> ActionOutcome:
        return self._advance(tick, self.service.action_provisioning)

    def handle_ensure_provisioned(self, tick: Tick) -> ActionOutcome:
        return self._advance(tick, self.service.action_ensure_provisioned)

    def handle_provisioned(self, tick: Tick) -> ActionOutcome:
        if tick.host.provisioning_cancelled:
            tick.next_state = ProvisioningState.DEPROVISIONING
            return ActionOutcome.complete()
        # Steady state: nothing to advance to
        return self.service.action_provisioned()

    def handle_deprovisioning(self, tick: Tick) -> ActionOutcome:
        # No cancellation check: deprovisioning is the response to it
        outcome = self.service.action_deprovisioning()
        if outcome.is_complete:
            tick.next_state = SUCCESSORS[ProvisioningState.DEPROVISIONING]
        return outcome

    def handle_deleting(self, tick: Tick) -> ActionOutcome:
        return self.service.action_deleting()
