"""Diversion of a host into teardown once its deletion was requested."""

import logging

from baremetal.host.states import ACTIVE_PROVISIONING_STATES, ProvisioningState
from baremetal.host.tick import Tick

logger = logging.getLogger(__name__)


class DeletionEscalator:
    """
    Decides whether a deletion request diverts this tick.

    Hosts with provisioning work in flight are deprovisioned first; any
    other host goes straight to deleting, including one already deleting.
    Only a host already deprovisioning is left alone so its handler can
    finish the teardown.
    """

    def check(self, tick: Tick) -> bool:
        """Apply the diversion to ``tick.next_state``.

        Returns:
            True if the tick diverted (no handler should run)
        """
        if not tick.host.deletion_requested:
            return False

        if tick.next_state is ProvisioningState.DEPROVISIONING:
            return False

        if tick.next_state in ACTIVE_PROVISIONING_STATES:
            tick.next_state = ProvisioningState.DEPROVISIONING
        else:
            tick.next_state = ProvisioningState.DELETING

        logger.debug(
            f"[{tick.host.name}] Deletion requested in state {tick.initial_state}, "
            f"diverting to {tick.next_state}"
        )
        return True
