"""Provisioning states of a bare-metal host and the transitions between them."""

from enum import Enum
from typing import Dict


class ProvisioningState(Enum):
    """Lifecycle states. Values are the serialized form."""

    NONE = "none"
    PREPARING = "preparing"
    REGISTERING = "registering"
    IMAGE_INSTALLING = "image-installing"
    PROVISIONING = "provisioning"
    ENSURE_PROVISIONED = "ensure-provisioned"
    PROVISIONED = "provisioned"
    DEPROVISIONING = "deprovisioning"
    DELETING = "deleting"

    def __str__(self) -> str:
        return self.value


# States a deletion request pulls into deprovisioning instead of deleting
# straight away. Preparing is absent: nothing has been installed yet.
ACTIVE_PROVISIONING_STATES = frozenset({
    ProvisioningState.REGISTERING,
    ProvisioningState.IMAGE_INSTALLING,
    ProvisioningState.PROVISIONING,
    ProvisioningState.ENSURE_PROVISIONED,
    ProvisioningState.PROVISIONED,
})

# A rotated OS credential sends these states back to image installation
OS_REINSTALL_STATES = frozenset({
    ProvisioningState.PROVISIONING,
    ProvisioningState.ENSURE_PROVISIONED,
})

# A rotated rescue credential restarts the lifecycle from these states
RESCUE_RESET_STATES = frozenset({
    ProvisioningState.PREPARING,
    ProvisioningState.REGISTERING,
    ProvisioningState.IMAGE_INSTALLING,
})

# Successor reached when the state's action reports Complete
SUCCESSORS: Dict[ProvisioningState, ProvisioningState] = {
    ProvisioningState.PREPARING: ProvisioningState.REGISTERING,
    ProvisioningState.REGISTERING: ProvisioningState.IMAGE_INSTALLING,
    ProvisioningState.IMAGE_INSTALLING: ProvisioningState.PROVISIONING,
    ProvisioningState.PROVISIONING: ProvisioningState.ENSURE_PROVISIONED,
    ProvisioningState.ENSURE_PROVISIONED: ProvisioningState.PROVISIONED,
    ProvisioningState.DEPROVISIONING: ProvisioningState.NONE,
}

FORWARD_STATES = frozenset({
    ProvisioningState.PREPARING,
    ProvisioningState.REGISTERING,
    ProvisioningState.IMAGE_INSTALLING,
    ProvisioningState.PROVISIONING,
    ProvisioningState.ENSURE_PROVISIONED,
})
