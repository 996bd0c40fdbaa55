"""Per-tick working state shared by the state machine and its gates."""

from dataclasses import dataclass, field

from baremetal.host.record import HostRecord
from baremetal.host.states import ProvisioningState


@dataclass
class Tick:
    """
    One reconciliation pass over one host.

    ``initial_state`` is what the record held at entry; ``next_state``
    starts equal to it (remain by default) and is what gets committed.
    """

    host: HostRecord
    initial_state: ProvisioningState = field(init=False)
    next_state: ProvisioningState = field(init=False)

    def __post_init__(self):
        self.initial_state = self.host.provisioning_state
        self.next_state = self.initial_state

    @property
    def changed(self) -> bool:
        return self.next_state is not self.initial_state
