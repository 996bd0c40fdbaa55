"""
Bare-metal host provisioning lifecycle.

Packages:
- baremetal.host: state machine, host record, reconciler service contract
- baremetal.events: audit trail of host events
- baremetal.errors: error types carried by failed outcomes
"""

__version__ = "0.1.0"
