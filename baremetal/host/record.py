"""
Host record and credential data model.

The host record is owned by the caller. The lifecycle core mutates it in
place during a tick and the caller persists it afterwards (``to_dict`` /
``from_dict`` are provided for that).

Credentials are compared by fingerprint: a SHA-256 digest of every data
value, keyed by data key. Raw secret values are never stored on the record.
"""

import hashlib
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from baremetal.errors import CredentialStatusError, ErrorType
from baremetal.host.states import ProvisioningState


@dataclass
class Credential:
    """
    SSH secret material fetched fresh on every tick.

    Attributes:
        name: Reference of the secret (e.g. the Vault path it was read from)
        data: Secret key/value pairs (name, public-key, private-key, ...)
    """

    name: str
    data: Dict[str, str] = field(default_factory=dict, repr=False)

    def fingerprint(self) -> Dict[str, str]:
        """Digest of every data value, keyed by data key."""
        return {
            key: hashlib.sha256(value.encode("utf-8")).hexdigest()
            for key, value in sorted(self.data.items())
        }


@dataclass
class SecretStatus:
    """Last observed fingerprint of a credential."""

    reference: str
    data_hash: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_credential(cls, credential: Credential) -> "SecretStatus":
        if not credential.data:
            raise CredentialStatusError(
                f"credential {credential.name!r} has no data to fingerprint"
            )
        return cls(reference=credential.name, data_hash=credential.fingerprint())

    def match(self, credential: Credential) -> bool:
        """True if the credential is the one this status was recorded from."""
        return (
            self.reference == credential.name
            and self.data_hash == credential.fingerprint()
        )


@dataclass
class SSHStatus:
    """Stored fingerprints of the OS and rescue SSH credentials.

    None means the credential has not been observed yet.
    """

    current_os: Optional[SecretStatus] = None
    current_rescue: Optional[SecretStatus] = None


@dataclass
class InstallImage:
    """Requested operating system image."""

    path: str
    post_install_script: Optional[str] = None


@dataclass
class HostRecord:
    """
    Snapshot of one bare-metal host.

    Attributes:
        name: Host identifier used in logs and events
        provisioning_state: Where in the lifecycle the host is
        deletion_requested: Set once by an external actor, never unset
        install_image: Requested image; None means provisioning was cancelled
        ssh_status: Stored credential fingerprints
        error_type: Type of the last terminal error
        error_message: Message of the last terminal error
        error_count: Number of terminal errors recorded
    """

    name: str
    provisioning_state: ProvisioningState = ProvisioningState.NONE
    deletion_requested: bool = False
    install_image: Optional[InstallImage] = None
    ssh_status: SSHStatus = field(default_factory=SSHStatus)
    error_type: Optional[ErrorType] = None
    error_message: str = ""
    error_count: int = 0

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "provisioning_state":
            # Raises ValueError for anything outside the enum
            value = ProvisioningState(value)
        elif name == "deletion_requested":
            if not value and self.__dict__.get("deletion_requested"):
                raise ValueError(f"deletion of host {self.name} was already requested")
            value = bool(value)
        super().__setattr__(name, value)

    @property
    def install_image_pending(self) -> bool:
        return self.install_image is not None

    @property
    def provisioning_cancelled(self) -> bool:
        return self.install_image is None

    def request_deletion(self) -> None:
        self.deletion_requested = True

    def update_os_ssh_status(self, credential: Credential) -> None:
        self.ssh_status.current_os = SecretStatus.from_credential(credential)

    def update_rescue_ssh_status(self, credential: Credential) -> None:
        self.ssh_status.current_rescue = SecretStatus.from_credential(credential)

    def set_error(self, error_type: ErrorType, message: str) -> None:
        self.error_type = error_type
        self.error_message = message
        self.error_count += 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["provisioning_state"] = self.provisioning_state.value
        data["error_type"] = self.error_type.value if self.error_type else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HostRecord":
        """Create from dictionary (JSON deserialization)."""
        data = dict(data)
        ssh = data.get("ssh_status") or {}
        data["ssh_status"] = SSHStatus(
            current_os=SecretStatus(**ssh["current_os"]) if ssh.get("current_os") else None,
            current_rescue=(
                SecretStatus(**ssh["current_rescue"]) if ssh.get("current_rescue") else None
            ),
        )
        if data.get("install_image"):
            data["install_image"] = InstallImage(**data["install_image"])
        if data.get("error_type"):
            data["error_type"] = ErrorType(data["error_type"])
        return cls(**data)
