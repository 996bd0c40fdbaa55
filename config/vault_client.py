"""
HashiCorp Vault client and SSH secret store.

Fetches the OS and rescue SSH secrets of a host from Vault KV v2, falling
back to environment variables when Vault is disabled. Supports both token
auth (dev) and AppRole auth (production).

Secrets are read fresh on every call; rotation detection depends on it.

Usage:
    from config.vault_client import SSHSecretStore

    store = SSHSecretStore()
    os_credential, rescue_credential = store.get_ssh_secrets()
"""

import logging
import os
from typing import Optional, Tuple

import hvac
import requests
from hvac.exceptions import InvalidPath, VaultError
from dotenv import load_dotenv

from baremetal.errors import CredentialFetchError
from baremetal.host.record import Credential
from config.settings import SSHSecretSettings, VaultSettings, get_settings

load_dotenv()

logger = logging.getLogger(__name__)

# Environment fallback prefixes per credential kind
OS_ENV_PREFIX = "OS_SSH"
RESCUE_ENV_PREFIX = "RESCUE_SSH"


class VaultClient:
    """HashiCorp Vault KV v2 reader."""

    def __init__(self, config: VaultSettings | None = None):
        """Initialize Vault client.

        Args:
            config: VaultSettings instance, or None to use application settings
        """
        self.config = config or get_settings().vault
        self._client: hvac.Client | None = None

    @property
    def client(self) -> hvac.Client:
        """Lazy-load and authenticate the hvac client."""
        if self._client is None:
            client = hvac.Client(
                url=self.config.addr,
                namespace=self.config.namespace or None,
            )
            try:
                token = self.config.token.get_secret_value()
                if token:
                    client.token = token
                else:
                    client.auth.approle.login(
                        role_id=self.config.role_id,
                        secret_id=self.config.secret_id.get_secret_value(),
                    )
                authenticated = client.is_authenticated()
            except (VaultError, requests.RequestException) as e:
                raise CredentialFetchError(f"failed to authenticate to Vault: {e}") from e
            if not authenticated:
                raise CredentialFetchError("Vault authentication failed")
            self._client = client
        return self._client

    def is_available(self) -> bool:
        return self.config.enabled

    def read_secret(self, path: str) -> dict[str, str] | None:
        """Read all key/value pairs at a path.

        Args:
            path: Secret path below the mount point (e.g. "baremetal/ssh/os")

        Returns:
            Dict of key-value pairs, or None if nothing is stored at the path

        Raises:
            CredentialFetchError: Vault could not be reached or refused the read
        """
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=self.config.mount_path,
                raise_on_deleted_version=True,
            )
        except InvalidPath:
            logger.debug(f"No secret stored at {path}")
            return None
        except (VaultError, requests.RequestException) as e:
            raise CredentialFetchError(f"failed to read secret at {path}: {e}") from e

        if response and "data" in response and "data" in response["data"]:
            return response["data"]["data"]
        return None


class SSHSecretStore:
    """OS and rescue SSH secrets, from Vault or the environment.

    With Vault enabled, each kind is read from its configured path; an empty
    path means that kind is not configured. With Vault disabled, the
    ``OS_SSH_*`` and ``RESCUE_SSH_*`` environment variables are used.
    """

    def __init__(
        self,
        vault_client: VaultClient | None = None,
        settings: SSHSecretSettings | None = None,
    ):
        self._vault = vault_client or VaultClient()
        self.settings = settings or get_settings().ssh

    def get_ssh_secrets(self) -> Tuple[Optional[Credential], Optional[Credential]]:
        """Fetch both credentials.

        Returns:
            Tuple of (os_credential, rescue_credential); either may be None

        Raises:
            CredentialFetchError: Vault read failed
        """
        os_credential = self._get_credential(self.settings.os_secret_path, OS_ENV_PREFIX)
        rescue_credential = self._get_credential(
            self.settings.rescue_secret_path, RESCUE_ENV_PREFIX
        )
        return os_credential, rescue_credential

    def _get_credential(self, path: str, env_prefix: str) -> Optional[Credential]:
        if self._vault.is_available():
            if not path:
                return None
            data = self._vault.read_secret(path)
            if data is None:
                return None
            return Credential(name=path, data=dict(data))

        return self._get_from_env(env_prefix)

    def _get_from_env(self, prefix: str) -> Optional[Credential]:
        data = {
            self.settings.name_key: os.getenv(f"{prefix}_NAME", ""),
            self.settings.public_key_key: os.getenv(f"{prefix}_PUBLIC_KEY", ""),
            self.settings.private_key_key: os.getenv(f"{prefix}_PRIVATE_KEY", ""),
        }
        if not any(data.values()):
            return None
        return Credential(name=f"env:{prefix}", data=data)
