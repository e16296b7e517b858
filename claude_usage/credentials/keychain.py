"""
macOS Keychain adapter for the two claude.ai secrets.

Entries live under a single generic-password service (``claude-usage`` by
default), one account per secret:

  session-key   sessionKey cookie value
  org-id        organization UUID
"""

import subprocess
from typing import Optional, Protocol

from claude_usage.errors import StoreError
from claude_usage.models import Credentials
from claude_usage.observability.logger import get_logger

log = get_logger("credentials.keychain")

SESSION_KEY_ACCOUNT = "session-key"
ORG_ID_ACCOUNT = "org-id"

SECURITY_TIMEOUT_SECONDS = 10


class CredentialStore(Protocol):
    def get(self, account: str) -> Optional[str]: ...

    def set(self, account: str, value: str) -> None: ...


class KeychainStore:
    def __init__(self, service: str = "claude-usage", security_bin: str = "security"):
        self.service = service
        self.security_bin = security_bin

    def get(self, account: str) -> Optional[str]:
        try:
            result = subprocess.run(
                [self.security_bin, "find-generic-password", "-a", account, "-s", self.service, "-w"],
                capture_output=True,
                text=True,
                timeout=SECURITY_TIMEOUT_SECONDS,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            log.warning("keychain_read_failed", account=account, error=str(e))
            return None
        if result.returncode != 0:
            return None
        value = result.stdout.strip()
        return value or None

    def set(self, account: str, value: str) -> None:
        # Delete-then-add: the old entry may or may not exist
        try:
            subprocess.run(
                [self.security_bin, "delete-generic-password", "-a", account, "-s", self.service],
                capture_output=True,
                timeout=SECURITY_TIMEOUT_SECONDS,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            raise StoreError(f"Could not reach keychain: {e}") from e

        try:
            subprocess.run(
                [self.security_bin, "add-generic-password", "-a", account, "-s", self.service, "-w", value],
                capture_output=True,
                text=True,
                check=True,
                timeout=SECURITY_TIMEOUT_SECONDS,
            )
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip() or f"exit code {e.returncode}"
            raise StoreError(f"Could not store '{account}' in keychain: {detail}") from e
        except (subprocess.TimeoutExpired, OSError) as e:
            raise StoreError(f"Could not store '{account}' in keychain: {e}") from e
        log.info("keychain_entry_stored", account=account, service=self.service)


def load_credentials(store: CredentialStore) -> Optional[Credentials]:
    """Return both secrets, or None if either one is missing."""
    session_key = store.get(SESSION_KEY_ACCOUNT)
    org_id = store.get(ORG_ID_ACCOUNT)
    if not session_key or not org_id:
        return None
    return Credentials(session_key=session_key, org_id=org_id)
