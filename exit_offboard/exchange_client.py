"""Exchange Online mailbox client driven through PowerShell."""
from __future__ import annotations

import os
import shutil
import subprocess
import threading
from typing import Any, Dict, List, Optional

import msal

from .config import ExchangeConfig, GraphConfig


EXCHANGE_SCOPE = ["https://outlook.office365.com/.default"]
TOKEN_ENV_VAR = "EXIT_OFFBOARD_EXO_TOKEN"

_CONVERT_SCRIPT = """\
$ErrorActionPreference = 'Stop'
Import-Module ExchangeOnlineManagement
Connect-ExchangeOnline -AccessToken $env:{token_var} -Organization '{organization}' -ShowBanner:$false
try {{
    Set-Mailbox -Identity '{identity}' -Type Shared -Confirm:$false
}} finally {{
    Disconnect-ExchangeOnline -Confirm:$false -ErrorAction SilentlyContinue
}}
"""


class MailboxClientError(RuntimeError):
    """Base exception for Exchange Online mailbox operations."""


class MailboxConfigurationError(MailboxClientError):
    """Raised when the Exchange Online integration is not configured."""


class MailboxCommandError(MailboxClientError):
    """Raised when the PowerShell mailbox command fails."""


def _ps_quote(value: str) -> str:
    """Escape a value for use inside a single-quoted PowerShell string."""
    return value.replace("'", "''")


class ExchangeMailboxClient:
    """Mailbox session that converts user mailboxes to shared mailboxes."""

    name = "Exchange Online"

    def __init__(
        self,
        config: ExchangeConfig,
        graph: GraphConfig,
        app: Optional[Any] = None,
    ) -> None:
        self._config = config
        self._tenant_id = graph.tenant_id
        self._authority_host = graph.authority_host
        self._client_id = config.client_id or graph.client_id
        self._client_secret = config.client_secret or graph.client_secret
        self._app = app
        self._token_lock = threading.Lock()
        self.connected = False

    def connect(self) -> None:
        missing: List[str] = []
        if not self._config.organization:
            missing.append("organization")
        if not (self._tenant_id and self._client_id and self._client_secret):
            missing.append("tenant_id/client_id/client_secret")
        if missing:
            raise MailboxConfigurationError(
                "Exchange Online is not configured. Missing: " + ", ".join(missing) + "."
            )
        if shutil.which(self._config.shell) is None:
            raise MailboxConfigurationError(
                f"PowerShell executable '{self._config.shell}' was not found on PATH."
            )
        if self._app is None:
            self._app = msal.ConfidentialClientApplication(
                client_id=self._client_id,
                client_credential=self._client_secret,
                authority=f"{self._authority_host.rstrip('/')}/{self._tenant_id}",
            )
        self._acquire_token()
        self.connected = True

    def disconnect(self) -> None:
        self._app = None
        self.connected = False

    def _acquire_token(self) -> str:
        if self._app is None:
            raise MailboxClientError("Mailbox session is not connected.")
        with self._token_lock:
            result = self._app.acquire_token_silent(EXCHANGE_SCOPE, account=None)
            if not result:
                result = self._app.acquire_token_for_client(scopes=EXCHANGE_SCOPE)
        if not result or "access_token" not in result:
            result = result or {}
            error = result.get("error", "token_error")
            description = result.get(
                "error_description", "Unable to acquire Exchange Online token."
            )
            raise MailboxClientError(f"{error} - {description}")
        return str(result["access_token"])

    def build_convert_script(self, identity: str) -> str:
        return _CONVERT_SCRIPT.format(
            token_var=TOKEN_ENV_VAR,
            organization=_ps_quote(self._config.organization or ""),
            identity=_ps_quote(identity),
        )

    def convert_to_shared(self, identity: str) -> None:
        """Convert the mailbox addressed by ``identity`` to a shared mailbox."""

        env: Dict[str, str] = dict(os.environ)
        env[TOKEN_ENV_VAR] = self._acquire_token()
        command = [
            self._config.shell,
            "-NoProfile",
            "-NonInteractive",
            "-Command",
            self.build_convert_script(identity),
        ]
        try:
            subprocess.run(
                command,
                env=env,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self._config.timeout,
                check=True,
            )
        except FileNotFoundError as exc:
            raise MailboxCommandError(f"PowerShell not found: {exc}") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or exc.stdout or "").strip()
            message = f"Set-Mailbox failed with exit code {exc.returncode}."
            if detail:
                message = f"{message} {detail}"
            raise MailboxCommandError(message) from exc
        except subprocess.TimeoutExpired as exc:
            raise MailboxCommandError(
                f"Set-Mailbox timed out after {self._config.timeout} seconds."
            ) from exc


__all__ = [
    "ExchangeMailboxClient",
    "MailboxClientError",
    "MailboxCommandError",
    "MailboxConfigurationError",
]
