"""GitHub App credentials for the pr-helper webhook server.

When pr-helper runs as an App, each webhook delivery names the installation
it came from. Acting on that repository takes two steps:

1. Sign a short-lived JWT with the App's private key. The JWT identifies the
   App itself and can do little more than mint installation tokens.
2. Trade the JWT for an installation access token scoped to the repositories
   the installation was granted, then call the REST API with that token.

``client_for`` does both and hands back a ``GitHubClient`` for the event's
repository, so handlers never see the JWT. Installation tokens live for an
hour; they are reused until shortly before GitHub's stated expiry.
"""
from __future__ import annotations

import os
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import httpx
import jwt
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from ..github_client import GITHUB_API, GitHubClient

JWT_LIFETIME = 10 * 60
CLOCK_DRIFT = 60
TOKEN_LIFETIME = 60 * 60
TOKEN_REFRESH_MARGIN = 5 * 60


def _env_default(value: str | None, name: str) -> str:
    return value if value is not None else os.getenv(name, "")


@dataclass(frozen=True)
class InstallationToken:
    token: str
    expires_at: float

    def usable(self, now: float) -> bool:
        return now < self.expires_at - TOKEN_REFRESH_MARGIN

    @classmethod
    def from_api(cls, data: dict, now: float) -> "InstallationToken":
        raw = data.get("expires_at")
        if raw:
            expires_at = datetime.fromisoformat(raw.replace("Z", "+00:00")).timestamp()
        else:
            expires_at = now + TOKEN_LIFETIME
        return cls(token=data["token"], expires_at=expires_at)


class GitHubApp:
    """One pr-helper GitHub App registration.

    Anything not passed explicitly comes from GITHUB_APP_ID,
    GITHUB_PRIVATE_KEY_PATH and GITHUB_WEBHOOK_SECRET.
    """

    def __init__(
        self,
        app_id: str | None = None,
        private_key_path: str | None = None,
        webhook_secret: str | None = None,
    ) -> None:
        self.app_id = _env_default(app_id, "GITHUB_APP_ID")
        self.private_key_path = _env_default(private_key_path, "GITHUB_PRIVATE_KEY_PATH")
        self.webhook_secret = _env_default(webhook_secret, "GITHUB_WEBHOOK_SECRET")
        self._pem: bytes | None = None
        self._tokens: dict[int, InstallationToken] = {}

    def validate(self) -> list[str]:
        """Settings the webhook server cannot run without, as issue strings."""
        issues = []
        if not self.app_id:
            issues.append("GITHUB_APP_ID is required")
        if not self.private_key_path:
            issues.append("GITHUB_PRIVATE_KEY_PATH is required")
        elif not Path(self.private_key_path).exists():
            issues.append(f"No private key at {self.private_key_path}")
        if not self.webhook_secret:
            issues.append("GITHUB_WEBHOOK_SECRET is required to verify deliveries")
        return issues

    def _signing_key(self) -> bytes:
        """The App's PEM key, read and checked on first use.

        Raises:
            FileNotFoundError: If the key file does not exist.
            ValueError: If the file does not hold a PEM private key.
        """
        if self._pem is None:
            path = Path(self.private_key_path)
            if not path.exists():
                raise FileNotFoundError(
                    f"GitHub App private key not found at: {self.private_key_path}"
                )
            pem = path.read_bytes()
            load_pem_private_key(pem, password=None)
            self._pem = pem
        return self._pem

    def generate_jwt(self) -> str:
        """Sign the App JWT used only to request installation tokens.

        ``iat`` is backdated by CLOCK_DRIFT so a runner whose clock is slightly
        ahead of GitHub's is not rejected.

        Raises:
            ValueError: If app_id is empty.
            FileNotFoundError: If the private key file is missing.
        """
        if not self.app_id:
            raise ValueError("GITHUB_APP_ID is required to generate a JWT")

        issued = int(time.time())
        claims = {
            "iss": self.app_id,
            "iat": issued - CLOCK_DRIFT,
            "exp": issued + JWT_LIFETIME,
        }
        return jwt.encode(claims, self._signing_key(), algorithm="RS256")

    def get_installation_token(self, installation_id: int) -> str:
        """Token for one installation, minted on first use and when near expiry.

        Raises:
            httpx.HTTPStatusError: If GitHub refuses the exchange, e.g. when
                the App was uninstalled.
        """
        now = time.time()
        cached = self._tokens.get(installation_id)
        if cached is not None and cached.usable(now):
            return cached.token

        resp = httpx.post(
            f"{GITHUB_API}/app/installations/{installation_id}/access_tokens",
            headers={
                "Authorization": f"Bearer {self.generate_jwt()}",
                "Accept": "application/vnd.github+json",
            },
            timeout=15.0,
        )
        resp.raise_for_status()
        minted = InstallationToken.from_api(resp.json(), now)
        self._tokens[installation_id] = minted
        return minted.token

    def client_for(self, installation_id: int, repo: str) -> GitHubClient:
        """GitHubClient for ``repo`` acting as the installation that sent an event.

        The size-check and reply handlers open it as a context manager for the
        duration of one delivery. The token behind it is shared with later
        deliveries from the same installation.
        """
        return GitHubClient(self.get_installation_token(installation_id), repo)
