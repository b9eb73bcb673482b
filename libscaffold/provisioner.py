"""Secret Provisioner -- encrypts the npm credential for Travis CI.

The raw credential is either an npm API token or a ``username:password``
pair (base64-encoded before encryption, matching npm's ``_auth`` format).
It is encrypted with the RSA public key Travis publishes for the
``<org>/<repoName>`` repository, and the resulting ciphertext is kept in the
preferences store for the ``.travis.yml`` deploy block.
"""

from __future__ import annotations

import base64
import logging
from urllib.parse import quote

import httpx
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from pydantic import BaseModel, Field

from libscaffold.context import Context
from libscaffold.prefs import PreferenceStore

logger = logging.getLogger(__name__)


class EncryptResult(BaseModel):
    """Outcome of a CI secret encryption request."""

    blob: str = Field(default="", description="Base64 ciphertext")
    slug: str = Field(default="", description="CI project identifier")
    success: bool = Field(default=True)
    error: str | None = Field(default=None)


def normalize_credential(raw: str) -> str:
    """Base64-encode a ``username:password`` pair; pass a bare token through."""
    if ":" not in raw:
        return raw
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def encrypt_with_key(public_key_pem: str, plaintext: str) -> str:
    """RSA/PKCS#1 v1.5 encrypt *plaintext* and return base64 text.

    Accepts both ``BEGIN PUBLIC KEY`` and ``BEGIN RSA PUBLIC KEY`` PEM blocks.

    Raises:
        ValueError: If the PEM cannot be parsed or is not an RSA key.
    """
    try:
        key = serialization.load_pem_public_key(public_key_pem.encode("ascii"))
    except UnsupportedAlgorithm as exc:
        raise ValueError(f"Unsupported public key: {exc}") from exc
    if not isinstance(key, rsa.RSAPublicKey):
        raise ValueError("CI public key is not an RSA key")
    ciphertext = key.encrypt(plaintext.encode("utf-8"), padding.PKCS1v15())
    return base64.b64encode(ciphertext).decode("ascii")


class TravisKeyClient:
    """Async client for the Travis repository public-key endpoint."""

    def __init__(self, base_url: str = "https://api.travis-ci.com", timeout: int = 30) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers={"Accept": "application/json"},
        )

    @staticmethod
    def _extract_key(data: dict) -> str:
        """The PEM lives under ``key`` (API v2) or ``public_key`` (API v3)."""
        return data.get("key") or data.get("public_key") or ""

    async def fetch_key(self, slug: str) -> str:
        """Return the PEM public key for *slug* (``owner/name``).

        Raises:
            httpx.HTTPError: On transport or HTTP status errors.
            ValueError: If the response carries no key.
        """
        owner, _, name = slug.partition("/")
        path = f"/repos/{quote(owner, safe='')}/{quote(name, safe='')}/key"
        async with self._client() as client:
            response = await client.get(path)
            response.raise_for_status()
            key = self._extract_key(response.json())
        if not key:
            raise ValueError(f"No public key returned for {slug}")
        return key

    async def encrypt(self, slug: str, plaintext: str) -> EncryptResult:
        """Encrypt *plaintext* for *slug*; failures come back as ``success=False``."""
        try:
            key = await self.fetch_key(slug)
            blob = encrypt_with_key(key, plaintext)
        except httpx.ConnectError:
            return EncryptResult(
                slug=slug,
                success=False,
                error=f"Cannot connect to {self.base_url}.",
            )
        except httpx.TimeoutException:
            return EncryptResult(
                slug=slug,
                success=False,
                error=f"Request to {self.base_url} timed out after {self.timeout}s.",
            )
        except httpx.HTTPStatusError as exc:
            return EncryptResult(
                slug=slug,
                success=False,
                error=f"Travis returned HTTP {exc.response.status_code} for {slug}.",
            )
        except (httpx.HTTPError, ValueError) as exc:
            return EncryptResult(slug=slug, success=False, error=f"Could not encrypt for {slug}: {exc}")
        return EncryptResult(blob=blob, slug=slug)


class SecretProvisioner:
    """Turns an optional raw credential into a stored CI ciphertext."""

    def __init__(
        self,
        prefs: PreferenceStore,
        client: TravisKeyClient,
        org: str = "OADA",
    ) -> None:
        self.prefs = prefs
        self.client = client
        self.org = org

    async def provision(self, ctx: Context, credential: str | None) -> Context:
        """Encrypt *credential* for ``<org>/<repoName>`` and store the result.

        With no credential, or when encryption fails, the previously stored
        ciphertext (if any) is kept. The returned context carries whatever
        ciphertext is stored afterwards.
        """
        if credential:
            slug = f"{self.org}/{ctx.repo_name}"
            result = await self.client.encrypt(slug, normalize_credential(credential))
            if result.success:
                self.prefs.set("travisNpmKey", result.blob)
                logger.debug("Stored new Travis npm key for %s", slug)
            else:
                logger.warning("%s Keeping the previously stored key.", result.error)
        return ctx.evolve(travis_npm_key=self.prefs.get("travisNpmKey"))
