"""Request/response client used by validation tasks on a running node."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import requests

from clusterforge.errors import ValidationRequestError

logger = logging.getLogger(__name__)


@runtime_checkable
class ValidationClient(Protocol):
    """Queries a running node.  Any non-success answer raises
    ``ValidationRequestError``."""

    def root(self) -> dict[str, Any]:
        ...

    def cat_plugins(self) -> list[dict[str, Any]]:
        ...

    def license(self, path: str = "/_license") -> dict[str, Any]:
        ...

    def cluster_health(self, wait_for_nodes: int | None = None) -> dict[str, Any]:
        ...


class HttpValidationClient:
    """``ValidationClient`` over ``requests``.

    Parameters
    ----------
    base_url:
        ``http[s]://host:port`` of the node.
    auth:
        ``(username, password)`` when security is enabled.
    verify:
        Certificate verification; off for the self-signed certificates of
        ephemeral TLS clusters.
    session:
        Optional ``requests.Session``.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        auth: tuple[str, str] | None = None,
        verify: bool = True,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session if session is not None else requests.Session()
        self._session.auth = auth
        self._session.verify = verify
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise ValidationRequestError(f"GET {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise ValidationRequestError(
                f"GET {url} returned HTTP {response.status_code}: {response.text[:200]}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ValidationRequestError(f"GET {url} did not return JSON") from exc

    def root(self) -> dict[str, Any]:
        return self._get("/")

    def cat_plugins(self) -> list[dict[str, Any]]:
        return self._get("/_cat/plugins", params={"format": "json"})

    def license(self, path: str = "/_license") -> dict[str, Any]:
        return self._get(path)

    def cluster_health(self, wait_for_nodes: int | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"wait_for_status": "yellow", "timeout": "30s"}
        if wait_for_nodes is not None:
            params["wait_for_nodes"] = str(wait_for_nodes)
        return self._get("/_cluster/health", params=params)
