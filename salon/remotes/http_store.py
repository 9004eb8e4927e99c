"""HTTP snapshot store: a small REST object store reached with httpx."""

from __future__ import annotations

import contextlib
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from salon.errors import IOFailureError, NotFoundError
from salon.models.backup_record import RemoteBackup
from salon.remotes.base import RemoteSyncAdapter


class HttpRemoteStore(RemoteSyncAdapter):
    """
    Remote store speaking a minimal REST protocol::

        GET    /health                 → 200 when usable
        GET    /backups                → [{"id", "filename", "size", "createdAt"}, ...]
        POST   /backups                → multipart "file"; returns {"id": ...}
        DELETE /backups/{id}
        GET    /backups/{id}/content   → raw snapshot bytes
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 30,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def name(self) -> str:
        return "http"

    def _http_client(self) -> httpx.Client:
        if self._client is None:
            headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
            self._client = httpx.Client(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    @staticmethod
    def _record_path(remote_id: str) -> str:
        return f"/backups/{quote(remote_id, safe='')}"

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = self._http_client().request(method, path, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFoundError(f"Remote backup not found: {path}") from e
            raise IOFailureError(f"Remote store error {e.response.status_code} on {method} {path}") from e
        except httpx.HTTPError as e:
            raise IOFailureError(f"Remote store request failed ({method} {path}): {e}") from e

    def availability(self) -> bool:
        try:
            resp = self._http_client().get("/health")
            return resp.status_code == 200
        except Exception as e:
            logger.debug(f"Remote store unreachable: {e}")
            return False

    def upload(self, local_path: Path) -> str:
        local_path = Path(local_path)
        if not local_path.is_file():
            raise NotFoundError(f"File not found: {local_path}")
        with open(local_path, "rb") as f:
            resp = self._request(
                "POST",
                "/backups",
                files={"file": (local_path.name, f, "application/octet-stream")},
            )
        try:
            record_id = str(resp.json()["id"])
        except (ValueError, KeyError, TypeError) as e:
            raise IOFailureError(f"Malformed upload response: {e}") from e
        logger.info(f"Uploaded {local_path.name} to remote store as {record_id}")
        return record_id

    def list(self) -> list[RemoteBackup]:
        resp = self._request("GET", "/backups")
        try:
            payload = resp.json()
        except ValueError as e:
            raise IOFailureError(f"Malformed backup listing: {e}") from e
        if isinstance(payload, dict):
            payload = payload.get("backups", [])

        records: list[RemoteBackup] = []
        for item in payload:
            try:
                records.append(RemoteBackup.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed remote backup entry: {e}")

        # Retention relies on newest-first order; don't trust the server's
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def delete(self, remote_id: str) -> None:
        self._request("DELETE", self._record_path(remote_id))
        logger.info(f"Deleted remote backup {remote_id}")

    def download(self, remote_id: str, dest_path: Path) -> None:
        dest_path = Path(dest_path)
        tmp_path = dest_path.with_name(dest_path.name + ".part")
        path = f"{self._record_path(remote_id)}/content"
        try:
            with self._http_client().stream("GET", path) as resp:
                if resp.status_code == 404:
                    raise NotFoundError(f"Remote backup not found: {remote_id}")
                resp.raise_for_status()
                with open(tmp_path, "wb") as f:
                    for chunk in resp.iter_bytes():
                        f.write(chunk)
            tmp_path.replace(dest_path)
        except httpx.HTTPError as e:
            raise IOFailureError(f"Download of {remote_id} failed: {e}") from e
        except OSError as e:
            raise IOFailureError(f"Failed to write {dest_path}: {e}") from e
        finally:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
        logger.info(f"Downloaded remote backup {remote_id} to {dest_path.name}")
