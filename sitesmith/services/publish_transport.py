"""Publish transport: pushes a site manifest to the hosting target.

The manifest is a JSON snapshot ``{siteId, blueprint, deployedAt}`` written
to ``<root>/<site_id>/manifest.json``. The transport only moves bytes; it
knows nothing about site status.

Two implementations:
- FtpPublishTransport: the production host (FTP, optionally explicit TLS).
  Each call opens its own connection inside a ``with`` block, so the
  connection is closed on success and on every error path.
- LocalPublishTransport: dev fallback writing under instance/published/.

get_transport() picks FTP when FTP_HOST is configured, local otherwise.
"""

import ftplib
import io
import json
import logging
import os
import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone

from flask import current_app

from sitesmith.errors import TransportError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


@dataclass(frozen=True)
class PublishResult:
    path: str


def build_manifest(site_id, blueprint, deployed_at=None):
    """Serialize the manifest snapshot to UTF-8 bytes."""
    deployed_at = deployed_at or datetime.now(timezone.utc)
    document = {
        "siteId": site_id,
        "blueprint": blueprint.to_wire(),
        "deployedAt": deployed_at.isoformat(),
    }
    return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")


class PublishTransport:
    """Interface every transport implements."""

    def publish(self, site_id, blueprint):
        """Write the manifest for site_id. Returns PublishResult, raises TransportError."""
        raise NotImplementedError

    def is_published(self, site_id):
        """True when a manifest for site_id exists at the destination."""
        raise NotImplementedError


class FtpPublishTransport(PublishTransport):
    def __init__(self, host, user, password, *, port=21, root="/public_html",
                 use_tls=False, timeout=30):
        self.host = host
        self.user = user
        self.password = password
        self.port = port
        self.root = root.rstrip("/") or "/"
        self.use_tls = use_tls
        self.timeout = timeout

    def _client(self):
        ftp_cls = ftplib.FTP_TLS if self.use_tls else ftplib.FTP
        return ftp_cls(timeout=self.timeout)

    def _login(self, ftp):
        ftp.connect(self.host, self.port)
        ftp.login(self.user, self.password)
        if self.use_tls:
            ftp.prot_p()

    def remote_dir(self, site_id):
        return posixpath.join(self.root, site_id)

    def publish(self, site_id, blueprint):
        remote_dir = self.remote_dir(site_id)
        manifest = build_manifest(site_id, blueprint)

        try:
            with self._client() as ftp:
                self._login(ftp)
                _ensure_dir(ftp, remote_dir)
                ftp.storbinary(
                    f"STOR {posixpath.join(remote_dir, MANIFEST_NAME)}",
                    io.BytesIO(manifest),
                )
        except ftplib.all_errors as e:
            logger.error(f"FTP publish failed for {site_id} on {self.host}: {e}")
            raise TransportError(
                f"Publishing {site_id} failed: {e}",
                details={"site_id": site_id, "host": self.host},
            ) from e

        logger.info(f"Published {site_id} to ftp://{self.host}{remote_dir}")
        return PublishResult(path=remote_dir)

    def is_published(self, site_id):
        remote_dir = self.remote_dir(site_id)
        try:
            with self._client() as ftp:
                self._login(ftp)
                try:
                    names = ftp.nlst(remote_dir)
                except ftplib.error_perm:
                    # 550: directory does not exist
                    return False
        except ftplib.all_errors as e:
            raise TransportError(
                f"Checking {site_id} failed: {e}",
                details={"site_id": site_id, "host": self.host},
            ) from e
        return any(posixpath.basename(name) == MANIFEST_NAME for name in names)


def _ensure_dir(ftp, path):
    """Create every missing component of an absolute remote path."""
    current = "/" if path.startswith("/") else ""
    for part in [p for p in path.split("/") if p]:
        current = posixpath.join(current, part)
        try:
            ftp.mkd(current)
        except ftplib.error_perm:
            pass  # already exists


class LocalPublishTransport(PublishTransport):
    def __init__(self, root):
        self.root = root

    def publish(self, site_id, blueprint):
        site_dir = os.path.join(self.root, site_id)
        try:
            os.makedirs(site_dir, exist_ok=True)
            with open(os.path.join(site_dir, MANIFEST_NAME), "wb") as f:
                f.write(build_manifest(site_id, blueprint))
        except OSError as e:
            raise TransportError(
                f"Publishing {site_id} failed: {e}", details={"site_id": site_id}
            ) from e

        logger.info(f"Published {site_id} locally: {site_dir}")
        return PublishResult(path=site_dir)

    def is_published(self, site_id):
        return os.path.isfile(os.path.join(self.root, site_id, MANIFEST_NAME))


def get_transport():
    """Build the transport for the current app config."""
    config = current_app.config
    if config.get("FTP_HOST"):
        return FtpPublishTransport(
            config["FTP_HOST"],
            config.get("FTP_USER"),
            config.get("FTP_PASS"),
            port=config.get("FTP_PORT", 21),
            root=config.get("FTP_ROOT", "/public_html"),
            use_tls=config.get("FTP_TLS", False),
            timeout=config.get("FTP_TIMEOUT", 30),
        )
    return LocalPublishTransport(os.path.join(current_app.instance_path, "published"))
