"""Tests for the publish transports (ftplib is mocked, never contacted)."""

import ftplib
import json
import os
from unittest.mock import call, patch

import pytest

from conftest import make_blueprint
from sitesmith.errors import TransportError
from sitesmith.services.publish_transport import (
    FtpPublishTransport,
    LocalPublishTransport,
    build_manifest,
    get_transport,
)


def _ftp_transport(**kwargs):
    return FtpPublishTransport("ftp.host.test", "deploy", "s3cret", **kwargs)


class TestManifest:

    def test_manifest_document(self):
        blueprint = make_blueprint("site_abc")
        document = json.loads(build_manifest("site_abc", blueprint).decode("utf-8"))

        assert document["siteId"] == "site_abc"
        assert document["blueprint"] == blueprint.to_wire()
        assert "deployedAt" in document

    def test_non_ascii_kept_readable(self):
        blueprint = make_blueprint("site_abc", name="عيادة النيل")
        assert "عيادة النيل".encode("utf-8") in build_manifest("site_abc", blueprint)


class TestFtpPublish:

    @patch("sitesmith.services.publish_transport.ftplib.FTP")
    def test_publish_writes_manifest(self, mock_ftp_cls):
        ftp = mock_ftp_cls.return_value.__enter__.return_value

        result = _ftp_transport().publish("site_abc", make_blueprint("site_abc"))

        assert result.path == "/public_html/site_abc"
        mock_ftp_cls.assert_called_once_with(timeout=30)
        ftp.connect.assert_called_once_with("ftp.host.test", 21)
        ftp.login.assert_called_once_with("deploy", "s3cret")
        ftp.mkd.assert_has_calls([call("/public_html"), call("/public_html/site_abc")])

        command, stream = ftp.storbinary.call_args.args
        assert command == "STOR /public_html/site_abc/manifest.json"
        assert json.loads(stream.getvalue())["siteId"] == "site_abc"

    @patch("sitesmith.services.publish_transport.ftplib.FTP")
    def test_existing_directories_tolerated(self, mock_ftp_cls):
        ftp = mock_ftp_cls.return_value.__enter__.return_value
        ftp.mkd.side_effect = ftplib.error_perm("550 File exists")

        _ftp_transport().publish("site_abc", make_blueprint("site_abc"))

        ftp.storbinary.assert_called_once()

    @patch("sitesmith.services.publish_transport.ftplib.FTP")
    def test_login_failure_raises_and_closes(self, mock_ftp_cls):
        ftp = mock_ftp_cls.return_value.__enter__.return_value
        ftp.login.side_effect = ftplib.error_perm("530 Login incorrect")

        with pytest.raises(TransportError) as exc:
            _ftp_transport().publish("site_abc", make_blueprint("site_abc"))

        assert "530" in str(exc.value)
        assert mock_ftp_cls.return_value.__exit__.called
        ftp.storbinary.assert_not_called()

    @patch("sitesmith.services.publish_transport.ftplib.FTP")
    def test_connection_error_raises(self, mock_ftp_cls):
        ftp = mock_ftp_cls.return_value.__enter__.return_value
        ftp.connect.side_effect = OSError("Connection refused")

        with pytest.raises(TransportError):
            _ftp_transport().publish("site_abc", make_blueprint("site_abc"))

    @patch("sitesmith.services.publish_transport.ftplib.FTP")
    def test_write_failure_raises_and_closes(self, mock_ftp_cls):
        ftp = mock_ftp_cls.return_value.__enter__.return_value
        ftp.storbinary.side_effect = ftplib.error_temp("452 Insufficient storage")

        with pytest.raises(TransportError):
            _ftp_transport().publish("site_abc", make_blueprint("site_abc"))
        assert mock_ftp_cls.return_value.__exit__.called

    @patch("sitesmith.services.publish_transport.ftplib.FTP_TLS")
    def test_tls_protects_data_channel(self, mock_tls_cls):
        ftp = mock_tls_cls.return_value.__enter__.return_value

        _ftp_transport(use_tls=True, port=990).publish("site_abc", make_blueprint("site_abc"))

        ftp.connect.assert_called_once_with("ftp.host.test", 990)
        ftp.prot_p.assert_called_once()


class TestFtpIsPublished:

    @patch("sitesmith.services.publish_transport.ftplib.FTP")
    def test_manifest_listed(self, mock_ftp_cls):
        ftp = mock_ftp_cls.return_value.__enter__.return_value
        ftp.nlst.return_value = ["/public_html/site_abc/manifest.json"]

        assert _ftp_transport().is_published("site_abc") is True
        ftp.nlst.assert_called_once_with("/public_html/site_abc")

    @patch("sitesmith.services.publish_transport.ftplib.FTP")
    def test_missing_directory(self, mock_ftp_cls):
        ftp = mock_ftp_cls.return_value.__enter__.return_value
        ftp.nlst.side_effect = ftplib.error_perm("550 No such file or directory")

        assert _ftp_transport().is_published("site_abc") is False

    @patch("sitesmith.services.publish_transport.ftplib.FTP")
    def test_unreachable_host_raises(self, mock_ftp_cls):
        ftp = mock_ftp_cls.return_value.__enter__.return_value
        ftp.connect.side_effect = TimeoutError("timed out")

        with pytest.raises(TransportError):
            _ftp_transport().is_published("site_abc")


class TestLocalTransport:

    def test_publish_and_check(self, tmp_path):
        transport = LocalPublishTransport(str(tmp_path))

        assert transport.is_published("site_abc") is False
        result = transport.publish("site_abc", make_blueprint("site_abc"))

        manifest = os.path.join(result.path, "manifest.json")
        with open(manifest, encoding="utf-8") as f:
            assert json.load(f)["siteId"] == "site_abc"
        assert transport.is_published("site_abc") is True


class TestTransportSelection:

    def test_local_without_ftp_host(self, app):
        assert isinstance(get_transport(), LocalPublishTransport)

    def test_ftp_with_host(self, app):
        app.config.update(FTP_HOST="ftp.host.test", FTP_USER="deploy", FTP_PASS="s3cret")
        try:
            transport = get_transport()
        finally:
            app.config.update(FTP_HOST=None, FTP_USER=None, FTP_PASS=None)

        assert isinstance(transport, FtpPublishTransport)
        assert transport.root == "/public_html"
