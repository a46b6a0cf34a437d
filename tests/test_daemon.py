"""Tests for daemon module.

Tests Engine API wrappers against the in-memory client from conftest.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import docker.errors
import pytest
import requests

from deploybox import daemon
from deploybox.errors import (
    ContainerCreateError,
    ContainerRemoveError,
    ContainerStartError,
    DockerError,
    DockerNotRunningError,
    DockerTimeoutError,
    FileCopyError,
)

CID = "1" * 64


class TestDaemonCall:
    """Tests for daemon_call error translation."""

    def test_success(self) -> None:
        with daemon.daemon_call("start", "abc"):
            pass

    def test_timeout(self) -> None:
        with pytest.raises(DockerTimeoutError) as exc_info:
            with daemon.daemon_call("create", "img", ContainerCreateError):
                raise requests.exceptions.ReadTimeout("read timed out")
        assert exc_info.value.subject == "img"

    def test_timeout_is_not_create_failure(self) -> None:
        with pytest.raises(DockerTimeoutError) as exc_info:
            with daemon.daemon_call("create", "img", ContainerCreateError):
                raise requests.exceptions.ReadTimeout("read timed out")
        assert not isinstance(exc_info.value, ContainerCreateError)

    def test_connection_error(self) -> None:
        with pytest.raises(DockerNotRunningError):
            with daemon.daemon_call("ping", "daemon"):
                raise requests.exceptions.ConnectionError("refused")

    def test_api_error_uses_error_class(self) -> None:
        with pytest.raises(ContainerStartError) as exc_info:
            with daemon.daemon_call("start", "abc", ContainerStartError):
                raise docker.errors.APIError("conflict", explanation="port in use")
        assert "port in use" in str(exc_info.value)

    def test_client_side_rejection_uses_error_class(self) -> None:
        with pytest.raises(ContainerCreateError) as exc_info:
            with daemon.daemon_call("create", "box", ContainerCreateError):
                raise docker.errors.InvalidVersion("mounts param is not supported in API versions < 1.30")
        assert exc_info.value.subject == "box"

    def test_other_transport_errors(self) -> None:
        with pytest.raises(DockerError) as exc_info:
            with daemon.daemon_call("copy", "abc:/etc/passwd", FileCopyError):
                raise requests.exceptions.ChunkedEncodingError("connection broken")
        assert not isinstance(exc_info.value, (FileCopyError, DockerTimeoutError))

    def test_default_error_class(self) -> None:
        with pytest.raises(DockerError):
            with daemon.daemon_call("image list", "daemon"):
                raise docker.errors.APIError("boom")


class TestGetClient:
    def test_passes_version_and_timeout(self) -> None:
        with patch("deploybox.daemon.docker.from_env") as mock_from_env:
            daemon.get_client("1.41", timeout=12)
        mock_from_env.assert_called_once_with(version="1.41", timeout=12)

    def test_daemon_unavailable(self) -> None:
        with patch("deploybox.daemon.docker.from_env") as mock_from_env:
            mock_from_env.side_effect = docker.errors.DockerException("no socket")
            with pytest.raises(DockerNotRunningError):
                daemon.get_client()


class TestCheckDockerStatus:
    def test_running(self, fake_client) -> None:
        assert daemon.check_docker_status(fake_client) is True

    def test_not_running(self) -> None:
        client = MagicMock()
        client.ping.side_effect = requests.exceptions.ConnectionError("refused")
        assert daemon.check_docker_status(client) is False


class TestCreateContainer:
    """Tests for create_container function."""

    def test_bare_create_has_no_host_config(self, fake_client, fake_api) -> None:
        container_id = daemon.create_container(fake_client, "sha256:1", entrypoint=["tail", "-f"])
        call = fake_api.created[0]
        assert container_id == call["id"]
        assert call["host_config"] is None
        assert call["entrypoint"] == ["tail", "-f"]
        assert call["user"] is None
        assert call["name"] is None

    def test_host_config(self, fake_client, fake_api) -> None:
        daemon.create_container(
            fake_client,
            "sha256:1",
            entrypoint=["sh"],
            environment=["a=b"],
            user="0:0",
            mounts=[{"Target": "/x"}],
            name="box",
            privileged=True,
            auto_remove=True,
        )
        call = fake_api.created[0]
        assert call["host_config"] == {
            "mounts": [{"Target": "/x"}],
            "privileged": True,
            "auto_remove": True,
        }
        assert call["environment"] == ["a=b"]
        assert call["use_config_proxy"] is False

    def test_failure(self, fake_client, fake_api) -> None:
        fake_api.errors["create_probe"] = docker.errors.ImageNotFound("gone")
        with pytest.raises(ContainerCreateError):
            daemon.create_container(fake_client, "sha256:1", entrypoint=["sh"])


class TestPathExists:
    def test_present(self, fake_client) -> None:
        assert daemon.path_exists(fake_client, CID, "/bin/sh") is True

    def test_absent(self, fake_client) -> None:
        assert daemon.path_exists(fake_client, CID, "/bin/zsh") is False

    def test_other_errors_propagate(self, fake_client, fake_api) -> None:
        fake_api.errors["get_archive"] = docker.errors.APIError("server error")
        with pytest.raises(DockerError):
            daemon.path_exists(fake_client, CID, "/bin/sh")


class TestCopyFromContainer:
    """Tests for copy_from_container function."""

    def test_unpacks_file(self, fake_client, image_files, tmp_path: Path) -> None:
        dest = daemon.copy_from_container(fake_client, CID, "/etc/passwd", tmp_path / "passwd")
        assert dest.read_bytes() == image_files["/etc/passwd"]

    def test_overwrites_stale_copy(self, fake_client, image_files, tmp_path: Path) -> None:
        (tmp_path / "group").write_text("stale\n")
        daemon.copy_from_container(fake_client, CID, "/etc/group", tmp_path / "group")
        assert (tmp_path / "group").read_bytes() == image_files["/etc/group"]

    def test_not_a_tar(self, fake_client, fake_api, tmp_path: Path) -> None:
        fake_api.get_archive = lambda cid, path: (iter([b"garbage"]), {})
        with pytest.raises(FileCopyError):
            daemon.copy_from_container(fake_client, CID, "/etc/passwd", tmp_path / "passwd")


class TestRemoveAndStart:
    def test_remove(self, fake_client, fake_api) -> None:
        daemon.remove_container(fake_client, CID)
        assert fake_api.removed == [CID]

    def test_remove_failure(self, fake_client, fake_api) -> None:
        fake_api.errors["remove_container"] = docker.errors.APIError("busy")
        with pytest.raises(ContainerRemoveError):
            daemon.remove_container(fake_client, CID)

    def test_start(self, fake_client, fake_api) -> None:
        daemon.start_container(fake_client, CID)
        assert fake_api.started == [CID]

    def test_start_timeout(self, fake_client, fake_api) -> None:
        fake_api.errors["start"] = requests.exceptions.ReadTimeout("slow")
        with pytest.raises(DockerTimeoutError):
            daemon.start_container(fake_client, CID)
