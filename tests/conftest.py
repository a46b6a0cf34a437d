"""Pytest configuration and fixtures for deploybox tests.

Puts the src directory on sys.path so the package is importable without
installation, and provides an in-memory stand-in for the Docker client.
"""

from __future__ import annotations

import io
import posixpath
import sys
import tarfile
from pathlib import Path
from typing import Any

import pytest

# Add src directory to path for development testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

import docker.errors  # noqa: E402

PASSWD = b"root:x:0:0:root:/root:/bin/bash\nshinto:x:1001:1001::/home/shinto:/bin/bash\n"
GROUP = b"root:x:0:\nshinto:x:1001:\n"


def make_tar(name: str, content: bytes) -> bytes:
    """Pack one regular file into an in-memory tar archive."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as archive:
        info = tarfile.TarInfo(name)
        info.size = len(content)
        archive.addfile(info, io.BytesIO(content))
    return buf.getvalue()


def _chunks(data: bytes):
    yield data


class FakeAPI:
    """Records Engine API calls and serves a fixed image filesystem.

    ``errors`` maps a method name to the exception it should raise.
    """

    def __init__(self, images: list[dict[str, Any]], files: dict[str, bytes]) -> None:
        self.image_list = images
        self.files = files
        self.errors: dict[str, Exception] = {}
        self.created: list[dict[str, Any]] = []
        self.removed: list[str] = []
        self.started: list[str] = []
        self.archive_requests: list[tuple[str, str]] = []

    def _maybe_fail(self, method: str) -> None:
        if method in self.errors:
            raise self.errors[method]

    def images(self) -> list[dict[str, Any]]:
        self._maybe_fail("images")
        return self.image_list

    def create_host_config(self, **kwargs: Any) -> dict[str, Any]:
        self._maybe_fail("create_host_config")
        return kwargs

    def create_container(self, image: str, **kwargs: Any) -> dict[str, Any]:
        # The first container of a run is the probe, the second the final one
        self._maybe_fail("create_final" if self.created else "create_probe")
        container_id = str(len(self.created) + 1) * 64
        self.created.append({"image": image, "id": container_id, **kwargs})
        return {"Id": container_id, "Warnings": []}

    def get_archive(self, container_id: str, path: str):
        self.archive_requests.append((container_id, path))
        self._maybe_fail("get_archive")
        if path not in self.files:
            raise docker.errors.NotFound(f"Could not find the file {path} in container")
        name = posixpath.basename(path)
        return _chunks(make_tar(name, self.files[path])), {"name": name, "mode": 0o644}

    def remove_container(self, container_id: str, **kwargs: Any) -> None:
        self._maybe_fail("remove_container")
        self.removed.append(container_id)

    def start(self, container_id: str) -> None:
        self._maybe_fail("start")
        self.started.append(container_id)


class FakeDockerClient:
    def __init__(self, api: FakeAPI) -> None:
        self.api = api
        self.closed = False

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def image_summaries() -> list[dict[str, Any]]:
    return [
        {"Id": "sha256:1111aaaa", "RepoTags": ["compute-deployer_dev_alice:latest"], "Created": 100},
        {"Id": "sha256:2222bbbb", "RepoTags": ["ubuntu:22.04"], "Created": 50},
        {"Id": "sha256:3333cccc", "RepoTags": None, "Created": 10},
    ]


@pytest.fixture
def image_files() -> dict[str, bytes]:
    return {
        "/bin/bash": b"",
        "/bin/sh": b"",
        "/etc/passwd": PASSWD,
        "/etc/group": GROUP,
    }


@pytest.fixture
def fake_api(image_summaries: list[dict[str, Any]], image_files: dict[str, bytes]) -> FakeAPI:
    return FakeAPI(image_summaries, image_files)


@pytest.fixture
def fake_client(fake_api: FakeAPI) -> FakeDockerClient:
    return FakeDockerClient(fake_api)


@pytest.fixture
def project_tree(tmp_path: Path) -> dict[str, Path]:
    """A base dir with the konrad source tree, a manifest and a prepared workdir."""
    base = tmp_path / "base"
    (base / "compute-konrad-deployer" / "deployer").mkdir(parents=True)
    manifest = tmp_path / "install_json.json"
    manifest.write_text('{"components": []}', encoding="utf-8")
    workdir = tmp_path / "work"
    (workdir / "log").mkdir(parents=True)
    (workdir / "src").mkdir()
    return {"base": base, "manifest": manifest, "workdir": workdir}
