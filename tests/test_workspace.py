"""Tests for deploybox.workspace module."""

from __future__ import annotations

import random
import re
from pathlib import Path

import pytest

from deploybox.errors import ConfigError, FileWriteError
from deploybox.workspace import copy_install_manifest, new_workdir_name, prepare_workdir


class TestNewWorkdirName:
    """Tests for new_workdir_name function."""

    def test_format(self, tmp_path: Path) -> None:
        name = new_workdir_name(tmp_path, random.Random(1))
        assert re.fullmatch(r"cc_\d{9}", name)

    def test_seeded_runs_repeat(self, tmp_path: Path) -> None:
        assert new_workdir_name(tmp_path, random.Random(7)) == new_workdir_name(
            tmp_path, random.Random(7)
        )

    def test_skips_existing(self, tmp_path: Path) -> None:
        taken = new_workdir_name(tmp_path, random.Random(7))
        (tmp_path / taken).mkdir()
        assert new_workdir_name(tmp_path, random.Random(7)) != taken

    def test_gives_up(self, tmp_path: Path) -> None:
        class Stuck(random.Random):
            def randrange(self, *args, **kwargs) -> int:
                return 42

        (tmp_path / "cc_000000042").mkdir()
        with pytest.raises(ConfigError):
            new_workdir_name(tmp_path, Stuck())


class TestPrepareWorkdir:
    def test_creates_subdirs(self, tmp_path: Path) -> None:
        workdir = prepare_workdir(tmp_path / "cc_000000001")
        assert (workdir / "log").is_dir()
        assert (workdir / "src").is_dir()

    def test_existing_workdir_kept(self, tmp_path: Path) -> None:
        (tmp_path / "log").mkdir()
        (tmp_path / "log" / "old.log").write_text("x")
        prepare_workdir(tmp_path)
        assert (tmp_path / "log" / "old.log").exists()

    def test_blocked_by_file(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(FileWriteError):
            prepare_workdir(blocker)


class TestCopyInstallManifest:
    def test_copies(self, project_tree: dict[str, Path]) -> None:
        dest = copy_install_manifest(project_tree["manifest"], project_tree["workdir"])
        assert dest.name == "install_json.json"
        assert dest.read_text() == project_tree["manifest"].read_text()

    def test_missing_manifest(self, tmp_path: Path) -> None:
        with pytest.raises(FileWriteError):
            copy_install_manifest(tmp_path / "absent.json", tmp_path)
