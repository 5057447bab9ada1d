"""Unit tests for the snapshot-tree archiver (glosc.packager.archive)."""

from __future__ import annotations

import os
import zipfile
from datetime import datetime
from pathlib import Path

import pytest

from glosc.packager.archive import (
    SnapshotArchiver,
    archive_path_for,
    missing_members,
    verify_archive,
    write_manifest,
)
from glosc.packager.errors import NoArchiveBackendAvailable, PackagingFailed
from glosc.utils import CommandResult

NOW = datetime(2025, 3, 4, 5, 6, 7)


class TestArchivePathFor:
    @pytest.mark.unit
    def test_timestamped_name(self, tmp_path: Path):
        path = archive_path_for(tmp_path, "my-server", NOW)
        assert path == tmp_path / "my-server-20250304-050607.zip"

    @pytest.mark.unit
    def test_collision_appends_counter(self, tmp_path: Path):
        (tmp_path / "my-server-20250304-050607.zip").write_bytes(b"x")
        (tmp_path / "my-server-20250304-050607-1.zip").write_bytes(b"x")
        path = archive_path_for(tmp_path, "my-server", NOW)
        assert path.name == "my-server-20250304-050607-2.zip"

    @pytest.mark.unit
    def test_output_dir_need_not_exist(self, tmp_path: Path):
        path = archive_path_for(tmp_path / "dist", "p", NOW)
        assert path.parent == tmp_path / "dist"
        assert not path.parent.exists()


class TestWriteManifest:
    @pytest.mark.unit
    def test_nul_terminated_utf8(self, tmp_path: Path):
        path = write_manifest(tmp_path / "tmp" / "manifest", ["a.txt", "dir/ü b.md"])
        assert path.read_bytes() == b"a.txt\0" + "dir/ü b.md".encode("utf-8") + b"\0"

    @pytest.mark.unit
    def test_empty_list(self, tmp_path: Path):
        assert write_manifest(tmp_path / "m", []).read_bytes() == b""

    @pytest.mark.unit
    @pytest.mark.skipif(os.name != "posix", reason="POSIX byte file names only")
    def test_undecodable_name_written_as_original_bytes(self, tmp_path: Path):
        name = os.fsdecode(b"caf\xe9.txt")
        path = write_manifest(tmp_path / "m", [name, "main.py"])
        assert path.read_bytes() == b"caf\xe9.txt\0main.py\0"


class TestVerifyArchive:
    @pytest.mark.unit
    def test_returns_size(self, tmp_path: Path):
        path = tmp_path / "a.zip"
        path.write_bytes(b"PK" + b"\0" * 20)
        assert verify_archive(path) == 22

    @pytest.mark.unit
    def test_missing(self, tmp_path: Path):
        with pytest.raises(PackagingFailed, match="not created"):
            verify_archive(tmp_path / "missing.zip")

    @pytest.mark.unit
    def test_zero_bytes_removed(self, tmp_path: Path):
        path = tmp_path / "empty.zip"
        path.write_bytes(b"")
        with pytest.raises(PackagingFailed, match="empty"):
            verify_archive(path)
        assert not path.exists()

    @pytest.mark.unit
    def test_expected_members_present(self, tmp_path: Path):
        path = tmp_path / "a.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("src/", "")
            zf.writestr("src/a b.txt", "x")
            zf.writestr("vendor/lib/", "")
        assert verify_archive(path, expected=["src/a b.txt", "vendor/lib"]) == path.stat().st_size

    @pytest.mark.unit
    def test_missing_member_deletes_archive(self, tmp_path: Path):
        path = tmp_path / "a.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("main.py", "")
        with pytest.raises(PackagingFailed, match="export-ignore") as exc_info:
            verify_archive(path, expected=["main.py", "secret.cfg"])
        assert "secret.cfg" in str(exc_info.value)
        assert not path.exists()

    @pytest.mark.unit
    def test_not_a_zip(self, tmp_path: Path):
        path = tmp_path / "a.zip"
        path.write_bytes(b"not a zip at all")
        with pytest.raises(PackagingFailed, match="not a valid zip"):
            verify_archive(path, expected=["main.py"])
        assert not path.exists()

    @pytest.mark.unit
    def test_missing_members_lists_absent_names(self, tmp_path: Path):
        path = tmp_path / "a.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("café.txt", "")
        assert missing_members(path, ["café.txt", "b.txt"]) == ["b.txt"]


class TestSnapshotArchiverUnit:
    @pytest.mark.unit
    def test_backend_check_without_git(self, tmp_path: Path):
        archiver = SnapshotArchiver(tmp_path, which=lambda name: None)
        with pytest.raises(NoArchiveBackendAvailable) as exc_info:
            archiver.check_backend()
        assert isinstance(exc_info.value, EnvironmentError)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_sequence(self, fake_runner, tmp_path: Path):
        runner = fake_runner({"write-tree": CommandResult(0, stdout="abc123\n")})
        archiver = SnapshotArchiver(
            tmp_path, git_timeout=9, runner=runner, which=lambda name: "/usr/bin/git"
        )
        temp_dir = tmp_path / ".package-tmp-x"
        temp_dir.mkdir()
        output = tmp_path / "dist" / "p.zip"

        result = await archiver.create(["a.txt", "b.txt"], output, temp_dir)

        assert result == output
        assert output.parent.is_dir()
        assert runner.keys == ["add", "write-tree", "archive"]
        assert all(call.timeout == 9 for call in runner.calls)
        assert all(call.cwd == tmp_path for call in runner.calls)

        add_call, tree_call, archive_call = runner.calls
        assert "--force" in add_call.cmd
        assert "--pathspec-file-nul" in add_call.cmd
        assert f"--pathspec-from-file={(temp_dir / 'manifest').resolve()}" in add_call.cmd
        for call in (add_call, tree_call):
            assert call.env["GIT_INDEX_FILE"] == str((temp_dir / "index").resolve())
            assert call.env["GIT_LITERAL_PATHSPECS"] == "1"
        assert "GIT_INDEX_FILE" not in archive_call.env
        assert archive_call.cmd == [
            "git", "archive", "--format=zip", f"--output={output.resolve()}", "abc123",
        ]
        assert (temp_dir / "manifest").read_bytes() == b"a.txt\0b.txt\0"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_add_failure(self, fake_runner, tmp_path: Path):
        runner = fake_runner({"add": CommandResult(128, stderr="fatal: bad path")})
        archiver = SnapshotArchiver(tmp_path, runner=runner, which=lambda name: "git")
        with pytest.raises(PackagingFailed) as exc_info:
            await archiver.create(["a"], tmp_path / "out.zip", tmp_path)
        assert exc_info.value.stderr == "fatal: bad path"
        assert runner.keys == ["add"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_archive_failure_removes_partial_zip(self, fake_runner, tmp_path: Path):
        def archive(cmd, cwd, env):
            output = next(arg for arg in cmd if arg.startswith("--output="))
            Path(output.split("=", 1)[1]).write_bytes(b"PK\x03\x04partial")
            return CommandResult(128, stderr="fatal: unable to read blob")

        runner = fake_runner({"write-tree": CommandResult(0, stdout="abc123\n"), "archive": archive})
        archiver = SnapshotArchiver(tmp_path, runner=runner, which=lambda name: "git")
        output = tmp_path / "dist" / "out.zip"
        with pytest.raises(PackagingFailed, match="unable to read blob"):
            await archiver.create(["a"], output, tmp_path)
        assert not output.exists()
        assert list(output.parent.iterdir()) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_tree_id(self, fake_runner, tmp_path: Path):
        runner = fake_runner({"write-tree": CommandResult(0, stdout="")})
        archiver = SnapshotArchiver(tmp_path, runner=runner, which=lambda name: "git")
        with pytest.raises(PackagingFailed, match="no tree id"):
            await archiver.create(["a"], tmp_path / "out.zip", tmp_path)
        assert "archive" not in runner.keys

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_backend_check_runs_first(self, fake_runner, tmp_path: Path):
        runner = fake_runner()
        archiver = SnapshotArchiver(tmp_path, runner=runner, which=lambda name: None)
        with pytest.raises(NoArchiveBackendAvailable):
            await archiver.create(["a"], tmp_path / "out.zip", tmp_path)
        assert runner.calls == []


@pytest.mark.integration
class TestSnapshotArchiverGit:
    @pytest.mark.asyncio
    async def test_archives_exact_files_with_working_tree_content(
        self, tmp_git_repo: Path, write_tree, run_git_cmd
    ):
        write_tree(
            tmp_git_repo,
            {
                ".gitignore": "dist/\n",
                "dist/index.js": "built\n",
                "notes.txt": "not listed\n",
                "src/a b.txt": "spaces\n",
            },
        )
        (tmp_git_repo / "README.md").write_text("# changed, uncommitted\n", encoding="utf-8")
        index_before = (tmp_git_repo / ".git" / "index").read_bytes()

        temp_dir = tmp_git_repo / ".package-tmp-test"
        temp_dir.mkdir()
        output = tmp_git_repo / "out" / "p.zip"
        archiver = SnapshotArchiver(tmp_git_repo)
        await archiver.create(["README.md", "src/a b.txt", "dist/index.js"], output, temp_dir)

        with zipfile.ZipFile(output) as zf:
            names = [n for n in zf.namelist() if not n.endswith("/")]
            assert sorted(names) == ["README.md", "dist/index.js", "src/a b.txt"]
            assert zf.read("README.md") == b"# changed, uncommitted\n"
            assert zf.read("dist/index.js") == b"built\n"

        assert (tmp_git_repo / ".git" / "index").read_bytes() == index_before
        assert "notes.txt" in run_git_cmd(tmp_git_repo, "status", "--porcelain")
