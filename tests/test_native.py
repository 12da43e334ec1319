"""Tests for the in-process checks."""

import shutil

import pytest
from conftest import git

from qualitygate.tools.native import (
    NATIVE_CHECKS,
    check_git_status,
    check_todo_markers,
    check_version_consistency,
    read_manifest_version,
)


class TestReadManifestVersion:
    def test_workspace_package_version(self, workspace):
        assert read_manifest_version(workspace / "Cargo.toml") == "0.5.2"

    def test_package_version(self, tmp_path):
        manifest = tmp_path / "Cargo.toml"
        manifest.write_text('[package]\nname = "x"\nversion = "1.0.0"\n')
        assert read_manifest_version(manifest) == "1.0.0"

    def test_unreadable_manifest(self, tmp_path):
        manifest = tmp_path / "Cargo.toml"
        manifest.write_text("[package\n")
        assert read_manifest_version(manifest) is None
        assert read_manifest_version(tmp_path / "missing.toml") is None


class TestVersionConsistency:
    def test_consistent(self, workspace):
        result = check_version_consistency(workspace, ())
        assert result.exit_code == 0
        assert "Manifest version: 0.5.2" in result.stdout

    def test_readme_mismatch(self, workspace):
        (workspace / "README.md").write_text("**Version:** v0.5.1\n")
        result = check_version_consistency(workspace, ())
        assert result.exit_code == 1
        assert "README.md version mismatch" in result.stderr

    def test_changelog_missing_entry(self, workspace):
        (workspace / "CHANGELOG.md").write_text("## [0.5.1] - 2024-12-01\n")
        result = check_version_consistency(workspace, ())
        assert result.exit_code == 1
        assert "missing entry for v0.5.2" in result.stderr

    def test_no_version(self, tmp_path):
        (tmp_path / "Cargo.toml").write_text("[workspace]\n")
        assert check_version_consistency(tmp_path, ()).exit_code == 1


class TestGitStatus:
    def test_on_release_branch_without_upstream(self, git_workspace):
        result = check_git_status(git_workspace, ("main",))
        assert result.exit_code == 0
        assert "On main branch" in result.stdout
        assert "No remote tracking branch configured" in result.stdout

    def test_other_branch_fails(self, git_workspace):
        git(git_workspace, "checkout", "-q", "-b", "feature/parser")
        result = check_git_status(git_workspace, ("main",))
        assert result.exit_code == 1
        assert result.stderr == "Not on main branch (current: feature/parser)"

    def test_detached_head_fails(self, git_workspace):
        git(git_workspace, "checkout", "-q", "--detach")
        result = check_git_status(git_workspace, ())
        assert result.exit_code == 1
        assert "Detached HEAD" in result.stderr

    def test_behind_upstream_fails(self, git_workspace, tmp_path_factory):
        clone = tmp_path_factory.mktemp("clone")
        git(clone, "clone", "-q", str(git_workspace), ".")
        (git_workspace / "CHANGELOG.md").write_text("## [0.5.3]\n")
        git(git_workspace, "commit", "-q", "-am", "bump")
        git(clone, "fetch", "-q")

        result = check_git_status(clone, ("main",))
        assert result.exit_code == 1
        assert "Behind remote by 1 commits" in result.stderr

    def test_ahead_of_upstream_is_reported(self, git_workspace, tmp_path_factory):
        clone = tmp_path_factory.mktemp("clone")
        git(clone, "clone", "-q", str(git_workspace), ".")
        git(clone, "config", "user.email", "dev@example.com")
        git(clone, "config", "user.name", "Dev")
        git(clone, "config", "commit.gpgsign", "false")
        (clone / "README.md").write_text("**Version:** v0.5.3\n")
        git(clone, "commit", "-q", "-am", "docs")

        result = check_git_status(clone, ("main",))
        assert result.exit_code == 0
        assert "Ahead of remote by 1 commits" in result.stdout

    def test_not_a_repository(self, tmp_path):
        if shutil.which("git") is None:
            pytest.skip("git not installed")
        assert check_git_status(tmp_path, ()).exit_code == 1


class TestTodoMarkers:
    def test_clean_tree(self, workspace):
        result = check_todo_markers(workspace, ())
        assert result.exit_code == 0
        assert result.stdout == "0 TODO markers"

    def test_markers_found(self, workspace):
        lib = workspace / "crates" / "core" / "src" / "lib.rs"
        lib.write_text("// TODO: handle ipv6\nfn a() {}\n// FIXME later\n")
        target = workspace / "crates" / "core" / "target"
        target.mkdir()
        (target / "gen.rs").write_text("// TODO ignored\n")

        result = check_todo_markers(workspace, ())
        assert result.exit_code == 1
        assert result.stdout.startswith("2 TODO markers")
        assert "crates/core/src/lib.rs:1:" in result.stdout

    def test_registered(self):
        assert set(NATIVE_CHECKS) == {"version-consistency", "git-status", "todo-markers"}
