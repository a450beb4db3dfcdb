"""Tests for the command line layer."""

import pytest

from patch_agent.cli import GenPatchArgs, PrFetchArgs, gen_patch, init_repository, pr_fetch
from patch_agent.cli.gen_patch import patch_filename
from patch_agent.cli.pr_fetch import repo_from_origin
from patch_agent.config import CONFIG_FILE, CONFIG_ROOT, EXAMPLE_CONFIG
from patch_agent.errors import ConfigError
from patch_agent.main import main


class TestInit:
    """Tests for 'patch-agent init'."""

    def test_creates_example_config(self, tmp_path):
        # Given
        (tmp_path / ".git").mkdir()

        # When
        created = init_repository(tmp_path)

        # Then
        assert created
        assert (tmp_path / CONFIG_ROOT / CONFIG_FILE).read_text() == EXAMPLE_CONFIG

    def test_refuses_outside_repository(self, tmp_path):
        assert not init_repository(tmp_path)
        assert not (tmp_path / CONFIG_ROOT).exists()

    def test_keeps_existing_config_when_declined(self, tmp_path):
        """Given a config exists and the user declines, it should stay as it was."""
        # Given
        (tmp_path / ".git").mkdir()
        config_file = tmp_path / CONFIG_ROOT / CONFIG_FILE
        config_file.parent.mkdir()
        config_file.write_text("mine")

        # When
        created = init_repository(tmp_path, confirm_func=lambda _: False)

        # Then
        assert not created
        assert config_file.read_text() == "mine"


class TestRepoFromOrigin:
    """Tests for reading owner/repo from the origin remote."""

    @pytest.mark.parametrize("url,expected", [
        ("git@github.com:helix-editor/helix.git", "helix-editor/helix"),
        ("https://github.com/helix-editor/helix.git", "helix-editor/helix"),
        ("https://github.com/helix-editor/helix", "helix-editor/helix"),
        ("https://gitlab.com/a/b.git", None),
    ])
    def test_urls(self, git, runner, url, expected):
        runner.on("remote", "get-url", "origin", stdout=url + "\n")

        assert repo_from_origin(git) == expected

    def test_no_origin(self, git, runner):
        runner.fail("remote", "get-url", "origin")

        assert repo_from_origin(git) is None

    def test_pr_fetch_without_repo_raises(self, git, runner):
        """Given no --repo-name and no GitHub origin, pr-fetch should refuse to run."""
        runner.fail("remote", "get-url", "origin")

        with pytest.raises(ConfigError, match="helix-editor/helix"):
            pr_fetch(git, PrFetchArgs(), github=object())


class TestGenPatch:
    """Tests for gen-patch with a scripted git."""

    def test_name_from_commit_subject(self, git, runner):
        runner.on("log", "--format=%s", stdout="Fix the README\n")

        assert patch_filename(git, "abc") == "fix_the_readme.patch"

    def test_name_falls_back_to_hash(self, git, runner):
        runner.fail("log")

        assert patch_filename(git, "abc") == "abc.patch"

    def test_no_commits(self, git):
        assert gen_patch(git, GenPatchArgs()) == 1

    def test_merge_commit_rejected(self, git, runner, tmp_path):
        # Given - every commit has a second parent
        runner.on("rev-parse", "--verify", "--quiet", "abc^2")

        # When
        exit_code = gen_patch(git, GenPatchArgs(commits=[("abc", "named")]))

        # Then
        assert exit_code == 1
        assert not runner.called("format-patch")
        assert not (tmp_path / CONFIG_ROOT / "named.patch").exists()

    def test_writes_patch_output(self, git, runner, tmp_path):
        runner.on("rev-parse", "--verify", "--quiet", "abc^2", returncode=1)
        runner.on("format-patch", stdout="From abc\nSubject: [PATCH] x\n\n")

        exit_code = gen_patch(git, GenPatchArgs(commits=[("abc", "named")]))

        assert exit_code == 0
        assert (tmp_path / CONFIG_ROOT / "named.patch").read_text() == "From abc\nSubject: [PATCH] x\n\n"


class TestMain:
    """Tests for argument routing."""

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "patch-agent" in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 0
        assert "pr-fetch" in capsys.readouterr().out

    def test_pr_fetch_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["pr-fetch", "--help"])

        assert exc_info.value.code == 0
        assert "--branch-name=" in capsys.readouterr().out

    def test_pr_fetch_invalid_flag(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["pr-fetch", "--bogus", "42"])

        assert exc_info.value.code == 1
        assert "Invalid flag: --bogus" in capsys.readouterr().out
