"""Tests for the CLI entry point."""

import subprocess
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from prwarden_cli.auth import resolve_github_token
from prwarden_cli.cli import _build_store, main
from prwarden_core.config import DEFAULT_CONFIG
from prwarden_store.memory import MemoryStore
from prwarden_store.sqlite import SQLiteStore


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    # Rich falls back to 80 columns under CliRunner; widen so table cells are not wrapped.
    from prwarden_cli.commands import history, show, stats

    for module in (history, show, stats):
        monkeypatch.setattr(module.console, "width", 200)


def _make_config(model="openai", openai_key="sk-test", anthropic_key=None, webhook_secret="s3cret", **overrides):
    return {
        **DEFAULT_CONFIG,
        "model": model,
        "openai_api_key": openai_key,
        "anthropic_api_key": anthropic_key,
        "webhook_secret": webhook_secret,
        "github_token": None,
        **overrides,
    }


def _seed(store):
    user = store.create_user("42", "octocat", "octocat@github.local")
    widgets = store.create_repository(901, "widgets", "octo/widgets", "octo", user.id)
    gadgets = store.create_repository(902, "gadgets", "octo/gadgets", "octo", user.id)
    pr1 = store.create_pull_request(5001, 7, "Add widgets", "open", widgets.id)
    pr2 = store.create_pull_request(5002, 3, "Fix gadgets", "open", gadgets.id)

    done = store.create_review(pr1.id, user.id)
    store.update_review(done.id, status="completed", summary="Mostly solid.", score=80)
    store.create_finding(done.id, "Query built from user input.", "security", "high", "db.py", 12)
    store.create_finding(done.id, "Missing docstring.", "style", "low", "db.py")
    store.create_finding(done.id, "Loop could be a comprehension.", "performance", "low", "util.py", 4)

    broken = store.create_review(pr2.id, user.id)
    store.update_review(broken.id, status="failed", summary="Analysis failed: GitHub API error: 404")
    return done.id, broken.id


def _patch_common(mocker, config=None, token="tok", store=None):
    """Patch load_config, resolve_github_token, and _build_store for most tests."""
    cfg = config or _make_config()
    mocker.patch("prwarden_core.config.load_config", return_value=cfg)
    mocker.patch("prwarden_cli.auth.resolve_github_token", return_value=token)
    store = store if store is not None else MemoryStore()
    mocker.patch("prwarden_cli.cli._build_store", return_value=store)
    return cfg, store


class TestMain:
    def test_token_stored_in_config(self, mocker):
        cfg, _ = _patch_common(mocker, token="ghp_abc")
        result = CliRunner().invoke(main, ["history"])
        assert result.exit_code == 0
        assert cfg["github_token"] == "ghp_abc"

    def test_config_path_passed_through(self, mocker):
        cfg, _ = _patch_common(mocker)
        load = mocker.patch("prwarden_core.config.load_config", return_value=cfg)
        CliRunner().invoke(main, ["--config", "custom.yml", "history"])
        load.assert_called_once_with("custom.yml")

    def test_build_store_uses_store_path(self, tmp_path):
        store = _build_store({"store_path": str(tmp_path / "reviews.db")})
        try:
            assert isinstance(store, SQLiteStore)
            assert (tmp_path / "reviews.db").exists()
        finally:
            store.close()


class TestServe:
    def _invoke(self, mocker, config, args=()):
        _patch_common(mocker, config=config)
        build_app = mocker.patch("prwarden_server.app.build_app")
        run = mocker.patch("uvicorn.run")
        result = CliRunner().invoke(main, ["serve", *args])
        return result, build_app, run

    def test_missing_openai_key(self, mocker):
        result, build_app, _ = self._invoke(mocker, _make_config(openai_key=None))
        assert result.exit_code != 0
        assert "OPENAI_API_KEY" in result.output
        build_app.assert_not_called()

    def test_missing_anthropic_key(self, mocker):
        result, _, _ = self._invoke(mocker, _make_config(model="anthropic"))
        assert result.exit_code != 0
        assert "ANTHROPIC_API_KEY" in result.output

    def test_model_flag_overrides_config(self, mocker):
        result, _, _ = self._invoke(mocker, _make_config(), ["--model", "anthropic"])
        assert "ANTHROPIC_API_KEY" in result.output

    def test_missing_webhook_secret(self, mocker):
        result, build_app, _ = self._invoke(mocker, _make_config(webhook_secret=""))
        assert result.exit_code != 0
        assert "GITHUB_WEBHOOK_SECRET" in result.output
        build_app.assert_not_called()

    def test_unsigned_mode_needs_no_secret(self, mocker):
        result, build_app, _ = self._invoke(mocker, _make_config(webhook_secret="", require_signature=False))
        assert result.exit_code == 0
        build_app.assert_called_once()

    def test_runs_uvicorn(self, mocker):
        result, build_app, run = self._invoke(mocker, _make_config(), ["--port", "8080", "--sync"])
        assert result.exit_code == 0, result.output
        config = build_app.call_args.args[0]
        assert config["async_processing"] is False
        run.assert_called_once()
        assert run.call_args.args[0] is build_app.return_value
        assert run.call_args.kwargs["port"] == 8080
        assert run.call_args.kwargs["host"] == "0.0.0.0"
        assert "/api/v1/webhooks/github" in result.output


class TestHistory:
    def test_empty(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["history"])
        assert result.exit_code == 0
        assert "No reviews found" in result.output

    def test_lists_reviews(self, mocker):
        _, store = _patch_common(mocker)
        _seed(store)
        result = CliRunner().invoke(main, ["history"])
        assert result.exit_code == 0
        assert "octo/widgets" in result.output
        assert "octo/gadgets" in result.output
        assert "completed" in result.output
        assert "failed" in result.output

    def test_repo_filter(self, mocker):
        _, store = _patch_common(mocker)
        _seed(store)
        result = CliRunner().invoke(main, ["history", "--repo", "octo/gadgets"])
        assert result.exit_code == 0
        assert "#3" in result.output
        assert "#7" not in result.output

    def test_limit(self, mocker):
        _, store = _patch_common(mocker)
        _seed(store)
        result = CliRunner().invoke(main, ["history", "--limit", "1"])
        assert "#3" in result.output
        assert "#7" not in result.output

    def test_store_closed_after_command(self, mocker):
        store = MagicMock(spec=MemoryStore)
        store.list_reviews.return_value = []
        _patch_common(mocker, store=store)
        CliRunner().invoke(main, ["history"])
        store.close.assert_called_once()


class TestShow:
    def test_prints_review_and_findings(self, mocker):
        _, store = _patch_common(mocker)
        done, _ = _seed(store)
        result = CliRunner().invoke(main, ["show", str(done)])
        assert result.exit_code == 0
        assert "octo/widgets#7" in result.output
        assert "Mostly solid." in result.output
        assert "HIGH" in result.output
        assert "db.py:12" in result.output
        assert "Query built from user input." in result.output

    def test_failed_review_shows_reason(self, mocker):
        _, store = _patch_common(mocker)
        _, broken = _seed(store)
        result = CliRunner().invoke(main, ["show", str(broken)])
        assert result.exit_code == 0
        assert "Analysis failed: GitHub API error: 404" in result.output
        assert "No findings." in result.output

    def test_unknown_review(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["show", "99"])
        assert result.exit_code != 0
        assert "Review 99 not found" in result.output


class TestStats:
    def test_empty(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["stats"])
        assert result.exit_code == 0
        assert "No reviews found" in result.output

    def test_aggregates(self, mocker):
        _, store = _patch_common(mocker)
        _seed(store)
        result = CliRunner().invoke(main, ["stats"])
        assert result.exit_code == 0
        assert "Total reviews:  2" in result.output
        assert "completed: 1" in result.output
        assert "failed: 1" in result.output
        assert "Total findings: 3" in result.output
        assert "Avg score:      80.0" in result.output
        assert "security" in result.output
        assert "db.py" in result.output

    def test_repo_filter(self, mocker):
        _, store = _patch_common(mocker)
        _seed(store)
        result = CliRunner().invoke(main, ["stats", "--repo", "octo/gadgets"])
        assert "Total reviews:  1" in result.output
        assert "Total findings: 0" in result.output
        assert "Avg score" not in result.output


class TestResolveGithubToken:
    def test_env_var_wins(self, monkeypatch, mocker):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        run = mocker.patch("subprocess.run")
        assert resolve_github_token() == "env-token"
        run.assert_not_called()

    def test_falls_back_to_gh_cli(self, monkeypatch, mocker):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch("subprocess.run", return_value=MagicMock(returncode=0, stdout="gho_cli\n"))
        assert resolve_github_token() == "gho_cli"

    @pytest.mark.parametrize(
        "side_effect",
        [FileNotFoundError("gh"), subprocess.TimeoutExpired(cmd="gh", timeout=5)],
    )
    def test_gh_unavailable(self, monkeypatch, mocker, side_effect):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch("subprocess.run", side_effect=side_effect)
        assert resolve_github_token() is None

    def test_gh_not_logged_in(self, monkeypatch, mocker):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch("subprocess.run", return_value=MagicMock(returncode=1, stdout=""))
        assert resolve_github_token() is None
