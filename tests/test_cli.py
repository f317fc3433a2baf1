"""Tests for the command line and interactive prompts.

Covers:
- argument parsing
- main() exit codes (configuration errors, bad settings, Ctrl-C, run outcome)
- collect_answers with --yes defaults and with scripted prompt answers
"""

from __future__ import annotations

import pytest

from create_server import cli, prompts
from create_server.config import Database, Framework
from create_server.orchestrator import FILE_PHASE, GenerationResult, Orchestrator

pytestmark = pytest.mark.unit


@pytest.fixture
def clean_env(monkeypatch):
    for var in (
        "CREATE_SERVER_PORT",
        "CREATE_SERVER_CORS_ORIGIN",
        "CREATE_SERVER_VENV_DIR",
        "CREATE_SERVER_PYTHON",
        "CREATE_SERVER_SKIP_INSTALL",
        "CREATE_SERVER_DEBUG",
        "DEBUG",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def recorded_runs(monkeypatch):
    """Replace Orchestrator.run with a stub recording the configuration."""
    runs = []

    async def fake_run(self):
        runs.append(self.config)
        return GenerationResult(config=self.config)

    monkeypatch.setattr(Orchestrator, "run", fake_run)
    return runs


@pytest.fixture
def scripted_prompts(monkeypatch):
    """Answer rich prompts from a question-substring -> answer mapping."""

    def _script(answers):
        asked = []

        def lookup(question, **kwargs):
            asked.append(question)
            for fragment, answer in answers.items():
                if fragment in question:
                    return answer.pop(0) if isinstance(answer, list) else answer
            return kwargs.get("default")

        monkeypatch.setattr(prompts.Prompt, "ask", lookup)
        monkeypatch.setattr(prompts.Confirm, "ask", lookup)
        return asked

    return _script


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class TestParser:
    def test_positionals_optional(self):
        args = cli.build_parser().parse_args([])
        assert args.server_name is None
        assert args.target_path is None
        assert args.yes is False

    def test_all_options(self):
        args = cli.build_parser().parse_args(
            [
                "shop-api", "../backend",
                "--framework", "nestjs",
                "--database", "postgresql",
                "--orm", "typeorm",
                "--package-manager", "pnpm",
                "--no-env", "--git", "--remote", "git@example.com:me/shop.git",
                "-y",
            ]
        )
        assert args.server_name == "shop-api"
        assert args.target_path == "../backend"
        assert args.framework == "nestjs"
        assert args.env is False
        assert args.git is True
        assert args.typescript is None
        assert args.yes is True

    def test_unknown_framework_rejected(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--framework", "flask"])


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------


class TestMain:
    def test_yes_runs_with_defaults(self, tmp_path, clean_env, recorded_runs):
        assert cli.main(["api", str(tmp_path), "--yes"]) == 0
        (config,) = recorded_runs
        assert config.server_name == "api"
        assert config.target_directory == tmp_path / "api"
        assert config.framework is Framework.EXPRESS
        assert config.database is None

    def test_flags_reach_configuration(self, tmp_path, clean_env, recorded_runs):
        code = cli.main(
            [
                "shop-api", str(tmp_path), "--yes",
                "--framework", "django", "--app-name", "store", "--database", "mysql",
            ]
        )
        assert code == 0
        (config,) = recorded_runs
        assert config.django_app_name == "store"
        assert config.database is Database.MYSQL

    def test_invalid_name_exits_1(self, tmp_path, clean_env, recorded_runs):
        assert cli.main(["My Server", str(tmp_path), "--yes"]) == 1
        assert recorded_runs == []

    def test_invalid_combination_exits_1(self, tmp_path, clean_env, recorded_runs):
        code = cli.main(
            ["api", str(tmp_path), "--yes", "--database", "postgresql", "--orm", "typeorm"]
        )
        assert code == 1
        assert recorded_runs == []

    def test_bad_setting_exits_1(self, tmp_path, clean_env, monkeypatch, recorded_runs):
        monkeypatch.setenv("CREATE_SERVER_PORT", "not-a-port")
        assert cli.main(["api", str(tmp_path), "--yes"]) == 1

    def test_ctrl_c_exits_130(self, tmp_path, clean_env, monkeypatch):
        def interrupted(**kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr(cli, "collect_answers", interrupted)
        assert cli.main(["api", str(tmp_path)]) == 130

    def test_failed_run_exits_1(self, tmp_path, clean_env, monkeypatch):
        async def failing_run(self):
            result = GenerationResult(config=self.config)
            result.phases[FILE_PHASE] = False
            result.error = "boom"
            return result

        monkeypatch.setattr(Orchestrator, "run", failing_run)
        assert cli.main(["api", str(tmp_path), "--yes"]) == 1


# ---------------------------------------------------------------------------
# collect_answers
# ---------------------------------------------------------------------------


class TestCollectAnswers:
    def test_defaults_without_prompting(self, tmp_path, scripted_prompts):
        asked = scripted_prompts({})
        answers = prompts.collect_answers(target_path=tmp_path, assume_defaults=True)
        assert asked == []
        assert answers["server_name"] == "my-server"
        assert answers["target_directory"] == tmp_path / "my-server"
        assert answers["framework"] is Framework.EXPRESS
        assert answers["use_typescript"] is False
        assert answers["database"] is None
        assert answers["orm"] is None
        assert answers["package_manager"] == "npm"
        assert answers["generate_env_file"] is True

    def test_first_allowed_orm_is_default(self, tmp_path, scripted_prompts):
        scripted_prompts({})
        answers = prompts.collect_answers(
            target_path=tmp_path, framework="nestjs", database="mongodb", assume_defaults=True
        )
        assert answers["orm"] == "native"

    def test_django_skips_node_questions(self, tmp_path, scripted_prompts):
        asked = scripted_prompts({"framework": "django"})
        answers = prompts.collect_answers(server_name="shop", target_path=tmp_path)
        assert answers["django_app_name"] == "api"
        assert "package_manager" not in answers
        assert not any("TypeScript" in q for q in asked)
        assert not any("package manager" in q for q in asked)

    def test_no_orm_question_without_database(self, tmp_path, scripted_prompts):
        asked = scripted_prompts({})
        prompts.collect_answers(server_name="api", target_path=tmp_path)
        assert not any("talk to the database" in q for q in asked)

    def test_invalid_name_asked_again(self, tmp_path, scripted_prompts):
        asked = scripted_prompts({"server name": ["Bad Name", "good-name"]})
        answers = prompts.collect_answers(target_path=tmp_path)
        assert answers["server_name"] == "good-name"
        assert sum("server name" in q for q in asked) == 2

    def test_django_app_name_must_be_identifier(self, tmp_path, scripted_prompts):
        asked = scripted_prompts(
            {"framework": "django", "Django app name": ["my-app", "my_app"]}
        )
        answers = prompts.collect_answers(server_name="shop", target_path=tmp_path)
        assert answers["django_app_name"] == "my_app"
        assert sum("Django app name" in q for q in asked) == 2

    def test_bad_django_app_name_flag_exits_1(self, tmp_path, clean_env, recorded_runs):
        code = cli.main(
            ["shop", str(tmp_path), "--yes", "--framework", "django", "--app-name", "my-app"]
        )
        assert code == 1
        assert recorded_runs == []
        assert not (tmp_path / "shop").exists()

    def test_git_and_remote(self, tmp_path, scripted_prompts):
        if any((p / ".git").exists() for p in tmp_path.parents):
            pytest.skip("temporary directory lives inside a git checkout")
        scripted_prompts({"Git repository": True, "Remote": "git@example.com:me/api.git"})
        answers = prompts.collect_answers(server_name="api", target_path=tmp_path)
        assert answers["init_git"] is True
        assert answers["remote_url"] == "git@example.com:me/api.git"

    def test_existing_repository_skips_git_questions(self, tmp_path, scripted_prompts):
        (tmp_path / ".git").mkdir()
        asked = scripted_prompts({})
        answers = prompts.collect_answers(server_name="api", target_path=tmp_path, git=True)
        assert answers["git_already_exists"] is True
        assert answers["init_git"] is False
        assert not any("Git" in q for q in asked)
