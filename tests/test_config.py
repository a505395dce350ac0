"""Tests for labdocs.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from labdocs.config import (
    ConfigError,
    LabdocsConfig,
    build_checkpoint,
    build_discovery_options,
    build_source,
    build_writer_options,
    load_config,
)
from labdocs.errors import LabdocsError


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path, environ={})

    assert isinstance(config, LabdocsConfig)
    assert config.root == tmp_path.resolve()
    assert config.gitlab.host is None
    assert config.gitlab.token is None
    assert config.gitlab.token_type == "private"
    assert config.source.repository is None
    assert config.source.branch == "master"
    assert config.source.pattern == ["**"]
    assert config.source.mode == "glob"
    assert config.checkpoint.path == tmp_path.resolve() / ".labdocs/checkpoint.json"
    assert config.output.cwd == "dist"
    assert config.output.templates_dir is None


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".labdocs.yml"
    config_file.write_text(
        """
gitlab:
  host: "https://gitlab.example.com"
  token: "file-token"
  token_type: oauth
  timeout: 5
  max_retries: "3"
  verify: "no"
source:
  repository: group/docs
  branch: main
  cwd: pages
  pattern:
    - "**/*.md"
    - "**/*.txt"
  ignore: drafts/**
  triggers:
    "templates/*": "**/*.md"
    "*1.txt": ["folder/*"]
  triggers_cwd: "."
  mode: triggered
checkpoint:
  path: state/checkpoint.json
  key: docs-main
output:
  repository: group/site
  branch: pages
  cwd: public
  author:
    name: Docs Bot
    email: bot@example.com
  message: "Publish docs"
  templates_dir: templates
""",
        encoding="utf-8",
    )

    config = load_config(config_file, environ={})

    root = tmp_path.resolve()
    assert config.gitlab.host == "https://gitlab.example.com"
    assert config.gitlab.token == "file-token"
    assert config.gitlab.token_type == "oauth"
    assert config.gitlab.timeout == 5.0
    assert config.gitlab.max_retries == 3
    assert config.gitlab.verify is False
    assert config.source.repository == "group/docs"
    assert config.source.branch == "main"
    assert config.source.cwd == "pages"
    assert config.source.pattern == ["**/*.md", "**/*.txt"]
    assert config.source.ignore == ["drafts/**"]
    assert config.source.triggers == {"templates/*": ["**/*.md"], "*1.txt": ["folder/*"]}
    assert config.source.triggers_cwd == "."
    assert config.source.mode == "triggered"
    assert config.checkpoint.path == root / "state/checkpoint.json"
    assert config.checkpoint.key == "docs-main"
    assert config.output.repository == "group/site"
    assert config.output.branch == "pages"
    assert config.output.cwd == "public"
    assert config.output.author_name == "Docs Bot"
    assert config.output.author_email == "bot@example.com"
    assert config.output.message == "Publish docs"
    assert config.output.templates_dir == root / "templates"


def test_environment_overrides_connection_settings(tmp_path: Path) -> None:
    (tmp_path / ".labdocs.yml").write_text("gitlab:\n  host: https://file.example.com\n", encoding="utf-8")

    config = load_config(
        tmp_path,
        environ={"CI_SERVER_URL": "https://ci.example.com", "CI_JOB_TOKEN": "job-token"},
    )

    assert config.gitlab.host == "https://ci.example.com"
    assert config.gitlab.token == "job-token"
    assert config.gitlab.token_type == "job"


def test_labdocs_environment_takes_precedence(tmp_path: Path) -> None:
    config = load_config(
        tmp_path,
        environ={
            "LABDOCS_GITLAB_HOST": "https://labdocs.example.com",
            "GITLAB_HOST": "https://other.example.com",
            "LABDOCS_GITLAB_TOKEN": "personal",
            "CI_JOB_TOKEN": "job-token",
        },
    )

    assert config.gitlab.host == "https://labdocs.example.com"
    assert config.gitlab.token == "personal"
    assert config.gitlab.token_type == "private"


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "source: [unclosed\n",
        "source:\n  mode: everything\n",
        "gitlab:\n  token_type: basic\n",
    ],
)
def test_load_config_rejects_invalid_files(tmp_path: Path, content: str) -> None:
    (tmp_path / ".labdocs.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path, environ={})


def test_builders_translate_config(tmp_path: Path) -> None:
    (tmp_path / ".labdocs.yml").write_text(
        "gitlab:\n  host: https://gitlab.example.com\n  max_retries: 2\n"
        "source:\n  repository: group/docs\n  branch: main\n  ignore: drafts/**\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path, environ={})

    source = build_source(config)
    assert source.api_url == "https://gitlab.example.com/api/v4"
    assert source.max_retries == 2

    checkpoint = build_checkpoint(config)
    assert checkpoint.key == "group/docs@main"
    assert checkpoint.path == config.checkpoint.path

    options = build_discovery_options(config, checkpoint)
    assert options.repository == "group/docs"
    assert options.branch == "main"
    assert options.pattern == ["**"]
    assert options.ignore == ["drafts/**"]
    assert options.storage is checkpoint

    writer_options = build_writer_options(config, renderer=str)
    assert writer_options.repository == "group/docs"
    assert writer_options.cwd == "dist"
    assert writer_options.host == "https://gitlab.example.com"


def test_build_discovery_options_requires_repository(tmp_path: Path) -> None:
    config = load_config(tmp_path, environ={})

    with pytest.raises(ConfigError):
        build_discovery_options(config)
    with pytest.raises(ConfigError):
        build_writer_options(config, renderer=str)


def test_config_error_is_a_labdocs_error(tmp_path: Path) -> None:
    (tmp_path / ".labdocs.yml").write_text("source: [unclosed\n", encoding="utf-8")

    with pytest.raises(LabdocsError):
        load_config(tmp_path)
    assert issubclass(ConfigError, LabdocsError)
