"""CLI behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from labdocs import cli
from labdocs.cli import _build_parser, main
from labdocs.logging import configure_logging
from tests._fixtures.fake_source import DEFAULT_REPOSITORY, FakeSource


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "list"])
    assert args.verbose is True
    assert args.command == "list"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["list", "--verbose"])
    assert args.verbose is True
    assert args.command == "list"


def test_cli_accepts_mode_and_dry_run() -> None:
    parser = _build_parser()
    args = parser.parse_args(["publish", "--mode", "triggered", "--dry-run"])
    assert args.command == "publish"
    assert args.mode == "triggered"
    assert args.dry_run is True


def test_cli_config_option_before_or_after_command() -> None:
    parser = _build_parser()
    assert parser.parse_args(["--config", "site", "list"]).config == Path("site")
    assert parser.parse_args(["list", "--config", "docs"]).config == Path("docs")
    assert parser.parse_args(["list"]).config == Path(".")


def test_cli_rejects_unknown_mode() -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["list", "--mode", "everything"])


# ----------------------------------------------------------------------
# Commands


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, source: FakeSource) -> Path:
    (tmp_path / ".labdocs.yml").write_text(
        f"""
source:
  repository: {DEFAULT_REPOSITORY}
  branch: main
  cwd: pages
  pattern: "**/*.md"
output:
  cwd: public
  message: Publish docs
""",
        encoding="utf-8",
    )
    for name in ("LABDOCS_GITLAB_HOST", "GITLAB_HOST", "CI_SERVER_URL", "LABDOCS_GITLAB_TOKEN", "GITLAB_TOKEN", "CI_JOB_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(cli, "build_source", lambda config: source)
    return tmp_path


def test_list_prints_discovered_paths(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--config", str(project), "list"])

    assert sorted(capsys.readouterr().out.split()) == ["guide/setup.md", "index.md"]


def test_list_changed_advances_checkpoint(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--config", str(project), "list", "--mode", "changed"])
    capsys.readouterr()

    main(["--config", str(project), "checkpoint", "show"])

    assert capsys.readouterr().out.strip() == "c1"


def test_list_dry_run_keeps_checkpoint(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--config", str(project), "list", "--mode", "changed", "--dry-run"])
    listed = capsys.readouterr().out.split()

    main(["--config", str(project), "checkpoint", "show"])

    assert sorted(listed) == ["guide/setup.md", "index.md"]
    assert capsys.readouterr().out.strip() == f"No checkpoint recorded for {DEFAULT_REPOSITORY}@main"


def test_checkpoint_reset(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--config", str(project), "list", "--mode", "changed"])
    main(["--config", str(project), "checkpoint", "reset"])
    main(["--config", str(project), "checkpoint", "reset"])

    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[-2] == f"Checkpoint {DEFAULT_REPOSITORY}@main reset"
    assert lines[-1] == f"No checkpoint recorded for {DEFAULT_REPOSITORY}@main"


def test_publish_commits_rendered_documents(
    project: Path, source: FakeSource, capsys: pytest.CaptureFixture[str]
) -> None:
    main(["--config", str(project), "publish"])

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "2 documents written"
    assert sorted(out[1:]) == ["public/guide/setup.html", "public/index.html"]
    assert len(source.commits) == 1
    commit = source.commits[0]
    assert commit["message"] == "Publish docs"
    assert sorted(action.path for action in commit["actions"]) == [
        "public/guide/setup.html",
        "public/index.html",
    ]


def test_publish_dry_run_does_not_commit(
    project: Path, source: FakeSource, capsys: pytest.CaptureFixture[str]
) -> None:
    main(["--config", str(project), "publish", "--dry-run"])

    assert capsys.readouterr().out.splitlines()[0] == "2 documents written (dry-run)"
    assert source.commits == []


def test_missing_repository_exits_with_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(cli, "build_source", lambda config: FakeSource())

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(tmp_path), "list"])

    assert excinfo.value.code == 1
    assert "source.repository is required" in capsys.readouterr().err


def test_invalid_config_exits_with_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / ".labdocs.yml").write_text("- not a mapping\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(tmp_path), "checkpoint", "show"])

    assert excinfo.value.code == 1


def test_failed_publish_keeps_checkpoint(
    project: Path, source: FakeSource, capsys: pytest.CaptureFixture[str]
) -> None:
    source.fail_commit = True

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(project), "publish", "--mode", "changed"])

    assert excinfo.value.code == 1
    assert "labdocs publish failed: 500 Internal Server Error" in capsys.readouterr().err

    main(["--config", str(project), "checkpoint", "show"])
    assert capsys.readouterr().out.strip() == f"No checkpoint recorded for {DEFAULT_REPOSITORY}@main"

    source.fail_commit = False
    main(["--config", str(project), "publish", "--mode", "changed"])
    assert capsys.readouterr().out.splitlines()[0] == "2 documents written"
    main(["--config", str(project), "checkpoint", "show"])
    assert capsys.readouterr().out.strip() == "c1"


def test_publish_dry_run_keeps_checkpoint(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--config", str(project), "publish", "--mode", "changed", "--dry-run"])
    main(["--config", str(project), "checkpoint", "show"])

    assert capsys.readouterr().out.splitlines()[-1] == f"No checkpoint recorded for {DEFAULT_REPOSITORY}@main"


def test_cli_accepts_log_file_before_or_after_command() -> None:
    parser = _build_parser()
    assert parser.parse_args(["--log-file", "run.log", "list"]).log_file == Path("run.log")
    assert parser.parse_args(["publish", "--log-file", "out/run.log"]).log_file == Path("out/run.log")
    assert parser.parse_args(["list"]).log_file is None


def test_log_file_receives_debug_records(project: Path, tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "labdocs.log"

    main(["--config", str(project), "--log-file", str(log_file), "publish", "--mode", "changed"])

    text = log_file.read_text(encoding="utf-8")
    assert "INFO labdocs.writer: Committed 2 files" in text
    assert "DEBUG labdocs.discovery: No checkpoint for" in text
    configure_logging()
