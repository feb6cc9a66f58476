"""
Tests for the command-line entry point and environment configuration.
"""

import json
from pathlib import Path

import pytest

from docstudy import main as cli
from docstudy.config import Settings
from docstudy.errors import BackendUnavailable
from docstudy.types import TaskKind

from conftest import BagOfWordsEmbeddings, StubBackend


@pytest.fixture
def offline_pipeline(monkeypatch):
    """Route the CLI's pipeline through offline embeddings and a stub backend."""
    created = {}

    def install(backend: StubBackend):
        original = cli.GenerationPipeline

        def build(settings):
            pipeline = original(
                settings,
                embeddings=BagOfWordsEmbeddings(),
                backends=lambda model_id: backend,
            )
            created["pipeline"] = pipeline
            return pipeline

        monkeypatch.setattr(cli, "GenerationPipeline", build)
        return created

    return install


def test_parse_args_subcommands():
    args = cli.parse_args(["--top-k", "5", "flashcards", "bio.pdf", "--style", "questions", "--model", "gemini"])
    assert args.command == "flashcards"
    assert args.filename == "bio.pdf"
    assert args.style == "questions"
    assert args.model == "gemini"
    assert args.top_k == 5


def test_chat_requires_message():
    with pytest.raises(SystemExit):
        cli.parse_args(["chat", "bio.pdf"])


def test_build_settings_applies_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("DOCSTUDY_TOP_K", "7")
    args = cli.parse_args(["--upload-dir", str(tmp_path), "flashcards", "x.pdf", "--count", "4"])
    settings = cli.build_settings(args)
    assert settings.upload_dir == tmp_path
    assert settings.top_k == 7
    assert settings.flashcard_count == 4


def test_cli_prints_payload(write_pdf, upload_dir, offline_pipeline, capsys):
    write_pdf("bio.pdf", "Photosynthesis converts light into chemical energy.")
    created = offline_pipeline(
        StubBackend(reply='start_json_{"concepts":[{"concept":"c","explanation":"e"}]}_end_json')
    )
    code = cli.run(cli.parse_args(["--upload-dir", str(upload_dir), "flashcards", "bio.pdf"]))

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {"concepts": [{"concept": "c", "explanation": "e"}]}
    assert created["pipeline"].settings.upload_dir == Path(upload_dir)


def test_cli_chat_failure_prints_error_only(write_pdf, upload_dir, offline_pipeline, capsys):
    write_pdf("bio.pdf", "Cells divide.")
    offline_pipeline(StubBackend(error=BackendUnavailable("gpt-4", "rate limited")))
    code = cli.run(cli.parse_args(["--upload-dir", str(upload_dir), "chat", "bio.pdf", "hello", "--model", "gpt-4"]))

    captured = capsys.readouterr()
    assert code == 1
    assert captured.out == ""
    error = json.loads(captured.err)
    assert error["stage"] == "generate"
    assert "rate limited" in error["error"]


def test_cli_extraction_failure_reports_raw_text(write_pdf, upload_dir, offline_pipeline, capsys):
    write_pdf("bio.pdf", "Cells divide.")
    offline_pipeline(StubBackend(reply="Here is a quiz without markers"))
    code = cli.run(cli.parse_args(["--upload-dir", str(upload_dir), "quiz", "bio.pdf"]))

    captured = capsys.readouterr()
    assert code == 1
    assert captured.out == ""
    error = json.loads(captured.err)
    assert error["stage"] == "extract"
    assert error["raw_text"] == "Here is a quiz without markers"


def test_main_exits_with_status(write_pdf, upload_dir, offline_pipeline, capsys):
    offline_pipeline(StubBackend(reply="hi"))
    with pytest.raises(SystemExit) as info:
        cli.main(["--upload-dir", str(upload_dir), "quiz", "missing.pdf"])
    assert info.value.code == 1
    assert json.loads(capsys.readouterr().err)["stage"] == "load"


class TestSettings:

    def test_defaults(self):
        settings = Settings()
        assert settings.top_k == 3
        assert settings.ranking_query == "useful facts"
        assert settings.creative_temperature == 0.7
        assert settings.flashcard_style == "concepts"

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DOCSTUDY_UPLOAD_DIR", str(tmp_path))
        monkeypatch.setenv("DOCSTUDY_SEGMENTATION", "window")
        monkeypatch.setenv("DOCSTUDY_TIMEOUT", "2.5")
        monkeypatch.setenv("DOCSTUDY_FLASHCARD_STYLE", "questions")
        settings = Settings.from_env(dotenv=False)
        assert settings.upload_dir == tmp_path
        assert settings.segmentation == "window"
        assert settings.timeout == 2.5
        assert settings.flashcard_style == "questions"

    def test_invalid_env_value(self, monkeypatch):
        monkeypatch.setenv("DOCSTUDY_TOP_K", "three")
        with pytest.raises(ValueError, match="DOCSTUDY_TOP_K"):
            Settings.from_env(dotenv=False)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"top_k": 0},
            {"chunk_overlap": 1000},
            {"segmentation": "page"},
            {"flashcard_style": "cards"},
            {"max_retries": 0},
        ],
    )
    def test_validation(self, kwargs):
        with pytest.raises(ValueError):
            Settings(**kwargs)

    def test_task_kind_accepts_strings(self):
        assert TaskKind("quiz").structured
        assert not TaskKind.CHAT.structured
