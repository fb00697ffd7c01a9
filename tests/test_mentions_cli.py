"""Tests for the mentions command line."""

import json

import pytest
import mentions
from config import Config


@pytest.fixture
def memory_config(tmp_path, monkeypatch):
    config = Config.load(tmp_path / "nope.yaml", environ={"MENTIONS_STORE": "memory"})
    monkeypatch.setattr(mentions, "get_config", lambda: config)
    return config


def _run(capsys, *argv):
    code = mentions.main(list(argv))
    return code, json.loads(capsys.readouterr().out)


class TestCommands:
    """Tests for individual subcommands."""

    def test_stats(self, memory_config, capsys):
        """stats reports store and ledger sizes."""
        code, out = _run(capsys, "stats")
        assert code == 0
        assert out == {"ok": True, "backend": "memory", "mentions": 0,
                       "seen_canon": 0, "seen_ids": 0}

    def test_collect_without_feeds(self, memory_config, capsys):
        """collect with nothing configured is a no-op."""
        code, out = _run(capsys, "collect")
        assert code == 0
        assert out["feeds"] == 0

    def test_dedupe_preview(self, memory_config, capsys):
        """dedupe defaults to preview mode."""
        code, out = _run(capsys, "dedupe")
        assert code == 0
        assert out["mode"] == "preview"
        assert out["removed"] == 0

    def test_remove_unknown(self, memory_config, capsys):
        """Removing an unknown id exits non-zero."""
        code, out = _run(capsys, "remove", "m_missing")
        assert code == 1
        assert out["error"] == "not found"

    def test_trim(self, memory_config, capsys):
        """trim reports the retention window used."""
        code, out = _run(capsys, "trim")
        assert code == 0
        assert out["removed"] == 0
        assert out["window_seconds"] == 14 * 24 * 3600


class TestPipelineWiring:
    """Tests for build_pipeline()."""

    def test_end_to_end(self, memory_config, make_candidate, now):
        """A wired pipeline stores, lists and removes a mention."""
        pipeline = mentions.build_pipeline(memory_config)
        result = pipeline.admit_candidate(make_candidate(), now=now)
        assert result.stored
        assert pipeline.store.count() == 1
        assert pipeline.remove_mention(result.mention_id)["ok"] is True
        assert pipeline.store.count() == 0

    def test_store_unavailable(self, tmp_path, monkeypatch, capsys):
        """An unusable store prints an error and exits non-zero."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        config = Config.load(tmp_path / "nope.yaml", environ={
            "MENTIONS_STORE": "sqlite", "MENTIONS_DB_PATH": str(blocker / "mentions.db")})
        monkeypatch.setattr(mentions, "get_config", lambda: config)
        code, out = _run(capsys, "stats")
        assert code == 1
        assert out["ok"] is False
