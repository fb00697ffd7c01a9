"""Tests for the identity ledger."""

import threading

import pytest
from ledger import IdentityLedger, ledger_key
from store import MemoryBackend, SQLiteBackend


class TestAdmit:
    """Tests for first-admission-wins behavior."""

    def test_first_admit_wins(self, ledger):
        """Only the first admission of a key returns True."""
        assert ledger.admit("https://news.example/a", "m_1") is True
        assert ledger.admit("https://news.example/a", "m_1") is False

    def test_id_recorded_only_on_insertion(self, ledger):
        """A losing admission does not record its id."""
        ledger.admit("https://news.example/a", "m_1")
        ledger.admit("https://news.example/a", "m_other")
        assert ledger.has_id("m_1")
        assert not ledger.has_id("m_other")

    def test_title_keys_case_folded(self, ledger):
        """Title fallbacks differing only in case collide."""
        assert ledger.admit("Weekly AI Digest", "n_1") is True
        assert ledger.admit("weekly ai digest", "n_1") is False

    def test_url_keys_case_sensitive(self, ledger):
        """URL paths keep their case."""
        assert ledger.admit("https://a.com/X", "m_1") is True
        assert ledger.admit("https://a.com/x", "m_2") is True

    def test_empty_key_never_admitted(self, ledger):
        """An empty canonical key is rejected."""
        assert ledger.admit("", "m_0") is False
        assert ledger.stats() == {"seen_canon": 0, "seen_ids": 0}

    def test_concurrent_admission_single_winner(self):
        """Racing threads admitting one key produce exactly one winner."""
        ledger = IdentityLedger(MemoryBackend())
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(ledger.admit("https://news.example/a", "m_1"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert results.count(False) == 7

    def test_sqlite_ledger(self, tmp_path):
        """SQLite-backed ledger honors add-if-absent across instances."""
        db = tmp_path / "ledger.db"
        first = IdentityLedger(SQLiteBackend(db))
        second = IdentityLedger(SQLiteBackend(db))
        assert first.admit("https://news.example/a", "m_1") is True
        assert second.admit("https://news.example/a", "m_1") is False


class TestRevoke:
    """Tests for revoke and re-admission."""

    def test_revoke_allows_readmission(self, ledger):
        """A revoked key can be admitted again."""
        ledger.admit("https://news.example/a", "m_1")
        ledger.revoke("https://news.example/a", "m_1")
        assert not ledger.is_known("https://news.example/a")
        assert not ledger.has_id("m_1")
        assert ledger.admit("https://news.example/a", "m_1") is True

    def test_revoke_title_key_any_case(self, ledger):
        """Revoking a title key matches the case-folded entry."""
        ledger.admit("Weekly AI Digest", "n_1")
        ledger.revoke("WEEKLY AI DIGEST", "n_1")
        assert not ledger.is_known("Weekly AI Digest")

    def test_revoke_unknown_is_noop(self, ledger):
        """Revoking something never admitted does nothing."""
        ledger.revoke("https://nowhere.example", "m_9")
        assert ledger.stats() == {"seen_canon": 0, "seen_ids": 0}


class TestLedgerKey:
    """Tests for ledger_key."""

    @pytest.mark.parametrize("key,expected", [
        ("https://a.com/X", "https://a.com/X"),
        ("  Some Title ", "some title"),
        ("", ""),
    ])
    def test_ledger_key(self, key, expected):
        """URLs kept as-is, titles trimmed and lowercased."""
        assert ledger_key(key) == expected
