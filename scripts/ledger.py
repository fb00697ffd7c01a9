#!/usr/bin/env python3
"""
Identity ledger: the seen-canon and seen-id membership sets.

``admit`` is the pipeline's only concurrency primitive. The add-if-absent on
the seen-canon set decides which of several racing collectors wins a key;
the loser gets False and skips the item.
"""

from canonical import is_usable_url
from store import SEEN_CANON_KEY, SEEN_ID_KEY, StoreBackend


def ledger_key(canonical_key: str) -> str:
    """Membership form of a canonical key (title fallbacks are case-folded)."""
    key = (canonical_key or '').strip()
    return key if is_usable_url(key) else key.lower()


class IdentityLedger:
    """First-admission-wins record of every canonical key and id seen."""

    def __init__(self, backend: StoreBackend, canon_key: str = SEEN_CANON_KEY,
                 id_key: str = SEEN_ID_KEY):
        self.backend = backend
        self.canon_key = canon_key
        self.id_key = id_key

    def admit(self, canonical_key: str, mention_id: str) -> bool:
        """
        Record a canonical key and its id.

        Returns True only when this call inserted the canonical key. The id is
        recorded only on that genuine insertion.
        """
        key = ledger_key(canonical_key)
        if not key:
            return False
        if not self.backend.sadd(self.canon_key, key):
            return False
        self.backend.sadd(self.id_key, mention_id)
        return True

    def revoke(self, canonical_key: str, mention_id: str):
        """Forget a key and id so the story can be admitted again later."""
        key = ledger_key(canonical_key)
        if key:
            self.backend.srem(self.canon_key, key)
        if mention_id:
            self.backend.srem(self.id_key, mention_id)

    def is_known(self, canonical_key: str) -> bool:
        key = ledger_key(canonical_key)
        return bool(key) and self.backend.sismember(self.canon_key, key)

    def has_id(self, mention_id: str) -> bool:
        return bool(mention_id) and self.backend.sismember(self.id_key, mention_id)

    def stats(self) -> dict:
        return {
            'seen_canon': self.backend.scard(self.canon_key),
            'seen_ids': self.backend.scard(self.id_key),
        }
