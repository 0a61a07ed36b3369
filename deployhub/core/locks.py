import asyncio
from collections import defaultdict
from typing import Dict, Hashable


class KeyedLocks:
    """Registre de verrous asyncio, un par clé (id de déploiement).

    Sérialise les réconciliations concurrentes d'un même enregistrement
    (rafraîchissement utilisateur contre balayage périodique).
    """

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)

    def get(self, key: Hashable) -> asyncio.Lock:
        return self._locks[key]

    def discard(self, key: Hashable) -> None:
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
