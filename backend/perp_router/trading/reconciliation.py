"""
Reconciliation journal

Disk-backed record of trades that were executed on a venue but could not be
written to the trade store. Each entry is one JSON file named after the
opening tx hash, so an operator (or a repair job) can replay it later.
"""

import asyncio
import json
import logging
import os
import re
from datetime import datetime
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

_SAFE_NAME = re.compile(r"[^A-Za-z0-9_-]")


class ReconciliationJournal:
    """
    Append-only journal of executed-but-unrecorded trades.

    Never raises: a journal failure is logged and reported via the return
    value so it cannot mask the original persistence error.
    """

    def __init__(self, directory: str):
        self._dir = directory
        self._lock = asyncio.Lock()

    def _path(self, tx_hash: str) -> str:
        return os.path.join(self._dir, f"{_SAFE_NAME.sub('_', tx_hash)}.json")

    async def record(self, entry: Dict[str, Any]) -> bool:
        """
        Persist an entry (must include "tx_hash").

        Returns:
            True if the entry was written
        """
        tx_hash = str(entry.get("tx_hash", ""))
        async with self._lock:
            try:
                os.makedirs(self._dir, exist_ok=True)
                data = dict(entry)
                data["_recorded_at"] = datetime.utcnow().isoformat()
                with open(self._path(tx_hash), "w") as f:
                    json.dump(data, f, default=str)
                logger.critical(
                    f"Venue call succeeded but not recorded; journaled for reconciliation: "
                    f"tx_hash={tx_hash}, action={entry.get('action', 'open')}, venue={entry.get('venue')}"
                )
                return True
            except Exception as e:
                logger.critical(
                    f"Failed to journal unrecorded trade tx_hash={tx_hash}: {e}. Entry: {entry}"
                )
                return False

    async def pending(self) -> List[Dict[str, Any]]:
        """All unresolved entries, oldest first"""
        async with self._lock:
            if not os.path.isdir(self._dir):
                return []
            entries = []
            for name in sorted(os.listdir(self._dir)):
                if not name.endswith(".json"):
                    continue
                try:
                    with open(os.path.join(self._dir, name), "r") as f:
                        entries.append(json.load(f))
                except Exception as e:
                    logger.warning(f"Unreadable reconciliation entry {name}: {e}")
            entries.sort(key=lambda e: e.get("_recorded_at", ""))
            return entries

    async def resolve(self, tx_hash: str) -> bool:
        """
        Drop an entry once the trade has been recorded.

        Returns:
            True if an entry was removed
        """
        async with self._lock:
            path = self._path(tx_hash)
            try:
                if os.path.exists(path):
                    os.remove(path)
                    logger.info(f"Reconciliation entry resolved: tx_hash={tx_hash}")
                    return True
            except Exception as e:
                logger.warning(f"Failed to remove reconciliation entry {tx_hash}: {e}")
            return False
