"""Module for recording when each feed was last converted"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import MetadataError
from .models import DATE_FORMAT

logger = logging.getLogger(__name__)

PROJECT = 'oval-dict'
LEDGER_FILENAME = 'last_updated.json'


def feed_key(source: str) -> str:
    """Ledger key for a source, e.g. "oval-dict/redhat" """
    return f"{PROJECT}/{source}"


class LastUpdatedLedger:
    """
    JSON file mapping feed keys to the time they were last converted
    successfully. Lives at the vuln directory root, outside every source
    directory.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def for_vuln_dir(cls, vuln_dir: str) -> 'LastUpdatedLedger':
        return cls(Path(vuln_dir) / LEDGER_FILENAME)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                entries = json.load(f)
        except (OSError, ValueError) as e:
            raise MetadataError(f"Failed to read last updated dates: {e}", str(self.path)) from e
        if not isinstance(entries, dict):
            raise MetadataError("Failed to read last updated dates: not a JSON object", str(self.path))
        return entries

    def get_last_updated(self, key: str) -> Optional[str]:
        """Return the recorded timestamp for key, or None"""
        return self._load().get(key)

    def set_last_updated(self, key: str, when: Optional[datetime] = None) -> str:
        """Record now (or when) as the last successful conversion of key"""
        if when is None:
            when = datetime.now(timezone.utc)
        stamp = when.strftime(DATE_FORMAT)

        entries = self._load()
        entries[key] = stamp
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(entries, f, indent=2, sort_keys=True)
                f.write('\n')
        except OSError as e:
            raise MetadataError(f"Failed to set last updated date: {e}", str(self.path)) from e

        logger.debug("Set last updated date of %s to %s", key, stamp)
        return stamp
