"""In-memory rune cache mirrored to a JSON file."""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple, Optional

from pydantic import ValidationError
from rich.console import Console

from rune_service.errors import PersistenceError
from rune_service.models import RecordSet, Rune

console = Console()

FROM_DISK_SUFFIX = " (from-disk)"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class StoreSnapshot(NamedTuple):
    """Everything a reader sees, swapped as one reference."""

    records: RecordSet
    loaded_at: Optional[str]
    source: Optional[str]  # "scrape", "remote", "disk"


EMPTY_SNAPSHOT = StoreSnapshot(records=(), loaded_at=None, source=None)


def dump_records(records: RecordSet) -> str:
    return json.dumps(
        [rune.to_json_record() for rune in records],
        ensure_ascii=False,
        indent=2,
    )


def parse_records(data) -> RecordSet:
    """Validate a decoded JSON array into a record set, skipping nameless rows."""
    if not isinstance(data, list):
        raise ValueError("JSON root is not an array")
    runes = []
    for item in data:
        if not isinstance(item, dict):
            continue
        try:
            runes.append(Rune.from_json_record(item))
        except ValidationError:
            continue
    return tuple(runes)


class RuneStore:
    """Owns the current record set and its disk mirror.

    Readers call current()/snapshot() and always get a fully committed set;
    replace() swaps the whole snapshot in one assignment.
    """

    def __init__(self, cache_file: Path):
        self.cache_file = Path(cache_file)
        self._snapshot: StoreSnapshot = EMPTY_SNAPSHOT
        self.replacements = 0

    def current(self) -> RecordSet:
        return self._snapshot.records

    def snapshot(self) -> StoreSnapshot:
        return self._snapshot

    @property
    def last_loaded_at(self) -> Optional[str]:
        return self._snapshot.loaded_at

    def __len__(self) -> int:
        return len(self._snapshot.records)

    def replace(self, records: RecordSet, source: str = "scrape") -> None:
        """Swap in a new record set and overwrite the disk mirror.

        The in-memory swap is kept even if the write fails; the failure
        is raised as PersistenceError so the caller can report it.
        """
        records = tuple(records)
        self._snapshot = StoreSnapshot(records=records, loaded_at=utc_now_iso(), source=source)
        self.replacements += 1
        self._save(records)

    def restore(self) -> Optional[RecordSet]:
        """Load the disk mirror into memory. None if there is no usable mirror."""
        if not self.cache_file.exists():
            return None
        try:
            with open(self.cache_file, encoding="utf-8") as f:
                records = parse_records(json.load(f))
        except (OSError, ValueError) as e:
            console.print(f"[yellow]Failed to read disk cache {self.cache_file}: {e}[/yellow]")
            return None

        if not records:
            return None

        self._snapshot = StoreSnapshot(
            records=records,
            loaded_at=utc_now_iso() + FROM_DISK_SUFFIX,
            source="disk",
        )
        console.print(f"[dim]Restored {len(records)} runes from {self.cache_file}[/dim]")
        return records

    def _save(self, records: RecordSet) -> None:
        """Write the mirror via temp file + rename so it is never half-written."""
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.cache_file.parent,
                prefix=f".{self.cache_file.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(dump_records(records))
                os.replace(tmp_path, self.cache_file)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(
                f"Failed to write disk cache: {e}",
                {"path": str(self.cache_file)},
            ) from e
