"""JSON snapshot of the vote board.

Format: {"<message id>": {"url": "<report url>", "votes": [<user id>, ...]}}
"""
import json
import logging
import os
from typing import Optional

from pydantic import BaseModel, RootModel, ValidationError

from app.state import VoteRecord

logger = logging.getLogger(__name__)


class VoteEntry(BaseModel):
    url: str
    votes: list[int] = []


class VoteSnapshot(RootModel[dict[int, VoteEntry]]):
    """Vote board keyed by message id. String keys are coerced to ints."""

    def to_records(self) -> dict[int, VoteRecord]:
        return {
            mid: VoteRecord(target_url=entry.url, voters=set(entry.votes))
            for mid, entry in self.root.items()
        }

    @classmethod
    def from_records(cls, records: dict[int, VoteRecord]) -> "VoteSnapshot":
        return cls({
            mid: VoteEntry(url=rec.target_url, votes=sorted(rec.voters))
            for mid, rec in records.items()
        })

    def to_json_dict(self) -> dict[str, dict]:
        return {str(mid): entry.model_dump() for mid, entry in self.root.items()}


def read_snapshot_file(path: str) -> Optional[VoteSnapshot]:
    """Read a snapshot from disk; a missing or broken file yields None."""
    if not os.path.exists(path):
        logger.info(f"No vote snapshot at {path}, starting with an empty vote board")
        return None
    try:
        with open(path, encoding="utf-8") as f:
            return VoteSnapshot.model_validate(json.load(f))
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"Failed to read vote snapshot {path}: {e}")
        return None


def write_snapshot_file(path: str, snapshot: VoteSnapshot) -> None:
    """Write a snapshot atomically (temp file + rename)."""
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(snapshot.to_json_dict(), f, ensure_ascii=False)
    os.replace(tmp_path, path)
    logger.info(f"Saved vote snapshot with {len(snapshot.root)} messages to {path}")
