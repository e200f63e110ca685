from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from ta_common.errors import DatasetLoadError
from ta_config.settings import facts_path

logger = logging.getLogger(__name__)

Designation = Literal["fact1", "fact2"]


class FactPair(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    fact1: str
    fact2: str


class FactRecord(BaseModel):
    """One ground-truth pair: two mutually exclusive claims and which one holds."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    facts: FactPair
    correct_fact: Designation


_DATASET = TypeAdapter(Tuple[FactRecord, ...])


def _fail(path: Path, reason: str) -> DatasetLoadError:
    logger.error("Facts dataset %s unusable: %s", path, reason)
    return DatasetLoadError(f"Error loading facts database: {reason}")


def load_facts(path: Optional[Path | str] = None) -> Tuple[FactRecord, ...]:
    """
    Read and validate the reference dataset. No caching: every call reads the file.

    Raises DatasetLoadError when the file is missing, unreadable, not JSON,
    not a list, or when any record misses facts.fact1 / facts.fact2 /
    correct_fact or carries a correct_fact other than "fact1" / "fact2".
    """
    p = Path(path).expanduser() if path is not None else facts_path()

    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise _fail(p, str(e)) from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise _fail(p, f"invalid JSON in {p}: {e}") from e

    if not isinstance(data, list):
        raise _fail(p, f"expected a JSON array of fact records in {p}, got {type(data).__name__}")

    try:
        records = _DATASET.validate_python(data)
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(x) for x in first.get("loc", ()))
        raise _fail(p, f"invalid record at {loc}: {first.get('msg')} ({e.error_count()} error(s))") from e

    logger.debug("Loaded %d fact records from %s", len(records), p)
    return records
