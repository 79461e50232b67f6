# reconciler.py
# Description: Key-based merge and change detection over record collections
#
# Imports
import hashlib
import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
#
# Local Imports
from quizdeck.Constants import DEFAULT_QUIZ_ID, VOLATILE_FIELDS
#
########################################################################################################################
#
# Functions:

Record = Dict[str, Any]


def merge_records(local: Iterable[Mapping[str, Any]], remote: Iterable[Mapping[str, Any]]) -> List[Record]:
    """
    Merges a local and a remote copy of one collection.

    The result is seeded from `remote`, so the remote record wins whenever both
    sides hold the same `id`. Local records whose `id` the remote lacks are
    added unmodified. Nothing that exists on only one side is dropped.
    """
    merged: Dict[str, Record] = {}
    for record in remote:
        merged[record["id"]] = dict(record)
    for record in local:
        if record["id"] not in merged:
            merged[record["id"]] = dict(record)
    return list(merged.values())


def is_default_record(record: Mapping[str, Any], default_id: str = DEFAULT_QUIZ_ID) -> bool:
    return bool(record.get("isDefault")) or record.get("id") == default_id


def strip_default(records: Iterable[Mapping[str, Any]], default_id: str = DEFAULT_QUIZ_ID) -> List[Record]:
    """Drops the seed record from a collection before it reaches the sync layer."""
    return [dict(r) for r in records if not is_default_record(r, default_id)]


def index_by_id(records: Iterable[Mapping[str, Any]]) -> Dict[str, Record]:
    return {r["id"]: dict(r) for r in records}


def record_ids(records: Iterable[Mapping[str, Any]]) -> set:
    return {r["id"] for r in records}


# --- Change detection ---

def filter_fields(value: Any, exclude_fields: Sequence[str] = VOLATILE_FIELDS) -> Any:
    """Recursively removes `exclude_fields` from dicts nested anywhere in `value`."""
    if isinstance(value, Mapping):
        return {k: filter_fields(v, exclude_fields) for k, v in value.items() if k not in exclude_fields}
    if isinstance(value, (list, tuple)):
        return [filter_fields(v, exclude_fields) for v in value]
    return value


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str, ensure_ascii=False)


def fingerprint(records: Iterable[Mapping[str, Any]], exclude_fields: Sequence[str] = VOLATILE_FIELDS) -> str:
    """Content hash of a record set, independent of record order and volatile metadata."""
    ordered = sorted((filter_fields(r, exclude_fields) for r in records), key=lambda r: str(r.get("id", "")))
    return hashlib.sha256(_canonical(ordered).encode("utf-8")).hexdigest()


def document_fingerprint(document: Optional[Mapping[str, Any]],
                         exclude_fields: Sequence[str] = VOLATILE_FIELDS) -> Optional[str]:
    if document is None:
        return None
    return hashlib.sha256(_canonical(filter_fields(document, exclude_fields)).encode("utf-8")).hexdigest()


def has_object_difference(obj1: Any, obj2: Any, exclude_fields: Sequence[str] = VOLATILE_FIELDS) -> bool:
    return _canonical(filter_fields(obj1, exclude_fields)) != _canonical(filter_fields(obj2, exclude_fields))


def has_data_difference(local: Sequence[Mapping[str, Any]], cloud: Sequence[Mapping[str, Any]],
                        exclude_fields: Sequence[str] = VOLATILE_FIELDS) -> bool:
    """True when the two collections differ in membership or in any record's content."""
    if len(local) != len(cloud):
        return True
    local_map = index_by_id(local)
    cloud_map = index_by_id(cloud)
    if local_map.keys() != cloud_map.keys():
        return True
    return any(has_object_difference(item, cloud_map[rid], exclude_fields) for rid, item in local_map.items())


def has_settings_difference(local: Mapping[str, Any], cloud: Mapping[str, Any]) -> bool:
    return has_object_difference(local, cloud)

#
# End of reconciler.py
########################################################################################################################
