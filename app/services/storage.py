from uuid import UUID
import io
import json
import math
from enum import Enum
from functools import lru_cache
from datetime import datetime, timezone, date
from typing import Type, Optional

import boto3
import numpy as np
import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from app.config import settings
from app.exceptions import NotFoundError
from app.logging import get_logger
from app.models.schemas.audit import AuditLog

logger = get_logger(__name__)

SENSITIVE_FIELDS = {"password", "hashed_password", "passcode", "access_token", "token"}


@lru_cache(maxsize=1)
def get_s3():
    return boto3.client("s3", region_name=settings.aws_region)


def bucket_name() -> str:
    return settings.s3_bucket


def _list_keys(prefix: str) -> list[str]:
    paginator = get_s3().get_paginator("list_objects_v2")
    keys = []
    for page in paginator.paginate(Bucket=bucket_name(), Prefix=prefix):
        keys.extend(obj["Key"] for obj in page.get("Contents", []))
    return keys


def _read_parquet(key: str) -> pd.DataFrame:
    obj = get_s3().get_object(Bucket=bucket_name(), Key=key)
    return pd.read_parquet(io.BytesIO(obj["Body"].read()))


def _write_parquet(key: str, df: pd.DataFrame) -> None:
    table = pa.Table.from_pandas(df, preserve_index=False)
    out_buffer = pa.BufferOutputStream()
    pq.write_table(table, out_buffer)
    get_s3().put_object(Bucket=bucket_name(), Key=key, Body=out_buffer.getvalue().to_pybytes())


def mark_old_version_as_stale(record_type: str, record_id: UUID | str, id_column: str) -> None:
    prefix = f"{record_type}/{id_column}={record_id}/"
    keys = _list_keys(prefix)

    if not keys:
        raise NotFoundError(f"No versions found for {record_type} {record_id}")

    for key in keys:
        df = _read_parquet(key)
        if bool(df.get("is_current", pd.Series([True])).iloc[0]):
            df["is_current"] = False
            _write_parquet(key, df)


def _serialize(record) -> dict:
    # Pydantic models keep their JSON form around for nested fields
    if hasattr(record, "model_dump"):
        record_data = record.model_dump()
        json_data = record.model_dump(mode="json")
    elif isinstance(record, dict):
        record_data = dict(record)
        json_data = record_data
    else:
        raise TypeError(f"Unsupported object type for save_version: {type(record)}")

    for k, v in record_data.items():
        if isinstance(v, UUID):
            record_data[k] = str(v)
        elif isinstance(v, Enum):
            record_data[k] = v.value
        elif isinstance(v, datetime):
            record_data[k] = pd.to_datetime(v)
        elif isinstance(v, (list, dict)):
            record_data[k] = json.dumps(json_data[k], default=str)
    return record_data


def save_version(record, record_type: str, id_field: str) -> str:
    record_data = _serialize(record)
    df = pd.DataFrame([record_data])

    record_id = record_data[id_field]
    now = datetime.now(timezone.utc)
    timestamp = now.strftime("%Y%m%dT%H%M%S%fZ")

    # Hybrid partitioning: id → year → month → day
    key = (
        f"{record_type}/{id_field}={record_id}/"
        f"year={now.year}/month={now.month:02}/day={now.day:02}/"
        f"{record_type[:-1]}-{record_id}-{timestamp}.parquet"
    )
    _write_parquet(key, df)
    return key


def _empty_df(schema) -> pd.DataFrame:
    if schema is None:
        return pd.DataFrame()
    return pd.DataFrame(columns=list(schema.model_fields.keys()))


def load_versions(
    record_type: str,
    schema,
    record_id: UUID | str | None = None,
    id_field: str | None = None,
) -> pd.DataFrame:
    if record_id:
        id_field = id_field or f"{schema.__name__.lower()}_id"
        prefix = f"{record_type}/{id_field}={record_id}/"
    else:
        prefix = f"{record_type}/"

    keys = _list_keys(prefix)
    if not keys:
        return _empty_df(schema)

    dfs = [_read_parquet(key) for key in keys]
    return pd.concat(dfs, ignore_index=True)


def current_rows(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return df
    mask = df["is_current"].fillna(False).astype(bool)
    if "is_deleted" in df.columns:
        mask &= ~df["is_deleted"].fillna(False).astype(bool)
    return df[mask]


def _to_python(v):
    if isinstance(v, np.generic):
        v = v.item()
    if v is pd.NaT:
        return None
    if isinstance(v, float) and math.isnan(v):
        return None
    return v


def to_records(df: pd.DataFrame) -> list[dict]:
    """Plain-Python row dicts: numpy scalars unwrapped, NaN/NaT as None."""
    return [{k: _to_python(v) for k, v in row.items()} for row in df.to_dict(orient="records")]


def soft_delete_record(
    record_type: str,
    record_id: str,
    id_field: str,
    model_cls: Type,
    *,
    user: Optional[dict] = None,
):
    """
    Generic soft delete helper:
      - marks old versions stale
      - saves a new version with is_deleted=True and is_current=True
    """
    rows = to_records(current_rows(load_versions(record_type, model_cls, record_id=record_id, id_field=id_field)))
    if not rows:
        raise NotFoundError(f"{record_type[:-1].capitalize()} not found")

    mark_old_version_as_stale(record_type, record_id, id_field)

    data = rows[0]
    data[id_field] = data.get(id_field) or str(record_id)
    data.update({
        "updated_at": datetime.now(timezone.utc),
        "is_current": True,   # latest version will indicate deleted
        "is_deleted": True,
    })
    save_version(model_cls(**data), record_type, id_field)
    log_action(user.get("user_id") if user else None, "delete", record_type, str(record_id))

    return {"message": f"{record_type[:-1].capitalize()} deleted", id_field: str(record_id)}


def log_action(
    user_id: str | None,
    action: str,
    resource_type: str,
    resource_id: str | None,
    details: dict | None = None,
):
    # Normalize details: redact secrets, stringify UUIDs and dates
    normalized = {}
    for k, v in (details or {}).items():
        if k in SENSITIVE_FIELDS:
            normalized[k] = "***REDACTED***"
        elif isinstance(v, UUID):
            normalized[k] = str(v)
        elif isinstance(v, (datetime, date)):
            normalized[k] = v.isoformat()
        elif isinstance(v, Enum):
            normalized[k] = v.value
        else:
            normalized[k] = v

    entry = AuditLog(
        user_id=str(user_id) if user_id is not None else None,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=json.dumps(normalized, default=str),
    )
    save_version(entry, "audit_logs", "log_id")
    logger.debug("audit %s %s %s", action, resource_type, resource_id)
