"""
Load sample claims from CSV into a claims service.
Mirrors how the dashboard used to start from a static claim book.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd

from claimflow.schemas.claim import Claim

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["policy_id", "client_id", "amount_requested"]
OPTIONAL_COLUMNS = [
    "incident_date",
    "description",
    "photo_count",
    "prior_claims",
    "submitted_at",
    "policy_start_date",
]


def load_submissions(csv_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read claim submissions from CSV.

    Returns:
        One dict per row, with missing cells dropped so schema defaults apply
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Seed file not found: {csv_path}")

    df = pd.read_csv(
        csv_path,
        dtype={"policy_id": str, "client_id": str, "description": str},
    )

    # Clean column names (remove BOM / stray spaces)
    df.columns = df.columns.str.replace('\ufeff', '').str.strip()

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Seed file {csv_path} is missing columns: {missing}")

    for column in ("incident_date", "policy_start_date"):
        if column in df.columns:
            df[column] = pd.to_datetime(df[column]).dt.date
    if "submitted_at" in df.columns:
        df["submitted_at"] = pd.to_datetime(df["submitted_at"], utc=True)

    columns = REQUIRED_COLUMNS + [c for c in OPTIONAL_COLUMNS if c in df.columns]
    records = []
    for row in df[columns].to_dict(orient="records"):
        record = {}
        for key, value in row.items():
            if value is None or (not isinstance(value, str) and pd.isna(value)):
                continue
            if key in ("photo_count", "prior_claims"):
                value = int(value)
            elif key == "amount_requested":
                value = str(value)
            elif key == "submitted_at":
                value = value.to_pydatetime()
            record[key] = value
        records.append(record)

    logger.info(f"Loaded {len(records)} submissions from {csv_path}")
    return records


def seed_claims(service, csv_path: Union[str, Path]) -> List[Claim]:
    """Submit every row of the seed file through the service"""
    return [service.submit_claim(record) for record in load_submissions(csv_path)]
