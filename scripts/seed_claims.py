"""
Load sample claims from CSV through the claims service
Scores, routes and stores each row, then prints the reserve picture
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from claimflow.core.config import settings
from claimflow.core.logging_config import setup_logging_from_settings
from claimflow.services.claims_service import build_claims_service
from claimflow.services.seed import load_submissions


def main():
    parser = argparse.ArgumentParser(description="Seed claims from a CSV file")
    parser.add_argument("--csv", default=settings.SEED_DATA_PATH, help="Path to the seed CSV")
    parser.add_argument("--limit", type=int, default=None, help="Only load the first N rows")
    args = parser.parse_args()

    setup_logging_from_settings(settings)

    csv_path = Path(args.csv)
    if not csv_path.exists():
        print(f"Error: {csv_path} not found")
        sys.exit(1)

    print(f"Loading claims from {csv_path}...")
    records = load_submissions(csv_path)
    if args.limit is not None:
        records = records[:args.limit]

    service = build_claims_service(settings)

    for record in records:
        claim = service.submit_claim(record)
        print(
            f"  {claim.id[:8]}  policy={claim.policy_id:<10} "
            f"amount={claim.amount_requested:>12}  score={claim.fraud_score:>3}  "
            f"{claim.status.value}"
        )

    snapshot = service.get_reserve_snapshot()
    print(f"\nLoaded {len(records)} claims")
    print(f"Total reserve: {snapshot.total_reserve}  (average {snapshot.average_reserve})")
    for status, amount in snapshot.by_status.items():
        print(f"  {status:<12} {amount}")
    print(
        f"Risk split: high={snapshot.high_risk_reserve} "
        f"medium={snapshot.medium_risk_reserve} low={snapshot.low_risk_reserve}"
    )


if __name__ == "__main__":
    main()
