import argparse
import logging

from slot_booking.application.admin_service import AdminService
from slot_booking.infrastructure.db.session import get_db_session


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Re-derive the slot ledger from confirmed orders.",
    )
    parser.add_argument(
        "--release-orphans",
        action="store_true",
        help="also remove ledger entries with no confirmed order behind them",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    with get_db_session() as db:
        report = AdminService(db).reconcile_ledger(release_orphans=args.release_orphans)

    for entry in report.reserved:
        print(f"reserved  {entry.key.date} {entry.key.location} {entry.key.package or '*'} {entry.slot_id}")
    for entry in report.orphans:
        action = "released" if report.orphans_released else "orphan  "
        print(f"{action}  {entry.key.date} {entry.key.location} {entry.key.package or '*'} {entry.slot_id}")
    print("Ledger consistent." if report.consistent else "Ledger drift found.")


if __name__ == "__main__":
    main()
