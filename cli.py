import argparse
import csv
import datetime
import json
import logging
import shutil
from typing import Optional

from config import load_settings, configure_logging
from db import RoutineRepository
from progress_service import ProgressService
from seed_sample_data import seed

logger = logging.getLogger(__name__)


def export_routines(db_path: str, fmt: str, output_dir: str = ".") -> str:
    routines = RoutineRepository(db_path).fetch_history()
    rows = [r.model_dump(mode="json") for r in routines]
    out_path = f"{output_dir}/routines.{fmt}"
    with open(out_path, "w", encoding="utf-8", newline="") as f:
        if fmt == "csv":
            writer = csv.DictWriter(
                f, fieldnames=["id", "date", "category", "duration", "meal"]
            )
            writer.writeheader()
            writer.writerows(rows)
        else:
            json.dump(rows, f, indent=2)
    logger.info("exported %d routines to %s", len(rows), out_path)
    return out_path


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def add_routine(
    db_path: str, date: str, category: str, duration: int, meal: str
) -> int:
    datetime.date.fromisoformat(date)
    if duration < 0:
        raise ValueError("duration must be non-negative")
    return RoutineRepository(db_path).create(date, category, duration, meal)


def weekly_summary(db_path: str, today: Optional[str] = None) -> dict:
    service = ProgressService(RoutineRepository(db_path))
    day = datetime.date.fromisoformat(today) if today else None
    service.skipped_records()
    return {
        "stats": service.dashboard_stats(day).model_dump(),
        "progress": service.progress_report(day).model_dump(),
    }


def serve(host: str, port: int, db_path: str, yaml_path: str) -> None:
    import uvicorn
    from rest_api import FitTrackAPI

    api = FitTrackAPI(db_path=db_path, yaml_path=yaml_path)
    uvicorn.run(api.app, host=host, port=port)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Fit-Track utility commands")
    parser.add_argument("--yaml", default="settings.yaml")
    parser.add_argument("--db", default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    srv = sub.add_parser("serve")
    srv.add_argument("--host", default=None)
    srv.add_argument("--port", type=int, default=None)

    for name in ("stats", "progress"):
        cmd = sub.add_parser(name)
        cmd.add_argument("--today", default=None)

    add = sub.add_parser("add")
    add.add_argument("--date", default=datetime.date.today().isoformat())
    add.add_argument("--category", required=True)
    add.add_argument("--duration", type=int, required=True)
    add.add_argument("--meal", default="")

    exp = sub.add_parser("export")
    exp.add_argument("--fmt", choices=["csv", "json"], default="csv")
    exp.add_argument("--out", default=".")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")

    sub.add_parser("demo")

    args = parser.parse_args(argv)
    settings = load_settings(args.yaml)
    configure_logging(settings.log_level)
    db_path = args.db or settings.db_path

    if args.cmd == "serve":
        serve(args.host or settings.host, args.port or settings.port, db_path, args.yaml)
    elif args.cmd == "stats":
        print(json.dumps(weekly_summary(db_path, args.today)["stats"], indent=2))
    elif args.cmd == "progress":
        print(json.dumps(weekly_summary(db_path, args.today), indent=2))
    elif args.cmd == "add":
        rid = add_routine(db_path, args.date, args.category, args.duration, args.meal)
        print(f"Logged routine {rid}")
    elif args.cmd == "export":
        print(export_routines(db_path, args.fmt, args.out))
    elif args.cmd == "backup":
        backup_db(db_path, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, db_path)
    elif args.cmd == "demo":
        seed(db_path)


if __name__ == "__main__":
    main()
