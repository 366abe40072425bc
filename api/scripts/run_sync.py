#!/usr/bin/env python3
"""Run the Spring catalog sync from the command line.

Usage:
  python api/scripts/run_sync.py                      # all seven phases once
  python api/scripts/run_sync.py --phase generations  # one phase
  python api/scripts/run_sync.py --every-minutes 360  # repeat until interrupted
"""

import argparse
import logging
import os
import sys
import time

_api_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _api_dir)

from dotenv import load_dotenv

load_dotenv(os.path.join(_api_dir, ".env"))

from spring_catalog.adapters.catalog_store import InMemoryCatalogStore
from spring_catalog.adapters.sql_store import SqlCatalogStore, database_url, default_sqlite_url
from spring_catalog.services.comprehensive_sync_service import ComprehensiveSync, UnknownPhaseError

log = logging.getLogger(__name__)


def _build_store(args):
    if args.persist:
        return InMemoryCatalogStore(persist_path=args.persist)
    url = args.database_url or database_url() or default_sqlite_url()
    log.info("Catalog store: SQL (%s)", url.split("://", 1)[0])
    return SqlCatalogStore(url)


def _run_once(sync: ComprehensiveSync, phase: str | None) -> bool:
    if phase:
        result = sync.run_phase(phase)
    else:
        result = sync.run_all()
    print(result.model_dump_json(indent=2))
    if isinstance(sync.store, InMemoryCatalogStore):
        sync.store.save()
    return result.success


def main() -> int:
    ap = argparse.ArgumentParser(description="Sync Spring projects, versions and compatibility data")
    ap.add_argument("--phase", default=None, help="Run a single phase by name (see --list-phases)")
    ap.add_argument("--list-phases", action="store_true", help="Print phase names and exit")
    ap.add_argument(
        "--every-minutes",
        type=float,
        default=None,
        help="Repeat the sync on this interval until interrupted",
    )
    ap.add_argument("--database-url", default=None, help="SQLAlchemy URL (default: CATALOG_DATABASE_URL or api/logs/catalog.db)")
    ap.add_argument("--persist", default=None, help="Use the in-memory store persisted to this JSON path instead of SQL")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = _build_store(args)
    sync = ComprehensiveSync(store)

    if args.list_phases:
        for phase in sync.phases:
            print(f"{phase.name}\t{phase.description}")
        return 0

    if args.phase and args.phase not in sync.phase_names():
        ap.error(f"unknown phase {args.phase!r}; choose from {', '.join(sync.phase_names())}")

    ok = False
    try:
        ok = _run_once(sync, args.phase)
        while args.every_minutes:
            log.info("Next sync in %.1f minutes", args.every_minutes)
            time.sleep(args.every_minutes * 60)
            ok = _run_once(sync, args.phase)
    except UnknownPhaseError as e:
        log.error("%s", e)
        return 2
    except KeyboardInterrupt:
        log.info("Interrupted; stopping")
    finally:
        if isinstance(store, SqlCatalogStore):
            store.dispose()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
