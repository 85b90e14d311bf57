"""CLI entrypoint for the fuel price aggregation pipeline."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from fuelwatch.common.config_loader import ConfigBundle, load_all_configs, select_retailers
from fuelwatch.common.constants import COMMANDS, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, SORT_KEYS
from fuelwatch.common.errors import InvalidCriteria, PipelineError
from fuelwatch.common.geocoder import PostcodesIoGeocoder
from fuelwatch.common.ids import generate_run_id
from fuelwatch.common.logging import build_logger, log_event
from fuelwatch.common.time_utils import format_timestamp, utc_now
from fuelwatch.harvest.fetch import FetchSettings, fetch_all
from fuelwatch.harvest.runner import run_ingest_cycle
from fuelwatch.pipeline.criteria import parse_criteria
from fuelwatch.pipeline.reports import write_ingest_summary
from fuelwatch.pipeline.service import query_snapshots
from fuelwatch.storage.snapshots import build_store, load_current_snapshots


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--store-root", default=None, help="Override storage.root for the file backend")
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument(
        "--retailer",
        default=None,
        help="fetch: exact retailer name; query: case-insensitive substring of the retailer name",
    )

    query = parser.add_argument_group("query")
    query.add_argument("--fuel-type", default=None)
    query.add_argument("--postcode", default=None)
    query.add_argument("--lat", default=None)
    query.add_argument("--lng", default=None)
    query.add_argument("--max-distance", default=None)
    query.add_argument("--min-price", default=None)
    query.add_argument("--max-price", default=None)
    query.add_argument("--sort-by", default=None, choices=SORT_KEYS)
    query.add_argument("--limit", default=None)
    query.add_argument("--unit", default="mi", choices=["mi", "km"])
    return parser.parse_args(argv)


def _emit(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _store_root(args: argparse.Namespace) -> Path | None:
    return Path(args.store_root) if args.store_root else None


def run_ingest(args: argparse.Namespace, bundle: ConfigBundle, run_id: str) -> int:
    settings = FetchSettings.from_config(bundle.settings["fetch"])
    store = build_store(bundle.settings["storage"], root_override=_store_root(args))
    with settings.build_client() as client:
        cycle = run_ingest_cycle(
            bundle.retailers,
            store,
            client=client,
            settings=settings,
            max_conflict_retries=int(bundle.settings["persist"]["max_conflict_retries"]),
        )
    write_ingest_summary(Path(args.data_dir), run_id, cycle)
    _emit(cycle.to_dict())

    if cycle.degraded:
        return EXIT_HARD_FAIL
    if cycle.failure_count > 0:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def run_fetch(args: argparse.Namespace, bundle: ConfigBundle) -> int:
    settings = FetchSettings.from_config(bundle.settings["fetch"])
    retailers = select_retailers(bundle.retailers, args.retailer)
    with settings.build_client() as client:
        cycle = fetch_all(retailers, client=client, settings=settings)
    _emit(
        {
            "timestamp": format_timestamp(utc_now()),
            "summary": cycle.summary(),
            "results": [result.to_dict() for result in cycle.results],
        }
    )
    if cycle.degraded:
        return EXIT_HARD_FAIL
    if cycle.failure_count > 0:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def run_price_query(args: argparse.Namespace, bundle: ConfigBundle) -> int:
    criteria = parse_criteria(
        {
            "fuel_type": args.fuel_type,
            "postcode": args.postcode,
            "lat": args.lat,
            "lng": args.lng,
            "max_distance": args.max_distance,
            "min_price": args.min_price,
            "max_price": args.max_price,
            "sort_by": args.sort_by,
            "limit": args.limit,
            "retailer": args.retailer,
            "unit": args.unit,
        }
    )
    store = build_store(bundle.settings["storage"], root_override=_store_root(args))
    loaded = load_current_snapshots(store, bundle.retailers)

    geocoder_cfg = bundle.settings["geocoder"]
    geocoder = PostcodesIoGeocoder.from_config(geocoder_cfg) if geocoder_cfg["enabled"] else None
    try:
        result = query_snapshots(
            loaded.snapshots,
            criteria,
            geocoder=geocoder,
            fuel_types=bundle.settings["query"]["default_fuel_types"],
            sources_degraded=loaded.degraded,
        )
    finally:
        if geocoder is not None:
            geocoder.close()
    _emit(result.to_dict())
    return EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id(args.command)
    data_dir = Path(args.data_dir)
    logger = build_logger(run_id, data_dir=data_dir if args.command == "ingest" else None, level=args.log_level)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    bundle = load_all_configs(Path(args.config_dir), overlay_config_dir=overlay_config_dir)

    log_event(logger, f"{args.command} start", run_id=run_id, stage=args.command, event="STAGE_START", status="ok")
    try:
        if args.command == "ingest":
            exit_code = run_ingest(args, bundle, run_id)
        elif args.command == "fetch":
            exit_code = run_fetch(args, bundle)
        elif args.command == "query":
            exit_code = run_price_query(args, bundle)
        else:
            raise ValueError(f"Unknown command: {args.command}")
    except InvalidCriteria as exc:
        log_event(
            logger,
            f"invalid query: {exc}",
            level=logging.ERROR,
            run_id=run_id,
            stage=args.command,
            event="STAGE_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        return EXIT_HARD_FAIL
    log_event(
        logger,
        f"{args.command} end",
        run_id=run_id,
        stage=args.command,
        event="STAGE_END",
        status="ok" if exit_code == EXIT_SUCCESS else "error",
    )
    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        print(f"{exc.error_code}: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL
    except Exception as exc:
        print(f"UNEXPECTED_ERROR: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
