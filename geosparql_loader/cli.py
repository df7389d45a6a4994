"""Command-line entry point.

This module is purely the wiring layer between the command line and the
``geosparql_loader`` package: it parses arguments, layers them over the
environment configuration, configures logging and reports the result.

Subcommands:
    load        Convert source files and load them into the store (default).
    query list  List the predefined queries.
    query run   Run a predefined query or a query file; print the results
                as a table, JSON, or a store-rendered CSV, TSV or XML document.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from geosparql_loader import __version__
from geosparql_loader.core.config import (
    DATA_TYPES,
    STORE_BACKENDS,
    ConfigValidationError,
    PipelineConfig,
)
from geosparql_loader.orchestrators.pipeline import (
    PipelineFailedError,
    StoreUnavailableError,
    run_pipeline,
)
from geosparql_loader.store.client import RESULT_FORMATS, SparqlStoreClient
from geosparql_loader.store.errors import StoreRequestError
from geosparql_loader.store.queries import (
    DEFAULT_LIMIT,
    DEFAULT_MIN_POPULATION,
    DEFAULT_YEAR,
    QUERY_TEMPLATES,
    QueryTemplateError,
    describe_templates,
    get_template,
    render_table,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger("geosparql_loader.cli")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

EXIT_OK = 0
EXIT_FAILURE = 1

_SUBCOMMANDS = frozenset({"load", "query"})

OUTPUT_FORMATS = (*sorted(RESULT_FORMATS), "table")

# CLI destination -> PipelineConfig field, for values given on the command line.
_CONFIG_OVERRIDES = {
    "rdf4j_endpoint": "rdf4j_endpoint",
    "repository_id": "repository_id",
    "data_type": "data_type",
    "base_uri": "base_uri",
    "batch_size": "batch_size",
    "max_features": "max_features",
    "skip_features": "skip_features",
    "dry_run": "dry_run",
    "min_flood_depth_rank": "min_flood_depth_rank",
    "enable_simplification": "enable_simplification",
    "simplification_tolerance": "simplification_tolerance",
    "max_retries": "max_retries",
    "timeout": "request_timeout_s",
    "store_backend": "store_backend",
    "graph_iri": "graph_iri",
    "max_transform_errors": "max_transform_errors",
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geosparql-loader",
        description="Convert MLIT geospatial datasets to GeoSPARQL triples and load them.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    load = subparsers.add_parser("load", help="Convert and load source files (default)")
    _add_store_arguments(load)
    _add_logging_arguments(load)
    load.add_argument(
        "--file-paths", nargs="+", required=True, metavar="PATH", help="Source files, in order"
    )
    load.add_argument(
        "--data-type", choices=sorted(DATA_TYPES), help="Dataset kind (default: auto)"
    )
    load.add_argument("--base-uri", help="Namespace for generated resource IRIs")
    load.add_argument("--batch-size", type=int, help="Triples per update request")
    load.add_argument("--max-features", type=int, help="Stop after this many features (0 = all)")
    load.add_argument(
        "--skip-features", type=int, help="Skip this many input features (restart offset)"
    )
    load.add_argument("--max-retries", type=int, help="Retries per batch")
    load.add_argument(
        "--max-transform-errors", type=int, help="Abandon a file after this many failed features"
    )
    load.add_argument("--test-connection", action="store_true", help="Check the store first")
    load.add_argument(
        "--dry-run", action="store_true", default=None, help="Transform but do not upload"
    )
    load.add_argument(
        "--no-population-snapshots",
        action="store_true",
        help="Do not emit 2025 population snapshot nodes",
    )
    load.add_argument(
        "--no-aggregate", action="store_true", help="Map hazard features one by one"
    )
    load.add_argument(
        "--min-flood-depth-rank", type=int, help="Drop depth ranks below this (1-6)"
    )
    load.add_argument(
        "--enable-simplification",
        action="store_true",
        default=None,
        help="Also emit simplified display geometries",
    )
    load.add_argument("--simplification-tolerance", type=float, help="Display tolerance (degrees)")
    load.add_argument(
        "--full-flood-properties",
        action="store_true",
        help="Emit river linkage and rank details, not just type and rank",
    )
    load.add_argument("--store-backend", choices=sorted(STORE_BACKENDS), help="Store target")
    load.add_argument("--graph-iri", help="Target graph for the named_graph backend")

    query = subparsers.add_parser("query", help="Run predefined or file-based SPARQL queries")
    query_commands = query.add_subparsers(dest="query_command", required=True)

    listing = query_commands.add_parser("list", help="List the predefined queries")
    _add_logging_arguments(listing)

    run = query_commands.add_parser("run", help="Execute a predefined query or a query file")
    run.add_argument(
        "name", nargs="?", choices=sorted(QUERY_TEMPLATES), help="Predefined query name"
    )
    run.add_argument("--file", dest="query_file", metavar="FILE", help="Run the query in FILE")
    run.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Maximum rows returned")
    run.add_argument("--year", type=int, default=DEFAULT_YEAR, help="Population snapshot year")
    run.add_argument(
        "--min-population",
        type=int,
        default=DEFAULT_MIN_POPULATION,
        help="Minimum population filter",
    )
    run.add_argument(
        "--format",
        dest="output_format",
        choices=OUTPUT_FORMATS,
        default="table",
        help="Output format (csv, tsv and xml are rendered by the store)",
    )
    _add_store_arguments(run)
    _add_logging_arguments(run)
    return parser


def _add_store_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--rdf4j-endpoint", help="RDF4J server or repository URL")
    parser.add_argument("--repository-id", help="Repository identifier")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level", default="INFO", choices=LOG_LEVELS, type=str.upper, help="Log level"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse *argv*, treating a missing subcommand as ``load``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if args and args[0] not in _SUBCOMMANDS and args[0] not in ("-h", "--help", "--version"):
        args.insert(0, "load")
    return build_parser().parse_args(args)


# ---------------------------------------------------------------------------
# Configuration and logging
# ---------------------------------------------------------------------------


def build_config(args: argparse.Namespace, base: PipelineConfig | None = None) -> PipelineConfig:
    """Layer command-line values over *base* (the environment) and validate.

    Raises:
        ConfigValidationError: If the combined configuration is invalid.
    """
    base = base or PipelineConfig.from_env()
    overrides: dict[str, object] = {}
    for dest, field_name in _CONFIG_OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides[field_name] = value
    if getattr(args, "no_population_snapshots", False):
        overrides["include_population_snapshots"] = False
    if getattr(args, "no_aggregate", False):
        overrides["aggregate_flood_zones"] = False
    if getattr(args, "full_flood_properties", False):
        overrides["use_minimal_flood_properties"] = False

    config = dataclasses.replace(base, **overrides)
    config.validate()
    return config


def configure_logging(level: str, log_file: str | None = None) -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT)
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def run_load(args: argparse.Namespace, config: PipelineConfig) -> int:
    missing = [p for p in args.file_paths if not Path(p).is_file()]
    if missing:
        logger.error("Input files do not exist | paths=%s", ", ".join(missing))
        return EXIT_FAILURE

    try:
        summary = run_pipeline(args.file_paths, config, test_connection=args.test_connection)
    except StoreUnavailableError as exc:
        logger.error("Pipeline failed | error=%s", exc)
        return EXIT_FAILURE
    except PipelineFailedError as exc:
        print(exc.summary.model_dump_json(indent=2))
        logger.critical(
            "Pipeline stopped | code=%s | error=%s | resume with --skip-features %s",
            exc.code,
            exc,
            exc.restart_skip_features,
        )
        return EXIT_FAILURE

    print(summary.model_dump_json(indent=2))
    return EXIT_OK


def run_query(args: argparse.Namespace, config: PipelineConfig) -> int:
    if args.query_command == "list":
        print(describe_templates())
        return EXIT_OK

    try:
        sparql = _query_source(args)
    except (OSError, QueryTemplateError) as exc:
        logger.error("Cannot build query | error=%s", exc)
        return EXIT_FAILURE

    logger.info(
        "Executing query | query=%s | format=%s", args.name or args.query_file, args.output_format
    )
    logger.debug("Query text | %s", sparql)
    with SparqlStoreClient(
        config.rdf4j_endpoint,
        config.repository_id,
        timeout_s=config.request_timeout_s,
    ) as client:
        try:
            output = _execute_query(client, sparql, args.output_format)
        except StoreRequestError as exc:
            logger.error("Query failed | url=%s | error=%s", client.query_url, exc)
            return EXIT_FAILURE

    print(output)
    return EXIT_OK


def _query_source(args: argparse.Namespace) -> str:
    if bool(args.name) == bool(args.query_file):
        msg = "Give either a predefined query name or --file, not both or neither"
        raise QueryTemplateError(msg)
    if args.query_file:
        return Path(args.query_file).read_text(encoding="utf-8")
    return get_template(args.name).render(
        limit=args.limit, year=args.year, min_population=args.min_population
    )


def _execute_query(client: SparqlStoreClient, sparql: str, output_format: str) -> str:
    if output_format not in ("json", "table"):
        return client.query_text(sparql, output_format)
    result = client.query(sparql)
    bindings = result.get("results", {}).get("bindings")
    if bindings is not None:
        logger.info("Query completed | results=%d", len(bindings))
    if output_format == "json":
        return json.dumps(result, indent=2, ensure_ascii=False)
    return render_table(result)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = parse_args(argv)
    if args.command is None:
        build_parser().print_help()
        return EXIT_FAILURE

    configure_logging(args.log_level, args.log_file)

    try:
        config = build_config(args)
    except (ConfigValidationError, ValueError) as exc:
        logger.error("Invalid configuration | error=%s", exc)
        return EXIT_FAILURE

    if args.command == "query":
        return run_query(args, config)
    return run_load(args, config)


if __name__ == "__main__":
    raise SystemExit(main())
