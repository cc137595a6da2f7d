#!/usr/bin/env python3
"""
Vector Clustering CLI

Command-line interface for running the clustering engine on a JSON batch.

Usage:
    vector-clustering cluster vectors.json                  # Representatives with configured settings
    vector-clustering cluster vectors.json -t 0.3           # Override the threshold
    vector-clustering cluster - --linkage average < in.json # Read the batch from stdin
    vector-clustering cluster vectors.json --labels         # Include per-id cluster labels

The input is a JSON object mapping identifier -> list of numbers.
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from vector_clustering.config.settings_loader import ConfigManager
from vector_clustering.core.clustering_engine import ClusteringEngine
from vector_clustering.schemas.data_models import LinkageMethod
from vector_clustering.utils.advanced_logging import configure_logging
from vector_clustering.utils.error_handling import (
    ClusteringServiceError,
    ConfigurationError,
    ValidationError,
)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def load_vectors(source: str) -> Dict[str, Any]:
    """
    Read a JSON batch from a file path, or stdin when source is "-".

    Raises:
        ValidationError: If the input is not a JSON object
    """
    try:
        if source == "-":
            data = json.load(sys.stdin)
        else:
            with open(source, "r", encoding="utf-8") as f:
                data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Input is not valid JSON: {e}", details={"source": source}) from e
    except UnicodeDecodeError as e:
        raise ValidationError(f"Input is not UTF-8 text: {e}", details={"source": source}) from e

    if not isinstance(data, dict):
        raise ValidationError(
            "Input must be a JSON object mapping identifier to vector",
            details={"source": source, "type": type(data).__name__},
        )
    return data


def print_json(data: dict, indent: int = 2):
    """Pretty print JSON."""
    print(json.dumps(data, indent=indent, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vector-clustering",
        description="Two-phase vector clustering: pick representative identifiers from an embedding batch",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    cluster = subparsers.add_parser("cluster", help="Cluster a JSON batch and print representatives")
    cluster.add_argument("input", help="Path to JSON file ({id: [floats]}), or - for stdin")
    cluster.add_argument("--threshold", "-t", type=float, help="Threshold in [0, 1] (overrides config)")
    cluster.add_argument(
        "--linkage",
        "-l",
        choices=[m.value for m in LinkageMethod],
        help="Linkage method (overrides config)",
    )
    cluster.add_argument("--random-state", type=int, help="K-means seed for reproducible large batches")
    cluster.add_argument("--config", "-c", help="Path to settings YAML")
    cluster.add_argument("--labels", action="store_true", help="Include per-identifier cluster labels")
    cluster.add_argument("--log-level", help="Log level (overrides config)")

    return parser


def run_cluster(args: argparse.Namespace) -> int:
    settings = ConfigManager.reload_config(args.config)

    configure_logging(
        log_level=args.log_level or settings.logging.level,
        log_format=settings.logging.format,
        log_file=settings.logging.file,
        service_name=settings.service.name,
    )

    overrides = {}
    if args.threshold is not None:
        overrides["threshold"] = args.threshold
    if args.linkage is not None:
        overrides["linkage"] = args.linkage
    if args.random_state is not None:
        overrides["random_state"] = args.random_state
    clustering = settings.clustering.model_copy(update=overrides)

    engine = ClusteringEngine.from_settings(clustering)
    vectors = load_vectors(args.input)
    summary = engine.summarize(vectors, include_labels=args.labels)

    print_json(summary.model_dump(mode="json", exclude_none=True))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "cluster":
            return run_cluster(args)
    except (ValidationError, ConfigurationError) as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_USAGE
    except OSError as e:
        # Input or config path that cannot be opened
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except ClusteringServiceError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE

    parser.print_help()
    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
