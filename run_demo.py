#!/usr/bin/env python3
"""
Precedent GraphRAG - Demo Runner

This script demonstrates the full retrieval pipeline:
1. Check the Neo4j connection
2. Create constraints and seed the sample cases and relationships
3. Run a free-text precedent search
4. Print the JSON response

Usage:
    python run_demo.py                              # Seed and run the default query
    python run_demo.py -q "stare decisis cases"     # Custom query
    python run_demo.py --skip-setup                 # Search existing graph data
    python run_demo.py --check                      # Connection check only
    python run_demo.py --verbose                    # Enable debug logging
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from config.settings import settings
from precedent.graph_schema import GraphSchemaManager
from precedent.graph_store import GraphStore, close_graph_store, get_graph_store
from precedent.models import CaseRelationship, LegalCase
from precedent.query_analyzer import create_default_analyzer
from precedent.search import PrecedentSearch

BANNER = """
=========================================================
   Precedent GraphRAG
   Legal precedent search over a case graph
=========================================================
"""

DEFAULT_QUERY = "How has the court treated federalism and stare decisis?"

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else getattr(logging, settings.LOG_LEVEL)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S"
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Precedent GraphRAG - Search legal precedents in a Neo4j graph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_demo.py                          Seed sample cases and search
  python run_demo.py -q "data privacy"        Custom query
  python run_demo.py -f my_cases.json         Seed a custom dataset
        """
    )
    parser.add_argument(
        "-q", "--query",
        default=DEFAULT_QUERY,
        help="Free-text legal question to search for"
    )
    parser.add_argument(
        "-f", "--file",
        type=Path,
        default=Path("data/sample_cases.json"),
        help="Dataset with cases and relationships (default: data/sample_cases.json)"
    )
    parser.add_argument(
        "--skip-setup",
        action="store_true",
        help="Skip schema creation and seeding (use existing graph data)"
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only check the database connection"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose debug logging"
    )
    return parser.parse_args(argv)


def load_dataset(file_path: Path) -> tuple[list[LegalCase], list[CaseRelationship]]:
    """
    Load cases and relationships from a JSON dataset.

    Args:
        file_path: Path to a file shaped like ``data/sample_cases.json``.

    Returns:
        Tuple of (cases, relationships).

    Raises:
        SystemExit: If the file cannot be read or is invalid.
    """
    try:
        payload: dict[str, Any] = json.loads(file_path.read_text(encoding="utf-8"))
        cases = [LegalCase.model_validate(item) for item in payload.get("cases", [])]
        relationships = [
            CaseRelationship.model_validate(item) for item in payload.get("relationships", [])
        ]
    except FileNotFoundError:
        logger.error(f"File not found: {file_path}")
        sys.exit(1)
    except (json.JSONDecodeError, PydanticValidationError) as e:
        logger.error(f"Invalid dataset {file_path}: {e}")
        sys.exit(1)

    logger.info(f"Loaded {len(cases)} cases and {len(relationships)} relationships from {file_path}")
    return cases, relationships


def seed_database(
    schema: GraphSchemaManager,
    cases: list[LegalCase],
    relationships: list[CaseRelationship],
) -> int:
    """
    Create constraints, ingest cases and link them.

    Returns:
        Number of relationships that were created or already present.
    """
    logger.info("Starting database setup...")
    schema.initialize_schema()

    for case in cases:
        schema.ingest_case(case)

    linked = 0
    for rel in relationships:
        linked += schema.create_relationship(rel.from_id, rel.to_id, rel.type)

    logger.info(f"Database setup complete: {len(cases)} cases, {linked} relationships")
    return linked


def check_connection(store: GraphStore) -> None:
    """
    Exit unless the database answers the connectivity probe.

    Raises:
        SystemExit: If the connection fails.
    """
    if not store.verify_connectivity():
        logger.error(f"Cannot connect to Neo4j at {store.uri}")
        logger.error("Check NEO4J_URI, NEO4J_USER and NEO4J_PASSWORD in .env")
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the demo script.

    Orchestrates the demo pipeline:
    1. Parse CLI arguments
    2. Check the connection
    3. Seed the graph (optional)
    4. Search and print the response
    """
    args = parse_args(argv)
    setup_logging(args.verbose)

    print(BANNER)

    store = get_graph_store()
    try:
        check_connection(store)
        schema = GraphSchemaManager(store)
        if args.check:
            report = {"uri": store.uri, "connected": True, "graph": schema.summarize_graph()}
            print(json.dumps(report, indent=2))
            return

        if not args.skip_setup:
            cases, relationships = load_dataset(args.file)
            seed_database(schema, cases, relationships)
        else:
            logger.info("Skipping database setup")

        logger.info(f"Graph contents: {schema.summarize_graph()}")

        searcher = PrecedentSearch(store, create_default_analyzer())
        result = searcher.search(args.query)

        print("\n" + "=" * 60)
        print(json.dumps(result.to_response(), indent=2, default=str))
        print("=" * 60 + "\n")
    finally:
        close_graph_store()


if __name__ == "__main__":
    main()
