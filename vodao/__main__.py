"""Command line entry point for the Vo Dao event synchronization."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

import structlog
from dotenv import load_dotenv

from vodao.database.connections import cleanup_database_manager, initialize_database_manager
from vodao.event_parser import extract_event_data
from vodao.feed import payloads_from_webhook
from vodao.models.config import VodaoConfig
from vodao.models.facebook import FacebookEventData
from vodao.sync import FacebookEventSynchronizer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def configure_logging(log_level: str) -> None:
    """Send stdlib and structlog records to stderr, filtered by the configured level."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    # asyncpg logs every pool event at debug level
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event", "component"], drop_missing=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def load_payloads(path: Path) -> List[Dict[str, Any]]:
    """
    Read payloads from a JSON file.

    The file holds a single payload, a list of payloads, or a page webhook
    body whose feed changes are converted.
    """
    data = json.loads(path.read_text(encoding="utf-8"))

    if isinstance(data, list):
        return data
    if isinstance(data, dict) and data.get("object") == "page":
        return [payload.model_dump(exclude_none=True) for payload in payloads_from_webhook(data)]
    if isinstance(data, dict):
        return [data]

    raise ValueError(f"{path} does not contain a payload, a list of payloads or a webhook body")


def print_result(result: Dict[str, Any], output: str) -> None:
    if output == "json":
        print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
        return

    for key, value in result.items():
        if isinstance(value, list):
            print(f"{key}:")
            for item in value:
                print(f"  - {item}")
        else:
            print(f"{key}: {value}")


def parse_command(path: Path, output: str) -> None:
    """Print what would be stored for each payload, without touching the database."""
    for index, payload in enumerate(load_payloads(path), 1):
        extracted = extract_event_data(FacebookEventData.model_validate(payload))
        if output == "pretty":
            print(f"\n{'=' * 50}")
            print(f"PAYLOAD {index}: {extracted.title}")
            print(f"{'=' * 50}")
        print_result(extracted.model_dump(mode="json"), output)


async def run_database_command(args: argparse.Namespace, config: VodaoConfig) -> bool:
    db_manager = await initialize_database_manager(config)
    try:
        if args.command == "init-db":
            await db_manager.apply_schema()
            print("Schema applied")
            return True

        synchronizer = FacebookEventSynchronizer(db_manager, config)

        if args.command == "deactivate":
            result = await synchronizer.deactivate_event(args.external_id)
            print_result(result.model_dump(), args.output)
            return result.success

        batch = await synchronizer.sync_many(load_payloads(args.file))
        if args.output == "json":
            print_result(batch.model_dump(mode="json"), args.output)
        else:
            for result in batch.results:
                status = "OK" if result.success else "FAILED"
                print(f"[{status}] {result.event_id or result.message or result.error}")
            print(f"\n{batch.success_count} synchronized, {batch.error_count} failed")
        return batch.success
    finally:
        await cleanup_database_manager()


async def main_async():
    """Run the synchronization CLI asynchronously."""
    parser = argparse.ArgumentParser(description="Vo Dao - Facebook event synchronization")
    parser.add_argument(
        "--output",
        choices=["json", "pretty"],
        default="pretty",
        help="Output format (json or pretty-printed)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Synchronize payloads from a JSON file")
    sync_parser.add_argument("file", type=Path, help="Payload, list of payloads or webhook body")

    deactivate_parser = subparsers.add_parser("deactivate", help="Deactivate an imported event")
    deactivate_parser.add_argument("external_id", help="Facebook event or post id")

    parse_parser = subparsers.add_parser("parse", help="Show the extracted data without writing")
    parse_parser.add_argument("file", type=Path, help="Payload, list of payloads or webhook body")

    subparsers.add_parser("init-db", help="Create the events tables")

    args = parser.parse_args()
    config = VodaoConfig()
    configure_logging(config.log_level)

    try:
        if args.command == "parse":
            parse_command(args.file, args.output)
            return

        if not await run_database_command(args, config):
            sys.exit(1)

    except Exception as e:
        logger.exception(f"Error running {args.command}: {e}")
        sys.exit(1)


def main():
    """Run the synchronization CLI."""
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
