import argparse
import json
import sys
from typing import List, Optional
from uuid import UUID

from dotenv import load_dotenv

from config.llm_config import LLMConfig
from config.pipeline_config import PipelineConfig
from services.category_resolver import CategoryResolver
from services.receipt_service import ReceiptService
from storage.json_storage import JSONStorage
from utils.logging_config import setup_logging
from utils.receipt_uploader import UnsupportedFileError, FileTooLargeError


def print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def process_command(args: argparse.Namespace, config: PipelineConfig) -> int:
    """Process one receipt file and print the result."""
    llm_config = LLMConfig()
    if args.no_llm:
        llm_config.enabled = False

    service = ReceiptService.from_config(config, llm_config)
    try:
        result = service.process_receipt(args.file)
    except (FileNotFoundError, UnsupportedFileError, FileTooLargeError) as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        return 2

    print_json(result.to_dict())
    return 0 if result.success else 1


def show_command(args: argparse.Namespace, config: PipelineConfig) -> int:
    """Print a stored receipt job."""
    storage = JSONStorage(config.data_dir)
    try:
        job = storage.get_receipt_job(UUID(args.job_id))
    except ValueError:
        job = None
    if job is None:
        print(f"Error: Receipt not found: {args.job_id}", file=sys.stderr)
        return 1

    print_json(job.to_dict())
    for expense in storage.get_expenses_for_receipt(job.id):
        print_json(expense.to_dict())
    return 0


def categories_command(args: argparse.Namespace, config: PipelineConfig) -> int:
    """Seed the default categories and list all categories."""
    storage = JSONStorage(config.data_dir)
    created = CategoryResolver(storage).seed_default_categories()
    if created:
        print(f"Created {len(created)} default categories")

    for category in storage.list_categories():
        print(f"{category.name:<20} {category.category_type.value:<12} {category.color}  {category.id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Receipt expense tracker CLI")
    parser.add_argument("--data-dir", default=None, help="Directory for storing receipts and expenses")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging and debug artifacts")

    subparsers = parser.add_subparsers(dest="command", required=True)

    process_parser = subparsers.add_parser("process", help="Extract an expense from a receipt image or PDF")
    process_parser.add_argument("file", help="Path to the receipt file")
    process_parser.add_argument("--no-llm", action="store_true", help="Use heuristic extraction only")
    process_parser.set_defaults(handler=process_command)

    show_parser = subparsers.add_parser("show", help="Show a processed receipt")
    show_parser.add_argument("job_id", help="Receipt job id")
    show_parser.set_defaults(handler=show_command)

    categories_parser = subparsers.add_parser("categories", help="List expense categories")
    categories_parser.set_defaults(handler=categories_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    overrides = {'data_dir': args.data_dir}
    if args.debug:
        overrides['debug_output'] = True
    config = PipelineConfig.from_dict(overrides)

    setup_logging(log_dir=config.log_dir, debug_mode=args.debug, log_to_file=False)
    return args.handler(args, config)


if __name__ == "__main__":
    sys.exit(main())
