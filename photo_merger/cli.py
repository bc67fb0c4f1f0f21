"""Command-line interface for photo merger."""

import argparse
import logging
import sys
from pathlib import Path

from . import config
from .batch import process_batch
from .cache import clear_cache
from .dedup import dedupe_folder
from .exceptions import RootDirectoryError
from .merger import merge_folders
from .models import BatchReport, DedupeReport, MergeReport, OrganizeReport
from .organizer import organize_folder


def setup_logging(verbose: bool) -> None:
    """Log to the console; DEBUG with --verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)]
    )
    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="photo-merger",
        description="Organize photo/video collections and merge them without duplicates.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s merge ~/Takeout/Google\\ Photos ~/Pictures/library
  %(prog)s organize ~/Takeout/Google\\ Photos
  %(prog)s dedupe --prefer-suffix=-edited ~/Pictures/library
  %(prog)s batch ~/Downloads/takeout-zips ~/Pictures/library
  %(prog)s clear-cache ~/Pictures/library
        """
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    common.add_argument(
        "--no-progress",
        dest="progress",
        action="store_false",
        help="Hide progress bars"
    )

    options = argparse.ArgumentParser(add_help=False)
    options.add_argument(
        "--workers", "-w",
        type=int,
        default=config.DEFAULT_WORKERS,
        help=f"Number of parallel hashing threads (default: {config.DEFAULT_WORKERS})"
    )
    options.add_argument(
        "--prefer-suffix",
        default=None,
        help='Among duplicates keep files whose name ends with this suffix, e.g. "-edited"'
    )
    options.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Show what would be done without changing any file"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    merge = subparsers.add_parser(
        "merge", parents=[common, options], help="Merge a source folder into a target collection"
    )
    merge.add_argument("source", type=Path, help="Folder with new files")
    merge.add_argument("target", type=Path, help="Collection to merge into")

    organize = subparsers.add_parser(
        "organize", parents=[common], help="Move media files into YYYY/MM folders by date"
    )
    organize.add_argument("directory", type=Path, help="Folder to organize in place")
    organize.add_argument("--dry-run", "-n", action="store_true", help="Only show the moves")

    dedupe = subparsers.add_parser(
        "dedupe", parents=[common, options], help="Remove duplicate media files from a folder"
    )
    dedupe.add_argument("directory", type=Path, help="Folder to deduplicate")
    dedupe.add_argument(
        "--no-cache",
        dest="use_cache",
        action="store_false",
        help="Do not read or write the fingerprint cache"
    )

    batch = subparsers.add_parser(
        "batch", parents=[common, options], help="Import all Takeout zip archives of a folder"
    )
    batch.add_argument("source", type=Path, help="Folder containing .zip archives")
    batch.add_argument("target", type=Path, help="Collection to merge into")
    batch.add_argument(
        "--delete-archives",
        action="store_true",
        help="Delete each archive after it was imported successfully"
    )

    clear = subparsers.add_parser(
        "clear-cache", parents=[common], help="Delete the fingerprint cache of a collection"
    )
    clear.add_argument("target", type=Path, help="Collection whose cache to delete")

    return parser.parse_args(argv)


def validate_args(args: argparse.Namespace) -> None:
    """Validate command-line arguments."""
    folders = []
    if args.command in ("merge", "batch"):
        folders.append(("Source folder", args.source))
    elif args.command in ("organize", "dedupe"):
        folders.append(("Folder", args.directory))

    for label, folder in folders:
        if not folder.exists():
            print(f"Error: {label} does not exist: {folder}")
            sys.exit(1)
        if not folder.is_dir():
            print(f"Error: {label} is not a directory: {folder}")
            sys.exit(1)

    target = getattr(args, "target", None)
    if target is not None and target.exists() and not target.is_dir():
        print(f"Error: Target is not a directory: {target}")
        sys.exit(1)

    if getattr(args, "workers", 1) < 1:
        print("Error: --workers must be at least 1")
        sys.exit(1)


def _print_errors(title: str, errors: list[tuple[str, str]]) -> None:
    if not errors:
        return
    print(f"\n--- {title} ({len(errors)} files) ---")
    for path, error in errors[:10]:  # Show first 10
        print(f"  {path}")
        print(f"    {error}")
    if len(errors) > 10:
        print(f"  ... and {len(errors) - 10} more errors")
    print("-" * 20)


def print_merge_summary(report: MergeReport, target: Path, dry_run: bool = False) -> None:
    _print_errors("Scan Errors", [(e.relative_path, e.error) for e in report.scan_errors])
    _print_errors("Copy Errors", [(e.relative_path, e.error) for e in report.copy_errors])
    _print_errors("Naming Conflicts", [(p, "too many conflicts") for p in report.conflicts_exhausted])

    print("\n" + "=" * 60)
    print("DRY RUN COMPLETE" if dry_run else "MERGE COMPLETE!")
    print("=" * 60)
    print(f"Target folder: {target}")
    print(f"Source files: {report.source_files}")
    print(f"  - Copied: {report.copied}")
    print(f"    (renamed on collision: {report.renamed})")
    print(f"  - Already in target: {report.skipped_duplicates}")
    print(f"  - Duplicates within source: {report.source_duplicates}")
    print(f"  - Not fingerprintable (left out): {report.unfingerprintable}")
    if report.error_count:
        print(f"  - Errors (skipped): {report.error_count}")
    if not dry_run and not report.cache_saved:
        print("Warning: fingerprint cache could not be saved; next run will re-hash the target.")


def print_dedupe_summary(report: DedupeReport, directory: Path, dry_run: bool = False) -> None:
    _print_errors("Removal Errors", report.errors)

    print("\n" + "=" * 60)
    print("DRY RUN COMPLETE" if dry_run else "DEDUPLICATION COMPLETE!")
    print("=" * 60)
    print(f"Folder: {directory}")
    print(f"Files scanned: {report.files}")
    print(f"Duplicate groups: {report.groups}")
    print(f"Files {'to remove' if dry_run else 'removed'}: {len(report.removed)}")


def print_organize_summary(report: OrganizeReport, directory: Path, dry_run: bool = False) -> None:
    _print_errors("Errors", report.errors)

    print("\n" + "=" * 60)
    print("DRY RUN COMPLETE" if dry_run else "ORGANIZATION COMPLETE!")
    print("=" * 60)
    print(f"Folder: {directory}")
    print(f"Images processed: {report.images_processed}")
    print(f"Videos processed: {report.videos_processed}")
    print(f"Files moved: {report.files_moved}")
    print(f"JSON files removed: {report.sidecars_removed}")
    print(f"Empty dirs removed: {report.empty_dirs_removed}")


def print_batch_summary(report: BatchReport) -> None:
    _print_errors("Failed Archives", report.failures)

    print("\n" + "=" * 60)
    print("BATCH COMPLETE!")
    print("=" * 60)
    print(f"Archives found: {report.archives_found}")
    print(f"Archives processed: {report.archives_processed}")
    print(f"Files organized: {report.files_organized}")
    print(f"Files copied to target: {report.files_copied}")


def run(args: argparse.Namespace) -> int:
    """Run a parsed command. Returns the process exit status."""
    if args.command == "merge":
        report = merge_folders(
            args.source.absolute(),
            args.target.absolute(),
            preferred_suffix=args.prefer_suffix,
            workers=args.workers,
            dry_run=args.dry_run,
            progress=args.progress
        )
        print_merge_summary(report, args.target.absolute(), args.dry_run)
        return 1 if report.error_count else 0

    if args.command == "organize":
        report = organize_folder(args.directory.absolute(), dry_run=args.dry_run, progress=args.progress)
        print_organize_summary(report, args.directory.absolute(), args.dry_run)
        return 1 if report.errors else 0

    if args.command == "dedupe":
        report = dedupe_folder(
            args.directory.absolute(),
            preferred_suffix=args.prefer_suffix,
            dry_run=args.dry_run,
            use_cache=args.use_cache,
            workers=args.workers,
            progress=args.progress
        )
        print_dedupe_summary(report, args.directory.absolute(), args.dry_run)
        return 1 if report.errors else 0

    if args.command == "batch":
        report = process_batch(
            args.source.absolute(),
            args.target.absolute(),
            preferred_suffix=args.prefer_suffix,
            workers=args.workers,
            delete_archives=args.delete_archives,
            dry_run=args.dry_run,
            progress=args.progress
        )
        print_batch_summary(report)
        return 1 if report.failures else 0

    if args.command == "clear-cache":
        if clear_cache(args.target.absolute()):
            print(f"Fingerprint cache deleted: {args.target}")
        else:
            print(f"No fingerprint cache found in: {args.target}")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    validate_args(args)
    setup_logging(args.verbose)

    try:
        status = run(args)
    except RootDirectoryError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\nInterrupted! Files copied so far are kept.")
        print("Run the same command again to continue; unchanged files are not re-hashed.")
        sys.exit(1)

    if status:
        sys.exit(status)
