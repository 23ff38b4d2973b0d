#!/usr/bin/env python3
import argparse
import sys

from pathkeeper.orchestrator import ElevationRequired, run_once


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deduplicate and balance the search path and its overflow buckets")
    parser.add_argument("--config", help="Path to YAML config (built-in defaults when omitted)")
    parser.add_argument("--scope", choices=["user", "machine"], help="Which environment to maintain")
    parser.add_argument("--master", dest="master_variable", help="Name of the master path variable")
    parser.add_argument("--bucket", dest="bucket_names", action="append", metavar="NAME", help="Overflow bucket variable (repeat, in order)")
    parser.add_argument("--max-length", dest="max_length", type=int, help="Length budget of the master value, delimiters included")
    parser.add_argument("--backup", dest="backup_enabled", action="store_true", help="Write a backup before changing anything")
    parser.add_argument("--no-backup", dest="backup_enabled", action="store_false", help="Skip the backup file")
    parser.add_argument("--backup-dir", dest="backup_dir", help="Directory for backup files")
    parser.add_argument("--store-file", dest="store_file", help="Use a YAML file instead of the OS environment store")
    parser.add_argument("--dry-run", action="store_true", help="Plan and print, write nothing")
    parser.add_argument("--report", dest="report_path", help="Write the run result as JSON")
    parser.set_defaults(backup_enabled=None)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {
        "scope": args.scope,
        "master_variable": args.master_variable,
        "bucket_names": args.bucket_names,
        "max_length": args.max_length,
        "backup_enabled": args.backup_enabled,
        "backup_dir": args.backup_dir,
        "store_file": args.store_file,
    }

    try:
        result = run_once(
            args.config,
            overrides=overrides,
            dry_run=args.dry_run,
            report_path=args.report_path,
        )
    except ElevationRequired as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    for w in result.warnings:
        print(f"note: {w}", file=sys.stderr)
    if args.dry_run:
        print(f"{result.master_variable}={result.master}")
        for name, value in result.buckets.items():
            print(f"{name}={value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
