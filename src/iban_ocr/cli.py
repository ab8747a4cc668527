#!/usr/bin/env python3
"""
IBAN OCR CLI - Command Line Interface
=====================================

Main CLI entry point for IBAN OCR operations.

Usage:
    iban-ocr validate <iban>                 Validate an IBAN
    iban-ocr extract [<text>] [--file F]     Extract an IBAN from OCR text
    iban-ocr format <iban>                   Print an IBAN in blocks of four
    iban-ocr scan <image> [--save]           Scan an IBAN from an image
    iban-ocr records list|search|delete|export
"""

import argparse
import json
import sys
from pathlib import Path

import yaml

from . import __version__


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _open_store(args):
    from .config import get_config
    from .storage import RecordStore

    return RecordStore(args.store or get_config().storage.records_path)


def cmd_validate(args):
    """Validate a single IBAN."""
    from .core import validate_iban, format_iban_for_display

    result = validate_iban(args.iban)

    if args.json:
        _print_json(result.to_dict())
    elif result.is_valid:
        print(f"VALID: {format_iban_for_display(result.iban)}")
        print(result.detail)
    else:
        print(f"INVALID: {result.iban or args.iban}")
        print(f"Reason: {result.detail} ({result.error_kind.value})")

    return 0 if result.is_valid else 1


def cmd_extract(args):
    """Extract an IBAN from OCR text."""
    from .core import get_extractor, format_iban_for_display

    if args.file:
        path = Path(args.file)
        if not path.exists():
            print(f"Error: File not found: {path}", file=sys.stderr)
            return 1
        text = path.read_text(encoding='utf-8')
    elif args.text is not None:
        text = args.text
    else:
        text = sys.stdin.read()

    result = get_extractor().extract_with_details(text)

    if args.json:
        _print_json(result.to_dict())
    elif result.found:
        print(f"IBAN: {format_iban_for_display(result.iban)}")
        if result.corrections:
            print(f"Corrections: {', '.join(result.corrections)}")
    else:
        print("No valid IBAN found")

    return 0 if result.found else 1


def cmd_format(args):
    """Print an IBAN grouped in blocks of four."""
    from .core import format_iban_for_display

    formatted = format_iban_for_display(args.iban)
    if not formatted:
        print("Error: nothing to format", file=sys.stderr)
        return 1
    print(formatted)
    return 0


def cmd_scan(args):
    """Scan an IBAN from an image, optionally saving it."""
    from .pipeline import IBANScanPipeline, PipelineError
    from .storage import build_record

    try:
        pipeline = IBANScanPipeline(provider=args.provider, preprocess_strategy=args.strategy)
    except PipelineError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    result = pipeline.scan(args.image, source=args.source)

    if result.error:
        if args.json:
            _print_json(result.to_dict())
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    if args.json:
        _print_json(result.to_dict())
    elif result.found:
        print(f"IBAN: {result.formatted}")
        print(f"Confidence: {result.confidence:.3f}")
        print(f"Time: {result.processing_time_ms:.1f}ms")
    else:
        print("No valid IBAN found")
        print(f"Raw text: {result.raw_ocr}")

    if not result.found:
        return 1

    if args.save:
        record = _open_store(args).save(
            build_record(result.iban, owner_name=args.owner, source=args.source)
        )
        if not args.json:
            print(f"Saved record: {record.id}")

    return 0


def cmd_records(args):
    """Manage saved IBAN records."""
    from .storage import export_to_csv
    from .core import format_iban_for_display

    store = _open_store(args)

    if args.records_command == 'delete':
        if not store.delete(args.record_id):
            print(f"Error: No record with id {args.record_id}", file=sys.stderr)
            return 1
        print(f"Deleted record: {args.record_id}")
        return 0

    if args.records_command == 'search':
        records = store.search(args.query)
    else:
        records = store.get_all()

    if args.records_command == 'export':
        csv_text = export_to_csv(records)
        if args.output:
            with open(args.output, 'w', encoding='utf-8') as f:
                f.write(csv_text)
            print(f"Exported {len(records)} records to: {args.output}")
        else:
            print(csv_text, end='')
        return 0

    if args.json:
        _print_json([r.to_dict() for r in records])
        return 0

    if not records:
        print("No records found")
        return 0

    for r in records:
        status = 'valid' if r.is_valid else 'invalid'
        owner = r.owner_name or '-'
        print(f"{r.id}  {format_iban_for_display(r.iban):<42}  {status:<7}  {owner}")
    return 0


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog='iban-ocr',
        description='IBAN OCR - Extract and validate International Bank Account Numbers',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--config', '-c', help='Path to a JSON or YAML config file')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Validate command
    validate_parser = subparsers.add_parser('validate', help='Validate an IBAN')
    validate_parser.add_argument('iban', help='IBAN (spaces allowed)')
    validate_parser.add_argument('--json', '-j', action='store_true', help='Output as JSON')

    # Extract command
    extract_parser = subparsers.add_parser('extract', help='Extract an IBAN from OCR text')
    extract_parser.add_argument('text', nargs='?', help='OCR text (reads stdin if omitted)')
    extract_parser.add_argument('--file', '-f', help='Read OCR text from a file')
    extract_parser.add_argument('--json', '-j', action='store_true', help='Output as JSON')

    # Format command
    format_parser = subparsers.add_parser('format', help='Format an IBAN for display')
    format_parser.add_argument('iban', help='IBAN (spaces allowed)')

    # Scan command
    scan_parser = subparsers.add_parser('scan', help='Scan an IBAN from an image')
    scan_parser.add_argument('image', help='Path to image file')
    scan_parser.add_argument('--provider', '-p', help='OCR provider (paddleocr, tesseract)')
    scan_parser.add_argument('--strategy', '-s',
                             help='Preprocessing strategy (none, standard, document, low_contrast, adaptive)')
    scan_parser.add_argument('--source', choices=['camera', 'gallery'], default='gallery',
                             help='Capture source stored with the record')
    scan_parser.add_argument('--save', action='store_true', help='Save the IBAN to the record store')
    scan_parser.add_argument('--owner', default='', help='Owner name stored with the record')
    scan_parser.add_argument('--store', help='Record file (default from config)')
    scan_parser.add_argument('--json', '-j', action='store_true', help='Output as JSON')

    # Records command
    records_parser = subparsers.add_parser('records', help='Manage saved IBAN records')
    records_parser.add_argument('--store', help='Record file (default from config)')
    records_sub = records_parser.add_subparsers(dest='records_command', required=True)

    list_parser = records_sub.add_parser('list', help='List records, newest first')
    list_parser.add_argument('--json', '-j', action='store_true', help='Output as JSON')

    search_parser = records_sub.add_parser('search', help='Search by IBAN or owner name')
    search_parser.add_argument('query', help='Search text')
    search_parser.add_argument('--json', '-j', action='store_true', help='Output as JSON')

    delete_parser = records_sub.add_parser('delete', help='Delete a record')
    delete_parser.add_argument('record_id', help='Record id')

    export_parser = records_sub.add_parser('export', help='Export records as CSV')
    export_parser.add_argument('--output', '-o', help='Output CSV file (stdout if omitted)')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    from .config import PipelineConfig, set_config
    from .storage import StorageError

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.config:
        try:
            set_config(PipelineConfig.load(args.config))
        except (OSError, ValueError, yaml.YAMLError) as e:
            print(f"Error: Could not load config {args.config}: {e}", file=sys.stderr)
            return 1

    commands = {
        'validate': cmd_validate,
        'extract': cmd_extract,
        'format': cmd_format,
        'scan': cmd_scan,
        'records': cmd_records,
    }

    try:
        return commands[args.command](args)
    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
