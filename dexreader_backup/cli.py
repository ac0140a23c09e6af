"""
DexReader Backup Tool

Command line front end for the backup engine. The library is read from
and saved to a JSON snapshot (library.json by default).

Usage Examples:
----------------

Native backups:
    # Back up the library
    dexreader-backup export --library library.json --output my_library.dexreader

    # Back up only manga and chapters
    dexreader-backup export --output my_library.dexreader --no-collections --no-progress --no-reader-settings

    # Restore a backup into the library
    dexreader-backup import --input my_library.dexreader

Tachiyomi/Mihon:
    # Import the MangaDex part of a Mihon backup
    dexreader-backup mihon-import --input mihon.tachibk

    # Export the library for Mihon
    dexreader-backup mihon-export --output dexreader.tachibk

Inspection:
    # Convert a backup to JSON
    dexreader-backup decode --input my_library.dexreader --output my_library.json

    # Convert edited JSON back to a backup
    dexreader-backup encode --input my_library.json --output my_library.dexreader

    # Write the protobuf schemas
    dexreader-backup schema --dump-all
"""

import argparse
import logging
import sys

from .codec import mihon_codec, native_codec
from .config import load_config
from .errors import BackupError
from .mihon.importer import is_foreign_backup
from .results import ExportOptions
from .schema import SCHEMAS, write_proto
from .service import NATIVE_SUFFIX, BackupService
from .store import MemoryLibraryStore

logger = logging.getLogger('dexreader_backup')

DEFAULT_LIBRARY = 'library.json'


def setup_logging(verbose=False):
    """Log as "[YYYY-mm-dd HH:MM:SS][source] message"."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='[%(asctime)s][%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def detect_format(path, requested='auto'):
    """Work out whether a file is a native or a Mihon backup."""
    if requested != 'auto':
        return requested
    if str(path).lower().endswith(NATIVE_SUFFIX):
        return 'native'
    if is_foreign_backup(path):
        return 'mihon'
    raise ValueError(f"Cannot tell the backup format of {path}; pass --format")


def codec_for(format_name):
    return native_codec() if format_name == 'native' else mihon_codec()


def print_export_summary(result):
    print(f"\n{result.message}")
    if result.file_path and result.success:
        print(f"  Manga:           {result.exported_manga_count}")
        print(f"  Chapters:        {result.exported_chapters_count}")
        print(f"  Collections:     {result.exported_collections_count}")
        print(f"  Progress rows:   {result.exported_progress_count}")
        print(f"  Reader settings: {result.exported_reader_settings_count}")


def print_import_summary(result):
    print(f"\n{result.message}")
    print(f"  Manga imported:       {result.imported_manga_count} ({result.updated_manga_count} updated)")
    print(f"  Manga skipped:        {result.skipped_manga_count}")
    print(f"  Manga failed:         {result.failed_manga_count}")
    print(f"  Chapters imported:    {result.imported_chapters_count}")
    print(f"  Collections created:  {result.imported_collections_count} ({result.skipped_collections_count} reused)")
    print(f"  Collection items:     {result.imported_collection_items_count}")
    print(f"  Progress rows:        {result.imported_chapter_progress_count + result.imported_manga_progress_count} ({result.skipped_progress_count} skipped)")
    print(f"  Reader overrides:     {result.imported_reader_overrides_count} ({result.skipped_reader_overrides_count} skipped)")
    for warning in result.warnings:
        print(f"  Warning: {warning}")
    if result.errors:
        print(f"\n{len(result.errors)} problem(s):")
        for issue in result.errors:
            print(f"  - {issue}")


def build_parser():
    parser = argparse.ArgumentParser(
        prog='dexreader-backup',
        description='''
DexReader Backup Tool - back up, restore and migrate your DexReader manga library

This tool allows you to:
- Export the library (manga, chapters, collections, progress, reader settings) to a .dexreader backup
- Restore a .dexreader backup without duplicating existing entries
- Import the MangaDex part of a Tachiyomi/Mihon backup
- Export the library as a Tachiyomi/Mihon backup
- Convert backup files to/from JSON for inspection
''',
        epilog='''
Examples:
  dexreader-backup export --output my_library.dexreader
  dexreader-backup mihon-import --input mihon.tachibk

For more detailed help on a specific command:
  dexreader-backup <command> --help
''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--config', type=str, default=None,
                        help='Path to a JSON configuration file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Native export
    export_parser = subparsers.add_parser('export',
        help='Back up the library to a .dexreader file',
        description='Write every favourited manga and its cached chapters, plus the selected optional sections, to a .dexreader backup.',
        epilog='''
Examples:
  # Full backup
  dexreader-backup export --output my_library.dexreader

  # Library only, without reading progress
  dexreader-backup export --output my_library.dexreader --no-progress
''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    export_parser.add_argument('--library', '-l', type=str, default=DEFAULT_LIBRARY,
                               help=f'Library snapshot to read (default: {DEFAULT_LIBRARY})')
    export_parser.add_argument('--output', '-o', type=str, default='library.dexreader',
                               help='Output backup file (default: library.dexreader)')
    export_parser.add_argument('--no-collections', action='store_true',
                               help='Leave collections out of the backup')
    export_parser.add_argument('--no-progress', action='store_true',
                               help='Leave reading progress out of the backup')
    export_parser.add_argument('--no-reader-settings', action='store_true',
                               help='Leave per-manga reader settings out of the backup')

    # Native import
    import_parser = subparsers.add_parser('import',
        help='Restore a .dexreader backup into the library',
        description='Merge a .dexreader backup into the library. Existing manga, chapters and progress are updated in place; same-named collections are reused.',
        epilog='''
Example:
  dexreader-backup import --input my_library.dexreader --library library.json
''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    import_parser.add_argument('--library', '-l', type=str, default=DEFAULT_LIBRARY,
                               help=f'Library snapshot to update (default: {DEFAULT_LIBRARY})')
    import_parser.add_argument('--input', '-i', type=str, required=True,
                               help='Input backup file (.dexreader)')

    # Mihon export
    mihon_export_parser = subparsers.add_parser('mihon-export',
        help='Export the library as a Tachiyomi/Mihon backup',
        description='Write favourited manga with their read chapters, history and categories to a .tachibk file that Mihon can restore.',
        epilog='''
Example:
  dexreader-backup mihon-export --output dexreader.tachibk
''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    mihon_export_parser.add_argument('--library', '-l', type=str, default=DEFAULT_LIBRARY,
                                     help=f'Library snapshot to read (default: {DEFAULT_LIBRARY})')
    mihon_export_parser.add_argument('--output', '-o', type=str, default='dexreader.tachibk',
                                     help='Output backup file (.tachibk or .proto.gz, default: dexreader.tachibk)')

    # Mihon import
    mihon_import_parser = subparsers.add_parser('mihon-import',
        help='Import MangaDex manga from a Tachiyomi/Mihon backup',
        description='''
Import the MangaDex entries of a Tachiyomi/Mihon backup.

IMPORTANT NOTES:
- Manga from other sources are ignored
- Manga already in the library are skipped
- Categories become collections (existing collections with the same name are reused)
''',
        epilog='''
Example:
  dexreader-backup mihon-import --input mihon.tachibk
''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    mihon_import_parser.add_argument('--library', '-l', type=str, default=DEFAULT_LIBRARY,
                                     help=f'Library snapshot to update (default: {DEFAULT_LIBRARY})')
    mihon_import_parser.add_argument('--input', '-i', type=str, required=True,
                                     help='Input backup file (.tachibk or .proto.gz)')

    # Decode command
    decode_parser = subparsers.add_parser('decode',
        help='Decode a backup file to JSON for viewing or editing',
        description='Convert a .dexreader or Tachiyomi/Mihon backup to JSON.',
        epilog='''
Example:
  dexreader-backup decode --input my_library.dexreader --output my_library.json
''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    decode_parser.add_argument('--input', '-i', type=str, required=True,
                               help='Input backup file')
    decode_parser.add_argument('--output', '-o', type=str, default='output.json',
                               help='Output JSON file (default: output.json)')
    decode_parser.add_argument('--format', type=str, choices=['auto'] + list(SCHEMAS), default='auto',
                               help='Backup format (default: detect from the file name)')

    # Encode command
    encode_parser = subparsers.add_parser('encode',
        help='Encode a JSON file to backup format',
        description='Convert a JSON file produced by decode back to a backup file.',
        epilog='''
Example:
  dexreader-backup encode --input edited.json --output edited.dexreader
''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    encode_parser.add_argument('--input', '-i', type=str, required=True,
                               help='Input JSON file')
    encode_parser.add_argument('--output', '-o', type=str, required=True,
                               help='Output backup file (.dexreader, .tachibk or .proto.gz)')
    encode_parser.add_argument('--format', type=str, choices=['auto'] + list(SCHEMAS), default='auto',
                               help='Backup format (default: detect from the output file name)')

    # Schema command
    schema_parser = subparsers.add_parser('schema',
        help='Write the protobuf schema of a backup format',
        description='Write the .proto definition used to read and write backups.',
        epilog='''
Examples:
  dexreader-backup schema --format native
  dexreader-backup schema --dump-all
''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    schema_parser.add_argument('--format', type=str, choices=list(SCHEMAS), default='native',
                               help='Backup format (default: native)')
    schema_parser.add_argument('--dump-all', action='store_true',
                               help='Write schemas for every format')
    return parser


def run_command(args):
    """Execute a parsed command. Returns the process exit code."""
    config = load_config(args.config)

    if args.command in ('export', 'mihon-export'):
        store = MemoryLibraryStore.load(args.library)
        service = BackupService.from_store(store, config)
        if args.command == 'export':
            options = ExportOptions(
                include_collections=not args.no_collections,
                include_progress=not args.no_progress,
                include_reader_settings=not args.no_reader_settings,
            )
            result = service.export_native(args.output, options)
        else:
            result = service.export_mihon(args.output)
        print_export_summary(result)
        return 0 if result.success else 1

    if args.command in ('import', 'mihon-import'):
        store = MemoryLibraryStore.load(args.library)
        service = BackupService.from_store(store, config)
        if args.command == 'import':
            result = service.import_native(args.input)
        else:
            result = service.import_mihon(args.input)
        store.save(args.library)
        print_import_summary(result)
        return 0

    if args.command == 'decode':
        codec = codec_for(detect_format(args.input, args.format))
        codec.write_json(codec.read(args.input), args.output)
        print(f"Backup successfully decoded to {args.output}")
        return 0

    if args.command == 'encode':
        codec = codec_for(detect_format(args.output, args.format))
        codec.write(codec.read_json(args.input), args.output)
        print(f"JSON successfully encoded to {args.output}")
        return 0

    if args.command == 'schema':
        formats = list(SCHEMAS) if args.dump_all else [args.format]
        for format_name in formats:
            print(f"Schema written to {write_proto(format_name)}")
        return 0

    return 2


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 2

    try:
        return run_command(args)
    except (BackupError, ValueError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
