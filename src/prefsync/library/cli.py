"""Library CLI: compact, expand and migrate preference-set files.

    prefsync-library build-index [--src DIR] [--out FILE]
    prefsync-library expand-index [--starter FILE] [--index FILE] [--outdir DIR]
    prefsync-library migrate INPUT.json

Path defaults come from Settings (``PREFSYNC_LIBRARY_*`` environment variables).
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from prefsync.config import Settings
from prefsync.library.prefs import build_library_index, expand_library_index
from prefsync.schema.migrate import MigrationError, migrate_v0
from prefsync.share.starter_index import StarterPackError, load_starter_pack

logger = logging.getLogger(__name__)


def _write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def cmd_build_index(args: argparse.Namespace) -> int:
    index = build_library_index(args.src)
    _write_json(Path(args.out), index)
    logger.info("Wrote %d entries to %s", len(index["candidates"]), args.out)
    return 0


def cmd_expand_index(args: argparse.Namespace) -> int:
    try:
        starter_pack = load_starter_pack(args.starter)
        index = json.loads(Path(args.index).read_text(encoding="utf-8"))
    except (StarterPackError, OSError, ValueError) as e:
        logger.error("Cannot expand library index: %s", e)
        return 1

    outdir = Path(args.outdir)
    expanded = expand_library_index(index, starter_pack)
    for candidate_id, document in expanded.items():
        _write_json(outdir / f"{candidate_id}.json", document.model_dump(by_alias=True))
    logger.info("Expanded %d candidate sets to %s", len(expanded), outdir)
    return 0


def cmd_migrate(args: argparse.Namespace) -> int:
    in_path = Path(args.input)
    try:
        document = json.loads(in_path.read_text(encoding="utf-8"))
        migrated = migrate_v0(document)
    except (OSError, ValueError, MigrationError) as e:
        logger.error("Migration failed: %s", e)
        return 1

    out_path = in_path.with_name(f"{in_path.stem}.v1.json")
    _write_json(out_path, migrated.model_dump(by_alias=True))
    logger.info("Migrated %d topics to %s", len(migrated.topics), out_path)
    return 0


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prefsync-library", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("build-index", help="Compact expanded preference sets into a library index")
    p.add_argument("--src", default=settings.library_src_dir)
    p.add_argument("--out", default=settings.library_index_path)
    p.set_defaults(func=cmd_build_index)

    p = sub.add_parser("expand-index", help="Expand a library index into full preference sets")
    p.add_argument("--starter", default=settings.starter_pack_path or None)
    p.add_argument("--index", default=settings.library_index_path)
    p.add_argument("--outdir", default=settings.library_out_dir)
    p.set_defaults(func=cmd_expand_index)

    p = sub.add_parser("migrate", help="Migrate a tsb.v0 document to tsb.v1")
    p.add_argument("input")
    p.set_defaults(func=cmd_migrate)

    return parser


def main(argv: list[str] | None = None) -> int:
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    args = build_parser(settings).parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
