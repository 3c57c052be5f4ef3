from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional, Sequence

from ..config import STORAGE_CHOICES, Settings, load_settings
from ..errors import InventoryError
from ..logging import get_logger, set_level
from ..inventory import InventoryService, open_inventory
from ..inventory.constants import DEFAULT_DELIMITER, EXPORT_FORMATS, KIND_TEXT
from ..paths import expand_abs

LOG = get_logger("cli-main")


def _add_storage_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--storage", choices=STORAGE_CHOICES, help="Backing store (default: STOCKROOM_STORAGE or sqlite)")
    p.add_argument("--data-dir", help="Storage folder (default: STOCKROOM_DATA_DIR or var/inventory)")


def _resolve(ns: argparse.Namespace) -> Settings:
    settings = load_settings(os.getcwd())
    if getattr(ns, "storage", None):
        settings.storage = ns.storage
    if getattr(ns, "data_dir", None):
        settings.data_dir = expand_abs(ns.data_dir)
    return settings


def _open(ns: argparse.Namespace) -> InventoryService:
    settings = _resolve(ns)
    return open_inventory(settings.data_dir, settings.storage)


def _print_json(payload: object) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _handle_init(ns: argparse.Namespace) -> int:
    svc = _open(ns)
    LOG.info(f"Inventory storage ready at: {svc.location}")
    print(svc.location)
    return 0


def _handle_import(ns: argparse.Namespace) -> int:
    svc = _open(ns)
    if ns.file:
        path = expand_abs(ns.file)
        with open(path, "rb") as f:
            content = f.read()
        result = svc.import_file(os.path.basename(path), content)
    else:
        if ns.paste == "-":
            data = sys.stdin.read()
        else:
            with open(expand_abs(ns.paste), "r", encoding="utf-8") as f:
                data = f.read()
        delimiter = ns.delimiter.encode("utf-8").decode("unicode_escape") if ns.delimiter else DEFAULT_DELIMITER
        result = svc.import_paste(data, delimiter, has_header=ns.header)
    _print_json(result.to_dict())
    return 1 if result.errors and not result.imported else 0


def _handle_export(ns: argparse.Namespace) -> int:
    svc = _open(ns)
    payload = svc.export(ns.format)
    output = expand_abs(ns.output) if ns.output else os.path.join(os.getcwd(), payload.filename)
    os.makedirs(os.path.dirname(output) or ".", exist_ok=True)
    with open(output, "wb") as f:
        f.write(payload.content)
    LOG.info(f"Wrote {len(payload.content)} bytes to {output}")
    print(output)
    return 0


def _handle_columns(ns: argparse.Namespace) -> int:
    svc = _open(ns)
    if ns.add:
        name = svc.add_column(ns.add, ns.type)
        LOG.info(f"Column added: {name}")
    _print_json(svc.describe_columns())
    return 0


def _handle_serve(ns: argparse.Namespace) -> int:
    from ..inventory.web import create_app
    import uvicorn

    settings = _resolve(ns)
    allow_origins = ns.allow_origins or settings.allow_origins
    if "*" in allow_origins:
        allow_origins = ["*"]

    app = create_app(
        root_dir=os.getcwd(),
        storage=settings.storage,
        data_dir=settings.data_dir,
        static_dir=ns.static_dir,
        allow_origins=allow_origins,
        serve_static=not ns.api_only,
    )

    uvicorn.run(
        app,
        host=ns.host or settings.host,
        port=ns.port or settings.port,
        reload=ns.reload,
        log_level=ns.log_level,
    )
    LOG.info("Server stopped.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stockroom",
        description="Inventory record-keeper: products API, bulk import and export.",
    )
    parser.add_argument("--log-level", dest="global_log_level", help="Override LOG_LEVEL for this run")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API (and static UI when present).")
    serve.add_argument("--host", help="Bind address (default: HOST or 127.0.0.1)")
    serve.add_argument("--port", type=int, help="Port (default: PORT or 3000)")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload (development only)")
    serve.add_argument("--log-level", default="info", help="uvicorn log level")
    serve.add_argument("--static-dir", help="Static directory relative to project root (default: public)")
    serve.add_argument("--api-only", action="store_true", help="Serve JSON API without static files")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    _add_storage_args(serve)
    serve.set_defaults(handler=_handle_serve)

    init = subparsers.add_parser("init", help="Create/ensure the storage schema exists")
    _add_storage_args(init)
    init.set_defaults(handler=_handle_init)

    imp = subparsers.add_parser("import", help="Import products from a spreadsheet or pasted text")
    source = imp.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", help="CSV/XLS/XLSX file to import")
    source.add_argument("--paste", help="Text file with delimiter-separated rows ('-' for stdin)")
    imp.add_argument("--delimiter", help="Column delimiter for --paste (default: tab; escapes like \\t allowed)")
    header = imp.add_mutually_exclusive_group()
    header.add_argument("--header", dest="header", action="store_true", default=None, help="First line is a header")
    header.add_argument("--no-header", dest="header", action="store_false", help="First line is data")
    _add_storage_args(imp)
    imp.set_defaults(handler=_handle_import)

    exp = subparsers.add_parser("export", help="Export all products")
    exp.add_argument("--format", choices=EXPORT_FORMATS, default="json")
    exp.add_argument("--output", help="Destination path (default: ./products.<ext>)")
    _add_storage_args(exp)
    exp.set_defaults(handler=_handle_export)

    cols = subparsers.add_parser("columns", help="List fields, or add a dynamic field")
    cols.add_argument("--add", metavar="NAME", help="Dynamic column to add")
    cols.add_argument("--type", default=KIND_TEXT, help="Column kind: text or numeric")
    _add_storage_args(cols)
    cols.set_defaults(handler=_handle_columns)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(provided)
    if args.global_log_level:
        set_level(args.global_log_level)
    LOG.debug(f"CLI invoked with arguments: {provided}")

    try:
        code = args.handler(args)
    except InventoryError as exc:
        LOG.error(exc.message)
        code = 2
    except OSError as exc:
        LOG.error(f"{exc.strerror or exc}: {exc.filename or ''}".rstrip(": "))
        code = 2
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
