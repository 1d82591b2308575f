#!/usr/bin/env python3
"""
Provenance registry CLI

Runs registry operations against a local data directory or, with
--server, against a running registry server.

Usage:
  provenance serve [--host <host>] [--port <port>]
  provenance register --title <t> --type <TYPE> --creator <id> (--hash <h> | --file <path>)
                      --format <fmt> [--size <bytes>] [--tag <tag> ...]
  provenance show <asset-id>
  provenance list <holder-id>
  provenance --caller <id> transfer <asset-id> --to <id> [--type FULL|LICENSE]
  provenance --caller <id> update-metadata <asset-id> [--format ...] [--tag ...]
  provenance --caller <id> revoke <asset-id>
  provenance verify
  provenance hash <file>
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import RegistryConfig
from .errors import RegistryError
from .hashing import hash_file
from .models import AssetType, TransferType


def _print_json(data: Any):
    print(json.dumps(data, indent=2))


def _require_caller(args) -> str:
    if not args.caller:
        raise SystemExit("Error: --caller is required for this command")
    return args.caller


def load_config(args) -> RegistryConfig:
    """Config file (if any) overridden by command-line flags."""
    config = RegistryConfig.from_file(args.config) if args.config else RegistryConfig()
    return config.override(
        data_dir=args.data_dir,
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
    )


def open_backend(args, config: RegistryConfig):
    """RegistryClient when --server is given, else a local RegistryService."""
    if args.server:
        from .client import RegistryClient
        return RegistryClient(args.server, caller_id=args.caller)

    from .registry import RegistryService
    return RegistryService.from_config(config)


def metadata_from_args(args, partial: bool = False) -> Dict[str, Any]:
    """Collect metadata fields given on the command line."""
    metadata = {}
    if args.format is not None:
        metadata["file_format"] = args.format
    if args.size is not None:
        metadata["file_size"] = args.size
    if args.dimensions is not None:
        metadata["dimensions"] = args.dimensions
    if args.duration is not None:
        metadata["duration"] = args.duration
    if args.tag is not None:
        metadata["additional_tags"] = list(args.tag)
    elif not partial:
        metadata["additional_tags"] = []
    return metadata


def cmd_serve(args, config: RegistryConfig):
    """Run the HTTP server."""
    from .registry import RegistryService
    from .server import RegistryServer

    registry = RegistryService.from_config(config)
    server = RegistryServer(registry, host=config.host, port=config.port)
    server.start()


def cmd_register(args, config: RegistryConfig):
    """Register a new asset."""
    content_hash = args.hash
    if args.file:
        path = Path(args.file)
        if content_hash is None:
            content_hash = hash_file(path)
        if args.size is None:
            args.size = path.stat().st_size

    backend = open_backend(args, config)
    asset = backend.register(
        title=args.title,
        description=args.description,
        asset_type=args.type,
        creator_id=args.creator,
        content_hash=content_hash,
        metadata=metadata_from_args(args),
    )
    _print_json(asset.to_dict())


def cmd_show(args, config: RegistryConfig):
    """Show one asset."""
    backend = open_backend(args, config)
    _print_json(backend.get_asset(args.asset_id).to_dict())


def cmd_list(args, config: RegistryConfig):
    """List the assets a holder currently holds."""
    backend = open_backend(args, config)
    _print_json([a.to_dict() for a in backend.get_creator_assets(args.holder_id)])


def cmd_transfer(args, config: RegistryConfig):
    """Transfer an asset."""
    caller_id = _require_caller(args)
    backend = open_backend(args, config)
    asset = backend.transfer_asset(args.asset_id, caller_id, args.to, args.type)
    _print_json(asset.to_dict())


def cmd_update_metadata(args, config: RegistryConfig):
    """Merge metadata fields into an asset."""
    caller_id = _require_caller(args)
    partial = metadata_from_args(args, partial=True)
    if not partial:
        raise SystemExit("Error: no metadata fields given")
    backend = open_backend(args, config)
    asset = backend.update_metadata(args.asset_id, caller_id, partial)
    _print_json(asset.to_dict())


def cmd_revoke(args, config: RegistryConfig):
    """Revoke an asset."""
    caller_id = _require_caller(args)
    backend = open_backend(args, config)
    _print_json(backend.revoke_asset(args.asset_id, caller_id).to_dict())


def cmd_verify(args, config: RegistryConfig):
    """Check the holder index against the asset store."""
    if args.server:
        raise SystemExit("Error: verify runs against a local data directory only")
    from .registry import RegistryService

    registry = RegistryService.from_config(config)
    problems = registry.audit()
    for problem in problems:
        print(f"  {problem}")
    print(f"{len(registry.assets)} assets, {len(problems)} problems")
    if problems:
        sys.exit(1)


def cmd_hash(args, config: RegistryConfig):
    """Print the content hash of a file."""
    print(hash_file(args.file, args.algorithm))


def _add_metadata_options(parser: argparse.ArgumentParser, required: bool):
    parser.add_argument("--format", required=required, help="File format (PNG, MP3, ...)")
    parser.add_argument("--size", type=int, help="File size in bytes")
    parser.add_argument("--dimensions", help="Dimensions, e.g. 1920x1080")
    parser.add_argument("--duration", type=float, help="Duration in seconds")
    parser.add_argument("--tag", action="append", help="Tag (repeatable)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="provenance",
        description="Provenance registry - ownership and history of digital assets",
    )
    parser.add_argument("--config", help="Registry config YAML file")
    parser.add_argument("--data-dir", help="Registry data directory")
    parser.add_argument("--server", help="Registry server URL (instead of a local data directory)")
    parser.add_argument("--caller", help="Identity of the caller")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to bind to")

    register_parser = subparsers.add_parser("register", help="Register an asset")
    register_parser.add_argument("--title", required=True)
    register_parser.add_argument("--description", default="")
    register_parser.add_argument("--type", required=True, choices=[t.value for t in AssetType])
    register_parser.add_argument("--creator", required=True, help="Creator ID")
    register_parser.add_argument("--hash", help="Content hash")
    register_parser.add_argument("--file", help="Compute content hash (and size) from this file")
    _add_metadata_options(register_parser, required=True)

    show_parser = subparsers.add_parser("show", help="Show an asset")
    show_parser.add_argument("asset_id")

    list_parser = subparsers.add_parser("list", help="List a holder's assets")
    list_parser.add_argument("holder_id")

    transfer_parser = subparsers.add_parser("transfer", help="Transfer an asset")
    transfer_parser.add_argument("asset_id")
    transfer_parser.add_argument("--to", required=True, help="Recipient ID")
    transfer_parser.add_argument("--type", default=TransferType.FULL.value,
                                 choices=[t.value for t in TransferType])

    metadata_parser = subparsers.add_parser("update-metadata", help="Merge metadata fields")
    metadata_parser.add_argument("asset_id")
    _add_metadata_options(metadata_parser, required=False)

    revoke_parser = subparsers.add_parser("revoke", help="Revoke an asset")
    revoke_parser.add_argument("asset_id")

    subparsers.add_parser("verify", help="Check index consistency")

    hash_parser = subparsers.add_parser("hash", help="Compute a file's content hash")
    hash_parser.add_argument("file")
    hash_parser.add_argument("--algorithm", default="sha3_256")

    return parser


COMMANDS = {
    "serve": cmd_serve,
    "register": cmd_register,
    "show": cmd_show,
    "list": cmd_list,
    "transfer": cmd_transfer,
    "update-metadata": cmd_update_metadata,
    "revoke": cmd_revoke,
    "verify": cmd_verify,
    "hash": cmd_hash,
}


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        sys.exit(1)

    try:
        config = load_config(args)
    except (OSError, ValueError) as e:
        print(f"Error: invalid config: {e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        COMMANDS[args.command](args, config)
    except (RegistryError, OSError, ValueError) as e:
        # ConnectionError is an OSError
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
