"""CLI entrypoint for reconciling local repair orders with the remote store."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from aiohttp import ClientSession

from repair_desk.cloudsync import (
    CloudSyncError,
    DirectoryStore,
    DirectorySync,
    DocumentStoreClient,
    OrderSyncManager,
    RemoteStoreError,
    SyncConfig,
)
from repair_desk.const import (
    CONF_API_KEY,
    CONF_BASE_URL,
    CONF_PROJECT_ID,
    CONF_RETRY_MAX_ATTEMPTS,
    CONF_STORAGE_DIR,
    CONF_SYNC_CONCURRENCY,
    DIRECTORY_KINDS,
    ENV_API_KEY,
    ENV_BASE_URL,
    ENV_PROJECT_ID,
)
from repair_desk.export import orders_to_csv
from repair_desk.storage import StorageError

_LOGGER = logging.getLogger(__name__)

_ENV_OPTIONS = {
    ENV_BASE_URL: CONF_BASE_URL,
    ENV_PROJECT_ID: CONF_PROJECT_ID,
    ENV_API_KEY: CONF_API_KEY,
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync repair orders with the remote document store")
    parser.add_argument("--options", type=Path, help="YAML file with sync options")
    parser.add_argument("--base-url", help="Remote store base URL")
    parser.add_argument("--project-id", help="Remote project identifier")
    parser.add_argument("--api-key", help="API key sent as a bearer token")
    parser.add_argument("--storage-dir", help="Directory holding the local stores")
    parser.add_argument("--concurrency", type=int, help="Orders reconciled in parallel")
    parser.add_argument("--max-attempts", type=int, help="Retries after a failing pass")
    parser.add_argument("--log-level", default="INFO", help="Logging level")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("reconcile", help="push local orders and wait for scheduled retries")
    sub.add_parser("status", help="show local order count and configuration")
    list_cmd = sub.add_parser("list", help="print orders as JSON")
    list_cmd.add_argument("--remote", action="store_true", help="list the remote copy instead")
    export_cmd = sub.add_parser("export", help="write local orders as CSV")
    export_cmd.add_argument("output", nargs="?", type=Path, help="CSV file (stdout when omitted)")
    upload_cmd = sub.add_parser("upload-directory", help="push a lookup list to the remote store")
    upload_cmd.add_argument("kind", choices=DIRECTORY_KINDS)
    download_cmd = sub.add_parser("download-directory", help="replace a lookup list with the remote copy")
    download_cmd.add_argument("kind", choices=DIRECTORY_KINDS)
    return parser.parse_args(argv)


def load_options(args: argparse.Namespace, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Merge the options file, command line flags and environment, in that order."""

    options: dict[str, Any] = {}
    if args.options:
        loaded = yaml.safe_load(args.options.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, Mapping):
            raise ValueError(f"{args.options}: expected a mapping of options")
        options.update(loaded)
    flags = {
        CONF_BASE_URL: args.base_url,
        CONF_PROJECT_ID: args.project_id,
        CONF_API_KEY: args.api_key,
        CONF_STORAGE_DIR: args.storage_dir,
        CONF_SYNC_CONCURRENCY: args.concurrency,
        CONF_RETRY_MAX_ATTEMPTS: args.max_attempts,
    }
    options.update({key: value for key, value in flags.items() if value is not None})
    environ = os.environ if environ is None else environ
    for env_key, option_key in _ENV_OPTIONS.items():
        value = environ.get(env_key)
        if value:
            options[option_key] = value
    return options


async def run_command(args: argparse.Namespace, config: SyncConfig, session: ClientSession) -> int:
    client = DocumentStoreClient(
        config.base_url,
        config.project_id,
        api_key=config.api_key,
        session=session,
        timeout=config.request_timeout,
    )
    manager = OrderSyncManager(config, remote=client if config.ready else None)
    try:
        if args.command == "reconcile":
            report = await manager.async_reconcile()
            if report.retry_scheduled:
                _LOGGER.info("Waiting for scheduled retries")
                report = await manager.async_wait_idle() or report
            print(json.dumps(manager.status(), indent=2))
            return 0 if report.ok else 1
        if args.command == "status":
            await manager.async_list_local()
            print(json.dumps(manager.status(), indent=2))
            return 0
        if args.command == "list":
            if args.remote:
                records = await manager.async_pull_remote()
            else:
                records = await manager.async_list_local()
            print(json.dumps([record.to_dict() for record in records], indent=2, ensure_ascii=False))
            return 0
        if args.command == "export":
            text = orders_to_csv(await manager.async_list_local())
            if args.output:
                args.output.write_text(text, encoding="utf-8")
            else:
                sys.stdout.write(text)
            return 0
        store = DirectoryStore(args.kind, base_dir=config.storage_dir)
        if not config.ready:
            raise CloudSyncError("remote store is not configured", reason="not_configured")
        directory = DirectorySync(store, client)
        if args.command == "upload-directory":
            result = await directory.upload_all()
            print(json.dumps({"created": result.created, "updated": result.updated, "failed": list(result.failed)}))
            return 0 if not result.failed else 1
        entries = await directory.download_all()
        print(json.dumps([entry.to_dict() for entry in entries], indent=2, ensure_ascii=False))
        return 0
    finally:
        await manager.async_stop()


async def main_async(args: argparse.Namespace) -> int:
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    config = SyncConfig.from_options(load_options(args))
    async with ClientSession() as session:
        try:
            return await run_command(args, config, session)
        except CloudSyncError as err:
            _LOGGER.error("Sync unavailable (%s): %s", err.reason, err)
        except (RemoteStoreError, StorageError) as err:
            _LOGGER.error("%s", err)
    return 2


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        return asyncio.run(main_async(args))
    except KeyboardInterrupt:  # pragma: no cover - manual interruption
        _LOGGER.info("Sync agent stopped")
        return 130


if __name__ == "__main__":
    sys.exit(main())
