#!/usr/bin/env python3
"""
Maintenance commands for the Revault storage bucket.

Usage:
    python scripts/storage_admin.py check
    python scripts/storage_admin.py create-bucket
    python scripts/storage_admin.py make-public
    python scripts/storage_admin.py list [--prefix papers/2024-01-15/]
    python scripts/storage_admin.py upload-paper path/to/report.pdf
    python scripts/storage_admin.py upload-profile path/to/avatar.png --user-id u123
    python scripts/storage_admin.py delete-profile avatar-<uuid>.png --user-id u123

Requires:
    - .env file or environment with Google Cloud credentials
      (see src/config/settings.py)
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from src.config.settings import get_settings
from src.infrastructure.storage.client import StorageClient, get_storage_client
from src.infrastructure.storage.errors import StorageError


async def run_command(client: StorageClient, args) -> bool:
    """Run one subcommand. Returns True on success."""
    if args.command == "check":
        ok = await client.test_connection()
        print("Connection OK" if ok else "Connection FAILED")
        return ok

    if args.command == "create-bucket":
        await client.create_bucket_if_not_exists()
        return True

    if args.command == "make-public":
        await client.make_bucket_public()
        return True

    if args.command == "list":
        if args.prefix:
            await client.list_files_by_folder(args.prefix)
        else:
            await client.list_bucket_files()
        return True

    if args.command == "upload-paper":
        path = Path(args.path)
        url = await client.upload_file(path.read_bytes(), path.name)
        print(url)
        return True

    if args.command == "upload-profile":
        path = Path(args.path)
        url = await client.upload_profile_picture(path.read_bytes(), path.name, args.user_id)
        print(url)
        return True

    if args.command == "delete-profile":
        deleted = await client.delete_profile_picture(args.user_id, args.filename)
        print("Deleted" if deleted else "Delete FAILED")
        return deleted

    raise ValueError(f"Unknown command: {args.command}")


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Manage the Revault storage bucket')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('check', help='Test connectivity and bucket existence')
    subparsers.add_parser('create-bucket', help='Create the bucket if it doesn\'t exist')
    subparsers.add_parser('make-public', help='Grant public read on the bucket')

    list_parser = subparsers.add_parser('list', help='List objects')
    list_parser.add_argument('--prefix', default='', help='Only list keys under this prefix')

    paper_parser = subparsers.add_parser('upload-paper', help='Upload a research paper PDF')
    paper_parser.add_argument('path', help='Local file to upload')

    profile_parser = subparsers.add_parser('upload-profile', help='Upload a profile picture')
    profile_parser.add_argument('path', help='Local file to upload')
    profile_parser.add_argument('--user-id', required=True, help='Owner of the picture')

    delete_parser = subparsers.add_parser('delete-profile', help='Delete a profile picture')
    delete_parser.add_argument('filename', help='Stored filename, including the uuid suffix')
    delete_parser.add_argument('--user-id', required=True, help='Owner of the picture')

    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level.upper(),
    )

    problems = settings.validate_required_fields()
    for problem in problems:
        print(f"WARNING: {problem}")

    try:
        client = get_storage_client()
        success = asyncio.run(run_command(client, args))
    except (StorageError, OSError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
