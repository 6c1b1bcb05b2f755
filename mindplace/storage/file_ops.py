"""
JSON file operations for the local mirror.

Provides atomic read/write of whole collections with:
- Atomic writes using temp file + rename
- A version envelope around every persisted collection
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import LocalDataParseError, PersistenceError

SCHEMA_VERSION = 1


async def ensure_directory(path: Path) -> None:
    """Ensure directory exists, creating if necessary."""
    try:
        await aiofiles.os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise PersistenceError("create_directory", str(path), e) from e


async def read_collection(path: Path) -> list[dict[str, Any]] | None:
    """Read a persisted collection.

    A bare JSON array (the unversioned layout) is accepted as-is.

    Returns:
        The items, or None if nothing has been persisted yet

    Raises:
        LocalDataParseError: If the file cannot be decoded
    """
    try:
        if not await aiofiles.os.path.exists(path):
            return None
        async with aiofiles.open(path, encoding="utf-8") as f:
            content = await f.read()
    except OSError as e:
        raise LocalDataParseError(str(path), f"unreadable: {e}") from e
    except UnicodeDecodeError as e:
        raise LocalDataParseError(str(path), f"not valid UTF-8: {e.reason}") from e

    if not content.strip():
        return None

    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise LocalDataParseError(str(path), f"invalid JSON: {e.msg}") from e

    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        version = payload.get("version")
        if version != SCHEMA_VERSION:
            raise LocalDataParseError(str(path), f"unsupported schema version {version!r}")
        items = payload.get("items")
    else:
        items = None

    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise LocalDataParseError(str(path), "expected a list of objects")
    return items


async def write_collection(path: Path, items: list[dict[str, Any]]) -> None:
    """Write a collection atomically using temp file + rename.

    Raises:
        PersistenceError: If the collection cannot be written
    """
    await ensure_directory(path.parent)

    payload = {"version": SCHEMA_VERSION, "items": items}
    try:
        fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".json")
    except OSError as e:
        raise PersistenceError("write_collection", str(path), e) from e

    try:
        os.close(fd)
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(payload, indent=2, ensure_ascii=False))
            await f.flush()
            os.fsync(f.fileno())

        await aiofiles.os.replace(temp_path, path)
    except Exception as e:
        try:
            await aiofiles.os.remove(temp_path)
        except OSError:
            pass
        raise PersistenceError("write_collection", str(path), e) from e
