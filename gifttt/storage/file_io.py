import os
import json
import logging
import tempfile
import stat
from typing import Dict

from gifttt.core.exceptions import StoreError

file_io_logger = logging.getLogger("gifttt.storage.file_io")

NEW_FILE_MODE = 0o600


def write_json_atomic(filepath: str, data: Dict[str, str]) -> None:
    """
    Replace ``filepath`` with ``data`` serialized as a JSON object.

    The payload goes to a temp file in the same directory which is then
    moved over the target, so readers see either the old or the new
    content. An existing file keeps its mode; a new one gets 0600.

    Raises:
        StoreError: if the directory, temp file or rename fails.
    """
    dir_path = os.path.dirname(filepath) or "."
    try:
        os.makedirs(dir_path, exist_ok=True)
    except OSError as e:
        raise StoreError(f"cannot create directory {dir_path}: {e}") from e

    try:
        mode = stat.S_IMODE(os.stat(filepath).st_mode)
    except FileNotFoundError:
        mode = NEW_FILE_MODE
    except OSError as e:
        file_io_logger.debug(f"Could not stat {filepath}: {e}")
        mode = NEW_FILE_MODE

    try:
        fd, tmp_name = tempfile.mkstemp(dir=dir_path, prefix=".gifttt-", suffix=".tmp")
    except OSError as e:
        raise StoreError(f"cannot create temp file in {dir_path}: {e}") from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            json.dump(data, fp, indent=2, sort_keys=True)
            fp.flush()
            os.fsync(fp.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, filepath)
    except OSError as e:
        file_io_logger.error(f"Atomic write to {filepath} failed: {e}")
        try:
            os.remove(tmp_name)
        except FileNotFoundError:
            pass
        raise StoreError(f"cannot write {filepath}: {e}") from e

    file_io_logger.debug(f"Wrote {len(data)} keys to {filepath}")


def read_json_object(filepath: str) -> Dict[str, str]:
    """
    Read a store file written by write_json_atomic.

    A missing file is an empty store. Anything else that cannot be read
    back as a JSON object raises StoreError, so a corrupted file is never
    silently replaced by the next write.
    """
    try:
        with open(filepath, "r", encoding="utf-8") as fp:
            data = json.load(fp)
    except FileNotFoundError:
        file_io_logger.debug(f"{filepath} does not exist yet, starting empty")
        return {}
    except json.JSONDecodeError as e:
        file_io_logger.error(f"{filepath} is corrupted (invalid JSON at line {e.lineno})")
        raise StoreError(f"corrupted store file: {filepath}") from e
    except OSError as e:
        file_io_logger.error(f"Error reading {filepath}: {e}")
        raise StoreError(f"cannot read {filepath}: {e}") from e

    if not isinstance(data, dict):
        raise StoreError(f"store file {filepath} does not hold a JSON object")
    file_io_logger.info(f"Loaded {len(data)} keys from {filepath}")
    return {str(k): str(v) for k, v in data.items()}
