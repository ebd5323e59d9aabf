"""
Startup provisioning of the large data files.

The ONNX model, the metadata file and the embedding blob are too large
to ship with the code and are hosted externally. Any file missing from
the data directory is downloaded once before the engine is built.
"""

import os
import logging
import tempfile
from typing import Dict, Optional

import httpx

from . import config
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20


def download_if_missing(path: str,
                        url: str,
                        timeout: float = config.DOWNLOAD_TIMEOUT,
                        client: Optional[httpx.Client] = None) -> bool:
    """
    Make sure `path` exists, downloading it from `url` if needed.

    The download goes to a temporary file in the same directory and is
    renamed into place only once complete, so an interrupted download
    never leaves a truncated file behind.

    Args:
        path: Destination file path.
        url: Source URL. May be empty if the file is expected to exist.
        timeout: Per-request timeout in seconds.
        client: Optional preconfigured httpx client.

    Returns:
        True if the file was downloaded, False if it already existed.

    Raises:
        ConfigurationError: If the file is missing and cannot be fetched.
    """
    filename = os.path.basename(path)
    if os.path.exists(path):
        logger.info(f"  {filename}: exists")
        return False
    if not url:
        raise ConfigurationError(f"{filename} missing and no URL configured")

    logger.info(f"  Downloading {filename}...")
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    owns_client = client is None
    client = client or httpx.Client(timeout=timeout, follow_redirects=True)
    fd, temp_path = tempfile.mkstemp(dir=directory, prefix=f".{filename}.", suffix=".part")
    try:
        with os.fdopen(fd, 'wb') as f:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                for chunk in response.iter_bytes(CHUNK_SIZE):
                    f.write(chunk)
        os.replace(temp_path, path)
    except httpx.HTTPError as e:
        raise ConfigurationError(
            f"Failed to download {filename}: {e}",
            details={"url": url},
        ) from e
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        if owns_client:
            client.close()

    logger.info(f"  {filename}: {os.path.getsize(path)} bytes")
    return True


def provision_files(data_dir: str = config.DATA_DIR,
                    files: Optional[Dict[str, str]] = None,
                    **kwargs) -> None:
    """
    Ensure every required data file is present in `data_dir`.

    Args:
        data_dir: Directory holding the model and catalog files.
        files: Mapping of file name to download URL. Defaults to
            config.FILE_URLS.
        **kwargs: Passed through to download_if_missing().
    """
    files = config.FILE_URLS if files is None else files
    logger.info("Checking data files...")
    for filename, url in files.items():
        download_if_missing(os.path.join(data_dir, filename), url, **kwargs)
