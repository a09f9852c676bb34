"""
Utility functions for downloading files
"""
from pathlib import Path

import requests
from tqdm.auto import tqdm

from sdmclim.errors import RetrievalError
from sdmclim.utils.constants import DOWNLOAD_CHUNK_SIZE, DOWNLOAD_TIMEOUT
from sdmclim.utils.validation import validate_url

import logging
log = logging.getLogger(__name__)


def download_file(url, out_directory, timeout=DOWNLOAD_TIMEOUT, progress=True) -> Path:
    """
    Download a single file with one bounded-timeout GET, following redirects.

    There is no retry: any failure is raised to the caller, who may call again.

    Args:
        url (str): Remote file location.
        out_directory (str or Path): Existing directory the file is written to.
        timeout (float): Seconds before the connection or a read stalls out.
        progress (bool): Show a tqdm progress bar.

    Returns:
        Path: Path of the downloaded file.

    Raises:
        RetrievalError: On connection failure, timeout or a non-2xx status.
    """
    url = validate_url(url)
    out_fp = Path(out_directory) / Path(url).name

    log.info("Downloading %s", url)
    try:
        r = requests.get(url, stream=True, timeout=timeout, allow_redirects=True)
        try:
            r.raise_for_status()
            total = int(r.headers.get("content-length", 0) or 0) or None

            with open(out_fp, "wb") as f, tqdm(
                total=total,
                unit="B",
                unit_scale=True,
                desc=out_fp.name,
                disable=not progress,
            ) as bar:
                for chunk in r.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        bar.update(len(chunk))
        finally:
            r.close()

    except requests.exceptions.Timeout as e:
        raise RetrievalError(f"Timed out after {timeout}s downloading {url}") from e
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "unknown"
        raise RetrievalError(f"Download of {url} failed with HTTP status {status}") from e
    except requests.exceptions.RequestException as e:
        raise RetrievalError(f"Download of {url} failed: {e}") from e

    size_mb = out_fp.stat().st_size / (1024 ** 2)
    log.info("Downloaded %s (%.2f MB)", out_fp.name, size_mb)
    return out_fp
