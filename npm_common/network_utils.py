# npm_common/network_utils.py
# -*- coding: utf-8 -*-
"""
HTTP helpers: release metadata lookup and tarball download/extraction.
"""

import logging
import re
import tarfile
from pathlib import Path
from typing import List, Optional

import requests

module_logger = logging.getLogger(__name__)

TAG_NAME_PATTERN = re.compile(r'"tag_name"\s*:\s*"v?([^"]*)"')


def parse_release_tag(metadata_text: str) -> str:
    """
    Extract the release version from release metadata.

    The ``tag_name`` value is matched as text, without a leading ``v``. An
    empty string is returned when no tag is present.
    """
    match = TAG_NAME_PATTERN.search(metadata_text or "")
    return match.group(1).strip() if match else ""


def fetch_latest_release_tag(
    api_url: str,
    timeout: int = 30,
    current_logger: Optional[logging.Logger] = None,
) -> str:
    """
    Query a release metadata endpoint and return the latest version.

    Returns:
        str: The version (e.g. ``"2.11.3"``), or an empty string if the
        request failed or the response carried no tag.
    """
    logger_to_use = current_logger if current_logger else module_logger
    response: Optional[requests.Response] = None

    try:
        response = requests.get(
            api_url,
            timeout=timeout,
            headers={"Accept": "application/vnd.github+json"},
        )
        response.raise_for_status()
    except requests.exceptions.HTTPError as http_err:
        status_code = response.status_code if response is not None else "Unknown"
        logger_to_use.error(f"HTTP error occurred: {http_err} - Status code: {status_code}")
        return ""
    except requests.exceptions.ConnectionError as conn_err:
        logger_to_use.error(f"Connection error occurred: {conn_err}")
        return ""
    except requests.exceptions.Timeout as timeout_err:
        logger_to_use.error(f"Timeout error occurred: {timeout_err}")
        return ""
    except requests.exceptions.RequestException as req_err:
        logger_to_use.error(f"An unexpected error occurred during the release lookup: {req_err}")
        return ""

    return parse_release_tag(response.text)


def download_file(
    url: str,
    download_to_path: Path,
    timeout: int = 300,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Download ``url`` to ``download_to_path`` in chunks.

    Returns:
        True if the download was successful, False otherwise.
    """
    logger_to_use = current_logger if current_logger else module_logger
    response: Optional[requests.Response] = None

    try:
        download_to_path.parent.mkdir(parents=True, exist_ok=True)
        response = requests.get(url, stream=True, timeout=timeout)
        response.raise_for_status()

        with open(download_to_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                if chunk:
                    f.write(chunk)
        logger_to_use.debug(f"Downloaded {url} to {download_to_path}")
        return True
    except requests.exceptions.HTTPError as http_err:
        status_code = response.status_code if response is not None else "Unknown"
        logger_to_use.error(f"HTTP error occurred: {http_err} - Status code: {status_code}")
    except requests.exceptions.ConnectionError as conn_err:
        logger_to_use.error(f"Connection error occurred: {conn_err}")
    except requests.exceptions.Timeout as timeout_err:
        logger_to_use.error(f"Timeout error occurred: {timeout_err}")
    except requests.exceptions.RequestException as req_err:
        logger_to_use.error(f"An unexpected error occurred during download: {req_err}")
    except IOError as io_err:
        logger_to_use.error(f"File I/O error when saving download: {io_err}")
    return False


def extract_tarball(
    archive_path: Path,
    extract_to_dir: Path,
    current_logger: Optional[logging.Logger] = None,
) -> List[str]:
    """
    Extract a gzip tarball into ``extract_to_dir``.

    Members that would land outside the target directory are rejected by
    the ``tar`` extraction filter.

    Returns:
        List[str]: The top-level names found in the archive. Empty on failure.
    """
    logger_to_use = current_logger if current_logger else module_logger

    try:
        extract_to_dir.mkdir(parents=True, exist_ok=True)
        with tarfile.open(archive_path, "r:gz") as tar:
            top_level = sorted(
                {member.name.split("/", 1)[0] for member in tar.getmembers()}
            )
            tar.extractall(extract_to_dir, filter="tar")
        logger_to_use.debug(f"Extracted {archive_path} into {extract_to_dir}: {top_level}")
        return top_level
    except tarfile.TarError as tar_err:
        logger_to_use.error(f"'{archive_path}' is not a valid tarball or is corrupted: {tar_err}")
    except IOError as io_err:
        logger_to_use.error(f"File I/O error during extraction: {io_err}")
    return []
