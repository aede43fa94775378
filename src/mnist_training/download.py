"""Download the MNIST CSV files used by ``mnist-train``.

Usage::

    mnist-download                    # into ./assets
    mnist-download --assets-dir data  # elsewhere
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import requests
from loguru import logger

BASE_URL = "https://pjreddie.com/media/files"
DATASET_FILES = ("mnist_test.csv", "mnist_train.csv")
CHUNK_SIZE = 1 << 20


def download_file(
    url: str,
    dest: Path,
    session: requests.Session | None = None,
    timeout: float = 60.0,
) -> Path:
    """Stream *url* to *dest*, writing through a ``.part`` file first."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp = dest.with_suffix(dest.suffix + ".part")
    http = session or requests.Session()
    with http.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        with open(tmp, "wb") as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
    tmp.replace(dest)
    return dest


def download_mnist(
    assets_dir: Path,
    base_url: str = BASE_URL,
    session: requests.Session | None = None,
) -> list[Path]:
    """Fetch every file in ``DATASET_FILES`` into *assets_dir*."""
    http = session or requests.Session()
    paths: list[Path] = []
    for i, name in enumerate(DATASET_FILES, start=1):
        logger.info(f"Downloading... {i}/{len(DATASET_FILES)}: {name}")
        paths.append(download_file(f"{base_url}/{name}", assets_dir / name, session=http))
    logger.info(f"MNIST dataset downloaded to {assets_dir}")
    return paths


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Download the MNIST CSV dataset")
    parser.add_argument("--assets-dir", type=Path, default=Path("assets"))
    parser.add_argument("--base-url", default=BASE_URL)
    args = parser.parse_args(argv)

    try:
        download_mnist(args.assets_dir, base_url=args.base_url)
    except requests.RequestException as exc:
        logger.error(f"Failed to download MNIST dataset: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
