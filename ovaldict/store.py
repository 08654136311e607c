"""Module for writing the CVE-indexed corpus to disk"""
import logging
import os
import shutil
from pathlib import Path

from .errors import CloseError, DirectoryError, EncodeError, WriteError
from .models import Definition, encode_definitions

logger = logging.getLogger(__name__)

DIR_MODE = 0o700


def prepare_source_dir(vuln_dir: str, source: str) -> Path:
    """
    Make sure <vuln_dir>/<source> exists and is a directory.
    Nothing already inside it is touched.
    """
    source_dir = Path(vuln_dir) / source
    try:
        if source_dir.exists():
            if not source_dir.is_dir():
                raise DirectoryError("Failed to check vuln directory: not a directory", str(source_dir))
            return source_dir
        source_dir.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryError(f"Failed to create vuln directory: {e}", str(source_dir)) from e
    return source_dir


def wipe(source_dir: Path):
    """Remove every entry directly under the source root"""
    try:
        entries = sorted(source_dir.iterdir())
    except OSError as e:
        raise DirectoryError(f"Failed to list vuln directory: {e}", str(source_dir)) from e

    for entry in entries:
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError as e:
            raise DirectoryError(f"Failed to remove vuln data: {e}", str(entry)) from e


def write_definitions(path: Path, defs: list[Definition], validate: bool = False):
    """Write one <cveID>.json file, replacing any file of that name"""
    try:
        content = encode_definitions(defs, validate=validate)
    except EncodeError as e:
        e.location = str(path)
        raise

    try:
        f = open(path, 'w', encoding='utf-8')
    except OSError as e:
        raise WriteError(f"Failed to create vuln data file: {e}", str(path)) from e

    try:
        f.write(content)
    except OSError as e:
        f.close()
        raise WriteError(f"Failed to write vuln data file: {e}", str(path)) from e

    try:
        f.close()
    except OSError as e:
        raise CloseError(f"Failed to close vuln data file: {e}", str(path)) from e


def check_entry_name(name: str, parent: Path):
    """
    Reject version keys and CVE IDs that cannot be used as a single path
    component under parent.
    """
    if not name or name in ('.', '..') or name.startswith('.') \
            or '/' in name or os.sep in name or (os.altsep and os.altsep in name):
        raise WriteError(f"Refusing to write unsafe name {name!r}", str(parent / name))


def check_corpus(source_dir: Path, corpus: dict[str, dict[str, list[Definition]]]):
    """Validate every path the corpus would write, before anything is deleted"""
    for version, by_cve in corpus.items():
        check_entry_name(version, source_dir)
        for cve_id in by_cve:
            check_entry_name(cve_id, source_dir / version)


def replace_corpus(
    source_dir: Path,
    corpus: dict[str, dict[str, list[Definition]]],
    validate: bool = False,
    display_name: str = ''
):
    """
    Replace the contents of a source directory with the given corpus.

    Every version and CVE name is checked before the old corpus is removed.
    The old corpus is removed first and the new one written in place, so a
    failure while writing leaves the source directory incomplete.

    Args:
        source_dir: <vuln_dir>/<source>
        corpus: version -> CVE ID -> definitions
        validate: Validate each file's content against the record schema
        display_name: Source name used in log messages
    """
    check_corpus(source_dir, corpus)

    logger.info("Deleting Old %s CVEs", display_name)
    wipe(source_dir)

    logger.info("Creating %s CVEs", display_name)
    for version, by_cve in corpus.items():
        version_dir = source_dir / version
        try:
            os.makedirs(version_dir, mode=DIR_MODE, exist_ok=True)
        except OSError as e:
            raise DirectoryError(f"Failed to create vuln directory: {e}", str(version_dir)) from e

        for cve_id, defs in by_cve.items():
            write_definitions(version_dir / f"{cve_id}.json", defs, validate=validate)
        logger.debug("Wrote %d CVEs under %s", len(by_cve), version_dir)
