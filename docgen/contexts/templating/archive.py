"""
Zip archive extraction for template repositories.

Template repositories are delivered as zip archives. Depending on the store the
templates sit at the archive root or below a single top-level directory
(e.g. "ods-document-generation-templates-1.0/"), which can be stripped with
start_at_dir so that every store produces the same layout.
"""

import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import BinaryIO, Optional, Union

from docgen.contexts.templating.logger import _log_debug

ArchiveSource = Union[str, Path, BinaryIO]


def clean_directory(directory: Path) -> None:
    """
    Remove all contents of a directory, keeping the directory itself.

    Other holders of the directory path keep a valid handle on filesystems
    where a removed and recreated directory would not be the same one.
    """
    for child in directory.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def _check_members(zip_file: zipfile.ZipFile, destination: Path) -> None:
    """Reject members that would be written outside of destination."""
    root = destination.resolve()
    for name in zip_file.namelist():
        member_path = (root / name).resolve()
        if member_path != root and root not in member_path.parents:
            raise ValueError(f"Archive member escapes extraction directory: {name}")


def extract_zip_archive(
    archive: ArchiveSource,
    target_dir: Path,
    start_at_dir: Optional[str] = None,
) -> Path:
    """
    Extract a zip archive into a target directory.

    The archive is opened and verified before target_dir is touched. Existing
    contents of target_dir are removed; the directory itself is preserved.

    Args:
        archive: Path to a zip file or a seekable binary file object
        target_dir: Directory receiving the extracted files (created if missing)
        start_at_dir: Directory inside the archive whose contents become the
                      contents of target_dir (default: archive root)

    Returns:
        target_dir

    Raises:
        zipfile.BadZipFile: If the archive is corrupt
        FileNotFoundError: If start_at_dir does not exist in the archive
        ValueError: If an archive member would escape the extraction directory
    """
    target_dir = Path(target_dir)

    with zipfile.ZipFile(archive) as zip_file:
        bad_member = zip_file.testzip()
        if bad_member is not None:
            raise zipfile.BadZipFile(f"Corrupt member in templates archive: {bad_member}")

        target_existed = target_dir.exists()
        if target_existed:
            clean_directory(target_dir)

        if start_at_dir:
            # Extract the whole archive privately, then keep only the subtree
            with tempfile.TemporaryDirectory(prefix="docgen-archive-") as tmp_dir:
                tmp_path = Path(tmp_dir)
                _check_members(zip_file, tmp_path)
                zip_file.extractall(tmp_path)

                source_dir = tmp_path / start_at_dir
                if not source_dir.is_dir():
                    raise FileNotFoundError(
                        f"Directory '{start_at_dir}' not found in templates archive"
                    )

                _move_tree(source_dir, target_dir, target_existed)
        else:
            target_dir.mkdir(parents=True, exist_ok=True)
            _check_members(zip_file, target_dir)
            zip_file.extractall(target_dir)

    _log_debug(f"Extracted templates archive into {target_dir}")
    return target_dir


def _move_tree(source_dir: Path, target_dir: Path, target_existed: bool) -> None:
    """Move source_dir to target_dir, copying when a rename is not possible."""
    if not target_existed:
        target_dir.parent.mkdir(parents=True, exist_ok=True)
        try:
            source_dir.rename(target_dir)
            return
        except OSError:
            # Different filesystem (e.g. tmpfs vs. volume)
            pass

    shutil.copytree(source_dir, target_dir, dirs_exist_ok=True)
