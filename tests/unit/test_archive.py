"""Unit tests for templates archive extraction."""

import io
import zipfile

import pytest

from docgen.contexts.templating.archive import clean_directory, extract_zip_archive


@pytest.mark.unit
def test_extract_into_new_directory(tmp_path, templates_zip):
    """Test extraction keeps the archive layout below the target."""
    target = tmp_path / "out"

    result = extract_zip_archive(io.BytesIO(templates_zip), target)

    assert result == target
    assert (target / "templates" / "InstallationReport.html.tmpl").is_file()
    assert (target / "assets" / "style.css").is_file()


@pytest.mark.unit
def test_extract_clears_existing_contents(tmp_path, templates_zip):
    """Test that stale files are removed but the directory itself survives."""
    target = tmp_path / "out"
    (target / "stale").mkdir(parents=True)
    (target / "stale" / "old.tmpl").write_text("old")
    (target / "old.txt").write_text("old")
    inode = target.stat().st_ino

    extract_zip_archive(io.BytesIO(templates_zip), target)

    assert not (target / "stale").exists()
    assert not (target / "old.txt").exists()
    assert (target / "templates").is_dir()
    assert target.stat().st_ino == inode


@pytest.mark.unit
def test_extract_start_at_dir(tmp_path, github_templates_zip):
    """Test that only the subtree below start_at_dir is kept."""
    target = tmp_path / "out"

    extract_zip_archive(
        io.BytesIO(github_templates_zip),
        target,
        start_at_dir="ods-document-generation-templates-1.0",
    )

    assert (target / "templates" / "header.inc.html.tmpl").is_file()
    assert not (target / "ods-document-generation-templates-1.0").exists()


@pytest.mark.unit
def test_extract_start_at_dir_into_existing_directory(tmp_path, github_templates_zip):
    """Test the copy path used when the target already exists."""
    target = tmp_path / "out"
    target.mkdir()
    (target / "old.txt").write_text("old")

    extract_zip_archive(
        io.BytesIO(github_templates_zip),
        target,
        start_at_dir="ods-document-generation-templates-1.0",
    )

    assert (target / "templates" / "footer.inc.html.tmpl").is_file()
    assert not (target / "old.txt").exists()


@pytest.mark.unit
def test_extract_missing_start_at_dir(tmp_path, templates_zip):
    with pytest.raises(FileNotFoundError, match="not-there"):
        extract_zip_archive(io.BytesIO(templates_zip), tmp_path / "out", start_at_dir="not-there")


@pytest.mark.unit
def test_extract_from_path(tmp_path, templates_zip):
    """Test that archives can be read from a file path."""
    archive = tmp_path / "templates.zip"
    archive.write_bytes(templates_zip)

    extract_zip_archive(archive, tmp_path / "out")

    assert (tmp_path / "out" / "templates").is_dir()


@pytest.mark.unit
def test_corrupt_archive_leaves_target_untouched(tmp_path):
    """Test that a non-zip payload fails before the target is cleared."""
    target = tmp_path / "out"
    target.mkdir()
    (target / "keep.txt").write_text("keep")

    with pytest.raises(zipfile.BadZipFile):
        extract_zip_archive(io.BytesIO(b"<html>Sign in</html>"), target)

    assert (target / "keep.txt").read_text() == "keep"


@pytest.mark.unit
def test_corrupt_member_detected(tmp_path):
    """Test that a damaged member is detected by the integrity check."""
    name = "templates/InstallationReport.html.tmpl"
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_STORED) as archive:
        archive.writestr(name, "<html>" + "x" * 100 + "</html>")

    data = bytearray(buffer.getvalue())
    # Flip stored bytes of the member so that its CRC no longer matches
    header_end = 30 + len(name)
    for offset in range(header_end + 2, header_end + 12):
        data[offset] ^= 0xFF

    with pytest.raises(zipfile.BadZipFile):
        extract_zip_archive(io.BytesIO(bytes(data)), tmp_path / "out")


@pytest.mark.unit
def test_zip_slip_rejected(tmp_path, zip_builder):
    """Test that members escaping the target directory are rejected."""
    archive = zip_builder(files={"../evil.txt": "evil"})

    with pytest.raises(ValueError, match="escapes"):
        extract_zip_archive(io.BytesIO(archive), tmp_path / "out")

    assert not (tmp_path / "evil.txt").exists()


@pytest.mark.unit
def test_clean_directory(tmp_path):
    (tmp_path / "a" / "b").mkdir(parents=True)
    (tmp_path / "file.txt").write_text("x")

    clean_directory(tmp_path)

    assert tmp_path.exists()
    assert list(tmp_path.iterdir()) == []
