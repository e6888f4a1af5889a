# tests/test_manifest.py

import pytest

from elvup.core.errors import ManifestError
from elvup.core.manifest import read_installed_state, read_installed_version

TOC = """## Interface: 100207
## Author: Elv, Simpy
## Version: {version}
## Title: |cff1784d1ElvUI|r |cfd9b9b9bMainline|r
## SavedVariables: ElvDB, ElvPrivateDB
"""


def write_manifest(root, text, encoding="utf-8"):
    path = root / "ElvUI" / "ElvUI_Mainline.toc"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding=encoding)
    return path


def test_reads_version_and_drops_locale_suffix(tmp_path):
    write_manifest(tmp_path, TOC.format(version="12.66|enUS"))
    assert read_installed_version(str(tmp_path)) == "12.66"


def test_reads_plain_version(tmp_path):
    write_manifest(tmp_path, TOC.format(version="13.01"))
    assert read_installed_version(str(tmp_path)) == "13.01"


def test_tolerates_utf8_bom(tmp_path):
    write_manifest(tmp_path, TOC.format(version="12.66"), encoding="utf-8-sig")
    assert read_installed_version(str(tmp_path)) == "12.66"


def test_missing_manifest_means_not_installed(tmp_path):
    assert read_installed_version(str(tmp_path)) is None
    state = read_installed_state(str(tmp_path))
    assert state.installed_version is None
    assert state.is_installed is False


def test_manifest_without_version_line_is_an_error(tmp_path):
    write_manifest(tmp_path, "## Interface: 100207\n## Title: ElvUI\n")
    with pytest.raises(ManifestError, match="no 'Version:' line"):
        read_installed_version(str(tmp_path))


def test_version_value_without_digits_is_an_error(tmp_path):
    write_manifest(tmp_path, TOC.format(version="|enUS"))
    with pytest.raises(ManifestError, match="no numeric part"):
        read_installed_version(str(tmp_path))


def test_undecodable_manifest_is_an_error(tmp_path):
    path = tmp_path / "ElvUI" / "ElvUI_Mainline.toc"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"## Version: 12.66\n\xff\xfe\xfa")
    with pytest.raises(ManifestError, match="UTF-8"):
        read_installed_version(str(tmp_path))


def test_unreadable_manifest_propagates_os_error(tmp_path):
    # A directory where the file should be cannot be opened
    (tmp_path / "ElvUI" / "ElvUI_Mainline.toc").mkdir(parents=True)
    with pytest.raises(OSError):
        read_installed_version(str(tmp_path))


def test_error_names_the_manifest_path(tmp_path):
    path = write_manifest(tmp_path, "nothing here")
    with pytest.raises(ManifestError) as excinfo:
        read_installed_version(str(tmp_path))
    assert excinfo.value.path == str(path)
