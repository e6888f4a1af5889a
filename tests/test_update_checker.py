# tests/test_update_checker.py

import logging
from unittest.mock import MagicMock

import pytest

from elvup.config.settings import UpdaterSettings
from elvup.core.errors import FetchError, ManifestError, TargetMissing
from elvup.core.installer import Installer
from elvup.core.models import ReleaseMetadata
from elvup.core.provider import MetadataClient
from elvup.core.update_checker import UpdateChecker, needs_update
from elvup.core.version import Version

LATEST = ReleaseMetadata(
    latest_version="12.66",
    download_url="https://api.example.test/v1/download/dev/elvui/main",
    directories=("ElvUI", "ElvUI_Options"),
)


def v(text):
    return Version.parse(text)


# ── needs_update ─────────────────────────────────────────────────────

@pytest.mark.parametrize("latest", ["0", "1.0", "12.66", "999.1.2"])
def test_not_installed_always_needs_update(latest):
    assert needs_update(None, v(latest)) is True


@pytest.mark.parametrize("version", ["1", "12.66", "12.66.0", "3.2.1.0"])
def test_same_version_never_reinstalls(version):
    assert needs_update(v(version), v(version)) is False


def test_older_install_needs_update():
    assert needs_update(v("12.65"), v("12.66")) is True
    assert needs_update(v("9.9"), v("12.66")) is True


def test_newer_install_is_never_downgraded():
    assert needs_update(v("12.67"), v("12.66")) is False


def test_padded_equal_version_is_up_to_date():
    assert needs_update(v("12.66.0"), v("12.66")) is False


# ── UpdateChecker ────────────────────────────────────────────────────

@pytest.fixture
def mock_client():
    client = MagicMock(spec=MetadataClient)
    client.fetch_latest_metadata.return_value = LATEST
    return client


@pytest.fixture
def mock_installer():
    installer = MagicMock(spec=Installer)
    installer.install.return_value = ["ElvUI", "ElvUI_Options"]
    return installer


def make_checker(root, client, installer):
    settings = UpdaterSettings(addons_path=str(root))
    return UpdateChecker(settings, client=client, installer=installer)


def install_manifest(root, version):
    path = root / "ElvUI" / "ElvUI_Mainline.toc"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"## Title: ElvUI\n## Version: {version}\n", encoding="utf-8")


def test_run_installs_when_older(tmp_path, mock_client, mock_installer):
    install_manifest(tmp_path, "12.65|enUS")

    result = make_checker(tmp_path, mock_client, mock_installer).run()

    mock_installer.install.assert_called_once()
    args = mock_installer.install.call_args.args
    assert args == (str(tmp_path), LATEST)
    assert result.installed is True
    assert result.installed_version == "12.65"
    assert result.latest_version == "12.66"
    assert result.directories == ("ElvUI", "ElvUI_Options")


def test_run_installs_when_not_installed(tmp_path, mock_client, mock_installer):
    result = make_checker(tmp_path, mock_client, mock_installer).run()

    mock_installer.install.assert_called_once()
    assert result.installed_version is None
    assert result.installed is True


def test_run_skips_install_when_up_to_date(tmp_path, mock_client, mock_installer, caplog):
    install_manifest(tmp_path, "12.66")
    caplog.set_level(logging.INFO)

    result = make_checker(tmp_path, mock_client, mock_installer).run()

    mock_installer.install.assert_not_called()
    assert result.update_needed is False
    assert result.installed is False
    assert "up to date" in caplog.text


def test_run_never_downgrades(tmp_path, mock_client, mock_installer):
    install_manifest(tmp_path, "12.67")

    result = make_checker(tmp_path, mock_client, mock_installer).run()

    mock_installer.install.assert_not_called()
    assert result.update_needed is False


def test_check_only_reports_without_installing(tmp_path, mock_client, mock_installer):
    install_manifest(tmp_path, "12.65")

    result = make_checker(tmp_path, mock_client, mock_installer).run(check_only=True)

    mock_installer.install.assert_not_called()
    assert result.update_needed is True
    assert result.installed is False


def test_missing_target_fails_before_fetching(tmp_path, mock_client, mock_installer):
    checker = make_checker(tmp_path / "missing", mock_client, mock_installer)

    with pytest.raises(TargetMissing):
        checker.run()

    mock_client.fetch_latest_metadata.assert_not_called()
    mock_installer.install.assert_not_called()


def test_corrupt_installed_version_is_manifest_error(tmp_path, mock_client, mock_installer):
    install_manifest(tmp_path, "12..66")

    with pytest.raises(ManifestError):
        make_checker(tmp_path, mock_client, mock_installer).run()

    mock_installer.install.assert_not_called()


def test_fetch_error_propagates(tmp_path, mock_client, mock_installer):
    install_manifest(tmp_path, "12.65")
    mock_client.fetch_latest_metadata.side_effect = FetchError("u", "offline")

    with pytest.raises(FetchError):
        make_checker(tmp_path, mock_client, mock_installer).run()

    mock_installer.install.assert_not_called()


def test_default_collaborators_follow_settings(tmp_path):
    settings = UpdaterSettings(
        addons_path=str(tmp_path), metadata_url="https://meta.example.test",
        timeout=7, download_timeout=60, scratch_dir=str(tmp_path), keep_scratch=True,
    )

    checker = UpdateChecker(settings)

    assert checker.client.metadata_url == "https://meta.example.test"
    assert checker.client.timeout == 7
    assert checker.installer.timeout == 60
    assert checker.installer.scratch_parent == str(tmp_path)
    assert checker.installer.keep_scratch is True
