import dataclasses
import threading
from concurrent.futures import wait

import pytest

from mushcord_installer.core.locator import CustomPath, DiscoveredInstall
from mushcord_installer.core.paths import PathOracle
from mushcord_installer.core.releases import FeedKind, ReleaseResolver, default_feeds
from mushcord_installer.core.session import InstallerSession
from mushcord_installer.errors import NetworkUnavailable

from helpers import DummyResponse, DummySession, make_flat_install, openasar_asar, stock_asar

ADDON_API = 'https://api.github.com/repos/MushZI/MushZicord/releases/latest'
INSTALLER_API = 'https://api.github.com/repos/MushZI/Mushcord-Installer/releases/latest'
PAYLOAD_URL = 'https://github.com/MushZI/MushZicord/releases/download/v1.2.3/mushcord.asar'
OPENASAR_URL = 'https://example.invalid/openasar.asar'
PAYLOAD = b'mushcord payload'


def routes():
    openasar = openasar_asar()
    return {
        ADDON_API: DummyResponse(200, json_data={
            'tag_name': 'v1.2.3',
            'name': 'Mushcord 1a2b3c4',
            'assets': [{'name': 'mushcord.asar', 'browser_download_url': PAYLOAD_URL}],
        }),
        INSTALLER_API: DummyResponse(200, json_data={
            'tag_name': 'v9.9.9',
            'assets': [{'name': 'MushcordInstaller-linux', 'browser_download_url': 'https://example.invalid/i'}],
        }),
        PAYLOAD_URL: lambda url, **kwargs: DummyResponse(200, chunks=[PAYLOAD]),
        OPENASAR_URL: lambda url, **kwargs: DummyResponse(200, chunks=[openasar]),
    }


def make_session(tmp_path, settings, http=None):
    http = http or DummySession(routes())
    resolver = ReleaseResolver(http, feeds=default_feeds('Linux', 'x86_64'))
    oracle = PathOracle('Linux', {}, home=tmp_path / 'home', fs_root=tmp_path)
    return InstallerSession(settings, http, oracle, resolver, executable=None, openasar_url=OPENASAR_URL)


@pytest.fixture
def session(tmp_path, settings):
    make_flat_install(tmp_path / 'opt' / 'discord')
    installer = make_session(tmp_path, settings)
    yield installer
    installer.close()


def test_start_discovers_and_checks_in_background(session):
    done = {kind: threading.Event() for kind in FeedKind}

    session.start(lambda kind: done[kind].set())

    assert len(session.installs) == 1
    assert all(event.wait(5) for event in done.values())

    report = session.status()
    assert report.pending_checks == []
    assert report.latest_addon.identifier == '1a2b3c4'
    assert report.latest_installer.tag == 'v9.9.9'
    assert report.installed_identifier == ''
    assert report.addon_outdated
    # Running from source, so only a manual update is possible
    assert not report.can_update_self


def test_install_then_uninstall(session, tmp_path):
    session.start()
    selection = DiscoveredInstall(0)

    session.ensure_payload()
    patched = session.patch(selection)

    assert patched.patched
    assert session.installs[0].patched
    assert session.status().installed_identifier == '1a2b3c4'
    assert not session.status().addon_outdated

    restored = session.unpatch(selection)
    assert not restored.patched
    assert restored.app_asar.read_bytes() == stock_asar()


def test_ensure_payload_skips_current_build(session, settings):
    session.start()
    session.ensure_payload()
    http = session.addon.downloader.session
    downloads = http.urls().count(PAYLOAD_URL)

    session.ensure_payload()

    assert http.urls().count(PAYLOAD_URL) == downloads == 1


def test_repair_redownloads_and_patches(session, settings):
    session.start()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.payload_path.write_bytes(b'stale')

    repaired = session.repair(DiscoveredInstall(0))

    assert repaired.patched
    assert settings.payload_path.read_bytes() == PAYLOAD


def test_toggle_open_asar_on_custom_path(session, tmp_path):
    custom = make_flat_install(tmp_path / 'elsewhere' / 'Discord')

    assert session.toggle_open_asar(CustomPath(str(custom))).open_asar
    assert not session.toggle_open_asar(CustomPath(str(custom))).open_asar


def test_install_open_asar_refreshes_discovery(session):
    session.discover()

    session.install_open_asar(DiscoveredInstall(0))

    assert session.installs[0].open_asar
    session.uninstall_open_asar(DiscoveredInstall(0))
    assert not session.installs[0].open_asar


def test_status_reports_failed_checks(tmp_path, settings):
    installer = make_session(tmp_path, settings, DummySession())
    try:
        installer.start()
        wait([installer.addon_check, installer.installer_check])

        report = installer.status()

        assert isinstance(report.addon_error, NetworkUnavailable)
        assert isinstance(report.installer_error, NetworkUnavailable)
        assert report.latest_addon is None
        assert report.installs == []
    finally:
        installer.close()


def test_dev_install_never_downloads(tmp_path, settings):
    http = DummySession(routes())
    installer = make_session(tmp_path, dataclasses.replace(settings, dev_install=True), http)
    try:
        assert installer.install_latest_builds() is None
        installer.ensure_payload()
        assert PAYLOAD_URL not in http.urls()
    finally:
        installer.close()


def test_validate_custom(session, tmp_path):
    result = session.validate_custom(str(tmp_path / 'nowhere'))

    assert result.install is None
    assert result.error is not None
