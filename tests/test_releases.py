import threading

import pytest

from mushcord_installer.core.releases import (
    FeedKind,
    ReleaseMetadata,
    ReleaseResolver,
    commit_from_name,
    default_feeds,
    installer_asset_name,
    is_outdated,
    same_version,
)
from mushcord_installer.errors import NetworkUnavailable, RateLimited, ResolutionFailed

from helpers import DummyResponse, DummySession

ADDON_API = 'https://api.github.com/repos/MushZI/MushZicord/releases/latest'
ADDON_PAGE = 'https://github.com/MushZI/MushZicord/releases/latest'
INSTALLER_API = 'https://api.github.com/repos/MushZI/Mushcord-Installer/releases/latest'


def api_payload(tag='v1.2.3', name='Mushcord 1a2b3c4', assets=None):
    if assets is None:
        assets = [
            {'name': 'other.zip', 'browser_download_url': 'https://example.invalid/other.zip'},
            {
                'name': 'mushcord.asar',
                'browser_download_url': f'https://github.com/MushZI/MushZicord/releases/download/{tag}/mushcord.asar',
                'digest': 'sha256:' + 'ab' * 32,
            },
        ]
    return {
        'tag_name': tag,
        'name': name,
        'html_url': f'https://github.com/MushZI/MushZicord/releases/tag/{tag}',
        'assets': assets,
    }


def make_resolver(routes):
    session = DummySession(routes)
    return ReleaseResolver(session, timeout=1, feeds=default_feeds('Linux', 'x86_64')), session


def test_resolves_from_api():
    resolver, session = make_resolver({ADDON_API: DummyResponse(200, json_data=api_payload())})

    release = resolver.resolve_latest(FeedKind.ADDON)

    assert release.tag == 'v1.2.3'
    assert release.commit == '1a2b3c4'
    assert release.identifier == '1a2b3c4'
    assert release.download_url.endswith('/v1.2.3/mushcord.asar')
    assert release.digest == 'sha256:' + 'ab' * 32
    assert release.source == 'api'
    assert session.urls() == [ADDON_API]


def test_rate_limited_api_falls_back_to_release_page():
    tag_url = 'https://github.com/MushZI/MushZicord/releases/tag/v2.0.0'
    resolver, session = make_resolver({
        ADDON_API: DummyResponse(403, headers={'X-RateLimit-Remaining': '0'}),
        ADDON_PAGE: DummyResponse(200, url=tag_url),
    })

    release = resolver.resolve_latest(FeedKind.ADDON)

    assert release.source == 'fallback'
    assert release.tag == 'v2.0.0'
    assert release.download_url == 'https://github.com/MushZI/MushZicord/releases/download/v2.0.0/mushcord.asar'
    assert release.page_url == tag_url
    assert session.urls() == [ADDON_API, ADDON_PAGE]


def test_fallback_agrees_with_api_for_same_release():
    payload = api_payload()
    api_resolver, _ = make_resolver({ADDON_API: DummyResponse(200, json_data=payload)})
    page_resolver, _ = make_resolver({
        ADDON_API: DummyResponse(403, headers={'X-RateLimit-Remaining': '0'}),
        ADDON_PAGE: DummyResponse(200, url=payload['html_url']),
    })

    from_api = api_resolver.resolve_latest(FeedKind.ADDON)
    from_page = page_resolver.resolve_latest(FeedKind.ADDON)

    assert from_page.source == 'fallback'
    assert from_page.tag == from_api.tag
    assert from_page.download_url == from_api.download_url
    assert from_page.page_url == from_api.page_url


def test_fallback_reads_redirect_location():
    hop = DummyResponse(302, headers={'Location': '/MushZI/MushZicord/releases/tag/v3.1.0'})
    resolver, _ = make_resolver({
        ADDON_API: DummyResponse(500),
        ADDON_PAGE: DummyResponse(200, url='https://github.com/login', history=[hop]),
    })

    assert resolver.resolve_latest(FeedKind.ADDON).tag == 'v3.1.0'


def test_unreachable_api_and_page():
    resolver, _ = make_resolver({})

    with pytest.raises(NetworkUnavailable):
        resolver.resolve_latest(FeedKind.ADDON)


def test_rate_limit_on_both_paths():
    resolver, _ = make_resolver({
        ADDON_API: DummyResponse(429),
        ADDON_PAGE: DummyResponse(429),
    })

    with pytest.raises(RateLimited):
        resolver.resolve_latest(FeedKind.ADDON)


def test_page_without_tag_fails():
    resolver, _ = make_resolver({
        ADDON_API: DummyResponse(503),
        ADDON_PAGE: DummyResponse(200, url=ADDON_PAGE, text='<html>nothing here</html>'),
    })

    with pytest.raises(ResolutionFailed):
        resolver.resolve_latest(FeedKind.ADDON)


def test_missing_asset_does_not_fall_back():
    resolver, session = make_resolver({
        ADDON_API: DummyResponse(200, json_data=api_payload(assets=[])),
        ADDON_PAGE: DummyResponse(200, url='https://github.com/MushZI/MushZicord/releases/tag/v1.2.3'),
    })

    with pytest.raises(ResolutionFailed):
        resolver.resolve_latest(FeedKind.ADDON)
    assert session.urls() == [ADDON_API]


def test_concurrent_checks_share_one_request():
    release_gate = threading.Event()
    started = threading.Event()
    counter = {'calls': 0}

    def blocking_api(url, **kwargs):
        counter['calls'] += 1
        started.set()
        release_gate.wait(5)
        return DummyResponse(200, json_data=api_payload())

    resolver, _ = make_resolver({ADDON_API: blocking_api})

    first = resolver.check_async(FeedKind.ADDON)
    assert started.wait(5)
    second = resolver.check_async(FeedKind.ADDON)
    release_gate.set()

    assert first is second
    assert first.result(5) == second.result(5)
    assert counter['calls'] == 1


def test_completed_check_is_not_cached():
    resolver, session = make_resolver({ADDON_API: DummyResponse(200, json_data=api_payload())})

    resolver.resolve_latest(FeedKind.ADDON)
    resolver.resolve_latest(FeedKind.ADDON)

    assert session.urls() == [ADDON_API, ADDON_API]


def test_feeds_are_independent():
    installer_payload = {
        'tag_name': 'v1.0.5',
        'name': 'Installer v1.0.5',
        'assets': [{
            'name': 'MushcordInstaller-linux',
            'browser_download_url': 'https://example.invalid/MushcordInstaller-linux',
        }],
    }
    resolver, _ = make_resolver({
        ADDON_API: DummyResponse(200, json_data=api_payload()),
        INSTALLER_API: DummyResponse(200, json_data=installer_payload),
    })

    addon = resolver.check_async(FeedKind.ADDON)
    installer = resolver.check_async(FeedKind.INSTALLER)

    assert addon is not installer
    assert installer.result(5).asset_name == 'MushcordInstaller-linux'
    assert installer.result(5).commit is None
    assert addon.result(5).kind is FeedKind.ADDON


def test_unsupported_platform_has_no_installer_feed():
    session = DummySession()
    resolver = ReleaseResolver(session, feeds=default_feeds('SunOS', 'sparc'))

    with pytest.raises(ResolutionFailed):
        resolver.resolve_latest(FeedKind.INSTALLER)
    assert session.calls == []


def test_installer_asset_names():
    assert installer_asset_name('Windows', 'AMD64') == 'MushcordInstaller.exe'
    assert installer_asset_name('Linux', 'aarch64') == 'MushcordInstaller-linux-arm64'
    assert installer_asset_name('Darwin', 'arm64') == 'MushcordInstaller.MacOS.zip'
    assert installer_asset_name('Windows', 'arm64') is None


def test_commit_from_name():
    assert commit_from_name('Mushcord 1A2B3C4') == '1a2b3c4'
    assert commit_from_name('Mushcord v1.2.3') is None
    assert commit_from_name(None) is None


def test_same_version():
    assert same_version('v1.2.0', '1.2')
    assert not same_version('v1.2.0', 'v1.2.1')
    assert same_version('devbuild', 'devbuild')


def test_is_outdated():
    latest = ReleaseMetadata(FeedKind.ADDON, 'v1.2.3', 'url', 'page', 'mushcord.asar', commit='1a2b3c4d5e')

    assert is_outdated('', latest)
    assert is_outdated('   ', latest)
    assert is_outdated(None, latest)
    assert not is_outdated('1a2b3c4', latest)
    assert not is_outdated('1.2.3', latest)
    assert is_outdated('0ffffff', latest)
    assert is_outdated('v1.2.2', latest)
