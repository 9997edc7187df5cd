"""Latest-release resolution for Mushcord and for the installer itself."""

import platform
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import unquote

import requests
from packaging.version import InvalidVersion, Version

from .. import constants
from ..errors import InstallerError, NetworkUnavailable, RateLimited, ResolutionFailed
from ..utils.logger import LoggerMixin
from .downloader import create_session


class FeedKind(Enum):
    """Which repository a release check is about."""
    ADDON = "addon"
    INSTALLER = "installer"


@dataclass(frozen=True)
class ReleaseMetadata:
    """Latest known release of one feed."""
    kind: FeedKind
    tag: str
    download_url: str
    page_url: str
    asset_name: str
    name: Optional[str] = None
    commit: Optional[str] = None
    digest: Optional[str] = None
    source: str = "api"

    @property
    def identifier(self) -> str:
        """Commit hash when known, otherwise the tag."""
        return self.commit or self.tag


@dataclass(frozen=True)
class Feed:
    """A GitHub repository and the asset we want from its releases."""
    repo: str
    asset_name: Optional[str]

    @property
    def api_url(self) -> str:
        return constants.GITHUB_API_LATEST.format(repo=self.repo)

    @property
    def page_url(self) -> str:
        return constants.GITHUB_LATEST_PAGE.format(repo=self.repo)

    def download_url(self, tag: str) -> str:
        return constants.GITHUB_ASSET_DOWNLOAD.format(repo=self.repo, tag=tag, asset=self.asset_name)

    def tag_page_url(self, tag: str) -> str:
        return f"https://github.com/{self.repo}/releases/tag/{tag}"


def normalize_machine(machine: str) -> str:
    machine = machine.lower()
    if machine in ('amd64', 'x64', 'x86_64'):
        return 'x86_64'
    if machine in ('aarch64', 'arm64', 'armv8'):
        return 'arm64'
    return machine


def installer_asset_name(system: Optional[str] = None, machine: Optional[str] = None) -> Optional[str]:
    """Release asset holding the installer for an OS and CPU architecture."""
    system = system or platform.system()
    machine = normalize_machine(machine or platform.machine())
    return constants.INSTALLER_ASSETS.get((system, machine))


def default_feeds(system: Optional[str] = None, machine: Optional[str] = None) -> Dict[FeedKind, Feed]:
    return {
        FeedKind.ADDON: Feed(constants.ADDON_REPO, constants.ADDON_ASSET_NAME),
        FeedKind.INSTALLER: Feed(constants.INSTALLER_REPO, installer_asset_name(system, machine)),
    }


def commit_from_name(name: Optional[str]) -> Optional[str]:
    """Commit hash from a release name such as ``Mushcord 1a2b3c4``."""
    if not name:
        return None
    token = name.strip().split(' ')[-1]
    if re.fullmatch(r'[0-9a-fA-F]{7,40}', token):
        return token.lower()
    return None


def same_version(left: str, right: str) -> bool:
    """Compare two release tags, ignoring a leading ``v`` and PEP 440 spelling."""
    try:
        return Version(left.lstrip('vV')) == Version(right.lstrip('vV'))
    except InvalidVersion:
        return left == right


def is_outdated(installed: Optional[str], latest: ReleaseMetadata) -> bool:
    """Check whether an installed tag or commit differs from the latest release.

    An unknown or empty installed identifier is always outdated.
    """
    if not installed or not installed.strip():
        return True

    installed = installed.strip()
    if latest.commit and len(installed) >= 7:
        commit = latest.commit.lower()
        lowered = installed.lower()
        if commit.startswith(lowered) or lowered.startswith(commit):
            return False

    return not same_version(installed, latest.tag)


class ReleaseResolver(LoggerMixin):
    """Resolves latest releases from the GitHub API, falling back to the release page.

    At most one request per feed kind is in flight; concurrent checks share
    it. Nothing is cached once a check has completed.
    """

    def __init__(self, session=None, timeout: float = constants.REQUEST_TIMEOUT,
                 feeds: Optional[Dict[FeedKind, Feed]] = None,
                 executor: Optional[ThreadPoolExecutor] = None):
        """Initialize the resolver.

        Args:
            session: ``requests.Session`` compatible object
            timeout: Per-request timeout in seconds
            feeds: Repository and asset per feed kind
            executor: Worker pool that runs the checks off the caller's thread
        """
        self.session = session or create_session()
        self.timeout = timeout
        self.feeds = feeds or default_feeds()
        self._executor = executor or ThreadPoolExecutor(max_workers=len(FeedKind), thread_name_prefix='release-check')
        self._lock = threading.Lock()
        self._inflight: Dict[FeedKind, Future] = {}

    def check_async(self, kind: FeedKind) -> Future:
        """Start a check, or join the one already running for this feed.

        The returned future is the one-shot completion signal: it resolves to
        a ``ReleaseMetadata`` or raises an ``InstallerError``.
        """
        with self._lock:
            pending = self._inflight.get(kind)
            if pending is not None and not pending.done():
                self.logger.debug(f"Joining in-flight {kind.value} release check")
                return pending

            future = self._executor.submit(self._resolve, kind)
            self._inflight[kind] = future
            return future

    def resolve_latest(self, kind: FeedKind) -> ReleaseMetadata:
        """Resolve the latest release, blocking until the check completes."""
        return self.check_async(kind).result()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    def _resolve(self, kind: FeedKind) -> ReleaseMetadata:
        feed = self.feeds[kind]
        if not feed.asset_name:
            raise ResolutionFailed(f"No {kind.value} build is published for this platform")

        try:
            payload = self._fetch_api(feed)
        except InstallerError as primary:
            self.logger.warning(f"GitHub API unavailable for {feed.repo} ({primary}), using release page")
            try:
                return self._from_release_page(kind, feed)
            except InstallerError as fallback:
                raise type(fallback)(f"{fallback} (GitHub API: {primary})") from primary

        return self._from_api_payload(kind, feed, payload)

    def _fetch_api(self, feed: Feed) -> Dict[str, Any]:
        try:
            response = self.session.get(
                feed.api_url,
                timeout=self.timeout,
                headers={'Accept': 'application/vnd.github+json'},
            )
        except requests.RequestException as e:
            raise NetworkUnavailable(f"Could not reach GitHub: {e}") from e

        remaining = response.headers.get('X-RateLimit-Remaining')
        if response.status_code == 429 or (response.status_code == 403 and remaining == '0'):
            raise RateLimited("GitHub API rate limit exceeded")
        if response.status_code >= 400:
            raise ResolutionFailed(f"GitHub API returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ResolutionFailed(f"GitHub API returned invalid JSON: {e}") from e

        if not isinstance(payload, dict) or not payload.get('tag_name'):
            raise ResolutionFailed("GitHub API response has no release tag")
        return payload

    def _from_api_payload(self, kind: FeedKind, feed: Feed, payload: Dict[str, Any]) -> ReleaseMetadata:
        tag = payload['tag_name']
        asset = next(
            (a for a in payload.get('assets') or [] if a.get('name') == feed.asset_name and a.get('browser_download_url')),
            None,
        )
        if asset is None:
            raise ResolutionFailed(f"Release {tag} of {feed.repo} has no {feed.asset_name} asset")

        release = ReleaseMetadata(
            kind=kind,
            tag=tag,
            download_url=asset['browser_download_url'],
            page_url=payload.get('html_url') or feed.tag_page_url(tag),
            asset_name=feed.asset_name,
            name=payload.get('name'),
            commit=commit_from_name(payload.get('name')),
            digest=asset.get('digest'),
        )
        self.logger.info(f"Latest {kind.value} release: {release.tag} ({release.identifier})")
        return release

    def _from_release_page(self, kind: FeedKind, feed: Feed) -> ReleaseMetadata:
        try:
            response = self.session.get(feed.page_url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            raise NetworkUnavailable(f"Could not reach GitHub: {e}") from e

        if response.status_code == 429:
            raise RateLimited("GitHub rate limit exceeded")
        if response.status_code >= 400:
            raise ResolutionFailed(f"GitHub release page returned HTTP {response.status_code}")

        tag = self._tag_from_response(feed, response)
        if not tag:
            raise ResolutionFailed(f"Could not find the latest release tag of {feed.repo}")

        self.logger.info(f"Latest {kind.value} release (from release page): {tag}")
        return ReleaseMetadata(
            kind=kind,
            tag=tag,
            download_url=feed.download_url(tag),
            page_url=feed.tag_page_url(tag),
            asset_name=feed.asset_name,
            source="fallback",
        )

    @staticmethod
    def _tag_from_response(feed: Feed, response) -> Optional[str]:
        pattern = re.compile(re.escape(feed.repo) + r'/releases/tag/([^/?#"\'<>\s]+)', re.IGNORECASE)

        locations = [getattr(response, 'url', None), response.headers.get('Location')]
        for hop in getattr(response, 'history', None) or []:
            locations.extend([hop.headers.get('Location'), getattr(hop, 'url', None)])

        for location in locations:
            match = pattern.search(location or '')
            if match:
                return unquote(match.group(1))

        match = pattern.search(getattr(response, 'text', '') or '')
        return unquote(match.group(1)) if match else None
