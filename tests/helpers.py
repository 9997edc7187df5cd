"""Fakes and synthetic Discord installs shared by the tests."""

import json
from pathlib import Path

import requests
from requests.structures import CaseInsensitiveDict

from mushcord_installer.core import asar

STOCK_INDEX = b'require("./app_bootstrap/index.js");\n'
OPENASAR_INDEX = b'log("Init", "OpenAsar", oaVersion);\n'


class DummyResponse:
    """Just enough of ``requests.Response`` for the resolver and downloader."""

    def __init__(self, status_code=200, json_data=None, chunks=(), headers=None, url="",
                 history=(), text=""):
        self.status_code = status_code
        self._json = json_data
        self._chunks = list(chunks)
        self.headers = CaseInsensitiveDict(headers or {})
        self.url = url
        self.history = list(history)
        self.text = text
        self.closed = False

    def json(self):
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json

    def iter_content(self, chunk_size=1):
        for chunk in self._chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def close(self):
        self.closed = True


class DummySession:
    """Routes ``get`` calls by URL; values may be responses, exceptions or callables."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.headers = {}

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if url not in self.routes:
            raise requests.ConnectionError(f"no route to {url}")
        route = self.routes[url]
        if callable(route) and not isinstance(route, DummyResponse):
            route = route(url, **kwargs)
        if isinstance(route, Exception):
            raise route
        return route

    def urls(self):
        return [url for url, _ in self.calls]


def stock_asar() -> bytes:
    return asar.pack({
        'index.js': STOCK_INDEX,
        'package.json': json.dumps({'name': 'discord', 'main': 'index.js'}).encode('utf-8'),
    })


def openasar_asar() -> bytes:
    return asar.pack({'index.js': OPENASAR_INDEX, 'package.json': b'{"name":"discord"}'})


def make_squirrel_install(root: Path, versions=('1.0.9001',), content: bytes = None) -> Path:
    """Windows style install: ``<root>/app-<version>/resources/app.asar``."""
    root.mkdir(parents=True, exist_ok=True)
    (root / 'Update.exe').write_bytes(b'MZ')
    for version in versions:
        resources = root / f'app-{version}' / 'resources'
        resources.mkdir(parents=True)
        (resources / 'app.asar').write_bytes(content if content is not None else stock_asar())
    return root


def make_flat_install(root: Path, content: bytes = None) -> Path:
    """Linux style install: ``<root>/resources/app.asar``."""
    resources = root / 'resources'
    resources.mkdir(parents=True)
    (resources / 'app.asar').write_bytes(content if content is not None else stock_asar())
    return root


