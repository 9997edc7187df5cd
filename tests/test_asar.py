import struct

import pytest

from mushcord_installer.core import asar
from mushcord_installer.core.markers import is_loader_asar, is_open_asar
from mushcord_installer.core.patcher import build_loader

from helpers import OPENASAR_INDEX, openasar_asar, stock_asar


def test_pack_and_read_nested_files(tmp_path):
    archive = tmp_path / 'test.asar'
    archive.write_bytes(asar.pack({
        'index.js': b'console.log(1)',
        'lib/util.js': b'module.exports = {}',
    }))

    assert asar.read_file(archive, 'index.js') == b'console.log(1)'
    assert asar.read_file(archive, 'lib/util.js') == b'module.exports = {}'
    assert asar.read_file(archive, 'missing.js') is None
    assert asar.top_level_names(archive) == {'index.js', 'lib'}


def test_header_layout_matches_electron(tmp_path):
    data = asar.pack({'a.txt': b'abc'})
    size_payload, header_size, _, json_len = struct.unpack('<IIII', data[:16])

    assert size_payload == 4
    assert header_size % 4 == 0
    assert json_len <= header_size
    # Contents start right after the header pickle
    assert data[8 + header_size:] == b'abc'


def test_read_rejects_non_asar(tmp_path):
    bogus = tmp_path / 'bogus.asar'
    bogus.write_bytes(b'not an archive at all')

    with pytest.raises(asar.AsarError):
        asar.read_header(bogus)


def test_read_rejects_truncated_entry(tmp_path):
    archive = tmp_path / 'short.asar'
    archive.write_bytes(asar.pack({'index.js': b'0123456789'})[:-4])

    with pytest.raises(asar.AsarError):
        asar.read_file(archive, 'index.js')


def test_markers_tell_bundles_apart(tmp_path, payload):
    stock = tmp_path / 'stock.asar'
    stock.write_bytes(stock_asar())
    loader = tmp_path / 'loader.asar'
    loader.write_bytes(build_loader(payload))
    open_asar = tmp_path / 'openasar.asar'
    open_asar.write_bytes(openasar_asar())

    assert not is_loader_asar(stock) and not is_open_asar(stock)
    assert is_loader_asar(loader) and not is_open_asar(loader)
    assert is_open_asar(open_asar) and not is_loader_asar(open_asar)
    assert asar.read_file(open_asar, 'index.js') == OPENASAR_INDEX


def test_markers_are_false_for_missing_or_garbage_files(tmp_path):
    garbage = tmp_path / 'garbage.asar'
    garbage.write_bytes(b'\x00' * 32)

    assert not is_loader_asar(tmp_path / 'nope.asar')
    assert not is_open_asar(garbage)
