import pytest

from mushcord_installer.config import InstallerSettings
from mushcord_installer.core import asar


@pytest.fixture
def settings(tmp_path):
    return InstallerSettings(system='Linux', data_dir=tmp_path / 'data')


@pytest.fixture
def payload(settings):
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.payload_path.write_bytes(asar.pack({'index.js': b'// mushcord'}))
    return settings.payload_path
