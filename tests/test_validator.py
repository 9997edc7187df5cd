import pytest

from mushcord_installer import constants
from mushcord_installer.core.patcher import build_loader
from mushcord_installer.core.validator import InstallValidator, version_key
from mushcord_installer.errors import InvalidLocation, ScuffedInstall

from helpers import make_flat_install, make_squirrel_install, openasar_asar


@pytest.fixture
def validator():
    return InstallValidator()


def test_squirrel_install_uses_highest_version(tmp_path, validator):
    root = make_squirrel_install(tmp_path / 'Discord', versions=('1.0.9001', '1.0.9010', '1.0.902'))

    install = validator.validate(root)

    assert install.version == '1.0.9010'
    assert install.resources_path == root / 'app-1.0.9010' / 'resources'
    assert install.channel == constants.STABLE
    assert not install.patched
    assert not install.open_asar


def test_flat_install(tmp_path, validator):
    root = make_flat_install(tmp_path / 'discord-ptb')

    install = validator.validate(root)

    assert install.resources_path == root / 'resources'
    assert install.version is None
    assert install.channel == constants.PTB


def test_macos_bundle_layout(tmp_path, validator):
    resources = tmp_path / 'Discord Canary.app' / 'Contents' / 'Resources'
    resources.mkdir(parents=True)
    (resources / 'app.asar').write_bytes(b'x')

    install = validator.validate(tmp_path / 'Discord Canary.app')

    assert install.resources_path == resources
    assert install.channel == constants.CANARY


def test_expected_channel_wins(tmp_path, validator):
    root = make_flat_install(tmp_path / 'somewhere')

    assert validator.validate(root, constants.CANARY).channel == constants.CANARY
    assert validator.validate(root).channel == constants.UNKNOWN


def test_patched_state_is_read_from_disk(tmp_path, validator, payload):
    root = make_flat_install(tmp_path / 'Discord')
    resources = root / 'resources'
    (resources / 'app.asar').rename(resources / '_app.asar')
    (resources / 'app.asar').write_bytes(build_loader(payload))

    install = validator.validate(root)

    assert install.patched
    assert install.core_asar == resources / '_app.asar'


def test_open_asar_detected_on_patched_core(tmp_path, validator, payload):
    root = make_flat_install(tmp_path / 'Discord', content=openasar_asar())
    resources = root / 'resources'
    (resources / 'app.asar').rename(resources / '_app.asar')
    (resources / 'app.asar').write_bytes(build_loader(payload))

    install = validator.validate(root)

    assert install.patched and install.open_asar


def test_missing_directory_is_invalid(tmp_path, validator):
    with pytest.raises(InvalidLocation):
        validator.validate(tmp_path / 'nope')


def test_empty_directory_is_invalid_not_scuffed(tmp_path, validator):
    (tmp_path / 'Discord').mkdir()

    with pytest.raises(InvalidLocation) as excinfo:
        validator.validate(tmp_path / 'Discord')
    assert not isinstance(excinfo.value, ScuffedInstall)


def test_displaced_layout_is_scuffed(tmp_path, validator):
    root = tmp_path / 'Discord'
    root.mkdir()
    (root / 'Update.exe').write_bytes(b'MZ')
    make_squirrel_install(root / 'Discord')

    with pytest.raises(ScuffedInstall) as excinfo:
        validator.validate(root)
    assert excinfo.value.remediation_path == root


def test_version_key_orders_numerically():
    versions = ['1.0.9', '1.0.10', '1.0.9a-broken', '0.0.300']
    assert max(versions, key=version_key) == '1.0.10'
