import pytest

from vc_change_grouper.config import loader


@pytest.fixture(autouse=True)
def isolate_user_config(tmp_path_factory, monkeypatch):
    """Keep the user's real configuration out of the tests.

    The user-level config directory is redirected to an empty temporary
    directory and every environment override is cleared, so each test
    starts from the built-in defaults.
    """
    config_dir = tmp_path_factory.mktemp("vc_change_grouper_config")
    monkeypatch.setattr(loader, "_get_config_directory", lambda: config_dir)
    for var in loader.ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)
    yield config_dir
