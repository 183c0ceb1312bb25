from __future__ import annotations

import pytest

from binance_proxy.config import ConfigurationError, Credential, Settings, load_settings

ENV_VARS = (
    "BINANCE_API_KEY",
    "BINANCE_API_SECRET",
    "BINANCE_BASE_URL",
    "BINANCE_TIMEOUT",
    "BINANCE_PROXY_ENV",
    "BINANCE_API_KEY_HEADER",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the picture.
    monkeypatch.chdir(tmp_path)


def test_settings_from_mapping() -> None:
    settings = Settings.model_validate(
        {
            "BINANCE_API_KEY": "key",
            "BINANCE_API_SECRET": "secret",
            "BINANCE_BASE_URL": "https://testnet.binance.vision/",
        }
    )
    assert settings.base_url == "https://testnet.binance.vision"
    assert settings.timeout == 30.0
    assert not settings.is_production
    assert settings.credential() == Credential(key="key", secret="secret")


def test_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("BINANCE_API_KEY", "env-key")
    monkeypatch.setenv("BINANCE_API_SECRET", "env-secret")
    monkeypatch.setenv("BINANCE_TIMEOUT", "5")
    monkeypatch.setenv("BINANCE_PROXY_ENV", "production")

    settings = Settings()

    assert settings.base_url == "https://api.binance.com"
    assert settings.timeout == 5.0
    assert settings.is_production
    assert settings.credential().key == "env-key"


def test_api_key_header_defaults_and_override(monkeypatch) -> None:
    assert Settings.model_validate({}).api_key_header == "X-MBX-APIKEY"
    monkeypatch.setenv("BINANCE_API_KEY_HEADER", "X-API-KEY")
    assert Settings().api_key_header == "X-API-KEY"


def test_load_settings_reads_env_file(monkeypatch, tmp_path) -> None:
    # load_dotenv writes straight into os.environ; register the names so they get removed.
    for name in ("BINANCE_API_KEY", "BINANCE_API_SECRET"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = tmp_path / "proxy.env"
    env_file.write_text("BINANCE_API_KEY=file-key\nBINANCE_API_SECRET=file-secret\n")

    settings = load_settings(env_file)

    assert settings.credential() == Credential(key="file-key", secret="file-secret")


def test_missing_credentials_fail_loudly() -> None:
    settings = Settings.model_validate({"BINANCE_API_KEY": "key"})
    with pytest.raises(ConfigurationError, match="BINANCE_API_SECRET"):
        settings.credential()


def test_credential_requires_both_parts() -> None:
    with pytest.raises(ConfigurationError):
        Credential(key="", secret="secret")


def test_credential_repr_hides_values() -> None:
    credential = Credential(key="visible-key", secret="very-secret")
    assert "very-secret" not in repr(credential)
    assert "visible-key" not in repr(credential)


def test_credential_is_immutable() -> None:
    credential = Credential(key="k", secret="s")
    with pytest.raises(AttributeError):
        credential.secret = "other"  # type: ignore[misc]
