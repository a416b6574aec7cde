from pathlib import Path
import textwrap

import pytest

from capx.config.loader import ConfigError, load_config


def _write(path: Path, text: str) -> Path:
    path.write_text(textwrap.dedent(text))
    return path


def test_load_config_minimal_ok(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("CAPX_SECRETS_FILE", raising=False)
    f = _write(tmp_path / "provider.yaml", """
        provider: aws
        params:
          region: eu-west-1
          managed: true
          credentials:
            AccessKey: AKIA
            SecretKey: secret
        storage_class:
          class: premium
          encryptionKmsKey: key-1
          parameters:
            fsType: xfs
    """)
    cfg = load_config(f)
    assert cfg.params.managed is True
    assert cfg.params.credentials["AccessKey"] == "AKIA"
    assert cfg.storage_class.class_ == "premium"
    assert cfg.storage_class.encryption_kms_key == "key-1"
    assert cfg.storage_class.parameters.fs_type == "xfs"
    assert cfg.node.kind == "container"
    assert cfg.timeouts.api_seconds == 30.0


def test_secrets_file_next_to_config_is_merged(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("CAPX_SECRETS_FILE", raising=False)
    f = _write(tmp_path / "provider.yaml", """
        params:
          region: us-east-1
          credentials:
            AccessKey: ""
    """)
    _write(tmp_path / "secrets.yaml", """
        params:
          credentials:
            AccessKey: AKIAFROMSECRETS
            SecretKey: fromsecrets
          githubToken: ghp_1
    """)
    cfg = load_config(f)
    assert cfg.params.credentials == {"AccessKey": "AKIAFROMSECRETS", "SecretKey": "fromsecrets"}
    assert cfg.params.github_token == "ghp_1"
    assert cfg.params.region == "us-east-1"


def test_secrets_file_from_env_and_var_expansion(tmp_path: Path, monkeypatch):
    secrets = _write(tmp_path / "elsewhere.yaml", """
        params:
          credentials:
            SecretKey: ${TEST_CAPX_SECRET}
    """)
    monkeypatch.setenv("CAPX_SECRETS_FILE", str(secrets))
    monkeypatch.setenv("TEST_CAPX_SECRET", "expanded")
    f = _write(tmp_path / "provider.yaml", """
        params:
          region: us-east-1
          credentials:
            AccessKey: AKIA
    """)
    cfg = load_config(f)
    assert cfg.params.credentials["SecretKey"] == "expanded"


def test_invalid_config_raises_config_error(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("CAPX_SECRETS_FILE", raising=False)
    f = _write(tmp_path / "provider.yaml", """
        provider: gcp
        params:
          region: x
    """)
    with pytest.raises(ConfigError):
        load_config(f)


def test_missing_file(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


def test_top_level_managed_selects_mode(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("CAPX_SECRETS_FILE", raising=False)
    f = _write(tmp_path / "provider.yaml", """
        provider: aws
        managed: true
        params:
          region: eu-west-1
    """)
    cfg = load_config(f)
    assert cfg.managed is True
    assert cfg.params.managed is True


def test_managed_under_params_is_mirrored(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("CAPX_SECRETS_FILE", raising=False)
    f = _write(tmp_path / "provider.yaml", """
        params:
          region: eu-west-1
          managed: true
    """)
    assert load_config(f).managed is True


def test_conflicting_managed_flags_rejected(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("CAPX_SECRETS_FILE", raising=False)
    f = _write(tmp_path / "provider.yaml", """
        managed: false
        params:
          region: eu-west-1
          managed: true
    """)
    with pytest.raises(ConfigError, match="disagree"):
        load_config(f)


def test_unknown_top_level_key_rejected(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("CAPX_SECRETS_FILE", raising=False)
    f = _write(tmp_path / "provider.yaml", """
        manged: true
        params:
          region: eu-west-1
    """)
    with pytest.raises(ConfigError, match="manged"):
        load_config(f)
