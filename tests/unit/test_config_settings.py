import pytest

from entralab.config import settings
from entralab.config.settings import (
    ConfigurationError,
    LabConfig,
    SettingsStore,
    initialize_settings,
    load_settings,
)

EXPECTED_DEFAULTS = {
    "EntraLab.Project.Name": "EntraLab",
    "EntraLab.Feature.GlobalSecureAccess": False,
    "EntraLab.Feature.IdentityGovernance": False,
    "EntraLab.Graph.Host": "graph.microsoft.com",
    "EntraLab.Graph.ApiVersion": "beta",
    "EntraLab.Graph.PageSize": 100,
    "EntraLab.Graph.Timeout": 30,
}


def test_initialize_registers_defaults():
    store = SettingsStore()
    initialize_settings(store)

    assert sorted(store.keys()) == sorted(EXPECTED_DEFAULTS)
    for key, value in EXPECTED_DEFAULTS.items():
        assert store.get(key) == value


def test_initialize_is_idempotent_first_writer_wins():
    store = SettingsStore()
    initialize_settings(store)
    store.set("EntraLab.Project.Name", "Contoso")

    initialize_settings(store)

    assert store.get("EntraLab.Project.Name") == "Contoso"
    assert len(store) == len(EXPECTED_DEFAULTS)


def test_initialize_reset_overwrites():
    store = SettingsStore()
    initialize_settings(store)
    store.set("EntraLab.Project.Name", "Contoso")

    initialize_settings(store, reset=True)

    assert store.get("EntraLab.Project.Name") == "EntraLab"


def test_unknown_validation_rule_is_rejected():
    with pytest.raises(ConfigurationError, match="Unknown validation rule"):
        SettingsStore().initialize("Broken", "x", "no-such-rule")


def test_invalid_default_is_rejected():
    with pytest.raises(ConfigurationError):
        SettingsStore().initialize("Graph.PageSize", 0, "integerpositive")


def test_setting_metadata():
    store = SettingsStore()
    initialize_settings(store)
    setting = store.get_setting("entralab.feature.globalsecureaccess")

    assert setting.full_name == "EntraLab.Feature.GlobalSecureAccess"
    assert setting.value_type is bool
    assert setting.validation == "bool"
    assert setting.description
    assert setting.allow_delete is False


def test_lookup_is_case_insensitive():
    store = SettingsStore()
    initialize_settings(store)
    assert store.get("ENTRALAB.GRAPH.PAGESIZE") == 100
    assert "entralab.graph.host" in store
    assert "EntraLab.Missing" not in store
    assert store.get("EntraLab.Missing", "fallback") == "fallback"


@pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("no", False), (False, False)])
def test_set_coerces_booleans(raw, expected):
    store = SettingsStore()
    initialize_settings(store)
    store.set("EntraLab.Feature.IdentityGovernance", raw)
    assert store.get("EntraLab.Feature.IdentityGovernance") is expected


@pytest.mark.parametrize("key, value", [
    ("EntraLab.Graph.PageSize", "0"),
    ("EntraLab.Graph.PageSize", "many"),
    ("EntraLab.Graph.ApiVersion", "v2.0"),
    ("EntraLab.Feature.GlobalSecureAccess", "maybe"),
    ("EntraLab.Project.Name", 42),
])
def test_set_rejects_invalid_values(key, value):
    store = SettingsStore()
    initialize_settings(store)
    with pytest.raises(ConfigurationError):
        store.set(key, value)


def test_set_unknown_setting():
    with pytest.raises(ConfigurationError, match="Unknown setting"):
        SettingsStore().set("EntraLab.Nope", 1)


def test_api_version_aliases_normalized():
    store = SettingsStore()
    initialize_settings(store)
    store.set("EntraLab.Graph.ApiVersion", "stable")
    assert store.get("EntraLab.Graph.ApiVersion") == "v1.0"


def test_delete_respects_allow_delete():
    store = SettingsStore()
    initialize_settings(store)
    store.initialize("Scratch.Value", "x", "string", allow_delete=True)

    store.delete("EntraLab.Scratch.Value")
    assert "EntraLab.Scratch.Value" not in store

    with pytest.raises(ConfigurationError, match="cannot be deleted"):
        store.delete("EntraLab.Project.Name")
    assert "EntraLab.Project.Name" in store


def test_settings_scoped_by_module():
    store = SettingsStore()
    store.initialize("Project.Name", "Other", "string", module="OtherModule")
    initialize_settings(store)
    assert store.get("OtherModule.Project.Name") == "Other"
    assert store.get("EntraLab.Project.Name") == "EntraLab"


def test_lab_config_validation():
    with pytest.raises(ConfigurationError):
        LabConfig(project_name=" ")
    with pytest.raises(ConfigurationError):
        LabConfig(api_version="v3")
    with pytest.raises(ConfigurationError):
        LabConfig(page_size=0)
    assert LabConfig(api_version="preview").api_version == "beta"


def test_lab_config_hides_secret_in_repr():
    assert "s3cret" not in repr(LabConfig(client_secret="s3cret"))


def test_load_settings_defaults():
    cfg = load_settings(environ={})

    assert cfg.project_name == "EntraLab"
    assert cfg.api_version == "beta"
    assert cfg.page_size == 100
    assert cfg.has_credentials is False


def test_load_settings_applies_environment():
    environ = {
        "ENTRALAB_PROJECT_NAME": "Contoso",
        "ENTRALAB_FEATURE_GSA": "true",
        "ENTRALAB_FEATURE_IGA": "1",
        "ENTRALAB_GRAPH_API_VERSION": "stable",
        "ENTRALAB_GRAPH_PAGE_SIZE": "999",
        "AZURE_TENANT_ID": "tenant",
        "AZURE_CLIENT_ID": "client",
        "AZURE_CLIENT_SECRET": "env-secret",
    }

    cfg = load_settings(environ=environ)

    assert cfg.project_name == "Contoso"
    assert cfg.feature_global_secure_access is True
    assert cfg.feature_identity_governance is True
    assert cfg.api_version == "v1.0"
    assert cfg.page_size == 999
    assert cfg.client_secret == "env-secret"
    assert cfg.authority == "https://login.microsoftonline.com/tenant"
    assert cfg.has_credentials is True


def test_load_settings_invalid_environment():
    with pytest.raises(ConfigurationError):
        load_settings(environ={"ENTRALAB_GRAPH_PAGE_SIZE": "-5"})


def test_load_settings_reuses_store():
    store = SettingsStore()
    initialize_settings(store)
    store.set("EntraLab.Project.Name", "FromStore")

    cfg = load_settings(environ={}, store=store)

    assert cfg.project_name == "FromStore"


def test_client_secret_prefers_run_secrets(monkeypatch, tmp_path):
    (tmp_path / "azure_client_secret").write_text("file-secret\n")
    monkeypatch.setattr(settings, "SECRETS_DIR", tmp_path)

    cfg = load_settings(environ={"AZURE_CLIENT_SECRET": "env-secret"})

    assert cfg.client_secret == "file-secret"


def test_client_secret_falls_back_to_env_when_file_empty(monkeypatch, tmp_path):
    (tmp_path / "azure_client_secret").write_text("")
    monkeypatch.setattr(settings, "SECRETS_DIR", tmp_path)

    cfg = load_settings(environ={"AZURE_CLIENT_SECRET": "env-secret"})

    assert cfg.client_secret == "env-secret"
