"""Settings registry and typed lab configuration.

Settings are registered once per process into an explicit ``SettingsStore``
(first writer wins), overridden from the environment, and frozen into a
``LabConfig`` that is passed to every component that needs it.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_MODULE = "EntraLab"
SECRETS_DIR = Path("/run/secrets")

# Accepted API version tags and the URL segment each maps to
API_VERSIONS = {
    "v1.0": "v1.0",
    "beta": "beta",
    "stable": "v1.0",
    "preview": "beta",
}


class ConfigurationError(ValueError):
    """Invalid setting value, unknown validation rule, or protected setting."""
    pass


# ─────────────────────────────────────────────────────────────────────────────
# Validation rules
# ─────────────────────────────────────────────────────────────────────────────
def _validate_string(value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"Expected a string, got {type(value).__name__}")
    return value


def _validate_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off", ""):
            return False
    if isinstance(value, int):
        return bool(value)
    raise ConfigurationError(f"Cannot interpret {value!r} as a boolean")


def _validate_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"Expected an integer, got {value!r}")
    try:
        return int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Cannot interpret {value!r} as an integer") from None


def _validate_integer_positive(value: Any) -> int:
    number = _validate_integer(value)
    if number <= 0:
        raise ConfigurationError(f"Expected a positive integer, got {number}")
    return number


def _validate_api_version(value: Any) -> str:
    tag = _validate_string(value).strip().lower()
    if tag not in API_VERSIONS:
        raise ConfigurationError(
            f"Unknown API version {value!r}; expected one of {sorted(API_VERSIONS)}"
        )
    return API_VERSIONS[tag]


VALIDATIONS: dict[str, Callable[[Any], Any]] = {
    "string": _validate_string,
    "bool": _validate_bool,
    "integer": _validate_integer,
    "integerpositive": _validate_integer_positive,
    "apiversion": _validate_api_version,
}


# ─────────────────────────────────────────────────────────────────────────────
# Settings store
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class Setting:
    """A single registered setting."""
    module: str
    name: str
    value: Any
    validation: str
    description: str = ""
    allow_delete: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.module}.{self.name}"

    @property
    def value_type(self) -> type:
        return type(self.value)


class SettingsStore:
    """Key/value store for settings keyed by ``<module>.<dotted.name>``.

    Keys are case-insensitive. A store is created once at process start and
    handed to whatever needs it; there is no module-level instance.
    """

    def __init__(self) -> None:
        self._settings: dict[str, Setting] = {}

    @staticmethod
    def _key(full_name: str) -> str:
        return full_name.strip().lower()

    def initialize(
        self,
        name: str,
        value: Any,
        validation: str,
        description: str = "",
        allow_delete: bool = False,
        module: str = DEFAULT_MODULE,
        reset: bool = False,
    ) -> Setting:
        """Register a setting with its default value.

        A setting that already exists keeps its current value unless
        ``reset`` is True.

        Args:
            name: Dotted setting name (e.g. "Graph.PageSize")
            value: Default value, coerced by the validation rule
            validation: Name of a rule in VALIDATIONS
            description: Human-readable description
            allow_delete: Whether delete() may remove this setting
            module: Module namespace
            reset: Overwrite an existing registration

        Returns:
            The registered (or already present) setting

        Raises:
            ConfigurationError: If the validation rule is unknown or the
                default value does not pass it
        """
        validator = VALIDATIONS.get(validation.lower())
        if validator is None:
            raise ConfigurationError(f"Unknown validation rule '{validation}' for {module}.{name}")

        key = self._key(f"{module}.{name}")
        existing = self._settings.get(key)
        if existing is not None and not reset:
            return existing

        setting = Setting(
            module=module,
            name=name,
            value=validator(value),
            validation=validation.lower(),
            description=description,
            allow_delete=allow_delete,
        )
        self._settings[key] = setting
        return setting

    def get(self, full_name: str, default: Any = None) -> Any:
        setting = self._settings.get(self._key(full_name))
        return default if setting is None else setting.value

    def get_setting(self, full_name: str) -> Optional[Setting]:
        return self._settings.get(self._key(full_name))

    def set(self, full_name: str, value: Any) -> None:
        """Update a registered setting after running its validation rule.

        Raises:
            ConfigurationError: If the setting is unknown or the value is invalid
        """
        setting = self._settings.get(self._key(full_name))
        if setting is None:
            raise ConfigurationError(f"Unknown setting '{full_name}'")
        try:
            setting.value = VALIDATIONS[setting.validation](value)
        except ConfigurationError as e:
            raise ConfigurationError(f"{setting.full_name}: {e}") from None

    def delete(self, full_name: str) -> None:
        setting = self._settings.get(self._key(full_name))
        if setting is None:
            return
        if not setting.allow_delete:
            raise ConfigurationError(f"Setting '{setting.full_name}' cannot be deleted")
        del self._settings[self._key(full_name)]

    def keys(self) -> list[str]:
        return [setting.full_name for setting in self._settings.values()]

    def __contains__(self, full_name: object) -> bool:
        return isinstance(full_name, str) and self._key(full_name) in self._settings

    def __len__(self) -> int:
        return len(self._settings)


def initialize_settings(store: SettingsStore, reset: bool = False) -> None:
    """Register every EntraLab setting with its default.

    Safe to call repeatedly: values already present are left alone unless
    ``reset`` is True.
    """
    store.initialize("Project.Name", "EntraLab", "string",
                     "Prefix used for every provisioned lab object", reset=reset)
    store.initialize("Feature.GlobalSecureAccess", False, "bool",
                     "Provision Global Secure Access objects", reset=reset)
    store.initialize("Feature.IdentityGovernance", False, "bool",
                     "Provision Identity Governance objects", reset=reset)
    store.initialize("Graph.Host", "graph.microsoft.com", "string",
                     "Microsoft Graph API host", reset=reset)
    store.initialize("Graph.ApiVersion", "beta", "apiversion",
                     "Default Graph API version (v1.0/beta, or stable/preview)", reset=reset)
    store.initialize("Graph.PageSize", 100, "integerpositive",
                     "Default $top page size for paginated requests", reset=reset)
    store.initialize("Graph.Timeout", 30, "integerpositive",
                     "Per-request HTTP timeout in seconds", reset=reset)


# Environment variable -> setting
ENV_OVERRIDES = {
    "ENTRALAB_PROJECT_NAME": "EntraLab.Project.Name",
    "ENTRALAB_FEATURE_GSA": "EntraLab.Feature.GlobalSecureAccess",
    "ENTRALAB_FEATURE_IGA": "EntraLab.Feature.IdentityGovernance",
    "ENTRALAB_GRAPH_HOST": "EntraLab.Graph.Host",
    "ENTRALAB_GRAPH_API_VERSION": "EntraLab.Graph.ApiVersion",
    "ENTRALAB_GRAPH_PAGE_SIZE": "EntraLab.Graph.PageSize",
    "ENTRALAB_GRAPH_TIMEOUT": "EntraLab.Graph.Timeout",
}


def apply_environment(store: SettingsStore, environ: Mapping[str, str]) -> None:
    for env_var, full_name in ENV_OVERRIDES.items():
        value = environ.get(env_var)
        if value is not None and value != "":
            store.set(full_name, value)
            logger.debug("Applied %s from environment", full_name)


# ─────────────────────────────────────────────────────────────────────────────
# Typed configuration
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class LabConfig:
    """Lab configuration container, built once and passed by reference."""
    project_name: str = "EntraLab"

    # Features
    feature_global_secure_access: bool = False
    feature_identity_governance: bool = False

    # Graph
    graph_host: str = "graph.microsoft.com"
    api_version: str = "beta"
    page_size: int = 100
    timeout: int = 30

    # App registration (client credentials)
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        if not self.project_name or not self.project_name.strip():
            raise ConfigurationError("project_name must not be empty")
        self.api_version = _validate_api_version(self.api_version)
        self.page_size = _validate_integer_positive(self.page_size)
        self.timeout = _validate_integer_positive(self.timeout)

    @property
    def authority(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant_id}"

    @property
    def has_credentials(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)

    @classmethod
    def from_store(cls, store: SettingsStore, **credentials: str) -> "LabConfig":
        return cls(
            project_name=store.get("EntraLab.Project.Name"),
            feature_global_secure_access=store.get("EntraLab.Feature.GlobalSecureAccess"),
            feature_identity_governance=store.get("EntraLab.Feature.IdentityGovernance"),
            graph_host=store.get("EntraLab.Graph.Host"),
            api_version=store.get("EntraLab.Graph.ApiVersion"),
            page_size=store.get("EntraLab.Graph.PageSize"),
            timeout=store.get("EntraLab.Graph.Timeout"),
            **credentials,
        )


def _load_secret_from_file(secret_name: str, env_var: str | None = None,
                           environ: Mapping[str, str] | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name}
    2. Environment variable (fallback)
    """
    environ = os.environ if environ is None else environ
    secret_file = SECRETS_DIR / secret_name

    if secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("Loaded %s from %s", secret_name, SECRETS_DIR)
                return secret_value
        except OSError as e:
            logger.warning("Failed to read %s: %s", secret_file, e)

    if env_var:
        secret_value = environ.get(env_var)
        if secret_value:
            logger.debug("Loaded %s from environment", env_var)
            return secret_value

    return None


def load_settings(environ: Mapping[str, str] | None = None,
                  store: SettingsStore | None = None) -> LabConfig:
    """Register defaults, apply environment overrides and build a LabConfig.

    Args:
        environ: Environment mapping (defaults to os.environ)
        store: Existing store to reuse; a fresh one is created otherwise

    Returns:
        Validated LabConfig

    Raises:
        ConfigurationError: If an override does not pass validation
    """
    environ = os.environ if environ is None else environ
    store = store if store is not None else SettingsStore()

    initialize_settings(store)
    apply_environment(store, environ)

    config = LabConfig.from_store(
        store,
        tenant_id=environ.get("AZURE_TENANT_ID", ""),
        client_id=environ.get("AZURE_CLIENT_ID", ""),
        client_secret=_load_secret_from_file("azure_client_secret", "AZURE_CLIENT_SECRET", environ) or "",
    )

    logger.info(
        "Project=%s; api_version=%s; gsa=%s; iga=%s",
        config.project_name,
        config.api_version,
        config.feature_global_secure_access,
        config.feature_identity_governance,
    )
    if not config.has_credentials:
        logger.warning("AZURE_TENANT_ID/AZURE_CLIENT_ID/AZURE_CLIENT_SECRET incomplete; Graph calls will fail")
    return config
