from dataclasses import dataclass, field, fields
from pathlib import Path
import os

from .resources import GoogleWorkSpaceResourceBase

SHEETS_BASE = "https://sheets.googleapis.com/v4"
DRIVE_BASE = "https://www.googleapis.com/drive/v3"
DEFAULT_SCOPE = ["sheets"]
EXPORT_SCOPE = "drive.readonly"

# fields where None is a real setting rather than "use the default"
_NULLABLE = ("service_account", "storage_root")

def _env_path(name: str, default: Path) -> Path:
    v = os.getenv(name)
    return Path(v) if v else default

def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    return int(v) if v else default

@dataclass
class SheetsClientConfig(GoogleWorkSpaceResourceBase):
    """
    Everything a SheetsClient needs to know up front.
    Paths default to the home directory the same way the credential cache
    always has, and each one can be overridden by environment variable:

        GWSHEETS_CLIENT_SECRETS     OAuth client secrets from the Cloud console
        GWSHEETS_TOKEN_CACHE        where refreshed user credentials are kept
        GWSHEETS_SERVICE_ACCOUNT    service account key, used instead of OAuth if set
        GWSHEETS_TIMEOUT            default request timeout in seconds
        GWSHEETS_MAX_TRIES          attempts per request when retry is on
    """
    sheets_base: str = field(default=SHEETS_BASE)
    drive_base: str = field(default=DRIVE_BASE)
    default_scope: list[str]|str = field(default_factory=lambda: list(DEFAULT_SCOPE))
    export_scope: str = field(default=EXPORT_SCOPE)
    timeout: float = field(default_factory=lambda: float(os.getenv("GWSHEETS_TIMEOUT") or 30))
    max_tries: int = field(default_factory=lambda: _env_int("GWSHEETS_MAX_TRIES", 5))
    client_secrets: Path = field(default_factory=lambda: _env_path(
        "GWSHEETS_CLIENT_SECRETS", Path.home() / "gws_client_secrets.json"))
    cred_cache: Path = field(default_factory=lambda: _env_path(
        "GWSHEETS_TOKEN_CACHE", Path.home() / "gws_tokens.json"))
    service_account: Path|None = field(default_factory=lambda: (
        Path(os.environ["GWSHEETS_SERVICE_ACCOUNT"]) if os.getenv("GWSHEETS_SERVICE_ACCOUNT") else None))
    auth_server: str = field(default="localhost")
    auth_port: int = field(default=0)
    storage_root: Path|None = field(default=None)
    storage_namespace: str = field(default="gsheet")

    def __post_init__(self):
        self.fixup()

    def fixup(self) -> None:
        """Paths may come in as strings from a config file."""
        for name in ("client_secrets", "cred_cache", "service_account", "storage_root"):
            v = getattr(self, name)
            if v is not None and not isinstance(v, Path):
                setattr(self, name, Path(str(v)))
        self.timeout = float(self.timeout)
        self.max_tries = max(1, int(self.max_tries))
        self.auth_port = int(self.auth_port)

    @classmethod
    def from_dict(cls, config: dict):
        """
        Build from a dict pulled out of a json, toml, ini, etc. file.
        Unknown keys are ignored so a shared config section can be handed over whole.
        None means "use the default" except for the nullable paths, where it switches them off.
        """
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in dict(config).items()
                      if k in known and (v is not None or k in _NULLABLE)})

    @property
    def config(self) -> dict:
        """
        All configuration state as a plain dict, paths as strings.
        Inverse of from_dict().
        """
        b = self.to_base()
        return {k: (str(v) if isinstance(v, Path) else v) for k, v in b.items()}
