from collections.abc import Iterable
from pathlib import Path
import json
import copy
import logging

import google.auth
import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from .config import SheetsClientConfig
from .resources import AuthError

logger = logging.getLogger(__name__)

def bearer(token: str) -> dict[str, str]:
    """Authorization header for an OAuth access token."""
    return {"Authorization": f"Bearer {token}"}

class GoogleWorkspaceAuth():
    """
    Authenticated access to Google Workspace, handing out bearer tokens per scope.
    See https://developers.google.com/workspace/guides/create-credentials#choose_the_access_credential_that_is_right_for_you
    for an overview of what you'll need.  Credentials are looked for in order:

        1. a service account key, if one is configured
        2. the local credential cache, refreshed if expired
        3. the installed app OAuth flow using the client secrets file
        4. application default credentials (GOOGLE_APPLICATION_CREDENTIALS etc)

    OAuth sessions are cached so the confirmation screens do not need to happen
    repeatedly.  Asking for a scope outside the current session triggers a
    reconnect with the union of scopes.

    One instance per client, built from that client's config.
    """

    name = "google auth"

    __SCOPES = {
        "sheets": "https://www.googleapis.com/auth/spreadsheets",
        "sheets-ro": "https://www.googleapis.com/auth/spreadsheets.readonly",
        "spreadsheets": "https://www.googleapis.com/auth/spreadsheets",
        "spreadsheets.readonly": "https://www.googleapis.com/auth/spreadsheets.readonly",
        "drive-file": "https://www.googleapis.com/auth/drive.file",
        "drive": "https://www.googleapis.com/auth/drive",
        "drive-ro": "https://www.googleapis.com/auth/drive.readonly",
        "drive.readonly": "https://www.googleapis.com/auth/drive.readonly",
        "openid": "openid",
        "email": "email",
        "profile": "profile",
        "userinfo-email": "https://www.googleapis.com/auth/userinfo.email",
        "userinfo-profile": "https://www.googleapis.com/auth/userinfo.profile"
    }
    __SCOPE_URL_PREFIX = "https://www.googleapis.com/"

    __DEFAULT_AUTH_PROMPT_MSG = "Please visit this URL to authorize access to your spreadsheets: {url}"
    __DEFAULT_AUTH_FLOW_SUCCESS_MSG = "Authorization complete, you may close this window."

    def __init__(self, config: SheetsClientConfig|None = None) -> None:
        self.__settings = config if config is not None else SheetsClientConfig()
        self.auth_prompt_msg = self.__DEFAULT_AUTH_PROMPT_MSG
        self.auth_flow_success_msg = self.__DEFAULT_AUTH_FLOW_SUCCESS_MSG
        self.clear()

    def __bool__(self) -> bool:
        """True if we are connected and authenticated"""
        return self.connected

    def __str__(self) -> str:
        if self.connected:
            return f"Connected:{str(self.__session_scopes)}"
        return f"Disconnected:{str(self.__scopes)}"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    @classmethod
    def get_scope(cls, scope: str) -> str:
        """
        Get a scope based on simplified label.
        A raw URL will also be accepted.
        """
        s = str(scope)
        sc = cls.__SCOPES.get(s, "")
        if not sc and s.startswith(cls.__SCOPE_URL_PREFIX):
            sc = s
        return sc

    @classmethod
    def resolve_scopes(cls, value: None|str|Iterable) -> list[str]:
        """Labels or URLs in, de-duplicated URLs out, unknown labels dropped."""
        if value is None:
            return []
        items = [value] if isinstance(value, str) or not isinstance(value, Iterable) else value
        slist = []
        for v in items:
            s = cls.get_scope(str(v))
            if s and s not in slist:
                slist.append(s)
        return slist

    def clear(self) -> None:
        """Reset the access state."""
        self.__creds = None
        self.__scopes = []
        self.__session_scopes = []

    @property
    def connected(self) -> bool:
        """
        Are we authenticated with Google?
        """
        return bool(self.__creds) and bool(self.__creds.valid)

    @property
    def scopes(self) -> list[str]:
        """
        The scopes requested or to be requested on next authentication sequence.
        """
        return self.__scopes

    @property
    def session_scopes(self) -> list[str]:
        """
        Scopes the current credentials were obtained for.
        """
        if self.connected:
            return self.__session_scopes
        return []

    @property
    def creds(self):
        """
        Current active access credentials or None
        """
        return self.__creds

    @property
    def config(self) -> dict:
        """
        Get the auth related configuration state as a dict.
        """
        c = self.__settings
        return {
            'secrets': str(c.client_secrets),
            'cache': str(c.cred_cache),
            'service_account': str(c.service_account) if c.service_account else None,
            'scopes': list(self.__scopes),
            'server': c.auth_server,
            'port': c.auth_port
        }

    @config.setter
    def config(self, config: dict) -> None:
        """
        Set configuration state from a dict, e.g. pulled from a config file.
        Changing where credentials come from drops the current session.
        """
        if not isinstance(config, dict):
            raise TypeError(f"auth configuration must be a dict, not {type(config).__name__}")
        c = self.__settings
        reconnect = False
        v = config.get('port', None)
        if v is not None:
            c.auth_port = int(v)
        v = config.get('server', None)
        if v is not None:
            c.auth_server = str(v)
        v = config.get('scopes', [])
        if v:
            self.__scopes = self.resolve_scopes(v)
            reconnect = True
        v = config.get('cache', None)
        if v is not None:
            c.cred_cache = Path(v)
            reconnect = True
        v = config.get('secrets', None)
        if v is not None:
            c.client_secrets = Path(v)
            reconnect = True
        v = config.get('service_account', None)
        if v is not None:
            c.service_account = Path(v)
            reconnect = True
        v = config.get('auth_prompt_msg', None)
        if v is not None:
            self.auth_prompt_msg = str(v)
        v = config.get('flow_success_msg', None)
        if v is not None:
            self.auth_flow_success_msg = str(v)
        if reconnect:
            self.__creds = None

    def auth(self, scope: None|str|Iterable = None) -> str:
        """
        Access token covering scope, connecting or widening the session as needed.
        Raises AuthError when no credentials can be found or refreshed.
        """
        requested = self.resolve_scopes(scope if scope is not None else self.__settings.default_scope)
        if not requested:
            raise AuthError(f"no known scope in {scope!r}")
        missing = [s for s in requested if s not in self.__scopes]
        if missing:
            self.__scopes.extend(missing)
        if not self.connected or not all(s in self.__session_scopes for s in self.__scopes):
            self.connect()
        if not self.connected:
            raise AuthError("no valid credentials for scopes: " + ", ".join(self.__scopes))
        return self.__creds.token

    def connect(self) -> bool:
        """
        Establish a new authentication session for the current scopes.
        If an OAuth flow was needed the credentials are saved in the cache file
        to reuse on subsequent invocations.
        """
        self.__creds = None
        self.__session_scopes = []
        if not self.__scopes:
            return False
        c = self.__settings
        requested_scopes = copy.copy(self.__scopes)

        if c.service_account is not None:
            if not c.service_account.is_file():
                raise AuthError(f"service account file not found: {c.service_account}")
            self.__creds = service_account.Credentials.from_service_account_file(
                str(c.service_account), scopes=requested_scopes)
            self.__refresh()
        else:
            cache = c.cred_cache
            if cache.exists() and cache.is_file():
                # the cache doesn't say what it was authorized for once refreshed,
                # so we keep the scopes list in it ourselves
                with open(cache.resolve(), 'r', encoding='utf-8') as f:
                    j = json.load(f)
                if not all(s in j.get('scopes', []) for s in requested_scopes):
                    logger.info("cached credentials lack requested scopes, re-authorizing")
                    cache.unlink()
                else:
                    self.__creds = Credentials.from_authorized_user_file(str(cache.resolve()), requested_scopes)
            if not self.connected and self.__creds and self.__creds.refresh_token:
                self.__refresh()
                if not self.connected:
                    logger.warning("failed to refresh stored creds, deleting cred cache and re-authorizing")
                    self.__creds = None
                    cache.unlink(missing_ok=True)

            if not self.connected:
                if c.client_secrets.exists() and c.client_secrets.is_file():
                    flow = InstalledAppFlow.from_client_secrets_file(str(c.client_secrets), requested_scopes)
                    self.__creds = flow.run_local_server(host=c.auth_server, port=c.auth_port,
                                                         authorization_prompt_message=self.auth_prompt_msg,
                                                         success_message=self.auth_flow_success_msg)
                    if self.connected:
                        self.__save_cache(requested_scopes)
                else:
                    # final hail mary, GOOGLE_APPLICATION_CREDENTIALS and other cloud default locations
                    try:
                        self.__creds, _ = google.auth.default(scopes=requested_scopes)
                    except google.auth.exceptions.DefaultCredentialsError as e:
                        raise AuthError(str(e)) from e
                    if not self.connected:
                        self.__refresh()

        if self.connected:
            self.__session_scopes = requested_scopes
        return self.connected

    def __refresh(self) -> None:
        try:
            self.__creds.refresh(Request())
        except google.auth.exceptions.RefreshError as e:
            logger.warning(f"credential refresh failed: {e}")

    def __save_cache(self, scopes: list[str]) -> None:
        # scopes isnt needed for a refresh, it is kept so connect() can tell
        # whether the cache covers what is being asked for
        user_info = {'refresh_token': self.__creds.refresh_token, 'client_id': self.__creds.client_id,
                     'client_secret': self.__creds.client_secret, 'scopes': scopes}
        cache = self.__settings.cred_cache
        cache.parent.mkdir(parents=True, exist_ok=True)
        with open(cache.resolve(), 'w', encoding='utf-8') as f:
            json.dump(user_info, f, ensure_ascii=False, indent=2)
