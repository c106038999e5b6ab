from dataclasses import dataclass, field, asdict, fields
from typing import Any

class GWSError(Exception):
    """Base for errors raised inside the package before they are turned into envelopes."""

class AuthError(GWSError):
    """No usable credentials could be obtained for the requested scopes."""

class StorageError(GWSError):
    """Export bytes could not be decoded or written."""

class GoogleWorkSpaceResourceBase():
    """
    Intended to be subclassed by a dataclass but isnt actually a dataclass.
    Gives the request bodies and result structs a common dict translation.
    """
    def to_base(self) -> dict:
        """
        Default just return the dict representation of the object as needed by
        the REST body.  Something more complicated can override.
        Call fixup() first to ensure all fields are in correct format.
        """
        self.fixup()
        return asdict(self)

    def trim(self) -> dict|None:
        """
        Return a 'trimmed' dict of the resource, removing any top level attributes
        that are None or an empty string/container.  Numbers and bools are kept
        since 0 and False are real values.
        """
        b = self.to_base()
        if b:
            vals = dict(b.items())
            for k,v in vals.items():
                if v is None or (type(v) not in [int,bool,float] and not v):
                    del b[k]
        return b

    def fixup(self) -> None:
        """
        notify a subclass to do any field adjustments
        """
        pass

@dataclass
class ApiEnvelope(GoogleWorkSpaceResourceBase):
    """
    The one result shape of every client operation.
    ok is True only when nothing failed and the HTTP status (if any) is below 400.
    On failure error is set, and for API errors status and body carry
    the response for the caller to inspect.
    """
    ok: bool
    data: Any = field(default=None)
    error: str|None = field(default=None)
    status: int|None = field(default=None)
    body: Any = field(default=None)

    def __bool__(self) -> bool:
        return self.ok

    def to_base(self) -> dict:
        # asdict() would deep copy the payloads, the caller wants them as returned
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def trim(self) -> dict:
        """Dict form with unset fields dropped, ok is always present."""
        b = {k: v for k, v in self.to_base().items() if v is not None}
        b['ok'] = self.ok
        return b

    @classmethod
    def failure(cls, error: str, status: int|None = None, body: Any = None):
        return cls(False, error=error, status=status, body=body)

@dataclass
class AccessToken(GoogleWorkSpaceResourceBase):
    """
    Outcome of asking the auth provider for a token.
    Falsy when there is no token, in which case error says why.
    """
    token: str|None = field(default=None)
    error: str|None = field(default=None)

    def __bool__(self) -> bool:
        return bool(self.token)

    def __str__(self) -> str:
        if self:
            return "<token>"
        return f"<no token: {self.error}>"
