"""
Credential variants handed to the catalog clients.

A service is authenticated either with an OAuth bearer token or with a
captured bundle of browser session headers. The Token Provider resolves
the stored token into one of the two variants once; catalog clients only
ever call as_headers() and never branch on which variant they hold.
"""

from dataclasses import dataclass, field
from typing import Mapping, Union


@dataclass(frozen=True)
class Bearer:
    """OAuth access token sent as an Authorization header."""
    token: str

    def as_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def __repr__(self) -> str:
        # Never leak the token into logs
        return "Bearer(token=***)"


@dataclass(frozen=True)
class HeaderBundle:
    """
    Captured authenticated session headers.

    The bundle is opaque: it is returned exactly as stored, with no
    expiry tracking. An expired session is only discovered when a catalog
    rejects a call with an authentication error.
    """
    headers: Mapping[str, str] = field(default_factory=dict)

    def as_headers(self) -> dict[str, str]:
        return dict(self.headers)

    def __repr__(self) -> str:
        return f"HeaderBundle(keys={sorted(self.headers)})"


Credentials = Union[Bearer, HeaderBundle]
