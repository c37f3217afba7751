"""
Credential stores for remote matchers.

Keys are looked up on every call so an updated key takes effect on the
next resolution without rebuilding anything.
"""

import os
from typing import Dict, Optional, Protocol


class CredentialStore(Protocol):
    """Supplies the current API key for a backend family."""

    def get_api_key(self, family: str) -> Optional[str]:
        """Return the key for `family`, or None when not configured."""


class EnvCredentialStore:
    """
    Reads keys from environment variables at call time.

    Usage:
        store = EnvCredentialStore({"modelscope": "MODELSCOPE_API_KEY"})
        store.get_api_key("modelscope")
    """

    def __init__(self, variables: Dict[str, str]):
        self._variables = dict(variables)

    def get_api_key(self, family: str) -> Optional[str]:
        name = self._variables.get(family)
        if not name:
            return None
        value = os.environ.get(name, "").strip()
        return value or None


class MemoryCredentialStore:
    """In-memory keys, updated by the UI when the user enters a new one."""

    def __init__(self, keys: Optional[Dict[str, str]] = None):
        self._keys: Dict[str, str] = dict(keys or {})

    def set_api_key(self, family: str, api_key: Optional[str]) -> None:
        if api_key and api_key.strip():
            self._keys[family] = api_key.strip()
        else:
            self._keys.pop(family, None)

    def get_api_key(self, family: str) -> Optional[str]:
        return self._keys.get(family)
