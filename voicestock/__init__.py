"""
voicestock - speak a product and a quantity, get a catalog entry back.

Capture (voicestock.voice) turns speech into one transcript per session;
matching (voicestock.matching) resolves the transcript against a product
catalog through AI matchers with a local fallback.
"""

from .config import AppConfig, CaptureConfig, MatcherConfig, ResolverConfig
from .errors import (
    VoicestockError,
    CaptureError,
    EngineUnsupported,
    PermissionDenied,
    SessionBusy,
    NoSpeechDetected,
    RemoteMatchError,
    RemoteAuthError,
    RemoteNetworkError,
    RemoteParseError,
)
from .schemas import MatchResult, Product, load_catalog
from .matching import MatchResolver, ProductScorer, RemoteMatcher

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "CaptureConfig",
    "MatcherConfig",
    "ResolverConfig",
    "VoicestockError",
    "CaptureError",
    "EngineUnsupported",
    "PermissionDenied",
    "SessionBusy",
    "NoSpeechDetected",
    "RemoteMatchError",
    "RemoteAuthError",
    "RemoteNetworkError",
    "RemoteParseError",
    "MatchResult",
    "Product",
    "load_catalog",
    "MatchResolver",
    "ProductScorer",
    "RemoteMatcher",
]
