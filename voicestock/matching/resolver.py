"""
Match resolver - the fallback chain behind a spoken product request.

Order:
1. Remote matchers in priority order (skipped when remote matching is off,
   the transcript is blank, no key is configured, or the network is down)
2. Local ProductScorer
3. The whole catalog, so the caller always has something to show

A rejected API key is the only failure the caller hears about; it is
reported through `on_auth_error` / Resolution.auth_errors while the chain
carries on and still produces a result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from loguru import logger

from ..config import ResolverConfig
from ..credentials import CredentialStore
from ..errors import RemoteAuthError, RemoteMatchError
from ..schemas.catalog import Catalog
from ..schemas.match_result import MatchResult, normalize_result
from .connectivity import has_network
from .remote import RemoteMatcher
from .scorer import ProductScorer

SOURCE_LOCAL = "local"
SOURCE_CATALOG = "catalog"


@dataclass
class Resolution:
    """A MatchResult plus how it was obtained."""
    result: MatchResult
    source: str
    auth_errors: list[RemoteAuthError] = field(default_factory=list)
    attempted: list[str] = field(default_factory=list)

    @property
    def auth_error(self) -> Optional[RemoteAuthError]:
        return self.auth_errors[0] if self.auth_errors else None

    @property
    def used_fallback(self) -> bool:
        return self.source in (SOURCE_LOCAL, SOURCE_CATALOG)


class MatchResolver:
    """
    Resolves transcripts to catalog products; never raises.

    Usage:
        resolver = MatchResolver.from_config(config.resolver, credentials)
        result = resolver.resolve("两个狗套", catalog)
    """

    def __init__(
        self,
        matchers: Sequence[RemoteMatcher] = (),
        credentials: Optional[CredentialStore] = None,
        config: Optional[ResolverConfig] = None,
        is_online: Callable[[], bool] = has_network,
        on_auth_error: Optional[Callable[[RemoteAuthError], None]] = None,
    ):
        self.matchers = list(matchers)
        self.credentials = credentials
        self.config = config or ResolverConfig()
        self._is_online = is_online
        self._on_auth_error = on_auth_error

    @classmethod
    def from_config(
        cls,
        config: ResolverConfig,
        credentials: Optional[CredentialStore] = None,
        **kwargs
    ) -> "MatchResolver":
        matchers = [RemoteMatcher.from_config(mc) for mc in config.matchers]
        return cls(matchers=matchers, credentials=credentials, config=config, **kwargs)

    def resolve(
        self,
        transcript: str,
        catalog: Catalog,
        config: Optional[ResolverConfig] = None,
    ) -> MatchResult:
        """Run the fallback chain and return only the result."""
        return self.resolve_detailed(transcript, catalog, config).result

    def resolve_detailed(
        self,
        transcript: str,
        catalog: Catalog,
        config: Optional[ResolverConfig] = None,
    ) -> Resolution:
        """
        Run the fallback chain.

        Args:
            transcript: Text to resolve (may be empty)
            catalog: Products to choose from (may be empty)
            config: Per-call override of the resolver configuration

        Returns:
            Resolution with the result, its source and any auth errors
        """
        cfg = config or self.config
        transcript = transcript or ""
        auth_errors: list[RemoteAuthError] = []
        attempted: list[str] = []
        quantity_hint: Optional[int] = None

        if cfg.use_remote and transcript.strip() and catalog:
            remote, quantity_hint = self._try_remote(transcript, catalog, cfg, auth_errors, attempted)
            if remote is not None:
                return Resolution(remote[1], remote[0], auth_errors, attempted)

        attempted.append(SOURCE_LOCAL)
        scorer = ProductScorer(
            suggestion_limit=cfg.local_suggestion_limit,
            confident_score=cfg.confident_score,
        )
        local = scorer.match(transcript, catalog)
        if local.detected_quantity is None and quantity_hint is not None:
            local.detected_quantity = quantity_hint

        if local.suggestions:
            logger.info("Resolved {!r} locally: {} suggestions", transcript, len(local.suggestions))
            return Resolution(local, SOURCE_LOCAL, auth_errors, attempted)

        logger.info("No strategy produced suggestions for {!r}; offering the whole catalog", transcript)
        everything = normalize_result(
            matched_product_id=None,
            detected_quantity=local.detected_quantity,
            suggestions=[p.id for p in catalog],
        )
        return Resolution(everything, SOURCE_CATALOG, auth_errors, attempted)

    def _try_remote(
        self,
        transcript: str,
        catalog: Catalog,
        cfg: ResolverConfig,
        auth_errors: list[RemoteAuthError],
        attempted: list[str],
    ) -> tuple[Optional[tuple[str, MatchResult]], Optional[int]]:
        """
        Walk the remote matchers.

        Returns:
            ((source, result) or None, first quantity seen in an empty result)
        """
        rejected_families: set[str] = set()
        online: Optional[bool] = None
        quantity_hint: Optional[int] = None

        for matcher in self.matchers:
            if matcher.family in rejected_families:
                logger.debug("Skipping {}: {} key was rejected", matcher.name, matcher.family)
                continue

            if matcher.requires_api_key and not self._has_key(matcher.family):
                logger.debug("Skipping {}: no API key for {}", matcher.name, matcher.family)
                continue

            if cfg.check_connectivity and not matcher.provider.is_local:
                if online is None:
                    online = self._probe()
                if not online:
                    logger.debug("Skipping {}: offline", matcher.name)
                    continue

            attempted.append(matcher.name)
            try:
                result = matcher.match(transcript, catalog, self.credentials)
            except RemoteAuthError as exc:
                logger.warning("{} rejected credentials: {}", matcher.name, exc)
                rejected_families.add(matcher.family)
                auth_errors.append(exc)
                self._signal_auth_error(exc)
                continue
            except RemoteMatchError as exc:
                logger.info("{} failed, falling back: {}", matcher.name, exc)
                continue
            except Exception as exc:
                logger.exception("Unexpected error from {}: {}", matcher.name, exc)
                continue

            if result.suggestions:
                logger.info(
                    "Resolved {!r} via {}: matched={} suggestions={}",
                    transcript, matcher.name, result.matched_product_id, len(result.suggestions),
                )
                return (matcher.name, result), quantity_hint

            logger.info("{} returned no suggestions for {!r}", matcher.name, transcript)
            if quantity_hint is None:
                quantity_hint = result.detected_quantity

        return None, quantity_hint

    def _has_key(self, family: str) -> bool:
        if self.credentials is None:
            return False
        return bool(self.credentials.get_api_key(family))

    def _probe(self) -> bool:
        try:
            return bool(self._is_online())
        except Exception as exc:
            logger.warning("Connectivity probe failed: {}", exc)
            return False

    def _signal_auth_error(self, error: RemoteAuthError) -> None:
        if self._on_auth_error is None:
            return
        try:
            self._on_auth_error(error)
        except Exception as exc:
            logger.exception("on_auth_error callback raised: {}", exc)
