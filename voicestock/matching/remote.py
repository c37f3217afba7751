"""
Remote AI matcher.

One matcher = one provider + one model + a suggestion cap. A call makes a
single request and either returns a normalized MatchResult or raises one
of RemoteAuthError / RemoteNetworkError / RemoteParseError. Retrying and
falling back are the resolver's job.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from ..config import MatcherConfig
from ..credentials import CredentialStore
from ..errors import RemoteAuthError, RemoteParseError
from ..llm.base import LLMProvider, Message
from ..llm.factory import create_provider
from ..prompts.matcher_prompt import create_matcher_system_prompt, create_matcher_user_prompt
from ..schemas.catalog import Catalog, project_catalog
from ..schemas.match_result import MatchResult, normalize_result
from .sanitize import parse_json_object

REMOTE_SUGGESTION_LIMIT = 20


class RemoteMatcher:
    """
    Matches a transcript against the catalog with a text-generation backend.

    Usage:
        matcher = RemoteMatcher(ModelScopeProvider(), family="modelscope")
        result = matcher.match("两个狗套", catalog, credentials)
    """

    def __init__(
        self,
        provider: LLMProvider,
        family: Optional[str] = None,
        suggestion_limit: int = REMOTE_SUGGESTION_LIMIT,
    ):
        self.provider = provider
        self.family = family or provider.name
        self.suggestion_limit = suggestion_limit

    @classmethod
    def from_config(cls, config: MatcherConfig) -> "RemoteMatcher":
        return cls(
            provider=create_provider(config),
            family=config.family_name,
            suggestion_limit=config.suggestion_limit,
        )

    @property
    def name(self) -> str:
        return f"{self.provider.name}:{self.provider.model}"

    @property
    def requires_api_key(self) -> bool:
        return self.provider.requires_api_key

    def build_messages(self, transcript: str, catalog: Catalog) -> list[Message]:
        return [
            Message(role="system", content=create_matcher_system_prompt(self.suggestion_limit)),
            Message(role="user", content=create_matcher_user_prompt(transcript, project_catalog(catalog))),
        ]

    def match(
        self,
        transcript: str,
        catalog: Catalog,
        credentials: Optional[CredentialStore] = None,
    ) -> MatchResult:
        """
        Resolve `transcript` with one backend request.

        Args:
            transcript: Final transcript of a capture session
            catalog: Products the answer must come from
            credentials: Store queried for this matcher's family key

        Returns:
            MatchResult restricted to catalog ids, matched id first

        Raises:
            RemoteAuthError: missing key or HTTP 401
            RemoteNetworkError: backend unreachable or failing
            RemoteParseError: reply is not a JSON object
        """
        if not transcript or not transcript.strip():
            return MatchResult.empty()

        api_key = credentials.get_api_key(self.family) if credentials else None
        if self.requires_api_key and not api_key:
            raise RemoteAuthError(f"No API key configured for {self.family}", self.provider.name)

        logger.debug("Remote match via {} for {!r} ({} products)", self.name, transcript, len(catalog))
        response = self.provider.chat(self.build_messages(transcript, catalog), api_key=api_key)

        data = parse_json_object(response.content, backend=self.name)
        suggestions = data.get("suggestions") or []
        if not isinstance(suggestions, list):
            raise RemoteParseError(f"{self.name}: suggestions is not a list", self.provider.name)

        result = normalize_result(
            matched_product_id=data.get("matchedProductId"),
            detected_quantity=data.get("detectedQuantity"),
            suggestions=suggestions,
            known_ids={p.id for p in catalog},
            limit=self.suggestion_limit,
        )
        logger.debug(
            "{} matched={} quantity={} suggestions={}",
            self.name, result.matched_product_id, result.detected_quantity, len(result.suggestions),
        )
        return result
