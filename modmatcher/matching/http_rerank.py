"""Re-rank provider backed by an OpenAI-compatible chat completions endpoint.

The provider sends the folder's token lists and the candidate names and
tags as a single user message, asks for a JSON object mapping candidate
ids to a score in [0, 1], and maps the ids back to catalog entries.

Any transport error, non-2xx status or malformed response raises
RerankProviderError; ``apply_rerank`` logs it and keeps the original
result.
"""

import json
import logging
import math
from typing import Any, Dict, List, Optional

import httpx

from modmatcher.catalog.catalog import Catalog
from modmatcher.models.data_models import FolderSignals

from .rerank import RerankRequest

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-3.5-turbo-1106"
DEFAULT_TIMEOUT_SECONDS = 30.0

PROMPT_INTRO = (
    "You are an expert in identifying game mod content. Analyze the following "
    "folder signals and a list of candidate game objects. Return a JSON object "
    "mapping each candidate ID (as a string) to a confidence score from 0.0 "
    "to 1.0 that the folder belongs to that candidate."
)


class RerankProviderError(Exception):
    """Raised when the remote re-rank service cannot produce scores."""


class HttpRerankProvider:
    """Chat-completions re-rank provider.

    Args:
        api_key: Bearer token for the endpoint.
        base_url: Full chat completions URL; defaults to OpenAI.
        model: Model name sent in the payload.
        client: Optional preconfigured httpx client (used by tests).
        timeout: Request timeout in seconds when no client is given.
    """

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        if not api_key or not api_key.strip():
            raise ValueError("api_key must not be empty")
        self.api_key = api_key
        self.base_url = base_url or DEFAULT_BASE_URL
        self.model = model
        self._client = client
        self._timeout = timeout

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def rerank(
        self, request: RerankRequest, signals: FolderSignals, catalog: Catalog
    ) -> Dict[int, float]:
        if not request.candidate_entry_ids:
            return {}

        prompt = build_prompt(request, signals, catalog)
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.0,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = self._get_client().post(self.base_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RerankProviderError(
                f"Re-rank request failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise RerankProviderError(f"Re-rank request failed: {e}") from e

        logger.debug(
            f"rerank_http: status={response.status_code} "
            f"candidates={len(request.candidate_entry_ids)}"
        )
        return parse_scores(response.json(), request)


def build_prompt(request: RerankRequest, signals: FolderSignals, catalog: Catalog) -> str:
    """Render the user message for one request."""
    lines = [
        PROMPT_INTRO,
        "",
        "## Folder Signals",
        f"- Folder Name Tokens: {_format_list(signals.folder_tokens)}",
        f"- Deep Extracted Tokens: {_format_list(signals.deep_name_tokens)}",
        f"- INI Section Tokens: {_format_list(signals.ini_section_tokens)}",
        f"- INI Content Tokens: {_format_list(signals.ini_content_tokens)}",
        "",
        "## Candidates",
    ]
    for entry_id in request.candidate_entry_ids:
        entry = catalog.entries[entry_id]
        lines.append(f"- ID: {entry_id}, Name: {entry.name}, Tags: {_format_list(entry.tags)}")
    return "\n".join(lines)


def _format_list(values) -> str:
    return "[" + ", ".join(values) + "]"


def parse_scores(body: Any, request: RerankRequest) -> Dict[int, float]:
    """Extract ``{entry_id: score}`` from a chat completions response body.

    Ids not among the requested candidates and non-numeric scores are
    ignored. Scores are clamped to [0, 1].

    Raises:
        RerankProviderError: If the body has no parseable JSON content.
    """
    try:
        content = body["choices"][0]["message"]["content"]
        raw_scores = json.loads(content)
    except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
        raise RerankProviderError(f"Malformed re-rank response: {e}") from e

    if not isinstance(raw_scores, dict):
        raise RerankProviderError("Re-rank response content is not a JSON object")

    allowed = set(request.candidate_entry_ids)
    scores: Dict[int, float] = {}
    for key, value in raw_scores.items():
        try:
            entry_id = int(str(key).strip())
            score = float(value)
        except (TypeError, ValueError):
            continue
        if entry_id in allowed and math.isfinite(score):
            scores[entry_id] = min(max(score, 0.0), 1.0)
    return scores


__all__: List[str] = [
    "DEFAULT_BASE_URL",
    "DEFAULT_MODEL",
    "HttpRerankProvider",
    "RerankProviderError",
    "build_prompt",
    "parse_scores",
]
