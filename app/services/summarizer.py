# app/services/summarizer.py

from __future__ import annotations
from typing import Any, Dict, Optional, Sequence, Union
from urllib.parse import quote

import httpx
from loguru import logger

from app.config import API_ENDPOINT, DEFAULT_SENTENCE_COUNT
from app.exceptions import SummarizerError
from app.services.types import (
    INVALID_API_KEY_MESSAGE,
    AuthFailure,
    AuthRejected,
    FetchOutcome,
    FieldAccessor,
    FieldUpdate,
    Ok,
    Row,
    Success,
    SummaryResult,
)


SentenceCount = Optional[Union[int, str]]


def build_request_url(
    api_key: str,
    url: str,
    sentence_count: SentenceCount = None,
    *,
    endpoint: str = API_ENDPOINT,
    default_sentence_count: int = DEFAULT_SENTENCE_COUNT,
) -> str:
    """Build the SMMRY request for one page.

    SMMRY takes its parameters appended to the endpoint path and expects
    SM_URL last. Key and page URL are percent-encoded so reserved characters
    in the page URL cannot leak into the other parameters.
    """
    length = sentence_count if sentence_count not in (None, "") else default_sentence_count
    return (
        f"{endpoint}&SM_API_KEY={quote(api_key, safe='')}"
        f"&SM_LENGTH={length}&SM_URL={quote(url, safe='')}"
    )


def interpret_response(row_id: str, body: Dict[str, Any]) -> SummaryResult:
    if body.get("sm_api_message") == INVALID_API_KEY_MESSAGE:
        return AuthFailure()
    return Success(row_id=row_id, summary=body.get("sm_api_content"))


class SummaryClient:
    """Thin async client for the SMMRY summarization API."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        endpoint: str = API_ENDPOINT,
        default_sentence_count: int = DEFAULT_SENTENCE_COUNT,
    ):
        self._http = http
        self.endpoint = endpoint
        self.default_sentence_count = default_sentence_count

    async def summarize(
        self,
        api_key: str,
        url: str,
        sentence_count: SentenceCount = None,
    ) -> Dict[str, Any]:
        request_url = build_request_url(
            api_key,
            url,
            sentence_count,
            endpoint=self.endpoint,
            default_sentence_count=self.default_sentence_count,
        )
        try:
            response = await self._http.get(request_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SummarizerError(
                f"Summary service answered {exc.response.status_code} for {url!r}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SummarizerError(f"Summary request for {url!r} failed: {exc}") from exc
        try:
            body = response.json()
        except ValueError as exc:
            raise SummarizerError(
                f"Summary service returned a non-JSON body for {url!r}"
            ) from exc
        if not isinstance(body, dict):
            raise SummarizerError(
                f"Summary service returned {type(body).__name__}, expected an object"
            )
        return body


async def fetch_summaries(
    rows: Sequence[Row],
    source: FieldAccessor,
    client: SummaryClient,
    api_key: str,
    sentence_count: SentenceCount,
    destination_field: str,
) -> FetchOutcome:
    """Summarize every row, one request at a time, in row order.

    A refused API key stops the loop at once and drops every update gathered
    so far, rows already summarized included.
    """
    updates = []
    for row in rows:
        url = source.extract(row)
        body = await client.summarize(api_key, url, sentence_count)
        result = interpret_response(row.id, body)
        if isinstance(result, AuthFailure):
            logger.warning(
                "Summary API key rejected at row {}; discarding {} update(s)",
                row.id,
                len(updates),
            )
            return AuthRejected(discarded=len(updates))
        updates.append(
            FieldUpdate(id=result.row_id, fields={destination_field: result.summary})
        )
    logger.debug("Fetched {} summaries", len(updates))
    return Ok(updates=updates)
