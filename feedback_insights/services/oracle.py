"""
Text-Understanding Oracle - Feedback Insights Engine
feedback_insights/services/oracle.py

Extracts themes, competency evidence and scores from a group's free-text
feedback (or, in aggregate mode, from the per-group insights).

Shipped implementation: LLMOracle, an OpenAI-compatible chat-completions
client over httpx. The model is asked for a JSON object which is validated
against OracleResult before it reaches the scoring code.
"""
import json
import logging
from typing import List, Optional, Protocol, Sequence, Union

import httpx
from pydantic import ValidationError

from feedback_insights.config import settings, get_competency_aspects
from feedback_insights.core.exceptions import InvalidOracleResponseError, OracleError
from feedback_insights.models.feedback import RawFeedbackItem
from feedback_insights.models.insights import OracleResult, RelationshipInsight

logger = logging.getLogger(__name__)


OraclePayload = Union[Sequence[RawFeedbackItem], Sequence[RelationshipInsight]]


class Oracle(Protocol):
    async def analyze(
        self,
        group: str,
        payload: OraclePayload,
        competencies: List[str],
    ) -> OracleResult:
        ...


SYSTEM_PROMPT = """You are an expert in performance analysis and competency assessment.
Analyze the provided 360-degree feedback and extract:

1. Key themes from the feedback
2. Competency scores based on evidence in the feedback
3. Perspectives that only this group of reviewers raises

Rate each competency from 1-5 based on evidence (1=Poor, 2=Below Average,
3=Average, 4=Good, 5=Excellent). Only include competencies with clear
evidence. evidence_count is the number of distinct reviewers whose feedback
supports the score; never count a reviewer twice.

Respond with a JSON object in exactly this shape:
{
  "themes": ["..."],
  "competencies": [
    {
      "name": "Collaboration & Communication",
      "score": 4.0,
      "evidence_count": 3,
      "evidence_quotes": ["Quote from feedback"],
      "description": "One-sentence summary of the evidence"
    }
  ],
  "unique_perspectives": ["..."]
}"""


def _competency_block(competencies: List[str]) -> str:
    lines = []
    for name in competencies:
        aspects = get_competency_aspects(name)
        if aspects:
            lines.append(f"- {name}: {', '.join(aspects)}")
        else:
            lines.append(f"- {name}")
    return "\n".join(lines)


def _feedback_block(items: Sequence[RawFeedbackItem]) -> str:
    blocks = []
    for i, item in enumerate(items, start=1):
        blocks.append(
            f"Reviewer {i}:\n"
            f"Strengths:\n{item.strengths or '(none)'}\n"
            f"Areas for Improvement:\n{item.areas_for_improvement or '(none)'}"
        )
    return "\n\n".join(blocks)


def build_messages(group: str, payload: OraclePayload, competencies: List[str]) -> List[dict]:
    """Chat messages for one oracle call."""
    if group == "aggregate":
        insights = [i.model_dump(mode="json") for i in payload]  # type: ignore[union-attr]
        body = (
            "Synthesize these per-relationship analyses into an overall view. "
            "Describe each competency and list perspectives that stand out.\n\n"
            f"{json.dumps(insights, indent=2)}"
        )
    else:
        body = (
            f"Please analyze this {group} feedback "
            f"({len(payload)} reviewers):\n\n{_feedback_block(payload)}"  # type: ignore[arg-type]
        )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"Focus on these core competencies:\n{_competency_block(competencies)}\n\n{body}",
        },
    ]


class LLMOracle:
    """OpenAI-compatible chat-completions oracle."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if api_key is None and settings.OPENAI_API_KEY is not None:
            api_key = settings.OPENAI_API_KEY.get_secret_value()
        self.api_key = api_key
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.model = model or settings.DEFAULT_LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self._transport = transport

    @property
    def headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def analyze(
        self,
        group: str,
        payload: OraclePayload,
        competencies: List[str],
    ) -> OracleResult:
        """
        Run one oracle call.

        Raises:
            OracleError: transport failure, timeout or HTTP status >= 400.
            InvalidOracleResponseError: body is not the expected JSON shape.
        """
        request = {
            "model": self.model,
            "messages": build_messages(group, payload, competencies),
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }

        logger.info("oracle_request", extra={"group": group, "model": self.model, "size": len(payload)})

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=request,
                    headers=self.headers,
                )
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise OracleError(f"Oracle timed out for {group}", group) from e
            except httpx.HTTPStatusError as e:
                raise OracleError(
                    f"Oracle returned HTTP {e.response.status_code} for {group}", group
                ) from e
            except httpx.HTTPError as e:
                raise OracleError(f"Oracle request failed for {group}: {e}", group) from e

        return self._parse(group, response)

    @staticmethod
    def _parse(group: str, response: httpx.Response) -> OracleResult:
        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise InvalidOracleResponseError(
                f"Oracle response for {group} has no message content", group
            ) from e

        if not isinstance(content, str):
            raise InvalidOracleResponseError(
                f"Oracle response for {group} has no message content", group
            )

        try:
            result = OracleResult.model_validate_json(content)
        except ValidationError as e:
            raise InvalidOracleResponseError(
                f"Oracle response for {group} failed validation: {e.error_count()} errors", group
            ) from e

        logger.info(
            "oracle_response",
            extra={
                "group": group,
                "themes": len(result.themes),
                "competencies": len(result.competencies),
            },
        )
        return result
