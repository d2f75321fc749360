# hackmate/ai/gateway_client.py
"""
Async client for the AI gateway (`POST {action, data}` -> `{result}` | `{error}`).

Failures are raised as AIGatewayError for the caller to show; nothing is retried.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from hackmate.config import AI_GATEWAY_URL, AI_TIMEOUT_SECONDS
from hackmate.errors import AIGatewayError
from hackmate.schemas.ai_schema import DocsRequest, TaskDraft
from hackmate.schemas.project_schema import IdeaAnalysis

logger = logging.getLogger("hackmate.ai.gateway")

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_TASK_DRAFTS = TypeAdapter(List[TaskDraft])


def extract_json(text: str) -> Any:
    """Parse the JSON payload of a model answer, tolerating Markdown code fences."""
    match = _FENCE.search(text)
    candidate = match.group(1) if match else text
    candidate = candidate.strip()
    starts = [i for i in (candidate.find("{"), candidate.find("[")) if i >= 0]
    if starts:
        candidate = candidate[min(starts):]
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise AIGatewayError("AI returned malformed JSON") from exc


class AIGatewayClient:
    def __init__(
        self,
        url: str = AI_GATEWAY_URL,
        timeout: float = AI_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = httpx.Timeout(timeout)
        self._transport = transport

    async def request(self, action: str, data: Dict[str, Any]) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.url, json={"action": action, "data": data})
        except httpx.HTTPError as exc:
            logger.error(f"AI gateway request failed: {exc}")
            raise AIGatewayError(f"AI gateway unreachable: {exc}") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            logger.error(f"Malformed AI gateway response ({resp.status_code}): {resp.text[:200]}")
            raise AIGatewayError("AI gateway returned a malformed response") from exc

        if not isinstance(body, dict):
            raise AIGatewayError("AI gateway returned a malformed response")
        if body.get("error"):
            raise AIGatewayError(str(body["error"]))

        result = body.get("result")
        if not isinstance(result, str):
            raise AIGatewayError("AI gateway returned no result")
        return result

    async def analyze_idea(self, idea: str) -> IdeaAnalysis:
        text = await self.request("analyze_idea", {"idea": idea})
        try:
            return IdeaAnalysis.model_validate(extract_json(text))
        except ValidationError as exc:
            raise AIGatewayError("AI returned an incomplete idea analysis") from exc

    async def generate_tasks(
        self,
        project_name: str,
        duration: str,
        idea: Optional[IdeaAnalysis] = None,
    ) -> List[TaskDraft]:
        data: Dict[str, Any] = {"project_name": project_name, "duration": duration}
        if idea is not None:
            data["idea"] = idea.model_dump()
        text = await self.request("generate_tasks", data)
        try:
            return _TASK_DRAFTS.validate_python(extract_json(text))
        except ValidationError as exc:
            raise AIGatewayError("AI returned malformed tasks") from exc

    async def generate_docs(self, request: DocsRequest) -> str:
        return await self.request("generate_docs", request.model_dump(exclude_none=True))

    async def chat(self, message: str, history: Optional[List[str]] = None) -> str:
        return await self.request("chat", {"message": message, "history": history or []})
