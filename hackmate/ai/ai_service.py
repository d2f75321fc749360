import json
import logging
import time
from typing import Any, Dict, Tuple

import openai
from openai import OpenAI

from hackmate.config import AI_PROVIDER, AI_TIMEOUT_SECONDS, OPENAI_API_KEY, OPENAI_MODEL


class AIServiceError(Exception):
    pass


class AIServiceTimeoutError(AIServiceError):
    pass


class AIServiceInvalidResponseError(AIServiceError):
    pass


class UnknownActionError(AIServiceError):
    pass


ACTIONS = ("analyze_idea", "generate_tasks", "generate_docs", "chat")

_SYSTEM_PROMPTS = {
    "analyze_idea": (
        "You are a hackathon mentor. Analyze the team's idea and answer ONLY with a JSON object "
        'with keys "problem_statement" (string), "target_users", "features", "risks" and '
        '"tech_stack_suggestions" (arrays of strings).'
    ),
    "generate_tasks": (
        "You are a hackathon project planner. Break the project into 6 to 12 concrete tasks that "
        "fit the time limit. Answer ONLY with a JSON array of objects with keys "
        '"title", "description", "effort" (Low|Medium|High) and "priority" (Low|Medium|High|Critical).'
    ),
    "generate_docs": (
        "You are a technical writer. Write complete project documentation in Markdown: overview, "
        "problem, solution, features, architecture, tech stack, setup instructions and future work."
    ),
    "chat": (
        "You are the AI teammate of a hackathon team. Answer briefly and practically."
    ),
}


class AIService:
    """
    Provider-agnostic AI service behind the /api/ai gateway.
    The provider is chosen by AI_PROVIDER (openai | placeholder).
    """

    def __init__(self, timeout: float = AI_TIMEOUT_SECONDS):
        self.timeout = timeout
        self.provider = AI_PROVIDER
        self.openai_key = OPENAI_API_KEY
        self.openai_model = OPENAI_MODEL
        self.logger = logging.getLogger("hackmate.ai")

    def run(self, action: str, data: Dict[str, Any]) -> str:
        if action not in ACTIONS:
            raise UnknownActionError(f"Unknown action: {action}")

        self.logger.info(
            "ai_request_started",
            extra={
                "provider": self.provider,
                "action": action,
                "fields": sorted(k for k, v in data.items() if v),
            },
        )

        start = time.time()
        system_prompt, user_prompt = build_prompt(action, data)

        if self.provider == "openai" and self.openai_key:
            return self._generate_openai(system_prompt, user_prompt, start)

        return self._generate_placeholder(action, data, start)

    # -------------------------
    # Providers
    # -------------------------

    def _generate_openai(self, system_prompt: str, user_prompt: str, start: float) -> str:
        client = OpenAI(api_key=self.openai_key, timeout=self.timeout, max_retries=0)
        try:
            response = client.chat.completions.create(
                model=self.openai_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=0.4,
                max_tokens=2000,
            )
        except openai.APITimeoutError as exc:
            raise AIServiceTimeoutError("OpenAI timeout") from exc
        except openai.OpenAIError as exc:
            raise AIServiceError("AI provider failure") from exc

        # safe extraction
        content = ""
        if response.choices and response.choices[0].message and response.choices[0].message.content:
            content = response.choices[0].message.content.strip()
        if not content:
            raise AIServiceInvalidResponseError("Empty response from OpenAI")

        self._log_success(start, "openai")
        return content

    def _generate_placeholder(self, action: str, data: Dict[str, Any], start: float) -> str:
        if action == "analyze_idea":
            idea = str(data.get("idea") or "").strip()
            content = json.dumps(
                {
                    "problem_statement": idea or "No idea provided",
                    "target_users": ["Hackathon participants"],
                    "features": ["Core workflow", "Simple onboarding", "Live demo mode"],
                    "risks": ["Scope creep", "Time pressure"],
                    "tech_stack_suggestions": ["FastAPI", "React"],
                }
            )
        elif action == "generate_tasks":
            content = json.dumps(
                [
                    {"title": "Set up repository", "description": "Create repo and CI", "effort": "Low", "priority": "High"},
                    {"title": "Build core feature", "description": "Implement the main flow", "effort": "High", "priority": "Critical"},
                    {"title": "Prepare demo", "description": "Script and rehearse the pitch", "effort": "Medium", "priority": "High"},
                ]
            )
        elif action == "generate_docs":
            features = "\n".join(f"- {f}" for f in data.get("features") or [])
            content = "\n\n".join(
                p
                for p in [
                    f"# {data.get('project_name') or 'Project'}",
                    f"## Overview\n{data.get('description') or ''}",
                    f"## Tech Stack\n{data.get('tech_stack') or ''}",
                    f"## Features\n{features}" if features else "",
                    "## Setup\n1. Clone the repository\n2. Install dependencies\n3. Run the app",
                ]
                if p
            )
        else:
            content = f"Let's break that down: {str(data.get('message') or '').strip()}"

        if not content.strip():
            raise AIServiceInvalidResponseError("Placeholder returned empty text")

        self._log_success(start, "placeholder")
        return content

    # -------------------------
    # Logging helpers
    # -------------------------

    def _log_success(self, start: float, provider: str) -> None:
        elapsed = round(time.time() - start, 3)
        self.logger.info(
            "ai_request_succeeded",
            extra={"provider": provider, "elapsed_seconds": elapsed},
        )


def build_prompt(action: str, data: Dict[str, Any]) -> Tuple[str, str]:
    """System prompt for the action plus a 'Key: value' rendering of the payload."""
    lines = []
    for key, value in data.items():
        if not value:
            continue
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value)
        elif isinstance(value, dict):
            value = json.dumps(value)
        lines.append(f"{key.replace('_', ' ').title()}: {value}")
    return _SYSTEM_PROMPTS[action], "\n".join(lines)
