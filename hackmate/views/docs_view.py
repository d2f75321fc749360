# hackmate/views/docs_view.py

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from hackmate.ai.docs_export import docs_filename, export_markdown
from hackmate.ai.gateway_client import AIGatewayClient
from hackmate.errors import AIGatewayError
from hackmate.schemas.ai_schema import DocsRequest
from hackmate.views.notices import Notice


def split_features(features: Union[str, List[str]]) -> List[str]:
    """One feature per line; blank lines are dropped."""
    lines = features.splitlines() if isinstance(features, str) else features
    return [line.strip() for line in lines if line.strip()]


class DocsGeneratorController:
    def __init__(self, ai: AIGatewayClient) -> None:
        self.ai = ai
        self.project_name = ""
        self.generated_docs = ""
        self.generating = False
        self.notices: List[Notice] = []

    async def generate(
        self,
        project_name: str,
        tech_stack: str,
        description: str,
        features: Union[str, List[str]] = "",
        context: Optional[str] = None,
    ) -> Optional[str]:
        if not project_name.strip() or not tech_stack.strip() or not description.strip():
            self.notices.append(Notice("Missing fields", "Please fill in all required fields.", "destructive"))
            return None

        self.project_name = project_name
        self.generating = True
        self.generated_docs = ""
        try:
            self.generated_docs = await self.ai.generate_docs(
                DocsRequest(
                    project_name=project_name,
                    tech_stack=tech_stack,
                    description=description,
                    features=split_features(features),
                    context=context or None,
                )
            )
        except AIGatewayError as exc:
            self.notices.append(
                Notice("Generation failed", str(exc) or "Something went wrong. Please try again.", "destructive")
            )
            return None
        finally:
            self.generating = False

        self.notices.append(Notice("Documentation generated!", "Review and download your docs below."))
        return self.generated_docs

    @property
    def filename(self) -> str:
        return docs_filename(self.project_name)

    def download(self, directory: Union[str, Path]) -> Optional[Path]:
        if not self.generated_docs:
            return None
        path = export_markdown(self.generated_docs, self.project_name, Path(directory))
        self.notices.append(Notice("Downloaded as Markdown"))
        return path
