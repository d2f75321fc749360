import re
from pathlib import Path


def docs_filename(project_name: str) -> str:
    """'HackMate AI!' -> 'hackmate_ai__documentation.md'"""
    slug = re.sub(r"[^a-z0-9]", "_", project_name, flags=re.IGNORECASE).lower()
    return f"{slug}_documentation.md"


def export_markdown(content: str, project_name: str, directory: Path) -> Path:
    path = Path(directory) / docs_filename(project_name)
    path.write_text(content, encoding="utf-8")
    return path
