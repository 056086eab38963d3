# postflow/services/template_catalog.py
import json
import os
import re
from typing import List, Optional

import structlog

from .errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


def template_name(template_id: str) -> str:
    """social-post__v2 -> 'Social Post - V2'"""
    parts = [re.sub(r"[-_]+", " ", p) for p in template_id.split("__")]
    title = " - ".join(" ".join(p.split()) for p in parts if p.strip())
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), title)


class TemplateCatalog:
    """n8n workflow templates stored as <id>.json files in one directory."""

    def __init__(self, templates_dir: str):
        self.templates_dir = os.path.abspath(templates_dir)

    def _path(self, template_id: str) -> str:
        if not template_id or ".." in template_id or not _SAFE_ID.match(template_id):
            raise ValidationError("Invalid template id")
        return os.path.join(self.templates_dir, f"{template_id}.json")

    def list_templates(self, search: Optional[str] = None) -> List[dict]:
        if not os.path.isdir(self.templates_dir):
            logger.warning("templates_dir_missing", path=self.templates_dir)
            return []
        ids = sorted(f[: -len(".json")] for f in os.listdir(self.templates_dir) if f.endswith(".json"))
        items = [{"id": i, "name": template_name(i)} for i in ids]
        if search:
            needle = search.strip().lower()
            items = [t for t in items if needle in t["id"].lower() or needle in t["name"].lower()]
        return items

    def load(self, template_id: str) -> dict:
        path = self._path(template_id)
        if not os.path.isfile(path):
            raise NotFoundError("Template not found")
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)

    def file_path(self, template_id: str) -> str:
        path = self._path(template_id)
        if not os.path.isfile(path):
            raise NotFoundError("Template not found")
        return path
