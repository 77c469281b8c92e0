"""
Utility script to generate and write the OpenAPI schema for the FastAPI app.

This script builds the FastAPI application and serializes its OpenAPI schema to
interfaces/openapi.json so that the UI client and documentation tools can
consume a stable description of the API without running the server.

Usage:
    python -m calendar_todo.generate_openapi [output_path]

Notes:
- The app is built on an in-memory repository, so no data folder is touched.
- The script ensures every tag from `openapi_tags` is present in the schema.
"""
from __future__ import annotations

import json
import os
import sys
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .main import create_app, openapi_tags
from .settings import get_settings


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Ensure the OpenAPI schema contains the expected tags metadata. This does not
    override existing tag definitions unless missing.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


# PUBLIC_INTERFACE
def build_schema() -> Dict[str, Any]:
    """Return the OpenAPI schema of a freshly built app."""
    app = create_app(replace(get_settings(), persistence_backend="memory"))
    schema = app.openapi()
    _ensure_tags(schema)
    return schema


def _default_output_path() -> str:
    # <repo root>/interfaces/openapi.json, relative to src/calendar_todo/
    package_dir = os.path.dirname(os.path.abspath(__file__))
    repo_root = os.path.dirname(os.path.dirname(package_dir))
    return os.path.join(repo_root, "interfaces", "openapi.json")


# PUBLIC_INTERFACE
def generate_openapi(out_path: Optional[str] = None) -> str:
    """Write the OpenAPI schema file and return the written file path."""
    out_path = out_path or _default_output_path()
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(build_schema(), f, indent=2, ensure_ascii=False)
    return out_path


def main() -> None:
    path = generate_openapi(sys.argv[1] if len(sys.argv) > 1 else None)
    print(f"Wrote OpenAPI schema to: {path}")


if __name__ == "__main__":
    main()
