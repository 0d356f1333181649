"""OpenAPI customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- API Key security scheme (``X-API-Key``), with health endpoints exempted
- A shared schema for the 429 rate limit body

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Chat",
        "description": "Security assistant chat (rate limited per caller).",
    },
    {
        "name": "Admin",
        "description": "Operator tools such as clearing a caller's rate limit window.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]

RATE_LIMIT_ERROR_SCHEMA = {
    "type": "object",
    "properties": {
        "error": {"type": "string", "example": "Rate limit exceeded"},
        "message": {
            "type": "string",
            "example": "Too many requests. Please try again in 42 seconds.",
        },
        "retryAfter": {"type": "integer", "example": 42},
    },
    "required": ["error", "message", "retryAfter"],
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {}).setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )
        components.setdefault("schemas", {}).setdefault(
            "RateLimitError", RATE_LIMIT_ERROR_SCHEMA
        )

        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(t for t in TAGS_METADATA if t["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                if path.endswith("/health"):
                    method_obj["security"] = []
                too_many = method_obj.get("responses", {}).get("429")
                if too_many is not None:
                    too_many["content"] = {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/RateLimitError"}
                        }
                    }

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
