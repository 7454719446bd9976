"""
Template Store.

Holds the built-in templates plus user templates, grouped by category.
Only user templates are persisted (under the ``templates`` key); the
built-ins are re-merged on every ``initialize()``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from datavox.data.default_templates import default_templates
from datavox.logging_config import get_logger
from datavox.schemas.template import Template
from datavox.storage import StorageAdapter

logger = get_logger(__name__)

TEMPLATES_KEY = "templates"


class TemplateStore:
    """Category-grouped template collection backed by a StorageAdapter."""

    def __init__(self, storage: StorageAdapter) -> None:
        self._storage = storage
        self._templates: dict[str, list[Template]] = {}

    async def initialize(self) -> None:
        """Load user templates from storage and merge them with the built-ins."""
        await self._storage.init()
        stored = await self._storage.get_item(TEMPLATES_KEY) or {}

        merged = default_templates()
        for category, raw_templates in stored.items():
            user_templates = [
                t for t in (Template.model_validate(raw) for raw in raw_templates)
                if not t.is_default
            ]
            merged.setdefault(category, []).extend(user_templates)

        self._templates = merged
        logger.info(
            "templates_initialized",
            categories=len(merged),
            user_templates=sum(len(v) for v in stored.values()),
        )

    async def _persist(self) -> None:
        payload = {
            category: [t.to_wire() for t in templates if not t.is_default]
            for category, templates in self._templates.items()
        }
        await self._storage.set_item(TEMPLATES_KEY, payload)

    def _locate(self, template_id: str) -> Optional[tuple[str, int]]:
        for category, templates in self._templates.items():
            for index, template in enumerate(templates):
                if template.id == template_id:
                    return category, index
        return None

    # -- Queries --

    def get(self, template_id: str) -> Template | None:
        location = self._locate(template_id)
        if location is None:
            return None
        category, index = location
        return self._templates[category][index]

    def by_category(self, category: str) -> list[Template]:
        return list(self._templates.get(category, []))

    def categories(self) -> list[str]:
        return list(self._templates.keys())

    def all(self) -> dict[str, list[Template]]:
        return {category: list(templates) for category, templates in self._templates.items()}

    # -- Mutations --

    async def add(self, template: Template) -> Template:
        if self._locate(template.id) is not None:
            raise ValueError(f"Template '{template.id}' already exists")
        if template.is_default:
            raise PermissionError("Cannot add a template marked as default")

        self._templates.setdefault(template.category, []).append(template)
        await self._persist()
        logger.info("template_added", template_id=template.id, category=template.category)
        return template

    async def update(self, template: Template) -> Template:
        location = self._locate(template.id)
        if location is None:
            raise KeyError(template.id)

        category, index = location
        if self._templates[category][index].is_default:
            raise PermissionError("Cannot modify default template")
        if template.is_default:
            raise PermissionError("Cannot mark a user template as default")

        template = template.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        if category == template.category:
            self._templates[category][index] = template
        else:
            del self._templates[category][index]
            self._templates.setdefault(template.category, []).append(template)

        await self._persist()
        logger.info("template_updated", template_id=template.id, category=template.category)
        return template

    async def delete(self, template_id: str) -> None:
        location = self._locate(template_id)
        if location is None:
            raise KeyError(template_id)

        category, index = location
        if self._templates[category][index].is_default:
            raise PermissionError("Cannot delete default template")

        del self._templates[category][index]
        await self._persist()
        logger.info("template_deleted", template_id=template_id)
