"""
API Router: Template Endpoints.

CRUD for extraction templates plus prompt preview and validation.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from datavox.api.dependencies import get_template_store
from datavox.config import get_settings
from datavox.logging_config import get_logger
from datavox.schemas.template import Template, template_problems
from datavox.services.prompt_generator import generate_prompt
from datavox.stores.template_store import TemplateStore

logger = get_logger(__name__)
router = APIRouter(prefix="/templates", tags=["Templates"])


def _require(store: TemplateStore, template_id: str) -> Template:
    template = store.get(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.get("/")
async def list_templates(
    store: TemplateStore = Depends(get_template_store),
) -> dict[str, list[dict[str, Any]]]:
    """All templates grouped by category."""
    return {
        category: [t.to_wire() for t in templates]
        for category, templates in store.all().items()
    }


@router.get("/categories/{category}")
async def list_category(
    category: str,
    store: TemplateStore = Depends(get_template_store),
) -> list[dict[str, Any]]:
    return [t.to_wire() for t in store.by_category(category)]


@router.get("/{template_id}")
async def get_template(
    template_id: str,
    store: TemplateStore = Depends(get_template_store),
) -> dict[str, Any]:
    return _require(store, template_id).to_wire()


@router.post("/", status_code=201)
async def create_template(
    body: Template,
    store: TemplateStore = Depends(get_template_store),
) -> dict[str, Any]:
    try:
        template = await store.add(body)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return template.to_wire()


@router.put("/{template_id}")
async def update_template(
    template_id: str,
    body: Template,
    store: TemplateStore = Depends(get_template_store),
) -> dict[str, Any]:
    if body.id != template_id:
        raise HTTPException(status_code=400, detail="Template id in body does not match URL")
    try:
        template = await store.update(body)
    except KeyError:
        raise HTTPException(status_code=404, detail="Template not found")
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return template.to_wire()


@router.delete("/{template_id}", status_code=204)
async def delete_template(
    template_id: str,
    store: TemplateStore = Depends(get_template_store),
) -> None:
    try:
        await store.delete(template_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Template not found")
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.get("/{template_id}/prompt", response_class=PlainTextResponse)
async def preview_prompt(
    template_id: str,
    store: TemplateStore = Depends(get_template_store),
) -> str:
    """The exact extraction prompt this template produces."""
    template = _require(store, template_id)
    return generate_prompt(
        template,
        include_field_descriptions=get_settings().prompt_include_field_descriptions,
    )


@router.post("/{template_id}/validate")
async def validate_template(
    template_id: str,
    store: TemplateStore = Depends(get_template_store),
) -> dict[str, Any]:
    problems = template_problems(_require(store, template_id))
    return {"template_id": template_id, "valid": not problems, "problems": problems}
