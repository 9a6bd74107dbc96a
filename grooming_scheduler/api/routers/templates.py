"""Availability template endpoints. PUT replaces the whole definition."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from grooming_scheduler.api.deps import get_template_store
from grooming_scheduler.schemas.template_schema import TemplateDefinition, TemplateResponse
from grooming_scheduler.scheduling.templates import TemplateStore

router = APIRouter(prefix="/templates", tags=["Templates"])


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
def create_template(data: TemplateDefinition, store: TemplateStore = Depends(get_template_store)):
    return store.create_template(data)


@router.get("", response_model=list[TemplateResponse])
def list_templates(
    location_id: Optional[int] = Query(None),
    store: TemplateStore = Depends(get_template_store),
):
    return store.list_templates(location_id=location_id)


@router.get("/{template_id}", response_model=TemplateResponse)
def get_template(template_id: int, store: TemplateStore = Depends(get_template_store)):
    return store.get_template(template_id)


@router.put("/{template_id}", response_model=TemplateResponse)
def replace_template(
    template_id: int,
    data: TemplateDefinition,
    store: TemplateStore = Depends(get_template_store),
):
    return store.update_template(template_id, data)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(template_id: int, store: TemplateStore = Depends(get_template_store)):
    store.delete_template(template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
