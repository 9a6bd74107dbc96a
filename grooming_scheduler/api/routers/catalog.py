"""Location and service catalog endpoints."""

from fastapi import APIRouter, Depends, Query, status

from grooming_scheduler.api.deps import get_catalog
from grooming_scheduler.schemas.catalog_schema import (
    LocationCreate,
    LocationResponse,
    ServiceCreate,
    ServiceResponse,
)
from grooming_scheduler.scheduling.catalog import CatalogService

router = APIRouter(tags=["Catalog"])


@router.post("/locations", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
def create_location(data: LocationCreate, catalog: CatalogService = Depends(get_catalog)):
    return catalog.create_location(data)


@router.get("/locations", response_model=list[LocationResponse])
def list_locations(catalog: CatalogService = Depends(get_catalog)):
    return catalog.list_locations()


@router.get("/locations/{location_id}", response_model=LocationResponse)
def get_location(location_id: int, catalog: CatalogService = Depends(get_catalog)):
    return catalog.get_location(location_id)


@router.post("/services", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(data: ServiceCreate, catalog: CatalogService = Depends(get_catalog)):
    return catalog.create_service(data)


@router.get("/services", response_model=list[ServiceResponse])
def list_services(
    active_only: bool = Query(True),
    catalog: CatalogService = Depends(get_catalog),
):
    return catalog.list_services(active_only=active_only)
