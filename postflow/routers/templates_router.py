# postflow/routers/templates_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from ..config import Settings
from ..dependencies.app_state import get_settings
from ..dependencies.auth import get_current_user
from ..services.template_catalog import TemplateCatalog
from ..UAA.models import User

router = APIRouter(prefix="/templates", tags=["templates"])


def get_catalog(settings: Settings = Depends(get_settings)) -> TemplateCatalog:
    return TemplateCatalog(settings.templates_dir)


@router.get("", response_model=List[dict])
async def list_templates(
    search: Optional[str] = Query(None),
    catalog: TemplateCatalog = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    return catalog.list_templates(search)


@router.get("/{template_id}")
async def get_template(
    template_id: str,
    catalog: TemplateCatalog = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    return catalog.load(template_id)


@router.get("/{template_id}/download")
async def download_template(
    template_id: str,
    catalog: TemplateCatalog = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    return FileResponse(
        catalog.file_path(template_id),
        media_type="application/json",
        filename=f"{template_id}.json",
    )
