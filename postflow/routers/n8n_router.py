# postflow/routers/n8n_router.py
from fastapi import APIRouter, Depends

from ..dependencies.app_state import get_n8n_client
from ..dependencies.auth import get_current_user
from ..infrastructure.n8n_client import N8nClient
from .templates_router import get_catalog
from ..services.template_catalog import TemplateCatalog
from ..UAA.models import User

router = APIRouter(prefix="/n8n", tags=["n8n"])


@router.post("/import/{template_id}")
async def import_template(
    template_id: str,
    catalog: TemplateCatalog = Depends(get_catalog),
    client: N8nClient = Depends(get_n8n_client),
    current_user: User = Depends(get_current_user),
):
    workflow = catalog.load(template_id)
    imported = await client.import_workflow(template_id, workflow)
    return {"message": "Workflow imported successfully to n8n", "workflow": imported}


@router.get("/test")
async def test_connection(client: N8nClient = Depends(get_n8n_client), current_user: User = Depends(get_current_user)):
    await client.test_connection()
    return {"message": "Successfully connected to n8n", "n8nUrl": client.base_url, "email": client.email}
