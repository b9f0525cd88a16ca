from fastapi import APIRouter, Depends, Path

from app.dependencies.dbDependecies import store_dependency
from app.modules.auth.dependencies import get_auth_context
from app.modules.auth.schemas import AuthContext
from app.modules.sequences.service import SequenceService, preview
from app.modules.sequences.schemas import DocumentType, SequenceConfigUpdate, SequenceConfigOut

router = APIRouter(prefix="/sequences", tags=["Numbering"])


def _to_out(config) -> SequenceConfigOut:
    return SequenceConfigOut.model_validate(
        {**{c.name: getattr(config, c.name) for c in config.__table__.columns}, "preview": preview(config)}
    )


@router.get("/{document_type}", response_model=SequenceConfigOut)
async def get_sequence(
    store: store_dependency,
    document_type: DocumentType = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    """Configuración actual y vista previa del próximo número."""
    config = await SequenceService(store, auth_context.tenant_id).get_config(document_type.value)
    return _to_out(config)


@router.patch("/{document_type}", response_model=SequenceConfigOut)
async def update_sequence(
    changes: SequenceConfigUpdate,
    store: store_dependency,
    document_type: DocumentType = Path(...),
    auth_context: AuthContext = Depends(get_auth_context)
):
    config = await SequenceService(store, auth_context.tenant_id).update_config(document_type.value, changes)
    return _to_out(config)
