"""FastAPI router for /notes endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from notevault.dependencies import (
    VaultClient,
    VaultNotFoundError,
    VaultSecurityError,
    get_vault_client,
    logger,
)
from notevault.notes.models import (
    BatchOutcome,
    CreateNoteRequest,
    CreateOutcome,
    DeleteRequest,
    ModifyRequest,
    TemplateNoteRequest,
    TemplateOutcome,
)
from notevault.notes.tools import create_from_template, create_note, delete_notes, modify_notes
from notevault.search.store import ResultStore, get_result_store

router = APIRouter(prefix="/notes", tags=["notes"])


@router.post("", response_model=CreateOutcome, status_code=status.HTTP_201_CREATED)
def create(
    request: CreateNoteRequest,
    vault: VaultClient = Depends(get_vault_client),
) -> CreateOutcome:
    """Create a note named after its title."""
    try:
        return create_note(vault, request)
    except VaultSecurityError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid path: cannot create notes outside the vault.",
        )
    except OSError as e:
        logger.error("note_create_failed", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create note: {e}",
        )


@router.post("/from-template", response_model=TemplateOutcome, status_code=status.HTTP_201_CREATED)
def create_from_template_file(
    request: TemplateNoteRequest,
    vault: VaultClient = Depends(get_vault_client),
) -> TemplateOutcome:
    """Create a note from a template with placeholder replacement."""
    try:
        return create_from_template(vault, request)
    except VaultNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except VaultSecurityError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid path: template and note must stay inside the vault.",
        )
    except (OSError, UnicodeDecodeError) as e:
        logger.error("note_create_failed", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create note: {e}",
        )


@router.post("/modify", response_model=BatchOutcome)
def modify(
    request: ModifyRequest,
    vault: VaultClient = Depends(get_vault_client),
    store: ResultStore = Depends(get_result_store),
) -> BatchOutcome:
    """Modify notes by index from the latest search."""
    return modify_notes(request.ids, request, store, vault)


@router.post("/delete", response_model=BatchOutcome)
def delete(
    request: DeleteRequest,
    vault: VaultClient = Depends(get_vault_client),
    store: ResultStore = Depends(get_result_store),
) -> BatchOutcome:
    """Delete notes by index from the latest search.

    Requires ``confirm: true``; there is no interactive prompt over HTTP.
    """
    if not request.confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Deletion requires confirm=true. This action cannot be undone.",
        )
    return delete_notes(request.ids, store, vault)
