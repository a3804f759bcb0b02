"""FastAPI router for /search."""

from fastapi import APIRouter, Depends, HTTPException, status

from notevault.dependencies import VaultClient, get_vault_client, logger
from notevault.search.models import SearchRequest, SearchResults
from notevault.search.store import ResultStore, get_result_store
from notevault.search.tools import search_notes

router = APIRouter(tags=["search"])


@router.post("/search", response_model=SearchResults)
def search(
    request: SearchRequest,
    vault: VaultClient = Depends(get_vault_client),
    store: ResultStore = Depends(get_result_store),
) -> SearchResults:
    """Search the vault and replace the stored result set."""
    try:
        return search_notes(vault, request, store)
    except OSError as e:
        logger.error("search_store_failed", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save search results: {e}",
        )
