"""Redirect and directory endpoints."""

from fastapi import APIRouter, Depends, Query

from chat_redirects.contracts import (
    CreateScheduledRedirectRequest,
    CycleResultResponse,
    DirectoryUsersResponse,
    MessageResponse,
    RedirectChatsRequest,
    RedirectSummary,
    ScheduledRedirectResponse,
    SectorResponse,
    UpdateEndDateRequest,
)
from chat_redirects.service import RedirectOrchestrator, RedirectReconciler

from backoffice_api.deps import get_orchestrator, get_reconciler

redirects_router = APIRouter(prefix="/redirects", tags=["redirects"])
directory_router = APIRouter(prefix="/directory", tags=["directory"])


# =============================================================================
# Redirects
# =============================================================================

@redirects_router.post("/immediate", response_model=MessageResponse)
def redirect_immediately(
    body: RedirectChatsRequest,
    orchestrator: RedirectOrchestrator = Depends(get_orchestrator),
):
    """Move a user's chats now and install the sector override."""
    return orchestrator.redirect_immediately(body.source_user_id, body.destination_user_id)


@redirects_router.get("", response_model=list[RedirectSummary])
def list_redirects(orchestrator: RedirectOrchestrator = Depends(get_orchestrator)):
    """Ad-hoc overrides plus scheduled/active records."""
    return orchestrator.list_all()


@redirects_router.post("/scheduled", response_model=ScheduledRedirectResponse, status_code=201)
def create_scheduled_redirect(
    body: CreateScheduledRedirectRequest,
    orchestrator: RedirectOrchestrator = Depends(get_orchestrator),
):
    record = orchestrator.create_scheduled_redirect(
        source_user_id=body.source_user_id,
        destination_user_id=body.destination_user_id,
        sector_code=body.sector_code,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    return ScheduledRedirectResponse.from_record(record)


@redirects_router.delete("/scheduled/{redirect_id}", response_model=ScheduledRedirectResponse)
def cancel_scheduled_redirect(
    redirect_id: str,
    orchestrator: RedirectOrchestrator = Depends(get_orchestrator),
):
    """Cancel a scheduled record (an active one is ended early)."""
    record = orchestrator.cancel_scheduled_redirect(redirect_id)
    return ScheduledRedirectResponse.from_record(record)


@redirects_router.delete(
    "/overrides/{sector_code}/{destination_user_id}",
    response_model=MessageResponse,
)
def remove_override(
    sector_code: str,
    destination_user_id: str,
    orchestrator: RedirectOrchestrator = Depends(get_orchestrator),
):
    entry = orchestrator.remove_override(sector_code, destination_user_id)
    return {"message": f"Override {entry.key} removed from account {entry.account_id}."}


@redirects_router.delete("/{redirect_id}", response_model=MessageResponse)
def cancel_or_remove(
    redirect_id: str,
    scheduled: bool = Query(False, description="True for a record ID, false for sectorCode:destinationUserId"),
    orchestrator: RedirectOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.cancel_or_remove(redirect_id, scheduled)


@redirects_router.patch("/{redirect_id}/end-date", response_model=ScheduledRedirectResponse)
def update_end_date(
    redirect_id: str,
    body: UpdateEndDateRequest,
    orchestrator: RedirectOrchestrator = Depends(get_orchestrator),
):
    record = orchestrator.update_end_date(redirect_id, body.end_date)
    return ScheduledRedirectResponse.from_record(record)


@redirects_router.get("/users/{user_id}/sectors", response_model=list[SectorResponse])
def list_user_sectors(
    user_id: str,
    orchestrator: RedirectOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.list_user_sectors(user_id)


@redirects_router.post("/reconcile", response_model=CycleResultResponse)
def reconcile(reconciler: RedirectReconciler = Depends(get_reconciler)):
    """Run one reconciliation cycle now."""
    result = reconciler.run_cycle()
    return CycleResultResponse.model_validate(result)


# =============================================================================
# Directory
# =============================================================================

@directory_router.get("/users", response_model=DirectoryUsersResponse)
def list_directory_users(
    filter: str | None = Query(None),
    per_page: int = Query(25, alias="perPage", ge=1, le=100),
    cursor: str | None = Query(None),
    orchestrator: RedirectOrchestrator = Depends(get_orchestrator),
):
    page = orchestrator.list_directory_users(filter=filter, per_page=per_page, cursor=cursor)
    return {
        "data": [
            {"id": user.id, "name": user.name, "email": user.email, "active": user.active}
            for user in page.users
        ],
        "meta": {
            "has_next_page": page.has_next_page,
            "next": page.next_cursor,
            "has_prev_page": page.previous_cursor is not None,
            "previous": page.previous_cursor,
            "per_page": page.per_page,
        },
    }
