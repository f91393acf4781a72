"""Case routes: creation, listing, deletion, overview, findings and tools."""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from casevault_api.auth.api_key import get_current_user, require_investigator
from casevault_api.cases.service import CaseService
from casevault_api.db.session import get_db
from casevault_api.models import Case, CaseTeamMember, CaseTool, User
from casevault_api.models.user import ROLE_CLIENT, ROLE_INVESTIGATOR
from casevault_api.routes.deps import load_case

router = APIRouter(prefix="/v1", tags=["cases"])


class UserSummary(BaseModel):
    """Public user details."""

    id: int
    email: str
    first_name: str
    last_name: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class CaseCreate(BaseModel):
    """Case creation request."""

    case_name: str = Field(..., min_length=1)
    client_id: int
    case_number: Optional[str] = None
    case_type: Optional[str] = None
    priority: str = "Medium"
    status: str = "Open"
    start_date: Optional[date] = None
    team_members: list[int] = Field(default_factory=list)


class CaseResponse(BaseModel):
    """Case response."""

    id: int
    case_number: str
    case_name: str
    case_type: Optional[str] = None
    priority: str
    status: str
    start_date: Optional[date] = None
    lead_investigator_id: int
    client_id: int
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime
    team_member_ids: list[int] = Field(default_factory=list)


class TextUpdate(BaseModel):
    """Overview / findings update request."""

    text: str


class ToolCreate(BaseModel):
    """Tool registration request."""

    tool_name: str = Field(..., min_length=1)
    tool_version: Optional[str] = None
    purpose: Optional[str] = None


class ToolResponse(BaseModel):
    """Tool response."""

    id: int
    tool_name: str
    tool_version: Optional[str] = None
    purpose: Optional[str] = None
    created_by: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


def _case_response(db: Session, case: Case) -> CaseResponse:
    member_ids = [
        user_id
        for (user_id,) in db.query(CaseTeamMember.user_id)
        .filter(CaseTeamMember.case_id == case.id)
        .order_by(CaseTeamMember.user_id)
        .all()
    ]
    return CaseResponse(
        id=case.id,
        case_number=case.case_number,
        case_name=case.case_name,
        case_type=case.case_type,
        priority=case.priority,
        status=case.status,
        start_date=case.start_date,
        lead_investigator_id=case.lead_investigator_id,
        client_id=case.client_id,
        is_deleted=case.is_deleted,
        deleted_at=case.deleted_at,
        created_at=case.created_at,
        team_member_ids=member_ids,
    )


@router.get("/me", response_model=UserSummary)
def get_me(user: User = Depends(get_current_user)):
    """Get the authenticated user."""
    return user


@router.get("/users/search", response_model=list[UserSummary])
def search_users(
    q: str = Query("", description="Name or email fragment"),
    role: str = Query(ROLE_INVESTIGATOR),
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Search investigators (for team assignment) or clients (for case creation)."""
    if role not in (ROLE_INVESTIGATOR, ROLE_CLIENT):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Cannot search role {role}",
        )
    query = db.query(User).filter(User.role == role, User.is_active == True)  # noqa: E712
    term = q.strip()
    if term:
        like = f"%{term}%"
        query = query.filter(
            User.first_name.ilike(like) | User.last_name.ilike(like) | User.email.ilike(like)
        )
    return query.order_by(User.last_name, User.first_name).limit(20).all()


@router.get("/cases/next-number")
def next_case_number(
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Suggest the next case number."""
    return {"case_number": CaseService(db).next_case_number()}


@router.post("/cases", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
def create_case(
    case_data: CaseCreate,
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Create a case, optionally with a team."""
    try:
        case = CaseService(db).create_case(
            lead=user,
            case_name=case_data.case_name,
            client_id=case_data.client_id,
            case_number=case_data.case_number,
            case_type=case_data.case_type,
            priority=case_data.priority,
            status=case_data.status,
            start_date=case_data.start_date,
            team_member_ids=case_data.team_members,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return _case_response(db, case)


@router.get("/cases", response_model=list[CaseResponse])
def list_my_cases(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List active cases for the current user."""
    return [_case_response(db, case) for case in CaseService(db).list_cases(user)]


@router.get("/cases/deleted", response_model=list[CaseResponse])
def list_deleted_cases(
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """List soft-deleted cases for the current investigator."""
    return [_case_response(db, case) for case in CaseService(db).list_cases(user, deleted=True)]


@router.get("/cases/{case_id}", response_model=CaseResponse)
def get_case(
    case_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get case details."""
    return _case_response(db, load_case(db, case_id, user))


@router.delete("/cases/{case_id}", response_model=CaseResponse)
def delete_case(
    case_id: int,
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Move a case to the deleted list."""
    case = load_case(db, case_id, user, write=True)
    return _case_response(db, CaseService(db).soft_delete(case, user))


@router.post("/cases/{case_id}/restore", response_model=CaseResponse)
def restore_case(
    case_id: int,
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Restore a soft-deleted case."""
    case = load_case(db, case_id, user, write=True, include_deleted=True)
    if not case.is_deleted:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Case {case_id} is not deleted",
        )
    return _case_response(db, CaseService(db).restore(case, user))


@router.delete("/cases/{case_id}/permanent")
def permanently_delete_case(
    case_id: int,
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Permanently delete a soft-deleted case and everything it owns."""
    case = load_case(db, case_id, user, write=True, include_deleted=True)
    try:
        removed = CaseService(db).permanent_delete(case, user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return {"case_id": case_id, "deleted": True, "removed": removed}


@router.get("/cases/{case_id}/overview")
def get_overview(
    case_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get the case overview."""
    case = load_case(db, case_id, user)
    return {"case_id": case.id, "overview": case.overview or ""}


@router.put("/cases/{case_id}/overview")
def update_overview(
    case_id: int,
    update: TextUpdate,
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Replace the case overview."""
    case = load_case(db, case_id, user, write=True)
    case = CaseService(db).update_overview(case, user, update.text)
    return {"case_id": case.id, "overview": case.overview}


@router.get("/cases/{case_id}/findings")
def get_findings(
    case_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get the case findings."""
    case = load_case(db, case_id, user)
    return {"case_id": case.id, "findings": case.findings or ""}


@router.put("/cases/{case_id}/findings")
def update_findings(
    case_id: int,
    update: TextUpdate,
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Replace the case findings."""
    case = load_case(db, case_id, user, write=True)
    case = CaseService(db).update_findings(case, user, update.text)
    return {"case_id": case.id, "findings": case.findings}


@router.get("/cases/{case_id}/tools", response_model=list[ToolResponse])
def list_tools(
    case_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List tools used on a case."""
    case = load_case(db, case_id, user)
    return (
        db.query(CaseTool)
        .filter(CaseTool.case_id == case.id)
        .order_by(CaseTool.created_at.asc(), CaseTool.id.asc())
        .all()
    )


@router.post("/cases/{case_id}/tools", response_model=ToolResponse, status_code=status.HTTP_201_CREATED)
def add_tool(
    case_id: int,
    tool_data: ToolCreate,
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Register a tool used on a case."""
    case = load_case(db, case_id, user, write=True)
    return CaseService(db).add_tool(
        case, user, tool_data.tool_name, tool_data.tool_version, tool_data.purpose
    )


@router.delete("/cases/{case_id}/tools/{tool_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_tool(
    case_id: int,
    tool_id: int,
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Remove a tool from a case."""
    case = load_case(db, case_id, user, write=True)
    try:
        CaseService(db).remove_tool(case, user, tool_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
