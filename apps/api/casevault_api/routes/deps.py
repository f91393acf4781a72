"""Shared route helpers."""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from casevault_api.cases.service import CaseService
from casevault_api.models import Case, User


def load_case(
    db: Session,
    case_id: int,
    user: User,
    write: bool = False,
    include_deleted: bool = False,
) -> Case:
    """Load a case for the current user or raise the matching HTTP error."""
    try:
        return CaseService(db).get_case_for_user(
            case_id, user, write=write, include_deleted=include_deleted
        )
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not allowed to {'modify' if write else 'view'} case {case_id}",
        )
