"""User API router with CRUD operations."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from opentelemetry.trace import Span

from src.app.api.http.deps import get_request_span, get_user_service
from src.app.core.services import Conflict, Failure, NotFound, UserService
from src.app.core.telemetry import email_domain, mark_error, set_attributes
from src.app.entities.core.user import UserCreate, UserResponse, UserUpdate

router = APIRouter(prefix="/api/users", tags=["users"])


def _annotate(span: Span | None, **attributes: Any) -> None:
    # user_email_domain -> user.email.domain
    if span is not None:
        set_attributes(
            span, {key.replace("_", "."): value for key, value in attributes.items()}
        )


def _raise_for(result: Any, span: Span | None) -> None:
    """Turn a non-Ok service result into the matching HTTP outcome."""
    if isinstance(result, Failure):
        # The store's own exception, unchanged
        raise result.cause
    if isinstance(result, NotFound):
        if span is not None:
            mark_error(span, "User not found")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=result.message
        )
    if isinstance(result, Conflict):
        if span is not None:
            mark_error(span, result.message)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=result.message
        )


@router.get("", response_model=list[UserResponse])
def list_users(
    service: UserService = Depends(get_user_service),
    span: Span | None = Depends(get_request_span),
) -> list[UserResponse]:
    """List all users in creation order."""
    _annotate(span, operation="get_all_users")
    result = service.list_all()
    _raise_for(result, span)
    return result.value


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    service: UserService = Depends(get_user_service),
    span: Span | None = Depends(get_request_span),
) -> UserResponse:
    """Get a user by ID."""
    _annotate(span, operation="get_user_by_id", user_id=user_id)
    result = service.get_by_id(user_id)
    _raise_for(result, span)
    return result.value


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    response: Response,
    service: UserService = Depends(get_user_service),
    span: Span | None = Depends(get_request_span),
) -> UserResponse:
    """Create a new user. The email must not belong to another user."""
    _annotate(
        span, operation="create_user", user_email_domain=email_domain(payload.email)
    )
    result = service.create(payload)
    _raise_for(result, span)
    created = result.value
    response.headers["Location"] = f"{router.prefix}/{created.id}"
    return created


@router.put("/{user_id}", response_model=UserResponse)
@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    payload: UserUpdate,
    service: UserService = Depends(get_user_service),
    span: Span | None = Depends(get_request_span),
) -> UserResponse:
    """Update the supplied fields of a user.

    Empty first name, last name or email leave the stored value alone; an
    empty phone number clears it.
    """
    _annotate(span, operation="update_user", user_id=user_id)
    result = service.update(user_id, payload)
    _raise_for(result, span)
    return result.value


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    service: UserService = Depends(get_user_service),
    span: Span | None = Depends(get_request_span),
) -> Response:
    """Delete a user."""
    _annotate(span, operation="delete_user", user_id=user_id)
    result = service.delete(user_id)
    _raise_for(result, span)
    if not result.value:
        if span is not None:
            mark_error(span, "User not found")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=NotFound(user_id).message,
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
