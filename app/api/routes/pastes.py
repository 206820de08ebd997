from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from app.core.errors import ValidationAppError
from app.schemas.paste import CreatePasteRequest, PasteResponse
from app.services.paste_service import PasteService

router = APIRouter(tags=["Pastes"])


def get_paste_service(request: Request) -> PasteService:
    """Resolve the service built by the app factory."""
    return request.app.state.paste_service


PasteServiceDep = Annotated[PasteService, Depends(get_paste_service)]


def _require_id(value: str | None) -> str:
    if value is None or not value.strip():
        raise ValidationAppError(code="missing_id", message="Must pass an id string")
    return value.strip()


@router.get("/create-user", response_class=PlainTextResponse)
async def create_user(service: PasteServiceDep) -> str:
    """Issue a new user id.

    The id is the only credential: whoever holds it can attach pastes to the
    user and list the user's pastes.
    """
    return await service.create_user()


@router.post("/create-paste", response_class=PlainTextResponse)
async def create_paste(body: CreatePasteRequest, service: PasteServiceDep) -> str:
    """Store a paste and return its id.

    Raises:
        AuthorizationAppError: 403 when ``userid`` is not a known user.
        StoreAppError: 400 when the insert fails.
    """
    return await service.create_paste(body.content, body.format, body.userid)


@router.get("/read-paste", include_in_schema=False)
@router.get("/read-paste/", include_in_schema=False)
async def read_paste_without_id() -> None:
    _require_id(None)


@router.get("/read-paste/{paste_id}", response_model=list[PasteResponse])
async def read_paste(paste_id: str, service: PasteServiceDep) -> list[PasteResponse]:
    """Return the paste as a one-element list."""
    return [await service.get_paste_by_id(_require_id(paste_id))]


@router.get("/read-pastes", include_in_schema=False)
@router.get("/read-pastes/", include_in_schema=False)
async def read_pastes_without_id() -> None:
    _require_id(None)


@router.get("/read-pastes/{user_id}", response_model=list[PasteResponse])
async def read_pastes(user_id: str, service: PasteServiceDep) -> list[PasteResponse]:
    """Return every paste owned by ``user_id``, oldest first.

    Raises:
        AuthorizationAppError: 403 when ``user_id`` is not a known user.
        NotFoundAppError: 404 when the user owns no pastes.
    """
    return await service.get_pastes_by_owner(_require_id(user_id))
