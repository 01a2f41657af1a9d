from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from portfolio.auth import get_current_user, get_optional_user, get_storage, require_admin
from portfolio.schemas import (
    CommentCreate,
    CommentResponse,
    EntityType,
    LikeResponse,
    MessageResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    UserRecord,
)
from portfolio.services.notifications import notify_admins
from portfolio.storage import Storage

router = APIRouter()

NOT_FOUND = "Projeto não encontrado"


async def _visible_project(
    project_id: str, storage: Storage, user: Optional[UserRecord]
) -> ProjectResponse:
    """Fetch a project, hiding drafts from everyone but admins."""
    project = await storage.get_project(project_id, viewer_id=user.id if user else None)
    if project is None or (project.status != "published" and not (user and user.is_admin)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return project


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    include_drafts: bool = False,
    user: Optional[UserRecord] = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
):
    """Published projects, newest first. Admins may ask for drafts too."""
    return await storage.list_projects(
        viewer_id=user.id if user else None,
        include_drafts=include_drafts and user is not None and user.is_admin,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    user: Optional[UserRecord] = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
):
    return await _visible_project(project_id, storage, user)


@router.post("", response_model=ProjectResponse)
async def create_project(
    body: ProjectCreate,
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    return await storage.create_project(body)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    project = await storage.update_project(project_id, body.changes())
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return project


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: str,
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_project(project_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return MessageResponse(message="Projeto deletado com sucesso")


@router.post("/{project_id}/like", response_model=LikeResponse)
async def toggle_like(
    project_id: str,
    user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    project = await _visible_project(project_id, storage, user)
    liked = await storage.toggle_project_like(project_id, user.id)
    if liked is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    if liked:
        await notify_admins(storage, user, "like", EntityType.PROJECT, project_id, project.title)
    return LikeResponse(liked=liked)


@router.get("/{project_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    project_id: str,
    user: Optional[UserRecord] = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
):
    await _visible_project(project_id, storage, user)
    return await storage.list_project_comments(project_id)


@router.post("/{project_id}/comments", response_model=CommentResponse)
async def add_comment(
    project_id: str,
    body: CommentCreate,
    user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    project = await _visible_project(project_id, storage, user)
    comment = await storage.add_project_comment(project_id, user.id, body.content)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    await notify_admins(storage, user, "comment", EntityType.PROJECT, project_id, project.title)
    return comment
