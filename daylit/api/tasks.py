"""
Task catalog API endpoints.
"""

from fastapi import APIRouter, HTTPException, Query, status

from daylit.api.deps import TaskRepo
from daylit.models.task import Task, TaskCreate

router = APIRouter()


@router.get("", response_model=list[Task])
async def list_tasks(
    repo: TaskRepo,
    include_inactive: bool = Query(False),
):
    return await repo.list(include_inactive=include_inactive)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(task: TaskCreate, repo: TaskRepo):
    """Add a task to the catalog."""
    if task.id and await repo.get(task.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Task {task.id} already exists",
        )
    return await repo.create(task)


@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: str, repo: TaskRepo):
    task = await repo.get(task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task {task_id} not found",
        )
    return task
