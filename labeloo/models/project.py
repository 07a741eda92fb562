"""Pydantic model for the project record consumed by the pipelines."""

from pydantic import BaseModel


class ProjectResponse(BaseModel):
    """Project lookup result: only the fields the pipelines need."""

    id: int
    name: str
    description: str | None = None
