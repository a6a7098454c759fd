from datetime import datetime
from pydantic import BaseModel, Field


class RepositoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    url: str = Field(..., min_length=1, max_length=1024)
    is_private: bool = False


class RepositoryCreate(RepositoryBase):
    """Register a remote; the working copy is cloned on first use."""
    pass


class RepositoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    url: str | None = Field(None, min_length=1, max_length=1024)
    is_private: bool | None = None


class RepositoryRead(RepositoryBase):
    id: str
    user_id: int
    local_path: str | None = None
    branch_count: int
    commit_count: int
    last_updated: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
