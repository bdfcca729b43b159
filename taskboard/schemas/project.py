from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr


class ProjectCreate(BaseModel):
    name: str
    description: Optional[str] = ""


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class MemberAdd(BaseModel):
    email: EmailStr


class MemberOut(BaseModel):
    user_id: int
    email: str
    name: str
    role: str


class ProjectOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = ""
    owner_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectDetail(ProjectOut):
    members: List[MemberOut] = []
