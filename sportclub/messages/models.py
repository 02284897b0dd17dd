"""
Message models - Modelli comunicazioni
"""

from typing import Optional, List
from pydantic import BaseModel, Field


class AttachmentIn(BaseModel):
    """Metadati di un file già caricato nello storage"""
    file_path: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


class MessageCreate(BaseModel):
    subject: str = Field(..., min_length=1)
    content: str = ""
    attachment_url: Optional[str] = None
    attachments: Optional[List[AttachmentIn]] = None
    selected_teams: List[str] = Field(default_factory=list)
    selected_users: List[str] = Field(default_factory=list)


class MessageUpdate(MessageCreate):
    id: Optional[str] = None
