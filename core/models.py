"""Wire models for the relational, storage and authentication APIs."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base for every record exchanged with the backend.

    Unknown keys sent by the server are ignored, and fields that carry an
    alias can be populated by either name.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Assignment(WireModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    required_files: List[str] = Field(default_factory=list)
    due_date: Optional[str] = None
    class_id: Optional[str] = None


class AutograderClass(WireModel):
    """A class (course section) together with its assignments."""
    id: str
    name: Optional[str] = None
    quarter: Optional[str] = None
    assignments: List[Assignment] = Field(default_factory=list, alias="assignment")

    def __str__(self) -> str:
        return f"name:{self.name}, quarter:{self.quarter}, assignments[]:{[a.name for a in self.assignments]}"


class Profile(WireModel):
    """An application profile.

    `classes` stays None for a profile read straight from the `profile`
    table; only enrollment aggregation fills it in.
    """
    id: str
    email: Optional[str] = None
    auth_id: Optional[str] = None
    is_teacher: Optional[bool] = None
    classes: Optional[List[AutograderClass]] = None

    def __str__(self) -> str:
        classes = "<none>" if self.classes is None else [str(c) for c in self.classes]
        return f"email:{self.email}, ID:{self.id}, Classes:{classes}"


class Enrollment(WireModel):
    """One (profile, class) membership row as returned by the `enrollment` table."""
    type: Optional[str] = None
    class_: AutograderClass = Field(alias="class")
    profile: Profile


class Submission(WireModel):
    """One uploaded file version, as tracked by the `submission` table."""
    id: str
    profile_id: str
    assignment_id: str
    file_name: str
    version: int
    created_at: Optional[str] = None


class ObjectMetadata(WireModel):
    size: Optional[int] = None
    mimetype: Optional[str] = None
    cache_control: Optional[str] = Field(default=None, alias="cacheControl")


class StoredObject(WireModel):
    """An entry of a storage bucket listing (a file, or a folder when `id` is None)."""
    name: str
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_accessed_at: Optional[str] = None
    metadata: Optional[ObjectMetadata] = None


class User(WireModel):
    """The identity returned by the authentication API."""
    id: str
    aud: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None
    email_confirmed_at: Optional[str] = None
    confirmed_at: Optional[str] = None
    last_sign_in_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AuthenticationResponse(WireModel):
    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    user: User


# --- Request bodies ---

class AuthenticationRequest(WireModel):
    email: str
    password: str


class InviteTeacherRequest(WireModel):
    current_email: str = Field(alias="currentEmail")
    email: str


class SortOptions(WireModel):
    column: str
    order: str


class ListObjectsRequest(WireModel):
    limit: int
    offset: int = 0
    sort_by: SortOptions = Field(alias="sortBy")
    prefix: str
