# /oracle_assistant/models/auth_model.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

class AuthenticatedUser(BaseModel):
    """The only user facts the application ever sees."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str

class AuthSessionInfo(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: AuthenticatedUser

class CredentialsRequest(BaseModel):
    """Mirrors the credential form: a required e-mail and a password of at least 6 characters."""
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=6, max_length=1024)

class SignUpRequest(CredentialsRequest):
    redirect_to: Optional[str] = Field(None, description="Where the confirmation link sends the user back to.")

class SignUpResponse(BaseModel):
    notice: str
    confirmation_required: bool = True

class SignOutResponse(BaseModel):
    ok: bool
