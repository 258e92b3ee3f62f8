"""Verification Code Schemas — issue/verify payloads.

Invariants:
    - code is exactly 6 ASCII digits
    - The issued code itself never appears in a response body
"""

from datetime import datetime

from pydantic import BaseModel, Field

from gigboard.core.domain_types import CodePurpose, Role


class IssueCodeRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^\s*[^@\s]+@[^@\s]+\s*$")
    purpose: CodePurpose
    user_type: Role = Role.USER


class IssueCodeResponse(BaseModel):
    purpose: CodePurpose
    expires_at: datetime


class VerifyCodeRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    code: str = Field(pattern=r"^[0-9]{6}$")
    purpose: CodePurpose


class VerifyCodeResponse(BaseModel):
    verified: bool = True
    purpose: CodePurpose
    first_use: bool
