from pydantic import BaseModel
from typing import Optional


class TokenData(BaseModel):
    """Claims read from the bearer token issued by the identity provider."""
    sub: int
    email: Optional[str] = None
    role: str = "employee"  # employee | manager | accounting_manager | org_admin
    tenant_id: Optional[str] = None


class CurrentUser(BaseModel):
    id: int
    email: Optional[str] = None
    role: str = "employee"
    tenant_id: Optional[str] = None

    @property
    def is_accounting(self) -> bool:
        return self.role == "accounting_manager"
