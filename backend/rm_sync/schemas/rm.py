from typing import Optional
from pydantic import BaseModel, Field


class RMUser(BaseModel):
    """User object returned by the RM API."""
    id: int
    email: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> Optional[str]:
        if self.name:
            return self.name
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}".strip()
        return None


class RMProject(BaseModel):
    """Project (assignable) returned by the RM API."""
    id: int
    name: str
    code: Optional[str] = None
    client_name: Optional[str] = None
    archived: Optional[bool] = None


class RMTimeEntryPayload(BaseModel):
    """Body sent to RM when creating or updating a time entry."""
    assignable_id: int = Field(..., description="RM project ID")
    date: str = Field(..., description="Date of the work (YYYY-MM-DD)")
    hours: float = Field(..., ge=0, description="Decimal hours, 2 decimal places")
    task: str = Field(..., description="RM task category, carries the billable flag")
    notes: Optional[str] = Field(None, description="Free-text notes")
