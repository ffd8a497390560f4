"""Schemas for due-date reminders."""

from pydantic import BaseModel


class Recipient(BaseModel):
    """Who a reminder goes to."""

    name: str
    email: str


class SweepReport(BaseModel):
    """What one sweep over the active loans did."""

    checked: int = 0
    sent: int = 0
    failed: int = 0
    cancelled: bool = False
