"""
Payment capture collaborator.

Capture runs after the booking has been committed, so a declined or failed
payment never undoes a reservation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from slot_booking.models.appointment import Appointment


@dataclass(frozen=True)
class PaymentResult:
    succeeded: bool
    reference: str | None = None
    message: str | None = None


class PaymentGateway(Protocol):
    """Protocol describing the external payment processor."""

    def capture(self, appointment: Appointment) -> PaymentResult:
        """Charge the appointment's consultation fee and report the outcome."""
