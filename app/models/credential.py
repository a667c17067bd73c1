from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class CredentialRecord:
    """One issued credential.  Created once, never mutated or deleted."""

    id: str
    worker_id: str
    issued_at: datetime  # UTC, set at issuance
