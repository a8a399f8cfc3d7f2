from dataclasses import dataclass


@dataclass(frozen=True)
class Payee:
    id: int
    name: str  # unique per company, case-insensitive
    company_id: int
