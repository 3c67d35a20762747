"""Pydantic schemas for credit balances and packages."""
from studio.schemas.common import CamelModel


class CreditPackageOut(CamelModel):
    id: str
    credits: int
    price: int
    label: str
    popular: bool = False


class CreditsResponse(CamelModel):
    success: bool = True
    credits: int
    costs: dict[str, int]
    packages: list[CreditPackageOut]
