from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

DownloadType = Literal["free_download", "purchase"]


class PaymentInfo(BaseModel):
    """Receipt obtained from the payment provider before the ledger is written.

    Fields are optional here so the ledger itself can report which ones a
    purchase is missing.
    """

    amount_paid_usd: Decimal | None = Field(default=None, ge=0)
    amount_paid_zwl: Decimal | None = Field(default=None, ge=0)
    payment_method: str | None = Field(default=None, max_length=50)
    payment_reference: str | None = Field(default=None, max_length=255)


class DownloadRequest(BaseModel):
    download_type: DownloadType
    payment: PaymentInfo | None = None


class DownloadedAppSummary(BaseModel):
    id: str
    name: str
    slug: str
    icon_url: str | None = None
    version: str


class DownloadResponse(BaseModel):
    id: str
    app_id: str
    user_id: str
    download_type: str
    amount_paid_usd: float
    amount_paid_zwl: float
    payment_method: str | None = None
    payment_reference: str | None = None
    downloaded_at: datetime
    created: bool = True
    app: DownloadedAppSummary | None = None


class HasDownloadedResponse(BaseModel):
    app_id: str
    downloaded: bool
