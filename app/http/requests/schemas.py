"""
Pydantic schemas: nested records stored on mirrored entities, and response shapes.
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

# Nested records (stored as JSON on Product / Order rows)
class VariantRecord(BaseModel):
    id: str
    title: str = ""
    price: str = "0"
    sku: str = ""

class ImageRecord(BaseModel):
    id: str
    url: str = ""
    alt: str = ""

class LineItemRecord(BaseModel):
    id: str
    title: str = ""
    quantity: int = 0
    price: str = "0"

class CustomerRecord(BaseModel):
    id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""

# Responses
class SyncResultResponse(BaseModel):
    success: bool
    count: int
    message: str
    jobId: Optional[str] = None

class SyncJobResponse(BaseModel):
    id: str
    jobType: str
    status: str
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    recordsProcessed: int = 0
    errorMessage: Optional[str] = None

class WebhookRegistrationResponse(BaseModel):
    registered: List[str]
    errors: List[dict]
