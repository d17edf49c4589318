from pydantic import BaseModel

from directory.schemas.providers import LifecycleStatusName


class VerifyProviderRequest(BaseModel):
    verified: bool


class ArchiveToggleOut(BaseModel):
    message: str
    lifecycle_status: LifecycleStatusName


class LifecycleRecomputeOut(BaseModel):
    message: str
    updated: int
