"""Published datasource as returned by the Tableau REST API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Project(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: Optional[str] = None


class Datasource(BaseModel):
    """A published datasource. Read-only: this service never creates or mutates one."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str = ""
    project: Project
    content_url: Optional[str] = Field(None, alias="contentUrl")
    description: Optional[str] = None
    type: Optional[str] = None
    is_certified: Optional[bool] = Field(None, alias="isCertified")
    created_at: Optional[str] = Field(None, alias="createdAt")
    updated_at: Optional[str] = Field(None, alias="updatedAt")


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page_number: int = Field(1, alias="pageNumber")
    page_size: int = Field(100, alias="pageSize")
    total_available: Optional[int] = Field(None, alias="totalAvailable")
