from typing import Any

from pydantic import BaseModel, field_validator

SOURCE_TAG = "scheduled-rotated-generator"


class GeneratedJob(BaseModel):
    title: str
    description: str

    @field_validator("title", "description")
    @classmethod
    def _require_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be empty")
        return stripped


class JobRecord(BaseModel):
    title: str
    description: str
    company_name: str
    seniority: str
    salary: int
    contact_email: str = ""
    apply_link: str = ""
    slug: str
    source: str = SOURCE_TAG
    type: str = "Full-time"
    remote: str = "Hybrid"
    country: str = "Belgium"
    state: str = ""
    city: str = "Brussels"
    country_id: str = "BE"
    state_id: str = ""
    city_id: str = "brussels"
    postal_code: str = "1000"
    street: str = ""
    plan: str = "basic"
    block_ai_applications: bool = False

    def to_row(self) -> dict[str, Any]:
        return self.model_dump()
