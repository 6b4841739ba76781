from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StudentRef(BaseModel):
    """Student columns nested into invoice rows by the join queries."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    class_name: Optional[str] = Field(default=None, alias="class")
    roll: Optional[str] = None


class Student(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    class_name: str = Field(alias="class")
    roll: str


class ParentContact(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None


class StudentParentLink(BaseModel):
    parent: Optional[ParentContact] = None


class StudentWithParents(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    student_parents: List[StudentParentLink] = Field(default_factory=list)


class StudentSearchRequest(BaseModel):
    """Search form of the parent payment page."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    class_name: str = Field(default="", alias="class")
    roll: str = ""

    @field_validator("name", "class_name", "roll", mode="before")
    def _strip(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    @model_validator(mode="after")
    def _require_one_criterion(self):
        if not (self.name or self.class_name or self.roll):
            raise ValueError("Please enter at least one search criteria")
        return self
