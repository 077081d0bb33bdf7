"""
Base Pydantic schemas
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Response schema readable straight from ORM rows"""
    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
    )
