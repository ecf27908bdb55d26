"""
Base schema shared by all request/response and domain models
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Strips surrounding whitespace from strings and keeps enum members as
    enums (filters compare against EntityCategory, not raw strings).
    """

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=False,
    )
