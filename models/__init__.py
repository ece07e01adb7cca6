# models/__init__.py
# Request bodies. Clients send camelCase; fields are snake_case in Python.
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def changes(self) -> dict:
        """Fields the client actually sent with a non-null value."""
        return self.model_dump(exclude_unset=True, exclude_none=True)
