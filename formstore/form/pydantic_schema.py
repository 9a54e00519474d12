from typing import Any, Dict, List, Type

from pydantic import BaseModel, ValidationError

from formstore.form.state import SchemaViolation

# Path of failures not tied to a field: model validators, non-dict input
ROOT_ERROR_PATH = "__root__"


class PydanticSchema:
    """
    Schema validator backed by a pydantic model.

    pydantic collects every failure of a model in one ValidationError; each
    entry's ``loc`` tuple becomes a dotted path (``("items", 0, "name")`` ->
    ``items.0.name``). Only the first message per path is reported; errors
    raised by model validators are reported under ``__root__``.

    Usage::

        class Signup(BaseModel):
            age: int = Field(ge=18)

        manager = create_form(store, "signup", initial_values={"age": 10},
                              validation_schema=PydanticSchema(Signup))
    """
    def __init__(self, model: Type[BaseModel]):
        self.model = model

    def validate_all(self, values: Any) -> List[SchemaViolation]:
        try:
            self.model.model_validate(values)
        except ValidationError as e:
            return self._violations(e)
        return []

    @staticmethod
    def _violations(error: ValidationError) -> List[SchemaViolation]:
        messages: Dict[str, str] = {}
        for entry in error.errors():
            path = ".".join(str(part) for part in entry["loc"]) or ROOT_ERROR_PATH
            if path not in messages:
                messages[path] = entry["msg"]
        return [SchemaViolation(path=path, message=message) for path, message in messages.items()]
