"""
Model and field name resolution between the auth framework and the Triplit schema.
"""

from typing import Dict, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class SchemaResolver(Protocol):
    """Maps generic model/field names to storage names and back."""

    def get_model_name(self, model: str) -> str:
        ...

    def get_default_model_name(self, model: str) -> str:
        ...

    def get_field_name(self, model: str, field: str) -> str:
        ...


class DefaultSchemaResolver:
    """
    Resolver driven by the ``use_plural`` option and optional overrides.

    Args:
        use_plural: Collections are named ``<model>s`` (``user`` -> ``users``)
        model_names: Explicit generic -> collection name overrides
        field_names: Per generic model, generic -> stored field name overrides
    """

    def __init__(
        self,
        use_plural: bool = True,
        model_names: Optional[Mapping[str, str]] = None,
        field_names: Optional[Mapping[str, Mapping[str, str]]] = None,
    ):
        self.use_plural = use_plural
        self._model_names: Dict[str, str] = dict(model_names or {})
        self._field_names: Dict[str, Dict[str, str]] = {
            model: dict(fields) for model, fields in (field_names or {}).items()
        }

    def get_model_name(self, model: str) -> str:
        default = self.get_default_model_name(model)
        if default in self._model_names:
            return self._model_names[default]
        return f"{default}s" if self.use_plural else default

    def get_default_model_name(self, model: str) -> str:
        for default, collection in self._model_names.items():
            if model == collection:
                return default
        if model in self._model_names:
            return model
        if self.use_plural and model.endswith("s"):
            return model[:-1]
        return model

    def get_field_name(self, model: str, field: str) -> str:
        fields = self._field_names.get(self.get_default_model_name(model), {})
        return fields.get(field, field)
